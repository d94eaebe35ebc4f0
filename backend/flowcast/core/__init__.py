"""
Flowcast - Core Package
=======================

Configuration, domain models and the notification subsystem.
"""

from flowcast.core.config import settings

__all__ = ["settings"]
