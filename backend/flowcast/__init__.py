"""
Flowcast
========

Workflow task notifications for DingTalk, Lark and WeCom chat robots.
"""

__version__ = "0.1.0"
