"""
Flowcast Notifications
======================

Status classification, channel filtering, message composition and
delivery for workflow task notifications.

Components:
- classify_status_change / detect_status_change: transition detection
- should_notify_task / should_notify_approval: per-rule filtering
- MessageComposer: markdown bodies and Lark cards
- NotificationDispatcher: provider routing over httpx webhook clients
- NotificationService: entry points for the workflow engine
"""

from flowcast.core.notify.card import LarkCard, build_card
from flowcast.core.notify.classifier import classify_status_change, detect_status_change
from flowcast.core.notify.composer import ComposedMessage, MessageComposer
from flowcast.core.notify.dispatcher import NotificationDispatcher
from flowcast.core.notify.filters import should_notify_approval, should_notify_task
from flowcast.core.notify.repository import InMemoryWorkflowRepository, WorkflowRepository
from flowcast.core.notify.service import (
    NotificationReport,
    NotificationService,
    create_notification_service,
)
from flowcast.core.notify.transports import DingTalkClient, LarkClient, WeComClient

__all__ = [
    "ComposedMessage",
    "DingTalkClient",
    "InMemoryWorkflowRepository",
    "LarkCard",
    "LarkClient",
    "MessageComposer",
    "NotificationDispatcher",
    "NotificationReport",
    "NotificationService",
    "WeComClient",
    "WorkflowRepository",
    "build_card",
    "classify_status_change",
    "create_notification_service",
    "detect_status_change",
    "should_notify_approval",
    "should_notify_task",
]
