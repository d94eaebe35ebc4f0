"""
Channel filtering: which notification rules react to an event.
"""

from flowcast.core.models import NotificationRule, TaskSnapshot, TaskStatus


def should_notify_task(rule: NotificationRule, task: TaskSnapshot, status_changed: bool) -> bool:
    """
    A task update goes to an enabled rule subscribed to the task's status,
    or subscribed to "changed" when the status actually changed.
    """
    if not rule.enabled:
        return False
    if rule.subscribes_to(task.status):
        return True
    return status_changed and rule.subscribes_to(TaskStatus.CHANGED)


def should_notify_approval(rule: NotificationRule) -> bool:
    """Approval requests only go to enabled rules subscribed to them."""
    return rule.enabled and rule.subscribes_to(TaskStatus.WAITING_APPROVE)
