"""
Flowcast - Exceptions
=====================

Error taxonomy for notification composition and delivery.
"""

from typing import Any, Optional


class NotificationError(Exception):
    """Base class for all notification errors."""

    def __init__(self, *args, description: str = "Notification processing failed") -> None:
        super().__init__(*(args or (description,)))
        self.description = description


# ==========================================================================
# Lookup Errors
# ==========================================================================

class LookupFailedError(NotificationError):
    """A workflow or task could not be read from the store."""


class WorkflowNotFoundError(LookupFailedError):
    def __init__(self, workflow_name: str) -> None:
        super().__init__(description=f"workflow {workflow_name} not found")
        self.workflow_name = workflow_name


class TaskNotFoundError(LookupFailedError):
    def __init__(self, workflow_name: str, task_id: int) -> None:
        super().__init__(description=f"task {workflow_name}#{task_id} not found")
        self.workflow_name = workflow_name
        self.task_id = task_id


# ==========================================================================
# Render Errors
# ==========================================================================

class JobSpecError(NotificationError):
    """Job payload does not match the shape registered for its job type."""

    def __init__(self, job_name: str, job_type: str, detail: str) -> None:
        super().__init__(
            description=f"job {job_name} ({job_type}) has an invalid spec: {detail}"
        )
        self.job_name = job_name
        self.job_type = job_type
        self.detail = detail


class RenderError(NotificationError):
    """Composing the message for one rule failed."""

    def __init__(self, rule_index: int, cause: Exception) -> None:
        super().__init__(
            description=f"failed to compose notification for rule {rule_index}: {cause}"
        )
        self.rule_index = rule_index
        self.cause = cause


class RenderAggregateError(NotificationError):
    """One or more rules failed to render; the rest were still processed."""

    def __init__(self, errors: list[RenderError], report: Any = None) -> None:
        super().__init__(
            description=f"{len(errors)} notification(s) failed to render: "
            + "; ".join(e.description for e in errors)
        )
        self.errors = errors
        self.report = report


# ==========================================================================
# Delivery Errors
# ==========================================================================

class DeliveryError(NotificationError):
    """A provider webhook call failed."""

    def __init__(
        self,
        webhook_type: str,
        detail: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(description=f"{webhook_type} delivery failed: {detail}")
        self.webhook_type = webhook_type
        self.detail = detail
        self.status_code = status_code
