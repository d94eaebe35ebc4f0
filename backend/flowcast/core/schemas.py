"""
Flowcast - Pydantic Schemas
===========================

Request and response schemas for the HTTP API.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from flowcast.core.notify.service import NotificationReport


# ==========================================================================
# Base Schemas
# ==========================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class ErrorResponse(BaseSchema):
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


class HealthResponse(BaseSchema):
    status: str
    version: str
    environment: str


# ==========================================================================
# Notification Schemas
# ==========================================================================

class ApprovalNotificationRequest(BaseSchema):
    """Request body for approval-request notifications."""

    workflow_name: str = Field(min_length=1)
    task_id: int


class DeliveryFailure(BaseSchema):
    webhook_type: str
    detail: str
    status_code: Optional[int] = None


class NotificationReportResponse(BaseSchema):
    """Outcome of a notification call."""

    matched: int
    delivered: int
    skipped: int
    render_failed: int = 0
    failed: list[DeliveryFailure] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: NotificationReport) -> "NotificationReportResponse":
        return cls(
            matched=report.matched,
            delivered=report.delivered,
            skipped=report.skipped,
            render_failed=report.render_failed,
            failed=[
                DeliveryFailure(
                    webhook_type=e.webhook_type,
                    detail=e.detail,
                    status_code=e.status_code,
                )
                for e in report.failed
            ],
        )


class NotifyStatusResponse(BaseSchema):
    """Notification settings currently in effect."""

    system_address: str
    timezone: Optional[str] = None
    webhook_timeout_seconds: float
    abort_on_render_error: bool
