"""
Flowcast - Notifications API
============================

Endpoints the workflow engine calls when a task changes state or starts
waiting for approval.
"""

from fastapi import APIRouter, HTTPException, status

from flowcast.api.deps import AppSettings, Notifier
from flowcast.core.exceptions import (
    LookupFailedError,
    RenderAggregateError,
    RenderError,
)
from flowcast.core.models import TaskSnapshot
from flowcast.core.schemas import (
    ApprovalNotificationRequest,
    NotificationReportResponse,
    NotifyStatusResponse,
)


router = APIRouter(prefix="/notify", tags=["Notifications"])


# ==========================================================================
# Status Endpoint
# ==========================================================================

@router.get(
    "/status",
    response_model=NotifyStatusResponse,
    summary="Get notification settings",
)
async def notification_status(settings: AppSettings) -> NotifyStatusResponse:
    return NotifyStatusResponse(
        system_address=settings.SYSTEM_ADDRESS,
        timezone=settings.NOTIFY_TIMEZONE,
        webhook_timeout_seconds=settings.WEBHOOK_TIMEOUT_SECONDS,
        abort_on_render_error=settings.NOTIFY_ABORT_ON_RENDER_ERROR,
    )


# ==========================================================================
# Task Notifications
# ==========================================================================

@router.post(
    "/task",
    response_model=NotificationReportResponse,
    summary="Notify channels about a task update",
    responses={
        404: {"description": "Workflow not found"},
        422: {"description": "Notification could not be rendered"},
    },
)
async def notify_task(task: TaskSnapshot, notifier: Notifier) -> NotificationReportResponse:
    """
    Evaluate every notification rule of the task's workflow.

    Delivery failures are reported in the response body, not as errors.
    """
    try:
        report = await notifier.notify_on_task_update(task)
    except LookupFailedError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.description)
    except (RenderError, RenderAggregateError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.description)

    return NotificationReportResponse.from_report(report)


@router.post(
    "/approval",
    response_model=NotificationReportResponse,
    summary="Notify channels that a task waits for approval",
    responses={
        404: {"description": "Workflow or task not found"},
        422: {"description": "Notification could not be rendered"},
    },
)
async def notify_approval(
    data: ApprovalNotificationRequest,
    notifier: Notifier,
) -> NotificationReportResponse:
    try:
        report = await notifier.notify_on_approval_requested(data.workflow_name, data.task_id)
    except LookupFailedError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.description)
    except (RenderError, RenderAggregateError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.description)

    return NotificationReportResponse.from_report(report)
