"""
Notification Service
====================

Entry points called by the workflow engine:

- notify_on_task_update: a task changed state
- notify_on_approval_requested: a task is waiting for manual approval

Flow per call:
┌──────────┐   ┌────────────┐   ┌──────────┐   ┌──────────┐   ┌────────────┐
│ snapshot │──▶│ classifier │──▶│  filter  │──▶│ composer │──▶│ dispatcher │
└──────────┘   └────────────┘   └──────────┘   └──────────┘   └────────────┘
                                 (per rule)

Lookup errors on the workflow propagate. Delivery errors are logged and
recorded in the report, and the remaining rules still run. Render errors
either abort immediately (NOTIFY_ABORT_ON_RENDER_ERROR) or are collected
and raised together after every rule has been tried.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from flowcast.core.config import Settings
from flowcast.core.exceptions import DeliveryError, RenderAggregateError, RenderError
from flowcast.core.models import NotificationRule, TaskSnapshot
from flowcast.core.notify.classifier import detect_status_change
from flowcast.core.notify.composer import ComposedMessage, MessageComposer
from flowcast.core.notify.dispatcher import NotificationDispatcher
from flowcast.core.notify.filters import should_notify_approval, should_notify_task
from flowcast.core.notify.repository import WorkflowRepository

logger = structlog.get_logger()


@dataclass
class NotificationReport:
    """Outcome of one notification call."""
    matched: int = 0
    delivered: int = 0
    skipped: int = 0
    render_failed: int = 0
    failed: list[DeliveryError] = field(default_factory=list)

    @property
    def all_delivered(self) -> bool:
        return self.delivered == self.matched


class NotificationService:
    """Decides, composes and sends workflow task notifications."""

    def __init__(
        self,
        repository: WorkflowRepository,
        dispatcher: NotificationDispatcher,
        composer: MessageComposer,
        abort_on_render_error: bool = False,
    ):
        self.repository = repository
        self.dispatcher = dispatcher
        self.composer = composer
        self.abort_on_render_error = abort_on_render_error

    async def notify_on_task_update(self, task: TaskSnapshot) -> NotificationReport:
        """
        Notify every rule interested in this task update.

        Raises:
            LookupFailedError: If the workflow definition cannot be read
            RenderError: First render failure, when aborting on render errors
            RenderAggregateError: All render failures, otherwise
        """
        report = NotificationReport()
        log = logger.bind(workflow=task.workflow_name, task_id=task.task_id)

        if task.task_id <= 0:
            log.debug("notification_skipped_invalid_task_id")
            return report

        workflow = await self.repository.find_workflow(task.workflow_name)
        if not workflow.notifications:
            return report

        status_changed = await detect_status_change(self.repository, task)
        log.debug("status_classified", status=task.status, changed=status_changed)

        selected = []
        for idx, rule in enumerate(workflow.notifications):
            if should_notify_task(rule, task, status_changed):
                selected.append((idx, rule))
            else:
                report.skipped += 1
                log.debug("notification_skipped", rule=idx, enabled=rule.enabled)

        await self._process(
            selected,
            lambda rule: self.composer.compose_task(rule, task),
            report,
            log,
        )
        return report

    async def notify_on_approval_requested(
        self, workflow_name: str, task_id: int
    ) -> NotificationReport:
        """
        Notify rules subscribed to approval requests.

        Raises:
            LookupFailedError: If the workflow or the task cannot be read
            RenderError / RenderAggregateError: As for notify_on_task_update
        """
        report = NotificationReport()
        log = logger.bind(workflow=workflow_name, task_id=task_id)

        workflow = await self.repository.find_workflow(workflow_name)
        task = await self.repository.find_task(workflow_name, task_id)

        selected = []
        for idx, rule in enumerate(workflow.notifications):
            if should_notify_approval(rule):
                selected.append((idx, rule))
            else:
                report.skipped += 1
                log.debug("notification_skipped", rule=idx, enabled=rule.enabled)

        await self._process(
            selected,
            lambda rule: self.composer.compose_approval(rule, task),
            report,
            log,
        )
        return report

    async def _process(
        self,
        selected: list[tuple[int, NotificationRule]],
        compose: Callable[[NotificationRule], ComposedMessage],
        report: NotificationReport,
        log,
    ) -> None:
        render_errors: list[RenderError] = []
        report.matched = len(selected)

        for idx, rule in selected:
            try:
                message = compose(rule)
            except Exception as e:
                error = RenderError(idx, e)
                log.error("notification_render_failed", rule=idx, error=str(e))
                if self.abort_on_render_error:
                    raise error from e
                render_errors.append(error)
                report.render_failed += 1
                continue

            try:
                await self.dispatcher.dispatch(message, rule)
                report.delivered += 1
            except DeliveryError as e:
                log.error(
                    "notification_delivery_failed",
                    rule=idx,
                    webhook_type=e.webhook_type,
                    error=e.detail,
                )
                report.failed.append(e)

        if render_errors:
            raise RenderAggregateError(render_errors, report=report)


def create_notification_service(
    settings: Settings,
    repository: WorkflowRepository,
    dispatcher: Optional[NotificationDispatcher] = None,
    clock: Callable[[], float] = time.time,
) -> NotificationService:
    """Wire a service from settings."""
    return NotificationService(
        repository=repository,
        dispatcher=dispatcher or NotificationDispatcher.create(timeout=settings.WEBHOOK_TIMEOUT_SECONDS),
        composer=MessageComposer(settings.SYSTEM_ADDRESS, tz=settings.notify_tz, clock=clock),
        abort_on_render_error=settings.NOTIFY_ABORT_ON_RENDER_ERROR,
    )
