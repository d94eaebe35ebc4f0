"""
Status change detection for task notifications.
"""

from typing import Optional

import structlog

from flowcast.core.models import TaskSnapshot, TaskStatus
from flowcast.core.notify.repository import WorkflowRepository

logger = structlog.get_logger()


def classify_status_change(
    current: TaskSnapshot,
    previous: Optional[TaskSnapshot],
) -> bool:
    """
    Decide whether `current` counts as a status transition.

    - No previous task known: changed (notify rather than drop).
    - Otherwise changed when the status differs and the task is not running.
    - A freshly created task is never a transition.
    """
    if previous is None:
        changed = True
    else:
        changed = current.status != previous.status and current.status != TaskStatus.RUNNING

    if current.status == TaskStatus.CREATED:
        changed = False
    return changed


async def detect_status_change(
    repository: WorkflowRepository,
    task: TaskSnapshot,
) -> bool:
    """Look up the preceding run and classify; lookup failures fail open."""
    previous: Optional[TaskSnapshot] = None
    try:
        previous = await repository.find_task(task.workflow_name, task.task_id - 1)
    except Exception as e:  # any lookup failure counts as "changed"
        logger.warning(
            "previous_task_lookup_failed",
            workflow=task.workflow_name,
            task_id=task.task_id,
            error=str(e),
        )
    return classify_status_change(task, previous)
