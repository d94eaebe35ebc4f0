"""
Workflow Lookups
================

Read-only access to workflow definitions and task snapshots. The real
store lives elsewhere; embedding applications subclass
WorkflowRepository. InMemoryWorkflowRepository backs the default API
wiring and tests.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from flowcast.core.exceptions import TaskNotFoundError, WorkflowNotFoundError
from flowcast.core.models import TaskSnapshot, WorkflowDefinition


class WorkflowRepository(ABC):
    """Abstract lookup interface. Implementations must be safe to share."""

    @abstractmethod
    async def find_workflow(self, name: str) -> WorkflowDefinition:
        """
        Raises:
            WorkflowNotFoundError: If no workflow has that name
            LookupFailedError: On any other store failure
        """
        pass

    @abstractmethod
    async def find_task(self, workflow_name: str, task_id: int) -> TaskSnapshot:
        """
        Raises:
            TaskNotFoundError: If no such task exists (including task_id <= 0)
            LookupFailedError: On any other store failure
        """
        pass


class InMemoryWorkflowRepository(WorkflowRepository):
    """Dictionary-backed repository."""

    def __init__(
        self,
        workflows: Iterable[WorkflowDefinition] = (),
        tasks: Iterable[TaskSnapshot] = (),
    ):
        self._workflows: dict[str, WorkflowDefinition] = {}
        self._tasks: dict[tuple[str, int], TaskSnapshot] = {}
        for workflow in workflows:
            self.add_workflow(workflow)
        for task in tasks:
            self.add_task(task)

    def add_workflow(self, workflow: WorkflowDefinition) -> None:
        self._workflows[workflow.name] = workflow

    def add_task(self, task: TaskSnapshot) -> None:
        self._tasks[(task.workflow_name, task.task_id)] = task

    async def find_workflow(self, name: str) -> WorkflowDefinition:
        try:
            return self._workflows[name]
        except KeyError:
            raise WorkflowNotFoundError(name) from None

    async def find_task(self, workflow_name: str, task_id: int) -> TaskSnapshot:
        if task_id <= 0:
            raise TaskNotFoundError(workflow_name, task_id)
        try:
            return self._tasks[(workflow_name, task_id)]
        except KeyError:
            raise TaskNotFoundError(workflow_name, task_id) from None
