"""
Flowcast - Test Fixtures
========================

Shared pytest fixtures for all tests.
"""

from datetime import timezone
from typing import Any, Callable

import pytest

from flowcast.core.config import Settings
from flowcast.core.exceptions import DeliveryError
from flowcast.core.models import (
    JobType,
    NotificationRule,
    TaskSnapshot,
    TaskStatus,
    WebhookType,
    WorkflowDefinition,
)
from flowcast.core.notify.composer import ComposedMessage, MessageComposer
from flowcast.core.notify.repository import InMemoryWorkflowRepository
from flowcast.core.notify.service import NotificationService


# ==========================================================================
# Constants
# ==========================================================================

SYSTEM_ADDRESS = "https://flow.example.com"
START_TIME = 1_700_000_000  # 2023-11-14 22:13:20 UTC
NOW = START_TIME + 3725  # 1h2m5s later
WORKFLOW = "build-and-deploy"


def fixed_clock() -> float:
    return float(NOW)


# ==========================================================================
# Builders
# ==========================================================================

def make_task(**overrides: Any) -> TaskSnapshot:
    """Build a task snapshot with sensible defaults."""
    data: dict[str, Any] = {
        "workflow_name": WORKFLOW,
        "workflow_display_name": "Build & Deploy",
        "task_id": 12,
        "project_name": "shop",
        "task_creator": "alice",
        "start_time": START_TIME,
        "status": TaskStatus.PASSED,
        "stages": [],
    }
    data.update(overrides)
    return TaskSnapshot.model_validate(data)


def make_rule(**overrides: Any) -> NotificationRule:
    data: dict[str, Any] = {
        "enabled": True,
        "webhook_type": WebhookType.DINGDING,
        "webhook_url": "https://oapi.dingtalk.com/robot/send?access_token=abc",
        "notify_types": [TaskStatus.PASSED.value],
    }
    data.update(overrides)
    return NotificationRule.model_validate(data)


def build_job(name: str = "build-api", repos: list[dict] | None = None, **spec: Any) -> dict:
    return {
        "name": name,
        "job_type": JobType.BUILD.value,
        "status": TaskStatus.PASSED.value,
        "spec": {"repos": repos or [], **spec},
    }


def github_repo(**overrides: Any) -> dict:
    data: dict[str, Any] = {
        "source": "github",
        "address": "https://github.com",
        "repo_owner": "acme",
        "repo_name": "api",
        "branch": "main",
        "commit_id": "0123456789abcdef",
        "commit_message": "Fix checkout",
    }
    data.update(overrides)
    return data


# ==========================================================================
# Test Doubles
# ==========================================================================

class RecordingDispatcher:
    """Dispatcher double that records deliveries and can fail on demand."""

    def __init__(self, fail_urls: set[str] | None = None):
        self.sent: list[tuple[ComposedMessage, NotificationRule]] = []
        self.fail_urls = fail_urls or set()

    async def dispatch(self, message: ComposedMessage, rule: NotificationRule) -> None:
        if rule.webhook_url in self.fail_urls:
            raise DeliveryError(rule.webhook_type.value, "connection refused")
        self.sent.append((message, rule))

    async def aclose(self) -> None:
        pass


# ==========================================================================
# Fixtures
# ==========================================================================

@pytest.fixture
def clock() -> Callable[[], float]:
    return fixed_clock


@pytest.fixture
def composer() -> MessageComposer:
    return MessageComposer(SYSTEM_ADDRESS, tz=timezone.utc, clock=fixed_clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        ENVIRONMENT="test",
        SYSTEM_ADDRESS=SYSTEM_ADDRESS,
        NOTIFY_TIMEZONE="UTC",
        _env_file=None,
    )


@pytest.fixture
def repository() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def service(
    repository: InMemoryWorkflowRepository,
    dispatcher: RecordingDispatcher,
    composer: MessageComposer,
) -> NotificationService:
    return NotificationService(repository, dispatcher, composer)


def add_workflow(repository: InMemoryWorkflowRepository, *rules: NotificationRule) -> None:
    repository.add_workflow(
        WorkflowDefinition(name=WORKFLOW, display_name="Build & Deploy", notifications=list(rules))
    )
