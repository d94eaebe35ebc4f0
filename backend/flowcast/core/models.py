"""
Flowcast - Domain Models
========================

Read-only views of workflow runs and their notification rules.
Produced upstream by the execution engine and the workflow store;
nothing in Flowcast mutates them.
"""

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from flowcast.core.exceptions import JobSpecError


# ==========================================================================
# Enums
# ==========================================================================

class TaskStatus(str, enum.Enum):
    """Status of a workflow task or job."""
    CREATED = "created"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    REJECT = "reject"
    QUEUED = "queued"
    BLOCKED = "blocked"
    PREPARE = "prepare"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    WAITING = "waiting"
    # Subscription-only values, never reported by the engine
    CHANGED = "changed"
    WAITING_APPROVE = "waitforapprove"


class JobType(str, enum.Enum):
    """Job types known to the workflow engine."""
    BUILD = "zadig-build"
    DEPLOY = "zadig-deploy"
    HELM_DEPLOY = "zadig-helm-deploy"
    CUSTOM_DEPLOY = "custom-deploy"
    FREESTYLE = "freestyle"
    PLUGIN = "plugin"
    TESTING = "zadig-test"
    SCANNING = "zadig-scanning"
    DISTRIBUTE_IMAGE = "zadig-distribute-image"
    BLUE_GREEN_DEPLOY = "k8s-blue-green-deploy"
    BLUE_GREEN_RELEASE = "k8s-blue-green-release"
    CANARY_DEPLOY = "k8s-canary-deploy"
    CANARY_RELEASE = "k8s-canary-release"
    GRAY_RELEASE = "k8s-gray-release"
    GRAY_ROLLBACK = "k8s-gray-rollback"
    K8S_PATCH = "k8s-resource-patch"
    ISTIO_RELEASE = "istio-release"
    ISTIO_ROLLBACK = "istio-rollback"
    JIRA = "jira"
    NACOS = "nacos"
    APOLLO = "apollo"
    MEEGO_TRANSITION = "meego-transition"


class WebhookType(str, enum.Enum):
    """Chat providers a notification rule can target."""
    DINGDING = "dingding"
    FEISHU = "feishu"
    WECHAT = "wechat"


class SourceProvider(str, enum.Enum):
    """Source-hosting providers for build repositories."""
    GITHUB = "github"
    GITLAB = "gitlab"
    GITEE = "gitee"
    GERRIT = "gerrit"


# ==========================================================================
# Base
# ==========================================================================

class FrozenModel(BaseModel):
    """Immutable snapshot model."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )


# ==========================================================================
# Job Specifications
# ==========================================================================

class SourceRepository(FrozenModel):
    """A repository checked out by a build job."""

    source: SourceProvider
    address: str
    repo_owner: str
    repo_name: str
    branch: str = ""
    tag: str = ""
    commit_id: str = ""
    commit_message: str = ""
    is_primary: bool = False
    prs: list[int] = Field(default_factory=list)


class KeyVal(FrozenModel):
    key: str
    value: str = ""


class BuildJobSpec(FrozenModel):
    """Payload of build and freestyle jobs."""

    repos: list[SourceRepository] = Field(default_factory=list)
    envs: list[KeyVal] = Field(default_factory=list)

    def primary_repository(self) -> Optional[SourceRepository]:
        """First repository flagged primary, else the first one."""
        for repo in self.repos:
            if repo.is_primary:
                return repo
        return self.repos[0] if self.repos else None

    def env(self, key: str) -> Optional[str]:
        value = None
        for kv in self.envs:
            if kv.key == key:
                value = kv.value
        return value


class DeployJobSpec(FrozenModel):
    """Payload of deploy and helm-deploy jobs."""

    env: str


JOB_SPEC_MODELS: dict[str, type[FrozenModel]] = {
    JobType.BUILD.value: BuildJobSpec,
    JobType.FREESTYLE.value: BuildJobSpec,
    JobType.DEPLOY.value: DeployJobSpec,
    JobType.HELM_DEPLOY.value: DeployJobSpec,
}


# ==========================================================================
# Task Snapshot
# ==========================================================================

class Job(FrozenModel):
    """One job of a stage. `spec` is decoded on demand by job type."""

    name: str
    job_type: str
    status: Optional[TaskStatus] = None
    spec: dict[str, Any] = Field(default_factory=dict)

    @field_validator("job_type", mode="before")
    @classmethod
    def normalize_job_type(cls, v: Any) -> Any:
        return v.value if isinstance(v, JobType) else v

    @field_validator("status", mode="before")
    @classmethod
    def empty_status_is_unset(cls, v: Any) -> Any:
        return v or None

    def decode_spec(self) -> Optional[FrozenModel]:
        """
        Decode the payload into the model registered for this job type.

        Returns None for job types that carry no rendered details.

        Raises:
            JobSpecError: If the payload does not match the expected shape
        """
        model = JOB_SPEC_MODELS.get(self.job_type)
        if model is None:
            return None
        try:
            return model.model_validate(self.spec)
        except ValidationError as e:
            raise JobSpecError(self.name, self.job_type, str(e)) from e


class Stage(FrozenModel):
    name: str = ""
    jobs: list[Job] = Field(default_factory=list)


class TaskSnapshot(FrozenModel):
    """State of one workflow run at the time of the status callback."""

    workflow_name: str
    workflow_display_name: str
    task_id: int
    project_name: str
    task_creator: str
    start_time: int  # epoch seconds
    status: TaskStatus
    stages: list[Stage] = Field(default_factory=list)

    def iter_jobs(self):
        """Jobs across all stages in execution order."""
        for stage in self.stages:
            yield from stage.jobs


# ==========================================================================
# Notification Rules
# ==========================================================================

class NotificationRule(FrozenModel):
    """One configured notification channel of a workflow."""

    enabled: bool = True
    webhook_type: WebhookType
    webhook_url: str
    secret: Optional[str] = None
    notify_types: list[str] = Field(default_factory=list)
    mentions: list[str] = Field(default_factory=list)  # user ids, or "all"

    def subscribes_to(self, status: str) -> bool:
        """Exact membership test against the subscribed status strings."""
        value = status.value if isinstance(status, TaskStatus) else status
        return value in set(self.notify_types)

    @property
    def mentions_all(self) -> bool:
        return "all" in self.mentions


class WorkflowDefinition(FrozenModel):
    """Workflow definition as far as notifications are concerned."""

    name: str
    display_name: str = ""
    project_name: str = ""
    notifications: list[NotificationRule] = Field(default_factory=list)
