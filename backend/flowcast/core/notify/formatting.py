"""
Notification Formatting Rules
=============================

Provider dialects, label tables and the small pure helpers the composer
and card builder share. Everything here is built once at import time and
only read afterwards.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable, Optional
from urllib.parse import quote

import structlog

from flowcast.core.models import (
    JobType,
    NotificationRule,
    SourceProvider,
    SourceRepository,
    TaskSnapshot,
    TaskStatus,
    WebhookType,
)

logger = structlog.get_logger()


# ==========================================================================
# Colors
# ==========================================================================

class ColorTone(str, enum.Enum):
    """Provider-neutral color meaning derived from a status."""
    INFO = "info"
    COMMENT = "comment"
    WARNING = "warning"


def status_tone(status: Optional[TaskStatus]) -> ColorTone:
    if status in (TaskStatus.PASSED, TaskStatus.CREATED):
        return ColorTone.INFO
    if status in (TaskStatus.TIMEOUT, TaskStatus.CANCELLED):
        return ColorTone.COMMENT
    if status == TaskStatus.FAILED:
        return ColorTone.WARNING
    return ColorTone.COMMENT


# ==========================================================================
# Provider Dialects
# ==========================================================================

@dataclass(frozen=True)
class ProviderFormat:
    """How one chat provider wants its markdown shaped."""
    title_prefix: str = ""
    line_prefix: str = ""
    section_rule: str = ""
    colored_title: bool = False
    uses_card: bool = False
    colors: Optional[dict[ColorTone, str]] = None

    def color(self, tone: ColorTone) -> str:
        return (self.colors or {}).get(tone, tone.value)


PROVIDER_FORMATS: dict[str, ProviderFormat] = {
    WebhookType.DINGDING.value: ProviderFormat(
        title_prefix="#### ",
        line_prefix="##### ",
        section_rule="---\n\n",
    ),
    WebhookType.WECHAT.value: ProviderFormat(
        title_prefix="#### ",
        colored_title=True,
        colors={
            ColorTone.INFO: "info",
            ColorTone.COMMENT: "comment",
            ColorTone.WARNING: "warning",
        },
    ),
    WebhookType.FEISHU.value: ProviderFormat(
        uses_card=True,
        colors={
            ColorTone.INFO: "green",
            ColorTone.COMMENT: "grey",
            ColorTone.WARNING: "red",
        },
    ),
}


def provider_format(webhook_type: str) -> ProviderFormat:
    return PROVIDER_FORMATS[WebhookType(webhook_type).value]


# ==========================================================================
# Labels
# ==========================================================================

POSITIVE_ICON = "👍"
NEGATIVE_ICON = "⚠️"

TASK_STATUS_LABELS = {
    TaskStatus.PASSED.value: "succeeded",
    TaskStatus.CANCELLED.value: "cancelled",
    TaskStatus.TIMEOUT.value: "timed out",
    TaskStatus.REJECT.value: "rejected",
    TaskStatus.CREATED.value: "started",
}
DEFAULT_STATUS_LABEL = "failed"
UNSET_STATUS_LABEL = "not started"

JOB_TYPE_LABELS = {
    JobType.BUILD.value: "Build",
    JobType.DEPLOY.value: "Deploy",
    JobType.HELM_DEPLOY.value: "Helm Deploy",
    JobType.CUSTOM_DEPLOY.value: "Custom Deploy",
    JobType.FREESTYLE.value: "Freestyle",
    JobType.PLUGIN.value: "Custom Task",
    JobType.TESTING.value: "Test",
    JobType.SCANNING.value: "Code Scan",
    JobType.DISTRIBUTE_IMAGE.value: "Image Distribution",
    JobType.BLUE_GREEN_DEPLOY.value: "Blue-Green Deploy",
    JobType.BLUE_GREEN_RELEASE.value: "Blue-Green Release",
    JobType.CANARY_DEPLOY.value: "Canary Deploy",
    JobType.CANARY_RELEASE.value: "Canary Release",
    JobType.GRAY_RELEASE.value: "Gray Release",
    JobType.GRAY_ROLLBACK.value: "Gray Rollback",
    JobType.K8S_PATCH.value: "Update k8s YAML",
    JobType.ISTIO_RELEASE.value: "Istio Release",
    JobType.ISTIO_ROLLBACK.value: "Istio Rollback",
    JobType.JIRA.value: "Jira Issue Update",
    JobType.NACOS.value: "Nacos Config Update",
    JobType.APOLLO.value: "Apollo Config Update",
    JobType.MEEGO_TRANSITION.value: "Meego Work Item Transition",
}

LABEL_CREATOR = "Creator"
LABEL_PROJECT = "Project"
LABEL_START_TIME = "Started"
LABEL_DURATION = "Duration"
LABEL_STATUS = "Status"
LABEL_CODE = "Code"
LABEL_COMMIT_MESSAGE = "Commit Message"
LABEL_IMAGE = "Image"
LABEL_ENVIRONMENT = "Environment"
LABEL_MENTIONS = "Related People"
DETAIL_BUTTON_TEXT = "Click to view more details"
APPROVAL_PHRASE = "is waiting for approval"


def status_icon(status: TaskStatus) -> str:
    if status in (TaskStatus.PASSED, TaskStatus.CREATED):
        return POSITIVE_ICON
    return NEGATIVE_ICON


def task_status_label(status: Optional[TaskStatus]) -> str:
    if status is None:
        return UNSET_STATUS_LABEL
    return TASK_STATUS_LABELS.get(TaskStatus(status).value, DEFAULT_STATUS_LABEL)


def job_type_label(job_type: str) -> str:
    """Human label for a job type; unknown types render their raw value."""
    return JOB_TYPE_LABELS.get(job_type, job_type)


# ==========================================================================
# Time
# ==========================================================================

def format_start_time(start_time: int, tz: Optional[tzinfo] = None) -> str:
    """Epoch seconds as `YYYY-MM-DD HH:MM:SS` (local time unless `tz`)."""
    return datetime.fromtimestamp(start_time, tz).strftime("%Y-%m-%d %H:%M:%S")


def start_time_text(start_time: int, tz: Optional[tzinfo] = None) -> str:
    """Like format_start_time, but falls back to the raw epoch value."""
    try:
        return format_start_time(start_time, tz)
    except (ValueError, OverflowError, OSError) as e:
        logger.warning("start_time_format_failed", start_time=start_time, error=str(e))
        return str(start_time)


def format_duration(seconds: int) -> str:
    """
    Render whole seconds the way Go's time.Duration prints them.

    Examples: 0s, 45s, 5m0s, 1h2m5s

    Raises:
        ValueError: If seconds is negative
    """
    seconds = int(seconds)
    if seconds < 0:
        raise ValueError(f"negative duration: {seconds}s")
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def duration_text(seconds: int) -> str:
    """Like format_duration, but degrades to `0s` instead of failing."""
    try:
        return format_duration(seconds)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning("duration_format_failed", seconds=seconds, error=str(e))
        return "0s"


# ==========================================================================
# Links
# ==========================================================================

PR_LINK_BUILDERS: dict[str, Callable[[SourceRepository, int], str]] = {
    SourceProvider.GITHUB.value: lambda r, pr: f"{r.address}/{r.repo_owner}/{r.repo_name}/pull/{pr}",
    SourceProvider.GITEE.value: lambda r, pr: f"{r.address}/{r.repo_owner}/{r.repo_name}/pulls/{pr}",
    SourceProvider.GITLAB.value: lambda r, pr: f"{r.address}/{r.repo_owner}/{r.repo_name}/merge_requests/{pr}",
    SourceProvider.GERRIT.value: lambda r, pr: f"{r.address}/{pr}",
}


def pr_links(repo: SourceRepository) -> list[str]:
    """Markdown `[#id](url)` links for the repository's PRs, ascending."""
    build = PR_LINK_BUILDERS[SourceProvider(repo.source).value]
    return [f"[#{pr}]({build(repo, pr)})" for pr in sorted(repo.prs)]


def commit_url(repo: SourceRepository, commit_id: str) -> str:
    return f"{repo.address}/{repo.repo_owner}/{repo.repo_name}/commit/{commit_id}"


def task_detail_url(base_address: str, task: TaskSnapshot) -> str:
    return (
        f"{base_address}/v1/projects/detail/{task.project_name}"
        f"/pipelines/custom/{task.workflow_name}/{task.task_id}"
        f"?display_name={quote(task.workflow_display_name, safe='')}"
    )


# ==========================================================================
# Mentions
# ==========================================================================

def _dingding_mentions(rule: NotificationRule) -> str:
    if rule.mentions_all:
        return f"##### **{LABEL_MENTIONS}**: @all \n"
    if rule.mentions:
        return f"##### **{LABEL_MENTIONS}**: @{'@'.join(rule.mentions)} \n"
    return ""


def _wechat_mentions(rule: NotificationRule) -> str:
    if not rule.mentions:
        return ""
    users = " ".join(f"<@{user}>" for user in sorted(set(rule.mentions)))
    return f"##### **{LABEL_MENTIONS}**: {users} \n"


def _feishu_mentions(rule: NotificationRule) -> str:
    if rule.mentions_all:
        return '<at user_id="all"></at>'
    return " ".join(f'<at user_id="{user}"></at>' for user in rule.mentions)


MENTION_RENDERERS: dict[str, Callable[[NotificationRule], str]] = {
    WebhookType.DINGDING.value: _dingding_mentions,
    WebhookType.WECHAT.value: _wechat_mentions,
    WebhookType.FEISHU.value: _feishu_mentions,
}


def mention_text(rule: NotificationRule) -> str:
    """Provider-specific at-mention directive; empty when none configured."""
    return MENTION_RENDERERS[WebhookType(rule.webhook_type).value](rule)
