"""
Notification Composer
=====================

Renders a workflow task into the message a notification rule's provider
expects: a markdown title and body for DingTalk and WeCom, an interactive
card plus a separate mention text for Lark.

Rendering is plain string assembly driven by the provider table in
`formatting`; the only failure mode is a job whose spec payload does not
decode (JobSpecError).
"""

import time
from dataclasses import dataclass
from datetime import tzinfo
from typing import Callable, Optional

from flowcast.core.models import (
    BuildJobSpec,
    DeployJobSpec,
    Job,
    NotificationRule,
    TaskSnapshot,
)
from flowcast.core.notify.card import LarkCard, build_card
from flowcast.core.notify.formatting import (
    APPROVAL_PHRASE,
    DETAIL_BUTTON_TEXT,
    LABEL_CODE,
    LABEL_COMMIT_MESSAGE,
    LABEL_CREATOR,
    LABEL_DURATION,
    LABEL_ENVIRONMENT,
    LABEL_IMAGE,
    LABEL_PROJECT,
    LABEL_START_TIME,
    LABEL_STATUS,
    ColorTone,
    ProviderFormat,
    commit_url,
    duration_text,
    job_type_label,
    mention_text,
    pr_links,
    provider_format,
    start_time_text,
    status_icon,
    status_tone,
    task_detail_url,
    task_status_label,
)

SHORT_COMMIT_LEN = 8


@dataclass(frozen=True)
class ComposedMessage:
    """Either a markdown (title, body) pair or a card, never both."""
    title: str = ""
    body: str = ""
    card: Optional[LarkCard] = None
    mentions: str = ""  # follow-up text for card messages

    def __post_init__(self):
        if self.card is not None and (self.title or self.body):
            raise ValueError("a composed message is either markdown or a card")

    @property
    def is_card(self) -> bool:
        return self.card is not None


class MessageComposer:
    """
    Builds ComposedMessage objects for task updates and approval requests.

    Output depends only on the task, the rule and the clock value, so the
    same inputs always produce byte-identical messages.
    """

    def __init__(
        self,
        system_address: str,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.system_address = system_address.rstrip("/")
        self.tz = tz
        self.clock = clock

    # ==================== Entry Points ====================

    def compose_task(self, rule: NotificationRule, task: TaskSnapshot) -> ComposedMessage:
        """
        Compose a task status notification.

        Raises:
            JobSpecError: If a build or deploy job's spec is malformed
        """
        fmt = provider_format(rule.webhook_type)
        title = self._title(fmt, task, task_status_label(task.status), status_tone(task.status))
        base = self._base_lines(fmt, task)
        jobs = [self._job_block(fmt, job) for job in task.iter_jobs()]
        url = task_detail_url(self.system_address, task)

        if fmt.uses_card:
            card = build_card(
                fmt.color(status_tone(task.status)),
                title,
                base,
                jobs,
                DETAIL_BUTTON_TEXT,
                url,
            )
            return ComposedMessage(card=card, mentions=mention_text(rule))

        more = f"\n\n{fmt.section_rule}[{DETAIL_BUTTON_TEXT}]({url})"
        body = title + "".join(base) + "".join(jobs) + mention_text(rule) + more
        return ComposedMessage(title=title, body=body)

    def compose_approval(self, rule: NotificationRule, task: TaskSnapshot) -> ComposedMessage:
        """Compose a "waiting for approval" notification (no job blocks)."""
        fmt = provider_format(rule.webhook_type)
        title = self._title(fmt, task, APPROVAL_PHRASE, ColorTone.INFO)
        base = self._base_lines(fmt, task)
        url = task_detail_url(self.system_address, task)

        if fmt.uses_card:
            card = build_card(
                fmt.color(ColorTone.INFO), title, base, [], DETAIL_BUTTON_TEXT, url
            )
            return ComposedMessage(card=card, mentions=mention_text(rule))

        body = title + "".join(base) + mention_text(rule) + f"[{DETAIL_BUTTON_TEXT}]({url})"
        return ComposedMessage(title=title, body=body)

    # ==================== Sections ====================

    def _title(
        self,
        fmt: ProviderFormat,
        task: TaskSnapshot,
        phrase: str,
        tone: ColorTone,
    ) -> str:
        text = f"Workflow {task.workflow_display_name} #{task.task_id} {phrase}"
        if fmt.colored_title:
            text = f'<font color="{fmt.color(tone)}">{text}</font>'
        return f"{fmt.title_prefix}{status_icon(task.status)} {text} \n"

    def _base_lines(self, fmt: ProviderFormat, task: TaskSnapshot) -> list[str]:
        elapsed = int(self.clock()) - task.start_time
        p = fmt.line_prefix
        return [
            f"{p}**{LABEL_CREATOR}**: {task.task_creator} \n",
            f"{p}**{LABEL_PROJECT}**: {task.project_name} \n",
            f"{p}**{LABEL_START_TIME}**: {start_time_text(task.start_time, self.tz)} \n",
            f"{p}**{LABEL_DURATION}**: {duration_text(elapsed)} \n",
        ]

    def _job_block(self, fmt: ProviderFormat, job: Job) -> str:
        p = fmt.line_prefix
        block = (
            f"\n\n{fmt.section_rule}{p}**{job_type_label(job.job_type)}**: {job.name}"
            f"    **{LABEL_STATUS}**: {task_status_label(job.status)} \n"
        )
        spec = job.decode_spec()
        if isinstance(spec, BuildJobSpec):
            block += self._build_details(fmt, spec)
        elif isinstance(spec, DeployJobSpec):
            block += f"{p}**{LABEL_ENVIRONMENT}**: {spec.env} \n"
        return block

    def _build_details(self, fmt: ProviderFormat, spec: BuildJobSpec) -> str:
        p = fmt.line_prefix
        details = ""

        repo = spec.primary_repository()
        if repo is not None and len(repo.commit_id) >= SHORT_COMMIT_LEN:
            commit_id = repo.commit_id[:SHORT_COMMIT_LEN]
            branch_tag = repo.tag or repo.branch
            links = pr_links(repo)
            # trailing space separates the PR list from the commit link
            pr_info = " ".join(links) + " " if links else ""
            details += (
                f"{p}**{LABEL_CODE}**: {branch_tag} {pr_info}"
                f"[{commit_id}]({commit_url(repo, commit_id)}) \n"
            )

            messages = repo.commit_message.strip("\n").split("\n")
            details += f"{p}**{LABEL_COMMIT_MESSAGE}**: "
            if len(messages) == 1:
                details += f"{messages[0]} \n"
            else:
                details += "\n" + "".join(f"{line} \n" for line in messages)

        image = spec.env("IMAGE")
        if image:
            details += f"{p}**{LABEL_IMAGE}**: {image} \n"
        return details
