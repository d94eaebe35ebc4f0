"""
Content Composer Tests
======================

Markdown output for DingTalk and WeCom, card output for Lark.
"""

from datetime import timezone

import pytest

from conftest import (
    NOW,
    START_TIME,
    SYSTEM_ADDRESS,
    build_job,
    fixed_clock,
    github_repo,
    make_rule,
    make_task,
)
from flowcast.core.exceptions import JobSpecError
from flowcast.core.models import JobType, TaskStatus, WebhookType
from flowcast.core.notify.composer import ComposedMessage, MessageComposer

DETAIL_URL = (
    f"{SYSTEM_ADDRESS}/v1/projects/detail/shop/pipelines/custom/build-and-deploy/12"
    "?display_name=Build%20%26%20Deploy"
)


def wechat_rule(**overrides):
    return make_rule(
        webhook_type=WebhookType.WECHAT,
        webhook_url="https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=k",
        **overrides,
    )


def feishu_rule(**overrides):
    return make_rule(
        webhook_type=WebhookType.FEISHU,
        webhook_url="https://open.feishu.cn/open-apis/bot/v2/hook/h",
        **overrides,
    )


# ==========================================================================
# Title and Base Info
# ==========================================================================

class TestTaskMessage:

    def test_dingding_full_body(self, composer: MessageComposer):
        message = composer.compose_task(make_rule(), make_task())

        assert message.title == "#### 👍 Workflow Build & Deploy #12 succeeded \n"
        assert message.body == (
            "#### 👍 Workflow Build & Deploy #12 succeeded \n"
            "##### **Creator**: alice \n"
            "##### **Project**: shop \n"
            "##### **Started**: 2023-11-14 22:13:20 \n"
            "##### **Duration**: 1h2m5s \n"
            "\n\n---\n\n"
            f"[Click to view more details]({DETAIL_URL})"
        )
        assert message.card is None

    def test_wechat_full_body(self, composer: MessageComposer):
        message = composer.compose_task(wechat_rule(), make_task(status=TaskStatus.FAILED))

        assert message.body == (
            '#### ⚠️ <font color="warning">Workflow Build & Deploy #12 failed</font> \n'
            "**Creator**: alice \n"
            "**Project**: shop \n"
            "**Started**: 2023-11-14 22:13:20 \n"
            "**Duration**: 1h2m5s \n"
            "\n\n"
            f"[Click to view more details]({DETAIL_URL})"
        )

    @pytest.mark.parametrize(
        "status, icon, phrase, color",
        [
            (TaskStatus.PASSED, "👍", "succeeded", "info"),
            (TaskStatus.CREATED, "👍", "started", "info"),
            (TaskStatus.CANCELLED, "⚠️", "cancelled", "comment"),
            (TaskStatus.TIMEOUT, "⚠️", "timed out", "comment"),
            (TaskStatus.REJECT, "⚠️", "rejected", "comment"),
            (TaskStatus.FAILED, "⚠️", "failed", "warning"),
        ],
    )
    def test_wechat_title_per_status(self, composer, status, icon, phrase, color):
        message = composer.compose_task(wechat_rule(), make_task(status=status))
        assert message.title == (
            f'#### {icon} <font color="{color}">Workflow Build & Deploy #12 {phrase}</font> \n'
        )

    def test_negative_duration_degrades_to_zero(self):
        composer = MessageComposer(SYSTEM_ADDRESS, tz=timezone.utc, clock=lambda: START_TIME - 10)
        message = composer.compose_task(make_rule(), make_task())
        assert "##### **Duration**: 0s \n" in message.body

    def test_out_of_range_start_time_still_renders(self, composer: MessageComposer):
        message = composer.compose_task(make_rule(), make_task(start_time=10**12))
        assert "##### **Started**: 1000000000000 \n" in message.body

    def test_same_input_gives_identical_output(self, composer: MessageComposer):
        task = make_task(stages=[{"jobs": [build_job(repos=[github_repo(prs=[2, 1])])]}])
        rule = make_rule(mentions=["13800000000"])

        assert composer.compose_task(rule, task) == composer.compose_task(rule, task)

    def test_system_address_trailing_slash_is_ignored(self):
        composer = MessageComposer(SYSTEM_ADDRESS + "/", tz=timezone.utc, clock=fixed_clock)
        message = composer.compose_task(make_rule(), make_task())
        assert message.body.endswith(f"({DETAIL_URL})")


# ==========================================================================
# Job Blocks
# ==========================================================================

class TestJobBlocks:

    def test_build_job_uses_primary_repository(self, composer: MessageComposer):
        """Second repo is primary, PR ids rendered ascending."""
        repos = [
            github_repo(),
            {
                "source": "gitlab",
                "address": "https://gitlab.example.com",
                "repo_owner": "acme",
                "repo_name": "web",
                "branch": "release",
                "commit_id": "fedcba9876543210",
                "commit_message": "Ship it",
                "is_primary": True,
                "prs": [5, 3],
            },
        ]
        task = make_task(stages=[{"jobs": [build_job(repos=repos)]}])

        body = composer.compose_task(make_rule(), task).body

        assert (
            "\n\n---\n\n##### **Build**: build-api    **Status**: succeeded \n"
            "##### **Code**: release "
            "[#3](https://gitlab.example.com/acme/web/merge_requests/3) "
            "[#5](https://gitlab.example.com/acme/web/merge_requests/5) "
            "[fedcba98](https://gitlab.example.com/acme/web/commit/fedcba98) \n"
            "##### **Commit Message**: Ship it \n"
        ) in body
        assert "acme/api" not in body

    def test_first_repository_is_primary_by_default(self, composer: MessageComposer):
        repos = [github_repo(), github_repo(repo_name="other", commit_id="ffffffffffff")]
        task = make_task(stages=[{"jobs": [build_job(repos=repos)]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "[01234567](https://github.com/acme/api/commit/01234567)" in body
        assert "other" not in body

    @pytest.mark.parametrize(
        "source, address, link",
        [
            ("github", "https://github.com", "https://github.com/acme/api/pull/7"),
            ("gitee", "https://gitee.com", "https://gitee.com/acme/api/pulls/7"),
            ("gitlab", "https://gitlab.com", "https://gitlab.com/acme/api/merge_requests/7"),
            ("gerrit", "https://review.example.com", "https://review.example.com/7"),
        ],
    )
    def test_pr_link_per_provider(self, composer, source, address, link):
        repo = github_repo(source=source, address=address, prs=[7])
        task = make_task(stages=[{"jobs": [build_job(repos=[repo])]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert f"[#7]({link}) " in body

    def test_tag_takes_precedence_over_branch(self, composer: MessageComposer):
        repo = github_repo(branch="main", tag="v1.2.0")
        task = make_task(stages=[{"jobs": [build_job(repos=[repo])]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "**Code**: v1.2.0 [01234567]" in body

    def test_short_commit_id_hides_code_lines(self, composer: MessageComposer):
        repo = github_repo(commit_id="abc1234")
        task = make_task(stages=[{"jobs": [build_job(repos=[repo])]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "**Code**" not in body
        assert "**Commit Message**" not in body

    def test_exactly_eight_character_commit_id_is_shown(self, composer: MessageComposer):
        repo = github_repo(commit_id="abcdef12")
        task = make_task(stages=[{"jobs": [build_job(repos=[repo])]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "[abcdef12](https://github.com/acme/api/commit/abcdef12)" in body

    def test_multiline_commit_message(self, composer: MessageComposer):
        repo = github_repo(commit_message="Fix checkout\n\nAdd tests\n")
        task = make_task(stages=[{"jobs": [build_job(repos=[repo])]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "**Commit Message**: \nFix checkout \n \nAdd tests \n" in body

    def test_image_env_is_shown(self, composer: MessageComposer):
        job = build_job(
            repos=[github_repo()],
            envs=[{"key": "SERVICE", "value": "api"}, {"key": "IMAGE", "value": "reg.io/api:12"}],
        )
        task = make_task(stages=[{"jobs": [job]}])

        body = composer.compose_task(make_rule(), task).body

        assert "##### **Image**: reg.io/api:12 \n" in body

    def test_image_without_repositories(self, composer: MessageComposer):
        job = build_job(envs=[{"key": "IMAGE", "value": "reg.io/api:12"}])
        task = make_task(stages=[{"jobs": [job]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "**Build**: build-api    **Status**: succeeded \n**Image**: reg.io/api:12 \n" in body

    def test_deploy_job_shows_environment_only(self, composer: MessageComposer):
        job = {
            "name": "deploy-api",
            "job_type": JobType.DEPLOY.value,
            "status": "passed",
            "spec": {"env": "staging", "repos": [github_repo()]},
        }
        task = make_task(stages=[{"jobs": [job]}])

        body = composer.compose_task(make_rule(), task).body

        assert (
            "\n\n---\n\n##### **Deploy**: deploy-api    **Status**: succeeded \n"
            "##### **Environment**: staging \n"
            "\n\n---\n\n[Click"
        ) in body
        assert "**Code**" not in body

    def test_helm_deploy_job_shows_environment(self, composer: MessageComposer):
        job = {"name": "chart", "job_type": JobType.HELM_DEPLOY.value, "spec": {"env": "prod"}}
        task = make_task(stages=[{"jobs": [job]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert "**Helm Deploy**: chart    **Status**: not started \n**Environment**: prod \n" in body

    def test_other_job_types_have_header_only(self, composer: MessageComposer):
        jobs = [
            {"name": "unit", "job_type": JobType.TESTING.value, "status": "failed"},
            {"name": "hook", "job_type": "webhook-call", "status": "cancelled"},
        ]
        task = make_task(stages=[{"jobs": jobs[:1]}, {"jobs": jobs[1:]}])

        body = composer.compose_task(wechat_rule(), task).body

        assert (
            "\n\n**Test**: unit    **Status**: failed \n"
            "\n\n**webhook-call**: hook    **Status**: cancelled \n"
            "\n\n[Click"
        ) in body

    def test_jobs_keep_stage_order(self, composer: MessageComposer):
        task = make_task(
            stages=[
                {"name": "build", "jobs": [build_job("b1"), build_job("b2")]},
                {"name": "deploy", "jobs": [{"name": "d1", "job_type": "zadig-deploy", "spec": {"env": "dev"}}]},
            ]
        )

        body = composer.compose_task(wechat_rule(), task).body

        assert body.index("b1") < body.index("b2") < body.index("d1")

    def test_malformed_spec_fails_loudly(self, composer: MessageComposer):
        job = {"name": "deploy-api", "job_type": JobType.DEPLOY.value, "spec": {"envs": "staging"}}
        task = make_task(stages=[{"jobs": [job]}])

        with pytest.raises(JobSpecError) as exc_info:
            composer.compose_task(make_rule(), task)

        assert exc_info.value.job_name == "deploy-api"


# ==========================================================================
# Mentions
# ==========================================================================

class TestMentions:

    def test_dingding_mobiles(self, composer: MessageComposer):
        rule = make_rule(mentions=["13800000000", "13900000000"])
        body = composer.compose_task(rule, make_task()).body
        assert "##### **Related People**: @13800000000@13900000000 \n\n\n---\n\n[Click" in body

    def test_dingding_all(self, composer: MessageComposer):
        rule = make_rule(mentions=["13800000000", "all"])
        body = composer.compose_task(rule, make_task()).body
        assert "##### **Related People**: @all \n" in body

    def test_wechat_users_sorted_and_unique(self, composer: MessageComposer):
        rule = wechat_rule(mentions=["bob", "alice", "bob"])
        body = composer.compose_task(rule, make_task()).body
        assert "##### **Related People**: <@alice> <@bob> \n" in body

    def test_no_mentions_renders_nothing(self, composer: MessageComposer):
        body = composer.compose_task(wechat_rule(), make_task()).body
        assert "Related People" not in body


# ==========================================================================
# Lark Cards
# ==========================================================================

class TestCardMessage:

    def test_card_instead_of_markdown(self, composer: MessageComposer):
        message = composer.compose_task(feishu_rule(), make_task())

        assert message.is_card
        assert message.title == ""
        assert message.body == ""
        assert message.card.header_title == "👍 Workflow Build & Deploy #12 succeeded"

    def test_failed_task_gets_warning_color(self, composer: MessageComposer):
        message = composer.compose_task(feishu_rule(), make_task(status=TaskStatus.FAILED))

        assert message.card.header_color == "red"
        assert message.card.action.url == DETAIL_URL
        assert "display_name=Build%20%26%20Deploy" in message.card.action.url

    @pytest.mark.parametrize(
        "status, color",
        [
            (TaskStatus.PASSED, "green"),
            (TaskStatus.CREATED, "green"),
            (TaskStatus.TIMEOUT, "grey"),
            (TaskStatus.CANCELLED, "grey"),
            (TaskStatus.REJECT, "grey"),
        ],
    )
    def test_header_color_per_status(self, composer, status, color):
        message = composer.compose_task(feishu_rule(), make_task(status=status))
        assert message.card.header_color == color

    def test_field_order_matches_markdown(self, composer: MessageComposer):
        task = make_task(
            stages=[{"jobs": [
                build_job(repos=[github_repo()]),
                {"name": "deploy-api", "job_type": "zadig-deploy", "status": "passed", "spec": {"env": "dev"}},
            ]}]
        )

        card = composer.compose_task(feishu_rule(), task).card
        contents = [f.content for f in card.fields]

        assert contents[:4] == [
            "**Creator**: alice",
            "**Project**: shop",
            "**Started**: 2023-11-14 22:13:20",
            "**Duration**: 1h2m5s",
        ]
        assert contents[4].startswith("**Build**: build-api")
        assert "**Code**: main [01234567]" in contents[4]
        assert contents[5] == "**Deploy**: deploy-api    **Status**: succeeded \n**Environment**: dev"
        # base info shares one block, each job has its own
        assert [len(block) for block in card.blocks] == [4, 1, 1]

    def test_mentions_travel_separately(self, composer: MessageComposer):
        message = composer.compose_task(feishu_rule(mentions=["ou_1", "ou_2"]), make_task())

        assert message.mentions == '<at user_id="ou_1"></at> <at user_id="ou_2"></at>'
        card_text = str(message.card.to_dict())
        assert "ou_1" not in card_text

    def test_mention_all(self, composer: MessageComposer):
        message = composer.compose_task(feishu_rule(mentions=["ou_1", "all"]), make_task())
        assert message.mentions == '<at user_id="all"></at>'


# ==========================================================================
# Approval Requests
# ==========================================================================

class TestApprovalMessage:

    def test_dingding_approval_body(self, composer: MessageComposer):
        task = make_task(status=TaskStatus.RUNNING, stages=[{"jobs": [build_job()]}])

        message = composer.compose_approval(make_rule(), task)

        assert message.body == (
            "#### ⚠️ Workflow Build & Deploy #12 is waiting for approval \n"
            "##### **Creator**: alice \n"
            "##### **Project**: shop \n"
            "##### **Started**: 2023-11-14 22:13:20 \n"
            "##### **Duration**: 1h2m5s \n"
            f"[Click to view more details]({DETAIL_URL})"
        )

    def test_wechat_approval_title_is_info_colored(self, composer: MessageComposer):
        message = composer.compose_approval(wechat_rule(), make_task(status=TaskStatus.RUNNING))
        assert '<font color="info">Workflow Build & Deploy #12 is waiting for approval</font>' in message.title

    def test_card_approval_is_green_without_jobs(self, composer: MessageComposer):
        task = make_task(status=TaskStatus.RUNNING, stages=[{"jobs": [build_job()]}])

        card = composer.compose_approval(feishu_rule(), task).card

        assert card.header_color == "green"
        assert len(card.fields) == 4
        assert card.action.url == DETAIL_URL


class TestComposedMessage:

    def test_card_and_markdown_are_exclusive(self, composer: MessageComposer):
        card = composer.compose_task(feishu_rule(), make_task()).card
        with pytest.raises(ValueError):
            ComposedMessage(title="t", body="b", card=card)


def test_clock_constant_is_consistent():
    assert NOW - START_TIME == 3725
