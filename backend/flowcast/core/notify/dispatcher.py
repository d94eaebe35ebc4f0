"""
Notification Dispatcher
=======================

Routes a composed message to the delivery path of the rule's provider:

    dingding -> DingTalk markdown (mentions in the `at` block)
    feishu   -> Lark card, then a separate mention text if any
    others   -> WeCom markdown
"""

from typing import Optional

import httpx
import structlog

from flowcast.core.models import NotificationRule, WebhookType
from flowcast.core.notify.composer import ComposedMessage
from flowcast.core.notify.transports import (
    DEFAULT_TIMEOUT_SECONDS,
    DingTalkClient,
    LarkClient,
    WeComClient,
)

logger = structlog.get_logger()


class NotificationDispatcher:
    """Delivers composed messages. Raises DeliveryError on failure."""

    def __init__(
        self,
        dingtalk: DingTalkClient,
        lark: LarkClient,
        wecom: WeComClient,
    ):
        self.dingtalk = dingtalk
        self.lark = lark
        self.wecom = wecom

    @classmethod
    def create(
        cls,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "NotificationDispatcher":
        """Build a dispatcher whose clients share one HTTP connection pool."""
        http_client = http_client or httpx.AsyncClient(timeout=timeout)
        return cls(
            dingtalk=DingTalkClient(http_client),
            lark=LarkClient(http_client),
            wecom=WeComClient(http_client),
        )

    async def aclose(self) -> None:
        # All three clients normally share one pool; closing twice is harmless
        for client in (self.dingtalk, self.lark, self.wecom):
            await client.aclose()

    async def dispatch(self, message: ComposedMessage, rule: NotificationRule) -> None:
        """
        Send `message` through the provider configured on `rule`.

        Raises:
            DeliveryError: If the provider call fails
        """
        webhook_type = WebhookType(rule.webhook_type)

        if webhook_type == WebhookType.DINGDING:
            await self.dingtalk.send_markdown(
                rule.webhook_url,
                message.title,
                message.body,
                at_mobiles=[m for m in rule.mentions if m != "all"],
                at_all=rule.mentions_all,
                secret=rule.secret,
            )
        elif webhook_type == WebhookType.FEISHU:
            await self.lark.send_card(rule.webhook_url, message.card, secret=rule.secret)
            if message.mentions:
                await self.lark.send_text(rule.webhook_url, message.mentions, secret=rule.secret)
        else:
            await self.wecom.send_markdown(rule.webhook_url, message.body)

        logger.info(
            "notification_sent",
            webhook_type=webhook_type.value,
            card=message.is_card,
        )
