"""
Chat Webhook Clients
====================

Thin httpx clients for the three supported chat robots:
- DingTalk: markdown message with optional @mobiles / @all, signed URL
- Lark (Feishu): interactive card or plain text, signed body
- WeCom (WeChat Work): markdown message

Each send raises DeliveryError on transport failures, non-2xx responses
and provider error codes. No retries happen here.
"""

import base64
import hashlib
import hmac
import time
from typing import Any, Callable, Optional

import httpx
import structlog

from flowcast.core.exceptions import DeliveryError
from flowcast.core.models import WebhookType
from flowcast.core.notify.card import LarkCard

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 5.0


class WebhookClient:
    """Shared POST/response handling for chat robot webhooks."""

    webhook_type: WebhookType

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self.clock = clock

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(
        self,
        url: str,
        payload: dict[str, Any],
        params: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.post(url, json=payload, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(self.webhook_type.value, f"{type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise DeliveryError(
                self.webhook_type.value,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        self._check_response(body)
        logger.debug("webhook_delivered", webhook_type=self.webhook_type.value)
        return body

    def _check_response(self, body: dict[str, Any]) -> None:
        errcode = body.get("errcode", 0)
        if errcode:
            raise DeliveryError(
                self.webhook_type.value,
                f"errcode {errcode}: {body.get('errmsg', '')}",
            )


# ==========================================================================
# DingTalk
# ==========================================================================

class DingTalkClient(WebhookClient):
    webhook_type = WebhookType.DINGDING

    def sign(self, secret: str) -> dict[str, str]:
        """Query parameters for a DingTalk robot with signing enabled."""
        timestamp = str(int(self.clock() * 1000))
        string_to_sign = f"{timestamp}\n{secret}"
        digest = hmac.new(
            secret.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return {"timestamp": timestamp, "sign": base64.b64encode(digest).decode("utf-8")}

    async def send_markdown(
        self,
        url: str,
        title: str,
        text: str,
        at_mobiles: Optional[list[str]] = None,
        at_all: bool = False,
        secret: Optional[str] = None,
    ) -> None:
        payload = {
            "msgtype": "markdown",
            "markdown": {"title": title, "text": text},
            "at": {"atMobiles": at_mobiles or [], "isAtAll": at_all},
        }
        await self._post(url, payload, params=self.sign(secret) if secret else None)


# ==========================================================================
# Lark (Feishu)
# ==========================================================================

class LarkClient(WebhookClient):
    webhook_type = WebhookType.FEISHU

    def sign(self, secret: str) -> dict[str, str]:
        """Body fields for a Lark robot with signature verification."""
        timestamp = str(int(self.clock()))
        string_to_sign = f"{timestamp}\n{secret}"
        digest = hmac.new(string_to_sign.encode("utf-8"), digestmod=hashlib.sha256).digest()
        return {"timestamp": timestamp, "sign": base64.b64encode(digest).decode("utf-8")}

    def _check_response(self, body: dict[str, Any]) -> None:
        code = body.get("code", body.get("StatusCode", 0))
        if code:
            raise DeliveryError(
                self.webhook_type.value,
                f"code {code}: {body.get('msg', body.get('StatusMessage', ''))}",
            )

    async def send_card(self, url: str, card: LarkCard, secret: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"msg_type": "interactive", "card": card.to_dict()}
        if secret:
            payload.update(self.sign(secret))
        await self._post(url, payload)

    async def send_text(self, url: str, text: str, secret: Optional[str] = None) -> None:
        payload: dict[str, Any] = {"msg_type": "text", "content": {"text": text}}
        if secret:
            payload.update(self.sign(secret))
        await self._post(url, payload)


# ==========================================================================
# WeCom (WeChat Work)
# ==========================================================================

class WeComClient(WebhookClient):
    webhook_type = WebhookType.WECHAT

    async def send_markdown(self, url: str, content: str) -> None:
        payload = {"msgtype": "markdown", "markdown": {"content": content}}
        await self._post(url, payload)
