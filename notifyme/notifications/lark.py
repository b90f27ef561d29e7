"""
Lark (Feishu) output: custom-bot webhook with signature verification.

Request body:
    {"timestamp": <unix seconds>, "sign": "<base64>", "msg_type": "text",
     "content": {"text": "..."}}

The bot only accepts a message when the HTTP status is 2xx and the JSON
response carries code == 0; an HTTP 200 with a non-zero code is a rejection
(bad signature, keyword filter, rate limit...).
"""

import base64
import hashlib
import hmac
import time

import httpx
import structlog

from notifyme.config import settings
from notifyme.errors import DeliveryError
from notifyme.notifications.base import mask

logger = structlog.get_logger()


def gen_sign(timestamp: int, sign_key: str) -> str:
    """Sign a webhook request.

    The string "<timestamp>\\n<sign_key>" is the HMAC-SHA256 key and the
    message is empty, as the custom-bot API expects.
    """
    string_to_sign = f"{timestamp}\n{sign_key}"
    hmac_code = hmac.new(string_to_sign.encode("utf-8"), digestmod=hashlib.sha256).digest()
    return base64.b64encode(hmac_code).decode("utf-8")


class LarkSender:
    def __init__(
        self,
        webhook_url: str,
        sign_key: str,
        at_user_id: str | None = None,
        *,
        http: httpx.AsyncClient | None = None,
    ):
        self.webhook_url = webhook_url
        self.sign_key = sign_key
        self.at_user_id = at_user_id
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)

    def channel(self) -> str:
        return "lark"

    def target(self) -> str:
        # The hook token is the last path segment; keep it out of logs.
        head, _, token = self.webhook_url.rpartition("/")
        return f"{head}/{mask(token)}" if head else mask(token)

    def format_message(self, message: str) -> str:
        if self.at_user_id:
            return f'<at user_id="{self.at_user_id}"></at>\n{message}'
        return message

    def build_payload(self, message: str, timestamp: int | None = None) -> dict:
        if timestamp is None:
            timestamp = int(time.time())
        return {
            "timestamp": timestamp,
            "sign": gen_sign(timestamp, self.sign_key),
            "msg_type": "text",
            "content": {"text": self.format_message(message)},
        }

    async def send(self, message: str) -> None:
        resp = await self._http.post(self.webhook_url, json=self.build_payload(message))

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("lark.invalid_response", status=resp.status_code, body=resp.text[:200])
            raise DeliveryError(
                f"Failed to parse Lark response: status={resp.status_code}, body={resp.text}",
                status=resp.status_code,
            ) from e

        code = data.get("code") if isinstance(data, dict) else None
        msg = data.get("msg") if isinstance(data, dict) else None
        if resp.is_success and code == 0:
            logger.info("lark.sent", target=self.target())
            return

        logger.error("lark.send_failed", status=resp.status_code, code=code, msg=msg)
        raise DeliveryError(
            f"Failed to send Lark message: status={resp.status_code}, code={code}, msg={msg}",
            status=resp.status_code,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
