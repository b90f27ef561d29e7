"""
Telegram output: send text through the Bot API sendMessage method.
"""

import httpx
import structlog

from notifyme.config import settings
from notifyme.errors import DeliveryError
from notifyme.notifications.base import mask

logger = structlog.get_logger()

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramSender:
    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        parse_mode: str | None = None,
        disable_web_page_preview: bool | None = None,
        disable_notification: bool | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.parse_mode = parse_mode
        self.disable_web_page_preview = disable_web_page_preview
        self.disable_notification = disable_notification
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)

    def channel(self) -> str:
        return "telegram"

    def target(self) -> str:
        return self.chat_id

    @property
    def url(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"

    def build_payload(self, message: str) -> dict:
        payload: dict = {"chat_id": self.chat_id, "text": message}
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode
        if self.disable_web_page_preview is not None:
            payload["disable_web_page_preview"] = self.disable_web_page_preview
        if self.disable_notification is not None:
            payload["disable_notification"] = self.disable_notification
        return payload

    async def send(self, message: str) -> None:
        resp = await self._http.post(self.url, json=self.build_payload(message))
        if not resp.is_success:
            logger.error(
                "telegram.send_failed",
                bot=mask(self.bot_token),
                status=resp.status_code,
                body=resp.text[:200],
            )
            raise DeliveryError(
                f"Failed to send Telegram message: {resp.status_code} - {resp.text}",
                status=resp.status_code,
            )
        logger.info("telegram.sent", chat_id=self.chat_id)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
