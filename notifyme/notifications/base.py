from dataclasses import dataclass
from typing import Protocol


@dataclass
class SendResult:
    channel: str  # e.g. "lark"
    success: bool
    target: str  # masked endpoint or chat_id
    error: str | None = None


class NotificationSender(Protocol):
    """
    A ready-to-use delivery object bound to one channel.

    - send() raises DeliveryError (or the transport's own error) on failure;
      it never retries.
    - channel() / target() identify the sender in logs and SendResult.
    - aclose() releases the HTTP client the sender owns.
    """

    def channel(self) -> str: ...

    def target(self) -> str: ...

    async def send(self, message: str) -> None: ...

    async def aclose(self) -> None: ...


def mask(value: str, keep: int = 4) -> str:
    """Hide most of a secret-bearing value before it reaches a log line."""
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "*" * min(len(value) - keep, 8)
