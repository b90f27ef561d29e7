"""
Sender factory — map a channel descriptor to a ready sender.

The descriptor union is closed: adding a channel means adding a model in
notifyme.schemas.channel and a case below.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from notifyme.errors import (
    ChannelNotImplementedError,
    SenderConstructionError,
    UnsupportedChannelError,
)
from notifyme.notifications.base import NotificationSender
from notifyme.notifications.lark import LarkSender
from notifyme.notifications.telegram import TelegramSender
from notifyme.schemas.channel import (
    CHANNEL_KINDS,
    ChannelDescriptor,
    CommandChannel,
    EmailChannel,
    HttpChannel,
    LarkChannel,
    PhoneCallChannel,
    SmsChannel,
    TelegramChannel,
    channel_adapter,
)

logger = structlog.get_logger()


@dataclass
class BuildReport:
    senders: list[NotificationSender] = field(default_factory=list)
    errors: list[SenderConstructionError] = field(default_factory=list)


def parse_descriptor(raw: Mapping[str, Any]) -> ChannelDescriptor:
    """Validate a raw config mapping into a typed descriptor."""
    kind = raw.get("type")
    if kind not in CHANNEL_KINDS:
        raise UnsupportedChannelError(f"unsupported channel type: {kind!r}", kind=str(kind))
    try:
        return channel_adapter.validate_python(dict(raw))
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first["loc"][1:]) or "<root>"
        raise SenderConstructionError(
            f"{kind} channel has an invalid field '{where}': {first['msg']}", kind=kind
        ) from e


def _require(descriptor: ChannelDescriptor, *fields: str) -> None:
    for name in fields:
        if not getattr(descriptor, name):
            raise SenderConstructionError(
                f"{descriptor.type} channel is missing required field '{name}'",
                kind=descriptor.type,
            )


def build_sender(
    descriptor: ChannelDescriptor | Mapping[str, Any],
    *,
    http: httpx.AsyncClient | None = None,
) -> NotificationSender:
    """Build a sender for one descriptor.

    Args:
        descriptor: Typed descriptor or the raw mapping read from a config set.
        http: Optional shared client; each sender creates its own otherwise.

    Raises:
        UnsupportedChannelError: unknown "type".
        ChannelNotImplementedError: known kind without a working backend.
        SenderConstructionError: a required parameter is missing or invalid.
    """
    if isinstance(descriptor, Mapping):
        descriptor = parse_descriptor(descriptor)

    match descriptor:
        case TelegramChannel():
            _require(descriptor, "token", "chat_id")
            return TelegramSender(
                descriptor.token,
                descriptor.chat_id,
                parse_mode=descriptor.parse_mode,
                disable_web_page_preview=descriptor.disable_web_page_preview,
                disable_notification=descriptor.disable_notification,
                http=http,
            )
        case LarkChannel():
            _require(descriptor, "webhook_url", "sign_key")
            return LarkSender(descriptor.webhook_url, descriptor.sign_key, descriptor.at, http=http)
        case EmailChannel():
            raise ChannelNotImplementedError("email")
        case HttpChannel():
            raise ChannelNotImplementedError("http")
        case CommandChannel():
            raise ChannelNotImplementedError("cmd")
        case SmsChannel():
            raise ChannelNotImplementedError("sms")
        case PhoneCallChannel():
            raise ChannelNotImplementedError("phone-call")
        case _:
            raise UnsupportedChannelError(
                f"unsupported channel descriptor: {type(descriptor).__name__}"
            )


async def build_senders(
    descriptors: Iterable[ChannelDescriptor | Mapping[str, Any]],
    *,
    strict: bool = False,
    http: httpx.AsyncClient | None = None,
) -> BuildReport:
    """Build every sender of a config set.

    Every descriptor is attempted. A bad one is logged and recorded in
    BuildReport.errors while the valid ones are still built. With strict=True
    the collected errors are raised together as one SenderConstructionError
    and the senders built so far are closed.
    """
    report = BuildReport()
    for index, descriptor in enumerate(descriptors):
        try:
            report.senders.append(build_sender(descriptor, http=http))
        except SenderConstructionError as e:
            logger.warning("factory.channel_skipped", index=index, kind=e.kind, error=str(e))
            report.errors.append(e)

    if strict and report.errors:
        for sender in report.senders:
            await sender.aclose()
        summary = "; ".join(str(e) for e in report.errors)
        raise SenderConstructionError(
            f"{len(report.errors)} channel(s) could not be configured: {summary}"
        )

    logger.info("factory.built", senders=len(report.senders), skipped=len(report.errors))
    return report
