import httpx
import pytest

from notifyme.errors import (
    ChannelNotImplementedError,
    SenderConstructionError,
    UnsupportedChannelError,
)
from notifyme.notifications import LarkSender, TelegramSender, build_sender, build_senders
from notifyme.schemas.channel import EmailChannel, LarkChannel, TelegramChannel

from conftest import ExplodingTransport


@pytest.fixture
def http() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=ExplodingTransport())


def test_builds_telegram_from_raw_mapping(http: httpx.AsyncClient) -> None:
    sender = build_sender({"type": "telegram", "token": "t", "chat_id": "42"}, http=http)
    assert isinstance(sender, TelegramSender)
    assert sender.channel() == "telegram"
    assert sender.target() == "42"


def test_builds_lark_from_typed_descriptor(http: httpx.AsyncClient) -> None:
    sender = build_sender(LarkChannel(webhook_url="https://hook/x", sign_key="k", at="U1"), http=http)
    assert isinstance(sender, LarkSender)
    assert sender.at_user_id == "U1"


def test_missing_field_is_named(http: httpx.AsyncClient) -> None:
    with pytest.raises(SenderConstructionError) as exc_info:
        build_sender(TelegramChannel(chat_id="42"), http=http)
    assert "'token'" in str(exc_info.value)
    assert exc_info.value.kind == "telegram"

    with pytest.raises(SenderConstructionError, match="'sign_key'"):
        build_sender({"type": "lark", "webhook_url": "https://hook/x"}, http=http)


@pytest.mark.parametrize("kind", ["email", "http", "cmd", "sms", "sms-twilio", "phone-call"])
def test_unimplemented_kinds_fail_fast(kind: str, http: httpx.AsyncClient) -> None:
    with pytest.raises(ChannelNotImplementedError) as exc_info:
        build_sender({"type": kind}, http=http)
    assert "not implemented" in str(exc_info.value)
    assert isinstance(exc_info.value, SenderConstructionError)


def test_email_descriptor_is_not_implemented(http: httpx.AsyncClient) -> None:
    descriptor = EmailChannel.model_validate({"to": "a@example.com", "from": "b@example.com"})
    assert descriptor.from_ == "b@example.com"
    with pytest.raises(ChannelNotImplementedError, match="email"):
        build_sender(descriptor, http=http)


def test_unknown_kind_is_unsupported(http: httpx.AsyncClient) -> None:
    with pytest.raises(UnsupportedChannelError, match="pigeon"):
        build_sender({"type": "pigeon"}, http=http)
    with pytest.raises(UnsupportedChannelError):
        build_sender({"token": "no type at all"}, http=http)


def test_invalid_field_type_is_reported(http: httpx.AsyncClient) -> None:
    with pytest.raises(SenderConstructionError, match="disable_notification"):
        build_sender(
            {"type": "telegram", "token": "t", "chat_id": "1", "disable_notification": "maybe"},
            http=http,
        )


CHANNELS = [
    {"type": "telegram", "token": "t", "chat_id": "1"},
    {"type": "email", "to": "a@example.com"},
    {"type": "lark", "webhook_url": "https://hook/x"},
    {"type": "lark", "webhook_url": "https://hook/y", "sign_key": "k"},
]


@pytest.mark.asyncio
async def test_build_senders_skips_bad_channels(http: httpx.AsyncClient) -> None:
    report = await build_senders(CHANNELS, http=http)

    assert [s.channel() for s in report.senders] == ["telegram", "lark"]
    assert len(report.errors) == 2
    assert isinstance(report.errors[0], ChannelNotImplementedError)
    assert "'sign_key'" in str(report.errors[1])


@pytest.mark.asyncio
async def test_build_senders_strict_raises_with_every_error(http: httpx.AsyncClient) -> None:
    with pytest.raises(SenderConstructionError) as exc_info:
        await build_senders(CHANNELS, strict=True, http=http)

    text = str(exc_info.value)
    assert text.startswith("2 channel(s) could not be configured")
    assert "email notification not implemented yet" in text
    assert "'sign_key'" in text


@pytest.mark.asyncio
async def test_build_senders_strict_passes_when_all_valid(http: httpx.AsyncClient) -> None:
    report = await build_senders([CHANNELS[0], CHANNELS[3]], strict=True, http=http)
    assert len(report.senders) == 2
    assert report.errors == []
