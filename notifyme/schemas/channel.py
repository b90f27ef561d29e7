"""
Channel descriptors — one model per notification kind, discriminated on "type".

Credential fields are optional here on purpose: the sender factory decides
which fields a channel needs and reports the missing one by name.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, TypeAdapter


class _Descriptor(BaseModel):
    model_config = {"frozen": True, "extra": "ignore", "populate_by_name": True}


class TelegramChannel(_Descriptor):
    type: Literal["telegram"] = "telegram"
    token: str | None = None
    chat_id: str | None = None
    parse_mode: str | None = None  # "MarkdownV2" | "HTML" | "Markdown"
    disable_web_page_preview: bool | None = None
    disable_notification: bool | None = None


class LarkChannel(_Descriptor):
    type: Literal["lark"] = "lark"
    webhook_url: str | None = None
    sign_key: str | None = None
    at: str | None = None  # user_id to @mention


class SmtpSettings(_Descriptor):
    host: str | None = None
    port: int = 587
    username: str | None = None
    password: str | None = None
    encryption: str | None = None
    timeout: int | None = None


class EmailChannel(_Descriptor):
    type: Literal["email"] = "email"
    to: str | None = None
    from_: str | None = Field(None, alias="from")
    subject: str | None = None
    body: str | None = None
    smtp: SmtpSettings | None = None


class HttpHeader(_Descriptor):
    key: str
    value: str


class HttpChannel(_Descriptor):
    type: Literal["http"] = "http"
    url: str | None = None
    method: str = "POST"
    headers: list[HttpHeader] = []
    body: str | None = None
    timeout: int | None = None
    retry: int | None = None
    retry_delay: int | None = None


class CommandChannel(_Descriptor):
    type: Literal["cmd"] = "cmd"
    command: str | None = None
    args: str | None = None
    timeout: int | None = None
    retry: int | None = None
    retry_delay: int | None = None


class SmsChannel(_Descriptor):
    type: Literal["sms", "sms-twilio"] = "sms"
    account_sid: str | None = None
    auth_token: str | None = None
    from_: str | None = Field(None, alias="from")
    to: str | None = None
    body: str | None = None
    media_urls: list[str] = []


class PhoneCallChannel(_Descriptor):
    type: Literal["phone-call"] = "phone-call"
    account_sid: str | None = None
    auth_token: str | None = None
    from_: str | None = Field(None, alias="from")
    to: str | None = None
    url: str | None = None
    method: str | None = None
    timeout: int | None = None
    record: bool | None = None


ChannelDescriptor = Annotated[
    TelegramChannel
    | LarkChannel
    | EmailChannel
    | HttpChannel
    | CommandChannel
    | SmsChannel
    | PhoneCallChannel,
    Field(discriminator="type"),
]

CHANNEL_KINDS = ("telegram", "lark", "email", "http", "cmd", "sms", "sms-twilio", "phone-call")

channel_adapter: TypeAdapter[ChannelDescriptor] = TypeAdapter(ChannelDescriptor)
