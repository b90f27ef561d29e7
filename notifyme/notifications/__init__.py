from .base import NotificationSender, SendResult
from .factory import BuildReport, build_sender, build_senders, parse_descriptor
from .lark import LarkSender
from .telegram import TelegramSender

__all__ = [
    "BuildReport",
    "LarkSender",
    "NotificationSender",
    "SendResult",
    "TelegramSender",
    "build_sender",
    "build_senders",
    "parse_descriptor",
]
