from typing import Any

from pydantic import BaseModel


class ConfigSet(BaseModel):
    """A named group of notification channels, stored as <name>.json.

    Channels stay raw mappings: a malformed or unknown entry is reported by
    the sender factory instead of making the whole set unreadable.
    """
    name: str
    channels: list[dict[str, Any]] = []
