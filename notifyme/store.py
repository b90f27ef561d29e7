"""
Config store: named config sets as JSON files under Settings.CONFIG_DIR.

    {"name": "default",
     "channels": [{"type": "telegram", "token": "...", "chat_id": "..."}]}
"""

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from notifyme.config import settings
from notifyme.errors import ConfigError, ConfigSetNotFound
from notifyme.notifications.factory import parse_descriptor
from notifyme.schemas.config_set import ConfigSet

logger = structlog.get_logger()

_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class ConfigStore:
    def __init__(self, config_dir: Path | str | None = None):
        self.config_dir = Path(config_dir) if config_dir else settings.CONFIG_DIR

    def path_for(self, name: str) -> Path:
        if not _NAME_RE.match(name):
            raise ConfigError(f"invalid config set name: {name!r}")
        return self.config_dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def list_sets(self) -> list[str]:
        if not self.config_dir.is_dir():
            return []
        return sorted(p.stem for p in self.config_dir.glob("*.json") if p.is_file())

    def read(self, name: str) -> ConfigSet:
        path = self.path_for(name)
        if not path.is_file():
            raise ConfigSetNotFound(name, str(path))
        try:
            return ConfigSet.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as e:
            logger.error("store.invalid_config", name=name, path=str(path))
            raise ConfigError(f"config set '{name}' at {path} is invalid: {e}") from e

    def write(self, config_set: ConfigSet) -> Path:
        path = self.path_for(config_set.name)
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(config_set.model_dump_json(indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            logger.error("store.write_failed", path=str(path), error=str(e))
            raise ConfigError(f"failed to write config set '{config_set.name}': {e}") from e
        logger.info("store.written", name=config_set.name, channels=len(config_set.channels))
        return path

    def create(self, name: str) -> ConfigSet:
        if self.exists(name):
            raise ConfigError(f"config set '{name}' already exists")
        config_set = ConfigSet(name=name)
        self.write(config_set)
        return config_set

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        if not path.is_file():
            raise ConfigSetNotFound(name, str(path))
        path.unlink()
        logger.info("store.deleted", name=name)

    def add_channel(self, name: str, channel: Mapping[str, Any]) -> ConfigSet:
        """Append a channel to an existing set after checking its shape."""
        descriptor = parse_descriptor(channel)
        config_set = self.read(name)
        config_set.channels.append(
            descriptor.model_dump(by_alias=True, exclude_none=True)
        )
        self.write(config_set)
        return config_set
