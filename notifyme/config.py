from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_prefix": "NOTIFYME_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Config sets live as <CONFIG_DIR>/<name>.json
    CONFIG_DIR: Path = Path.home() / ".config" / "notifyme" / "configs"
    DEFAULT_CONFIG_SET: str = "default"

    # Executor
    OUTPUT_CHUNK_SIZE: int = 1024

    # Notifications
    HTTP_TIMEOUT: float = 30.0
    CONCURRENT_DELIVERY: bool = False
    STRICT_CHANNELS: bool = False  # fail the whole run on one bad channel


settings = Settings()
