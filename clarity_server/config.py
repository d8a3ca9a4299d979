# clarity_server/config.py
"""
Process configuration, read once at startup with pydantic-settings.

Values come from the environment first, then a .env file (the repo
root's, then the working directory's), then the defaults below:

    ANTHROPIC_API_KEY=sk-ant-...
    ANTHROPIC_MODEL=claude-sonnet-4-5-20250929
    ANTHROPIC_VISION_MODEL=          # defaults to ANTHROPIC_MODEL
    HOST=0.0.0.0
    PORT=3001
    CLARITY_REQUEST_TIMEOUT=60
    CLARITY_LOG_LEVEL=INFO

Empty values count as unset. Only the API key is mandatory, and it is
checked by require_api_key() rather than at load time so tests and
tooling can build settings without one.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

# repo root (where .env usually lives)
ROOT_DIR = Path(__file__).resolve().parent.parent

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_PORT = 3001


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(ROOT_DIR / ".env", ".env"),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    anthropic_api_key: Optional[str] = None
    text_model: str = Field(default=DEFAULT_MODEL, alias="ANTHROPIC_MODEL")
    vision_model: str = Field(default="", alias="ANTHROPIC_VISION_MODEL")
    host: str = "0.0.0.0"
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)
    request_timeout: float = Field(default=60.0, gt=0, alias="CLARITY_REQUEST_TIMEOUT")
    log_level: str = Field(default="INFO", alias="CLARITY_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def _vision_follows_text(self) -> "Settings":
        if not self.vision_model:
            self.vision_model = self.text_model
        return self

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        """Load settings, reporting bad values as ConfigError."""
        try:
            if env_file is not None:
                return cls(_env_file=env_file)
            return cls()
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def require_api_key(self) -> None:
        if not self.anthropic_api_key:
            raise ConfigError("Missing ANTHROPIC_API_KEY in environment variables")

    @property
    def key_prefix(self) -> str:
        key = self.anthropic_api_key or ""
        return key[:8] + "..." if len(key) >= 8 else "(short key)"
