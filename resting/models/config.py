"""
Pydantic model for client configuration.
Provides robust validation for all settings.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = "resting/0.1"


class ClientConfiguration(BaseModel):
    """A validated configuration model handed to ``RestClient`` at construction."""

    # Session settings
    total_timeout: float | None = 60.0
    connect_timeout: float | None = 15.0
    read_timeout: float | None = 30.0
    max_connections: int = 10
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = Field(default_factory=dict)

    # Downloads
    download_directory: Path | None = None

    # Decoding
    strict_decoding: bool = False

    # Schedules callback delivery, e.g. ``loop.call_soon_threadsafe``.
    callback_dispatcher: Callable[..., Any] | None = Field(default=None, repr=False)

    class Config:
        """Pydantic model configuration."""

        frozen = True
        str_strip_whitespace = True
        arbitrary_types_allowed = True

    @field_validator("total_timeout", "connect_timeout", "read_timeout")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        """Timeouts are either disabled (None) or strictly positive."""
        if v is not None and v <= 0:
            raise ValueError("Timeouts must be positive, or empty to disable them.")
        return v

    @field_validator("max_connections")
    @classmethod
    def validate_connections(cls, v: int) -> int:
        """Ensures a reasonable connection limit."""
        if v < 1 or v > 100:
            raise ValueError("Max connections must be between 1 and 100.")
        return v

    @field_validator("download_directory")
    @classmethod
    def validate_download_directory(cls, v: Path | None) -> Path | None:
        if v is None:
            return v
        v = v.expanduser()
        if v.exists() and not v.is_dir():
            raise ValueError(f"Download directory '{v}' is not a directory.")
        return v

    @model_validator(mode="after")
    def validate_timeout_order(self) -> "ClientConfiguration":
        """Checks that partial timeouts fit inside the total timeout."""
        if self.total_timeout is None:
            return self
        for name in ("connect_timeout", "read_timeout"):
            value = getattr(self, name)
            if value is not None and value > self.total_timeout:
                raise ValueError(
                    f"'{name}' ({value}s) cannot exceed 'total_timeout' "
                    f"({self.total_timeout}s)."
                )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"callback_dispatcher"}
        return {key for key in cls.model_fields if key not in internal_fields}
