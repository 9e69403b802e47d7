from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Any
from pathlib import Path
import math
import os

from ..utils.validation import validate_label, validate_precision


def _env_file() -> str:
    return os.getenv("ENV_FILE", str(Path.cwd() / ".env"))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=_env_file(),
        case_sensitive=True,
    )

    # Turns ServerTimingMiddleware into a pass-through when false
    SERVER_TIMING_ENABLED: bool = True

    # Decimals for measured durations; "inf" keeps full float precision
    SERVER_TIMING_PRECISION: float = math.inf

    # Label of the whole-request timer added by the middleware. Empty disables it.
    SERVER_TIMING_TOTAL_LABEL: str = "total"

    LOG_LEVEL: str = "INFO"

    @field_validator("SERVER_TIMING_PRECISION", mode="after")
    def check_precision(cls, v: float) -> float:
        return validate_precision(v)

    @field_validator("SERVER_TIMING_TOTAL_LABEL", mode="before")
    def check_total_label(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            if v:
                validate_label(v)
        return v

    @field_validator("LOG_LEVEL", mode="before")
    def upper_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


def load_settings() -> "Settings":
    return Settings(_env_file=_env_file())


settings = load_settings()
