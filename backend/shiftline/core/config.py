from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BeforeValidator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_schemes(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "shiftline"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"
    LOG_SQL: bool = False

    # Persistence; in-memory store when unset
    DATABASE_URL: str | None = None

    # Wall clock used for slot resolution
    TIMEZONE: str = "UTC"

    # Refresh cadence
    SLOT_REFRESH_INTERVAL_SECONDS: float = 1.0
    METRICS_REFRESH_INTERVAL_SECONDS: float = 30.0
    RECENT_EVENTS_LIMIT: int = 50

    # Credentials held by the personnel registry
    CREDENTIAL_SCHEME: Literal["plaintext", "hashed"] = "plaintext"
    PASSWORD_SCHEMES: Annotated[list[str] | str, BeforeValidator(parse_schemes)] = [
        "argon2",
        "pbkdf2_sha256",
    ]

    @field_validator("TIMEZONE")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone {v!r}") from e
        return v

    @field_validator("SLOT_REFRESH_INTERVAL_SECONDS", "METRICS_REFRESH_INTERVAL_SECONDS")
    @classmethod
    def _validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Refresh intervals must be positive")
        return v

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)


settings = Settings()  # type: ignore
