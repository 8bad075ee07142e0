import re
from datetime import timedelta
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$", re.IGNORECASE)
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Frozen after construction: the signing secret and token lifetime are
    read once at startup and handed to the token codec and services.
    A missing JWT_SECRET makes construction fail, which stops startup.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    environment: str = "development"
    debug: bool = False

    # Changing the secret invalidates every issued token
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_in: timedelta = timedelta(days=1)

    database_url: str = "sqlite:///./auth.db"

    # Comma-separated list of allowed browser origins
    cors_origin: str = "http://localhost:5173"

    # Argon2 cost parameters
    password_hash_time_cost: int = 3
    password_hash_memory_cost: int = 65536
    password_hash_parallelism: int = 4

    # Sessions idle longer than this are swept
    session_retention_days: int = 7
    # 0 disables the background sweep
    session_sweep_interval_minutes: int = 60

    log_level: str = "INFO"

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("JWT_SECRET must not be empty")
        return v

    @field_validator("jwt_expires_in", mode="before")
    @classmethod
    def parse_duration(cls, v):
        """Accept '1d', '12h', '30m', '45s' on top of what pydantic parses."""
        if isinstance(v, str):
            match = _DURATION_RE.match(v)
            if match:
                amount, unit = match.groups()
                return timedelta(**{_DURATION_UNITS[unit.lower()]: int(amount)})
        return v

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_expiry(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("JWT_EXPIRES_IN must be positive")
        return v

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origin.split(",") if origin.strip()]

    @property
    def session_retention(self) -> timedelta:
        return timedelta(days=self.session_retention_days)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance. Load once, reuse throughout application lifecycle.
    """
    return Settings()
