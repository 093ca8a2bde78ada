"""Pod client configuration via Pydantic Settings v2."""

from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connection and credential settings, read from ``WP2D_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="WP2D_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Required ===
    pod: str

    # === Optional ===
    username: str = ""
    password: SecretStr = SecretStr("")
    sentry_dsn: str = ""

    # === Defaults ===
    use_https: bool = True
    http_timeout: float = 30.0
    connect_timeout: float = 5.0
    log_level: str = "INFO"

    @field_validator("pod")
    @classmethod
    def _pod_must_be_domain(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "WP2D_POD must not be empty"
            raise ValueError(msg)
        if "://" in v or "/" in v:
            msg = "WP2D_POD must be a domain only, without scheme or path"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password.get_secret_value())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton Settings instance (cached after first call)."""
    return Settings()  # type: ignore[call-arg]
