from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "hms-dev-secret-change-me-before-deploying"


class Settings(BaseSettings):
    """
    App settings.

    Notes:
    - Defaults are *local*: an embedded SQLite file next to the repo and a dev signing key.
    - Every field can be overridden via `HMS_*` env vars for a real deployment.
    """

    model_config = SettingsConfigDict(env_prefix="HMS_", extra="ignore")

    db_url: str | None = None
    security_config_path: str | None = None
    log_level: str = "INFO"

    jwt_secret: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 60
    bcrypt_rounds: int = 12

    ownership_lookup_timeout_seconds: float | None = 5.0

    bootstrap_admin_email: str | None = None
    bootstrap_admin_password: str | None = None
    bootstrap_admin_name: str = "System Administrator"

    def resolved_db_url(self) -> str:
        if self.db_url:
            return self.db_url

        repo_root = Path(__file__).resolve().parents[1]
        db_path = repo_root / "hms.db"
        return f"sqlite:///{db_path}"

    def resolved_security_config_path(self) -> Path:
        if self.security_config_path:
            return Path(self.security_config_path)

        return Path(__file__).resolve().parent / "config" / "security.yaml"

    @property
    def uses_dev_secret(self) -> bool:
        return self.jwt_secret == DEV_JWT_SECRET


@lru_cache
def get_settings() -> Settings:
    return Settings()
