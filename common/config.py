from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env junto al repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


@dataclass(frozen=True)
class Settings:
    database_url: str
    environment: str
    api_key: str | None

    sendgrid_api_key: str | None
    email_from: str
    email_from_name: str

    push_gateway_url: str | None
    internal_api_key: str | None

    notify_timeout_seconds: float
    notify_workers: int
    ledger_append_attempts: int

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("TOOLLIFE_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    database_url = os.getenv("DATABASE_URL", "sqlite:///./toollife.db")
    environment = os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development"))

    # Timeout conservador para gateways externos (email/push).
    notify_timeout_seconds = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "5"))
    notify_workers = int(os.getenv("NOTIFY_WORKERS", "4"))
    ledger_append_attempts = int(os.getenv("LEDGER_APPEND_ATTEMPTS", "3"))

    return Settings(
        database_url=database_url,
        environment=environment,
        api_key=os.getenv("TOOLLIFE_API_KEY") or None,
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY") or None,
        email_from=os.getenv("EMAIL_FROM", "alerts@trackpro.local"),
        email_from_name=os.getenv("EMAIL_FROM_NAME", "TrackPro Alert"),
        push_gateway_url=os.getenv("PUSH_GATEWAY_URL") or None,
        internal_api_key=os.getenv("INTERNAL_API_KEY") or None,
        notify_timeout_seconds=notify_timeout_seconds,
        notify_workers=notify_workers,
        ledger_append_attempts=ledger_append_attempts,
    )
