"""
Runtime configuration for Payment Relay.

All settings come from environment variables so the same image can run
locally and on the hosting platform.  ``Settings.from_env`` never fails;
call :meth:`Settings.require` at the point where a value becomes mandatory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Optional

from .errors import ConfigError

DEFAULT_MIN_AMOUNT = 1000
DEFAULT_PORT = 3000


def normalise_database_url(url: Optional[str]) -> Optional[str]:
    # Some hosts hand out postgres://; SQLAlchemy expects postgresql://
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    slack_approval_channel: Optional[str] = None
    ops_alert_webhook_url: Optional[str] = None
    admin_token: Optional[str] = None
    min_payment_amount: int = DEFAULT_MIN_AMOUNT
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=normalise_database_url(os.getenv("DATABASE_URL")),
            slack_bot_token=os.getenv("SLACK_BOT_TOKEN"),
            slack_signing_secret=os.getenv("SLACK_SIGNING_SECRET"),
            slack_approval_channel=os.getenv("SLACK_APPROVAL_CHANNEL"),
            ops_alert_webhook_url=os.getenv("OPS_ALERT_WEBHOOK_URL") or None,
            admin_token=os.getenv("ADMIN_TOKEN") or None,
            min_payment_amount=_int_env("MIN_PAYMENT_AMOUNT", DEFAULT_MIN_AMOUNT),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_int_env("PORT", DEFAULT_PORT),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
        )

    def require(self, *names: str) -> None:
        """Raise :class:`ConfigError` listing every named setting that is unset."""
        known = {f.name for f in fields(self)}
        missing = []
        for name in names:
            if name not in known:
                raise ValueError(f"unknown setting {name!r}")
            if not getattr(self, name):
                missing.append(name.upper())
        if missing:
            raise ConfigError("missing required settings: " + ", ".join(missing))


__all__ = ["Settings", "normalise_database_url", "DEFAULT_MIN_AMOUNT"]
