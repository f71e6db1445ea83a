# src/taskpulse/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the calendar token is optional).
- Notification defaults here only seed the session's NotificationSettings;
  the orchestrator owns the live copy.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from pathlib import Path

from .core.clock import parse_hhmm
from .core.models import NotificationSettings

ENV_PREFIX = "TASKPULSE"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except ImportError:
        return
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_opt(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    user_id: str
    timezone: str | None
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Notification defaults ----
    notifications_enabled: bool
    reminder_minutes: int
    motivation_enabled: bool
    habit_tracking_enabled: bool
    os_notifications_enabled: bool

    # ---- Scheduling ----
    reminder_interval_seconds: float
    motivation_interval_seconds: float
    motivation_start_hour: int
    motivation_end_hour: int
    habit_check_time: time

    # ---- Google Calendar ----
    calendar_api_base: str
    calendar_id: str
    google_token: str | None
    google_token_path: Path
    calendar_request_delay_ms: int
    calendar_auto_connect: bool

    def notification_settings(self) -> NotificationSettings:
        return NotificationSettings(
            enabled=self.notifications_enabled,
            reminder_minutes=self.reminder_minutes,
            motivation_enabled=self.motivation_enabled,
            habit_tracking_enabled=self.habit_tracking_enabled,
            os_notifications_enabled=self.os_notifications_enabled,
        )

    @staticmethod
    def from_env() -> Settings:
        _load_dotenv_if_available()

        app_name = _env(_k("APP_NAME"), "taskpulse")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        user_id = _env(_k("USER_ID"), "local")
        timezone = _env_opt(_k("TIMEZONE"))
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskpulse"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskpulse.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            user_id=user_id,
            timezone=timezone,
            console_enabled=console_enabled,
            data_dir=data_dir,
            db_path=db_path,
            notifications_enabled=_env_bool(_k("NOTIFICATIONS_ENABLED"), True),
            reminder_minutes=max(0, _env_int(_k("REMINDER_MINUTES"), 30)),
            motivation_enabled=_env_bool(_k("MOTIVATION_ENABLED"), True),
            habit_tracking_enabled=_env_bool(_k("HABIT_TRACKING_ENABLED"), True),
            os_notifications_enabled=_env_bool(_k("OS_NOTIFICATIONS_ENABLED"), False),
            reminder_interval_seconds=_env_float(_k("REMINDER_INTERVAL_SECONDS"), 300.0),
            motivation_interval_seconds=_env_float(_k("MOTIVATION_INTERVAL_SECONDS"), 7200.0),
            motivation_start_hour=_env_int(_k("MOTIVATION_START_HOUR"), 9),
            motivation_end_hour=_env_int(_k("MOTIVATION_END_HOUR"), 18),
            habit_check_time=parse_hhmm(_env(_k("HABIT_CHECK_TIME"), "20:00"), time(20, 0)),
            calendar_api_base=_env(_k("CALENDAR_API_BASE"), "https://www.googleapis.com/calendar/v3"),
            calendar_id=_env(_k("CALENDAR_ID"), "primary"),
            google_token=_env_opt(_k("GOOGLE_TOKEN")),
            google_token_path=_env_path(_k("GOOGLE_TOKEN_PATH"), data_dir / "google_token.json"),
            calendar_request_delay_ms=max(0, _env_int(_k("CALENDAR_REQUEST_DELAY_MS"), 100)),
            calendar_auto_connect=_env_bool(_k("CALENDAR_AUTO_CONNECT"), True),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
