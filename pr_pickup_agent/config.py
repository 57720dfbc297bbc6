"""Configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DING_URL = "http://novastar-main.co.hays.tx.us/NovaStar5/sounds/alarm.wav"
DEFAULT_PICKUP_INTERVAL = 3 * 60


@dataclass
class TimingConfig:
    """Timer settings for verification, debounce and display refresh (seconds)."""
    verify_window: float = 4.0
    verify_tick: float = 0.2
    settle_delay: float = 1.0
    debounce_window: float = 2.0
    display_refresh: float = 1.0
    poll_timeout: float = 0.25


@dataclass
class TwilioConfig:
    """Twilio SMS configuration."""
    account_sid: str
    auth_token: str
    from_number: str
    to_number: str


@dataclass
class AppConfig:
    """Complete application configuration."""
    db_path: str
    default_ding_url: str
    default_pickup_interval: int
    timing: TimingConfig
    twilio: Optional[TwilioConfig] = None


def _parse_float_env(key: str, default: float, allow_zero: bool = False) -> float:
    """Parse a positive (or, with allow_zero, non-negative) float from an environment variable."""
    raw = os.getenv(key, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{key} must be {'non-negative' if allow_zero else 'positive'}, got {raw!r}")
    return value


def _parse_int_env(key: str, default: int, allow_zero: bool = False) -> int:
    """Parse a positive (or, with allow_zero, non-negative) integer from an environment variable."""
    raw = os.getenv(key, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{key} must be {'non-negative' if allow_zero else 'positive'}, got {raw!r}")
    return value


def _load_twilio_config() -> Optional[TwilioConfig]:
    """Twilio is optional, but if any variable is set all four are required."""
    values = {
        "TWILIO_ACCOUNT_SID": os.getenv("TWILIO_ACCOUNT_SID"),
        "TWILIO_AUTH_TOKEN": os.getenv("TWILIO_AUTH_TOKEN"),
        "TWILIO_FROM_NUMBER": os.getenv("TWILIO_FROM_NUMBER"),
        "TWILIO_TO_NUMBER": os.getenv("TWILIO_TO_NUMBER"),
    }
    if not any(values.values()):
        return None

    missing = [key for key, value in values.items() if not value]
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return TwilioConfig(
        account_sid=values["TWILIO_ACCOUNT_SID"],
        auth_token=values["TWILIO_AUTH_TOKEN"],
        from_number=values["TWILIO_FROM_NUMBER"],
        to_number=values["TWILIO_TO_NUMBER"],
    )


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.

    Raises:
        ValueError: If a value is malformed or Twilio settings are incomplete.
    """
    timing = TimingConfig(
        verify_window=_parse_float_env("VERIFY_WINDOW_SECONDS", 4.0),
        verify_tick=_parse_float_env("VERIFY_TICK_SECONDS", 0.2),
        settle_delay=_parse_float_env("SETTLE_DELAY_SECONDS", 1.0, allow_zero=True),
        debounce_window=_parse_float_env("DEBOUNCE_WINDOW_SECONDS", 2.0),
        display_refresh=_parse_float_env("DISPLAY_REFRESH_SECONDS", 1.0),
        poll_timeout=_parse_float_env("POLL_TIMEOUT_SECONDS", 0.25),
    )
    if timing.verify_tick > timing.verify_window:
        raise ValueError("VERIFY_TICK_SECONDS must not exceed VERIFY_WINDOW_SECONDS")

    return AppConfig(
        db_path=os.getenv("DB_PATH", "pickup_state.db"),
        default_ding_url=os.getenv("DEFAULT_DING_URL") or DEFAULT_DING_URL,
        default_pickup_interval=_parse_int_env(
            "DEFAULT_PICKUP_INTERVAL", DEFAULT_PICKUP_INTERVAL, allow_zero=True
        ),
        timing=timing,
        twilio=_load_twilio_config(),
    )
