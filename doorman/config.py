"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings

from doorman.timeparse import DEFAULT_DATE_FORMAT

log = logging.getLogger("doorman.config")

_PACKAGE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    # Twilio
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"

    # Owner's phone number, receives notifications and takes "callme" calls
    phone_number: str = ""

    # Public URL Twilio uses to reach us (no trailing slash)
    base_url: str = ""

    # Display / scheduling
    timezone: str = "America/Los_Angeles"
    date_format: str = DEFAULT_DATE_FORMAT

    # Audio played during calls
    static_dir: str = str(_PACKAGE_DIR / "static")

    # Seconds between keep-alive pings of BASE_URL/dummy (0 disables)
    keepalive_interval: float = 60.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []
        _placeholders = {"AC...", "+1...", "https://example.com"}

        required = {
            "TWILIO_ACCOUNT_SID": self.twilio_account_sid,
            "TWILIO_AUTH_TOKEN": self.twilio_auth_token,
            "PHONE_NUMBER": self.phone_number,
            "BASE_URL": self.base_url,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(
                "Environment variable(s) cannot be empty: " + ", ".join(missing)
            )

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"TIMEZONE {self.timezone!r} is not a known timezone") from e

        for name, value in required.items():
            if value in _placeholders:
                warnings.append(f"{name} is a placeholder, Twilio requests will fail.")

        if self.base_url.endswith("/"):
            warnings.append("BASE_URL ends with '/'; callback URLs will contain '//'.")

        if not Path(self.static_dir).is_dir():
            warnings.append(
                f"Static directory {self.static_dir} not found, callers will hear silence."
            )

        return warnings


settings = Settings()
