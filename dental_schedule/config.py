"""Environment configuration. Values can also come from a local ``.env`` file."""
from __future__ import annotations

import os
from datetime import date

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    base_url: str = "http://localhost:8080"
    timeout: float = 15.0
    api_token: str | None = None
    reference_date: date | None = None  # fixed "today" for demos and tests
    guarded_transitions: bool = False
    api_key: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            base_url=os.getenv("CLINIC_API_BASE_URL", "http://localhost:8080"),
            timeout=float(os.getenv("CLINIC_API_TIMEOUT", "15")),
            api_token=os.getenv("CLINIC_API_TOKEN") or None,
            reference_date=os.getenv("SCHEDULE_REFERENCE_DATE") or None,
            guarded_transitions=os.getenv("SCHEDULE_GUARDED_TRANSITIONS", "0") == "1",
            api_key=os.getenv("SCHEDULE_API_KEY", ""),
            log_level=os.getenv("SCHEDULE_LOG_LEVEL", "INFO"),
        )

    def clock(self):
        """Date source used by navigation's "today"."""
        if self.reference_date is not None:
            fixed = self.reference_date
            return lambda: fixed
        return date.today
