# config.py
# Process-wide settings, read once from the environment (.env supported)

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/calendar",
]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration shared by every component of one process.

    Built once at startup with :meth:`from_env` and injected wherever it is needed,
    so nothing reads ``os.environ`` on the request path.
    """

    sheet_id: str = ""
    sheet_range: str = "Página1!A:Z"
    default_tz: str = "America/Sao_Paulo"
    google_credentials_path: Optional[str] = None
    moveo_logs_url: str = "https://logs.moveo.ai/v1/graphql"
    moveo_account_id: str = ""
    moveo_api_key: str = ""
    openai_api_key: str = ""
    openai_base: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-5-nano"
    http_timeout: int = 20
    agenda_max_results: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Collect the recognized environment variables.

        :return: settings with defaults applied for anything unset
        :rtype: Settings
        """

        return cls(
            sheet_id=os.getenv("SHEET_ID", ""),
            sheet_range=os.getenv("SHEET_RANGE") or "Página1!A:Z",
            default_tz=os.getenv("DEFAULT_TZ") or "America/Sao_Paulo",
            google_credentials_path=os.getenv("GOOGLE_CREDENTIALS_PATH") or None,
            moveo_logs_url=os.getenv("MOVEO_LOGS_URL") or "https://logs.moveo.ai/v1/graphql",
            moveo_account_id=os.getenv("MOVEO_ACCOUNT_ID", ""),
            moveo_api_key=os.getenv("MOVEO_ANALYTICS_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_base=os.getenv("OPENAI_BASE") or "https://api.openai.com/v1",
            openai_model=os.getenv("OPENAI_MODEL") or "gpt-5-nano",
            http_timeout=_int_env("HTTP_TIMEOUT_SECONDS", 20),
            agenda_max_results=_int_env("AGENDA_MAX_RESULTS", 10),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )
