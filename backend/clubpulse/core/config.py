import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

DEFAULT_THRESHOLD = 5

# Member sheet layout (zero-based column indices)
COL_NAME = 0
COL_EMAIL = 1
COL_ACTIVITY = 2
COL_ROLE = 3


def _split_roles(raw: str) -> Tuple[str, ...]:
    return tuple(r.strip().lower() for r in (raw or '').split(',') if r.strip())


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration handed explicitly to every operation.

    Built from the environment once via load_settings(); tests construct it directly.
    """
    environment: str = 'development'
    database_url: str = 'sqlite:///./clubpulse.db'
    google_sheet_id: Optional[str] = None
    member_data_range: Optional[str] = None
    google_credentials_json: Optional[str] = None
    default_threshold: int = DEFAULT_THRESHOLD
    panel_roles: Tuple[str, ...] = field(default_factory=tuple)
    cron_secret: Optional[str] = None
    api_key: Optional[str] = None
    resend_api_key: Optional[str] = None
    email_from: str = 'onboarding@resend.dev'
    email_reply_to: Optional[str] = None
    log_level: str = 'INFO'

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in {'development', 'dev', 'local', 'test'}


def load_settings() -> Settings:
    load_dotenv(dotenv_path="backend/.env", override=False)
    return Settings(
        environment=os.getenv('APP_ENV', 'development'),
        database_url=os.getenv('DATABASE_URL', 'sqlite:///./clubpulse.db'),
        google_sheet_id=os.getenv('GOOGLE_SHEET_ID') or None,
        member_data_range=os.getenv('GOOGLE_SHEET_MEMBER_DATA_RANGE') or None,
        google_credentials_json=os.getenv('GOOGLE_SERVICE_ACCOUNT_CREDENTIALS') or None,
        default_threshold=_int_env('DEFAULT_ACTIVITY_THRESHOLD', DEFAULT_THRESHOLD),
        panel_roles=_split_roles(os.getenv('PANEL_ACCESS_ROLES', '')),
        cron_secret=os.getenv('CRON_SECRET') or None,
        api_key=os.getenv('CLUBPULSE_API_KEY') or None,
        resend_api_key=os.getenv('RESEND_API_KEY') or None,
        email_from=os.getenv('EMAIL_FROM', 'onboarding@resend.dev'),
        email_reply_to=os.getenv('EMAIL_REPLY_TO') or None,
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """FastAPI dependency; cached so the environment is read once per process."""
    return load_settings()
