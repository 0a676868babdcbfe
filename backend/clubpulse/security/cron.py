import hmac
import logging

from fastapi import Depends, Header, HTTPException

from ..core.config import Settings, get_settings

log = logging.getLogger(__name__)


def require_cron_secret(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),
):
    """Bearer check for scheduled triggers; skipped entirely in development."""
    if settings.is_development:
        return None
    if not settings.cron_secret:
        log.error("cron_secret_not_configured")
        raise HTTPException(status_code=500, detail="Internal configuration error.")
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        log.warning("cron_unauthorized")
        raise HTTPException(status_code=401, detail="Unauthorized.")
    return authorization
