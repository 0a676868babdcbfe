import enum
import hmac
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from ..core.config import Settings, get_settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


class Role(str, enum.Enum):
    MEMBER = "MEMBER"
    PANEL = "PANEL"
    GUEST = "GUEST"


@dataclass(frozen=True)
class Operator:
    """Caller identity as asserted by the authentication collaborator."""
    id: str
    email: str
    role: Role = Role.GUEST

    @property
    def is_panel(self) -> bool:
        return self.role == Role.PANEL


def get_api_key(api_key: str = Security(api_key_header), settings: Settings = Depends(get_settings)):
    """Validate API key from header if CLUBPULSE_API_KEY is configured.
    If no expected key configured, allows open access (dev mode)."""
    expected = settings.api_key
    if not expected:
        return None  # open mode
    if not api_key or not hmac.compare_digest(api_key, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return api_key


def resolve_role(raw: str | None, panel_roles) -> Role:
    """Map the forwarded role to an access level.

    Besides the literal MEMBER/PANEL/GUEST, a sheet role label (e.g. "Co-Director")
    grants PANEL when listed in PANEL_ACCESS_ROLES and MEMBER otherwise.
    """
    value = (raw or '').strip()
    if not value:
        return Role.GUEST
    try:
        return Role(value.upper())
    except ValueError:
        pass
    return Role.PANEL if value.lower() in panel_roles else Role.MEMBER


def get_operator(
    x_operator_id: str | None = Header(None),
    x_operator_email: str | None = Header(None),
    x_operator_role: str | None = Header(None),
    settings: Settings = Depends(get_settings),
    _key=Depends(get_api_key),
) -> Operator:
    """Resolve the acting user from the headers the auth proxy forwards.

    A missing role degrades to GUEST; privileged operations then reject the caller themselves.
    """
    email = (x_operator_email or '').strip().lower()
    role = resolve_role(x_operator_role, settings.panel_roles)
    return Operator(id=(x_operator_id or email or 'anonymous').strip(), email=email, role=role)
