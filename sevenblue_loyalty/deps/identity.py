import hmac
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from sevenblue_loyalty.config import Settings, get_settings


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None
    display_name: str | None = None


def get_current_identity(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
) -> Identity:
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Missing user context. Provide X-User-Id header.",
        )
    return Identity(
        user_id=user_id,
        email=(x_user_email or "").strip() or None,
        display_name=(x_user_name or "").strip() or None,
    )


def require_admin(
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.admin_api_token
    if not expected or not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(status_code=403, detail="Admin token required")
