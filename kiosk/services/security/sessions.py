"""Access-token expiry checks.

Tokens are issued and signed by the hosted auth service; here they are
only inspected for their timing claims, so the signature is not verified.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel

from kiosk.core.config import settings

logger = logging.getLogger(__name__)

REFRESH_THRESHOLD = timedelta(minutes=5)


class TokenStatus(BaseModel):
    valid: bool
    expires_at: Optional[datetime] = None
    needs_refresh: bool = False
    reason: Optional[str] = None


def _claims(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})


def token_expiry(token: str) -> Optional[datetime]:
    """The token's ``exp`` claim as an aware datetime, None when absent."""
    exp = _claims(token).get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc)


def check_token(token: Optional[str], now: Optional[datetime] = None) -> TokenStatus:
    """Classify a token as valid, expiring soon, too old or expired."""
    if not token:
        return TokenStatus(valid=False, reason="missing")
    now = now or datetime.now(timezone.utc)
    try:
        claims = _claims(token)
    except jwt.InvalidTokenError as e:
        logger.warning(f"[SESSION] Unreadable access token - {type(e).__name__}: {str(e)}")
        return TokenStatus(valid=False, reason="malformed")

    exp = claims.get("exp")
    if exp is None:
        return TokenStatus(valid=False, reason="no_expiry")
    expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    if expires_at <= now:
        return TokenStatus(valid=False, expires_at=expires_at, reason="expired")

    issued = claims.get("iat")
    if issued is not None:
        issued_at = datetime.fromtimestamp(int(issued), tz=timezone.utc)
        if now - issued_at > timedelta(hours=settings.session_ttl_hours):
            return TokenStatus(valid=False, expires_at=expires_at, reason="session_too_old")

    return TokenStatus(valid=True, expires_at=expires_at, needs_refresh=expires_at - now <= REFRESH_THRESHOLD)


def needs_refresh(token: str, now: Optional[datetime] = None) -> bool:
    status = check_token(token, now)
    return status.valid and status.needs_refresh
