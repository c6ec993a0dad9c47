"""Authentication endpoints and utilities."""
import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from kiosk.core.config import settings
from kiosk.core.dependencies import drop_menu_caches, get_audit_logger, get_rate_limiter
from kiosk.services.security.audit import AuditLogger
from kiosk.services.security.rate_limit import RateLimiter, check_login_rate_limit
from kiosk.services.security.sessions import TokenStatus, check_token

router = APIRouter()
logger = logging.getLogger(__name__)

# In-memory session storage
_sessions: dict[str, dict] = {}


class LoginRequest(BaseModel):
    """Login request model."""
    password: str


class SessionInfo(BaseModel):
    """Session information response."""
    authenticated: bool
    expires_at: Optional[str] = None


def create_session_token() -> str:
    """Generate a secure session token."""
    return secrets.token_urlsafe(32)


def client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_session(response: Response) -> str:
    """Create a new session and set cookie."""
    session_token = create_session_token()
    ttl = timedelta(hours=settings.session_ttl_hours)
    expires_at = datetime.utcnow() + ttl

    _sessions[session_token] = {
        "authenticated": True,
        "expires_at": expires_at,
        "created_at": datetime.utcnow()
    }

    response.set_cookie(
        key="session_token",
        value=session_token,
        httponly=True,
        max_age=int(ttl.total_seconds()),
        samesite="lax"
    )

    return session_token


def get_session_token(request: Request) -> Optional[str]:
    """Extract session token from cookie."""
    return request.cookies.get("session_token")


def verify_session(session_token: Optional[str]) -> bool:
    """Verify if session token is valid and not expired."""
    if not session_token:
        return False

    session = _sessions.get(session_token)
    if not session:
        return False

    if datetime.utcnow() > session["expires_at"]:
        del _sessions[session_token]
        return False

    return session.get("authenticated", False)


async def require_auth(request: Request) -> bool:
    """Dependency to require authentication."""
    session_token = get_session_token(request)
    if not verify_session(session_token):
        raise HTTPException(status_code=401, detail="Authentication required")
    return True


@router.post("/api/auth/login")
async def login(
    login_req: LoginRequest,
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(get_rate_limiter),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Login endpoint."""
    client = client_host(request)
    decision = check_login_rate_limit(limiter, client)
    if not decision.allowed:
        logger.warning(f"[SECURITY] Login blocked for {client}, retry in {decision.retry_after}s")
        await audit.log_event("login_rate_limited", {"client": client}, severity="warning")
        raise HTTPException(
            status_code=429,
            detail="Too many login attempts",
            headers={"Retry-After": str(decision.retry_after)},
        )

    if not hmac.compare_digest(login_req.password.encode(), settings.dashboard_password.encode()):
        logger.warning(f"[SECURITY] Failed login from {client}")
        await audit.log_event("login_failed", {"client": client}, severity="warning")
        raise HTTPException(status_code=401, detail="Invalid password")

    limiter.reset(f"login:{client}")
    session_token = create_session(response)
    await audit.log_event("login_success", {"client": client})

    return {
        "success": True,
        "message": "Login successful",
        "expires_at": _sessions[session_token]["expires_at"].isoformat()
    }


@router.post("/api/auth/logout")
async def logout(request: Request, response: Response):
    """Logout endpoint. Also drops the cached menus of every restaurant."""
    session_token = get_session_token(request)
    if session_token and session_token in _sessions:
        del _sessions[session_token]

    drop_menu_caches()
    response.delete_cookie("session_token")

    return {"success": True, "message": "Logged out"}


@router.get("/api/auth/session")
async def get_session_info(request: Request) -> SessionInfo:
    """Get current session information."""
    session_token = get_session_token(request)

    if verify_session(session_token):
        session = _sessions[session_token]
        return SessionInfo(
            authenticated=True,
            expires_at=session["expires_at"].isoformat()
        )

    return SessionInfo(authenticated=False)


@router.get("/api/auth/token")
async def get_token_status(request: Request) -> TokenStatus:
    """Expiry status of the bearer token issued by the hosted auth service."""
    header = request.headers.get("authorization", "")
    token = header[7:].strip() if header.lower().startswith("bearer ") else None
    return check_token(token)
