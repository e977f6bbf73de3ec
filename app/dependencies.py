"""Authentication dependencies for FastAPI routes."""

import hmac
from dataclasses import dataclass

from fastapi import HTTPException, Request

from app.config import get_settings
from app.services.jwt import get_jwt_service


@dataclass
class CurrentUser:
    """Authenticated user context."""

    user_id: int
    email: str
    display_name: str


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def get_current_user(request: Request) -> CurrentUser:
    """Extract and validate user from the Bearer token. Raises 401 if invalid."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    jwt_service = get_jwt_service()
    payload = jwt_service.decode_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return CurrentUser(
        user_id=int(payload["sub"]),
        email=payload["email"],
        display_name=payload["displayName"],
    )


def require_cleanup_secret(request: Request) -> None:
    """Guard the scheduler entry point when CLEANUP_SECRET is configured."""
    secret = get_settings().CLEANUP_SECRET
    if not secret:
        return
    token = _bearer_token(request) or ""
    if not hmac.compare_digest(token, secret):
        raise HTTPException(status_code=401, detail="Invalid cleanup credentials")
