"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.rate_limit import limiter
from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from app.services.auth import get_auth_service
from app.services.jwt import get_jwt_service

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", response_model=TokenResponse)
@limiter.limit("5/minute")
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Register a new user account."""
    result = get_auth_service().register(db, body.email, body.password, body.display_name)
    if not result.success:
        raise HTTPException(status_code=400, detail=result.error)

    token = get_jwt_service().token_for(result)
    return TokenResponse(token=token, email=result.email, display_name=result.display_name)  # type: ignore[arg-type]


@router.post("/login", response_model=TokenResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    """Authenticate and receive a JWT token."""
    result = get_auth_service().authenticate(db, body.email, body.password)
    if not result.success:
        raise HTTPException(status_code=401, detail=result.error)

    token = get_jwt_service().token_for(result)
    return TokenResponse(token=token, email=result.email, display_name=result.display_name)  # type: ignore[arg-type]


@router.get("/verify")
def verify_token(token: str) -> dict:
    """Verify a JWT token and return its payload."""
    payload = get_jwt_service().decode_token(token)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    return {
        "valid": True,
        "user_id": payload["sub"],
        "email": payload["email"],
        "display_name": payload["displayName"],
    }
