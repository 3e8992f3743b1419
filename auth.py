"""
Authentication routes and dependencies
"""

from typing import Optional
from fastapi import APIRouter, HTTPException, Header, Depends, Cookie
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from database import get_db
from database_models import User
from crud.user import UserRepository, ZapLinkExhaustedError
from auth_utils import hash_password, verify_password, create_jwt, get_token_subject, TOKEN_TTL
from services.entitlement_service import is_pro
from utils.security_utils import validate_email, validate_username, validate_password_strength

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"

# Create auth router
auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request models
class SignupRequest(BaseModel):
    email: str
    username: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


def _token_response(user: User) -> JSONResponse:
    """Build the {ok, user_id} response carrying the httpOnly auth cookie."""
    token = create_jwt(str(user.id))
    response = JSONResponse(
        content={
            "ok": True,
            "user_id": str(user.id)
        }
    )
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=int(TOKEN_TTL.total_seconds())
    )
    return response


def serialize_user(user: User) -> dict:
    return {
        "user_id": str(user.id),
        "email": user.email,
        "username": user.username,
        "zap_link": user.zap_link,
        "is_active": user.is_active,
        "plan": "pro" if is_pro(user) else "free",
        "subscription_type": user.subscription_type,
        "subscription_status": user.subscription_status,
        "subscription_ends_at": user.subscription_ends_at.isoformat() if user.subscription_ends_at else None,
    }


@auth_router.post("/signup")
async def signup(request: SignupRequest, db: AsyncSession = Depends(get_db)):
    """Create a new user account on the free plan"""
    if not validate_email(request.email):
        raise HTTPException(status_code=400, detail="Invalid email format")
    if not validate_username(request.username):
        raise HTTPException(status_code=400, detail="Invalid username")

    try:
        validate_password_strength(request.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(request.email.lower()):
        raise HTTPException(status_code=400, detail="Email already registered")
    if await user_repo.get_user_by_username(request.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    try:
        user = await user_repo.create_user({
            "email": request.email.lower(),
            "username": request.username,
            "hashed_password": hash_password(request.password),
            "is_active": True,
        })
    except ZapLinkExhaustedError as e:
        logger.error(f"Signup failed for {request.email}: {e}")
        raise HTTPException(status_code=503, detail="Could not allocate a zap link, please retry")

    logger.info(f"New user {user.id} signed up")
    return _token_response(user)


@auth_router.post("/login")
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Login and get JWT token"""
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_email(request.email.lower())
    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")

    return _token_response(user)


@auth_router.post("/logout")
async def logout():
    """Logout and clear auth token cookie"""
    response = JSONResponse(
        content={
            "ok": True,
            "message": "Logged out successfully"
        }
    )
    response.set_cookie(
        key=AUTH_COOKIE,
        value="",
        httponly=True,
        secure=True,
        samesite="Lax",
        max_age=0
    )
    return response


# Dependency for protected routes
async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (httpOnly cookie set by login/signup)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found

    The user row is read fresh on every request; subscription fields can
    change at any time through the Stripe webhook.
    """
    token = None
    if auth_token:
        token = auth_token
    elif authorization and authorization.startswith("Bearer "):
        token = authorization.replace("Bearer ", "").strip()

    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    user_id = get_token_subject(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await UserRepository(db).get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive")

    return user


@auth_router.get("/me")
async def get_current_user_info(user: User = Depends(get_current_user)):
    """Get current user information from JWT token"""
    return {"ok": True, **serialize_user(user)}
