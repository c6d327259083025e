from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging
from app.core.database import get_db
from app.core.config import settings
from app.core.auth import fetch_user, optional_session
from app.core.exceptions import Conflict, Forbidden, Unauthenticated
from app.core.security import (
    REFRESH,
    Identity,
    TokenCodec,
    TokenError,
    get_token_codec,
    hash_password,
    verify_password,
)
from app.core.logging_config import log_request_event
from app.api.rate_limit import limiter
from app.models.user import Role, User
from app.schemas.user import (
    SessionInfo,
    User as UserSchema,
    UserLogin,
    UserRegister,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _cookie_kwargs(max_age: int) -> dict:
    """Cookie flags shared by the access and refresh cookies."""
    cookie_kwargs = {
        "httponly": True,  # XSS protection
        "secure": settings.COOKIE_SECURE,  # HTTPS only in production
        "samesite": settings.COOKIE_SAMESITE,  # CSRF protection
        "max_age": max_age,
    }
    if settings.COOKIE_DOMAIN:
        cookie_kwargs["domain"] = settings.COOKIE_DOMAIN
    return cookie_kwargs


def _set_access_cookie(response, token: str) -> None:
    response.set_cookie(
        key=settings.ACCESS_TOKEN_COOKIE,
        value=token,
        **_cookie_kwargs(settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60),
    )


def _set_refresh_cookie(response, token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_TOKEN_COOKIE,
        value=token,
        **_cookie_kwargs(settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60),
    )


def _identity_for(user: User) -> Identity:
    return Identity(user_id=user.id, role=user.role, email=user.email)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
@limiter.limit("5/minute")
async def register(request: Request, payload: UserRegister, db: Session = Depends(get_db)):
    """Create a reader account. Self-registered users always get the USER role."""
    if db.query(User.id).filter(User.email == payload.email).first():
        raise Conflict("User with this email already exists")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=Role.USER,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this email already exists")
    db.refresh(user)

    log_request_event(
        request,
        event_type="auth.user.created",
        message="New user account registered",
        user_id=user.id,
        username=user.email,
        event_category="authentication",
    )
    return {"message": "User registered successfully", "user": user}


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,
    payload: UserLogin,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """Check credentials and set the access and refresh cookies."""
    user = db.query(User).filter(User.email == payload.email.lower()).first()

    if not user or not verify_password(payload.password, user.password_hash):
        log_request_event(
            request,
            event_type="auth.login.failure",
            message="Login failed: invalid credentials",
            level=logging.WARNING,
            username=payload.email,
            event_category="authentication",
        )
        raise Unauthenticated("Invalid email or password")

    if not user.is_active:
        log_request_event(
            request,
            event_type="auth.login.inactive",
            message="Login refused for inactive account",
            level=logging.WARNING,
            user_id=user.id,
            username=user.email,
            event_category="authentication",
        )
        raise Forbidden("Inactive user")

    access_token, refresh_token = codec.issue_pair(_identity_for(user))

    log_request_event(
        request,
        event_type="auth.login.success",
        message="User logged in successfully",
        user_id=user.id,
        username=user.email,
        event_category="authentication",
        role=user.role.value,
    )

    response = JSONResponse(
        content={
            "message": "Logged in successfully",
            "user": UserSchema.model_validate(user).model_dump(mode="json"),
        }
    )
    _set_access_cookie(response, access_token)
    _set_refresh_cookie(response, refresh_token)
    return response


@router.post("/refresh")
@limiter.limit("30/minute")
async def refresh_access_token(
    request: Request,
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    """
    Issue a new access token from the refresh cookie.

    The role in the new token is read from the database, not copied from
    the refresh token.
    """
    refresh_token = request.cookies.get(settings.REFRESH_TOKEN_COOKIE)
    if not refresh_token:
        raise Unauthenticated("Refresh token not found")

    try:
        payload = codec.verify(refresh_token, kind=REFRESH)
    except TokenError as e:
        log_request_event(
            request,
            event_type="auth.token.refresh_failed",
            message=f"Token refresh failed: {e}",
            level=logging.WARNING,
            event_category="authentication",
            error_type=type(e).__name__,
        )
        raise Unauthenticated("Invalid refresh token")

    user = fetch_user(db, payload.identity.user_id)
    if not user or not user.is_active:
        raise Unauthenticated("User not found or inactive")

    access_token, _ = codec.issue_pair(_identity_for(user))

    log_request_event(
        request,
        event_type="auth.token.refreshed",
        message="Access token refreshed successfully",
        user_id=user.id,
        event_category="authentication",
        refresh_jti=payload.jti,
    )

    response = JSONResponse(content={"message": "Token refreshed successfully"})
    _set_access_cookie(response, access_token)
    return response


@router.post("/logout")
async def logout(
    request: Request,
    identity: Optional[Identity] = Depends(optional_session),
):
    """Clear both session cookies."""
    if identity:
        log_request_event(
            request,
            event_type="auth.logout.success",
            message="User logged out successfully",
            user_id=identity.user_id,
            event_category="authentication",
        )

    response = JSONResponse(content={"message": "Logged out successfully"})
    for key in (settings.ACCESS_TOKEN_COOKIE, settings.REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            key=key,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
            domain=settings.COOKIE_DOMAIN,
        )
    return response


@router.get("/me", response_model=SessionInfo)
async def get_current_user_info(
    identity: Optional[Identity] = Depends(optional_session),
    db: Session = Depends(get_db),
):
    """Profile of the signed-in user, or ``authenticated: false`` for guests."""
    if identity is None:
        return {"authenticated": False, "user": None}

    user = fetch_user(db, identity.user_id)
    if user is None or not user.is_active:
        return {"authenticated": False, "user": None}

    return {"authenticated": True, "user": user}
