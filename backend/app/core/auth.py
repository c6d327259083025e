from fastapi import Depends, Request
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.config import settings
from app.core.exceptions import Unauthenticated, Forbidden, UserNotFound
from app.core.security import Identity, TokenCodec, TokenError, get_token_codec
from app.models.user import Role, User
from dataclasses import replace
from typing import Iterable, Optional
import logging

logger = logging.getLogger(__name__)


def _read_session(request: Request, codec: TokenCodec) -> Optional[Identity]:
    """Verify the access token cookie, or return None when there is none."""
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    if not token:
        return None
    return codec.verify(token).identity


async def require_session(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
) -> Identity:
    """Identity from the session cookie; rejects the request without one."""
    try:
        identity = _read_session(request, codec)
    except TokenError as e:
        logger.warning(f"Rejected session token: {e}")
        raise Unauthenticated("Invalid or expired token")

    if identity is None:
        raise Unauthenticated("Authorization token missing")

    return identity


async def optional_session(
    request: Request,
    codec: TokenCodec = Depends(get_token_codec),
) -> Optional[Identity]:
    """Identity from the session cookie, or None for guests and bad tokens."""
    try:
        return _read_session(request, codec)
    except TokenError as e:
        logger.debug(f"Ignoring invalid session token on optional route: {e}")
        return None


def fetch_user(db: Session, user_id: str) -> Optional[User]:
    """Authoritative user lookup used for every privileged request."""
    return db.query(User).filter(User.id == user_id).first()


class RoleAuthorizer:
    """
    Dependency that admits a request only if the caller's *current* role is
    allow-listed.

    Tokens are not revoked on role change, so the role embedded in the token
    is never trusted here: it is re-read from the users table and the
    returned identity carries the fresh value.
    """

    def __init__(self, allowed_roles: Iterable):
        self.allowed_roles = frozenset(
            (r.value if isinstance(r, Role) else str(r)).upper() for r in allowed_roles
        )

    def authorize(self, identity: Optional[Identity], db: Session) -> Identity:
        if identity is None:
            raise Unauthenticated("Unauthorized: User not authenticated")

        user = fetch_user(db, identity.user_id)
        if user is None:
            raise UserNotFound()

        if not user.is_active:
            raise Forbidden("Inactive user")

        if user.role.value.upper() not in self.allowed_roles:
            logger.info(
                f"Role {user.role.value} denied; allowed: {sorted(self.allowed_roles)}"
            )
            raise Forbidden("Access denied: insufficient permissions")

        return replace(identity, role=user.role, email=user.email)

    async def __call__(
        self,
        identity: Identity = Depends(require_session),
        db: Session = Depends(get_db),
    ) -> Identity:
        return self.authorize(identity, db)


async def optional_live_session(
    identity: Optional[Identity] = Depends(optional_session),
    db: Session = Depends(get_db),
) -> Optional[Identity]:
    """
    Optional session whose role comes from the users table.

    Read routes decide visibility from this, so a demoted or deactivated
    user loses access on the next request. Missing and inactive users are
    treated as guests.
    """
    if identity is None:
        return None

    user = fetch_user(db, identity.user_id)
    if user is None or not user.is_active:
        return None

    return replace(identity, role=user.role, email=user.email)


require_author_roles = RoleAuthorizer([Role.REPORTER, Role.EDITOR, Role.ADMIN])
require_editorial_roles = RoleAuthorizer([Role.EDITOR, Role.ADMIN])
require_admin = RoleAuthorizer([Role.ADMIN])
