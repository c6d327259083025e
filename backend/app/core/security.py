"""
Signed session tokens and password hashing.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError

from app.core.config import settings
from app.models.user import Role

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"
TOKEN_KINDS = (ACCESS, REFRESH)


class TokenError(Exception):
    """A token could not be accepted."""


class InvalidToken(TokenError):
    """Bad signature, malformed token, wrong kind or missing claims."""


class TokenExpired(TokenError):
    """Token signature is valid but ``exp`` has passed."""


@dataclass(frozen=True)
class Identity:
    """Who is making a request, as established by a verified session."""

    user_id: str
    role: Role
    email: Optional[str] = None


@dataclass(frozen=True)
class TokenPayload:
    identity: Identity
    kind: str
    jti: str
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """
    Sign and verify JWTs carrying ``sub`` (user id), ``role`` and ``type``.

    The codec holds no global state: the secret and lifetimes are given at
    construction, so one process can hold codecs for different keys.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(days=3),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}

    def sign(
        self,
        payload: Dict[str, Any],
        kind: str = ACCESS,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed token.

        Args:
            payload: Must contain ``user_id`` and ``role``; ``email`` is optional
            kind: ``access`` or ``refresh``, selects the expiry policy
            expires_delta: Optional override of the kind's lifetime

        Returns:
            Encoded JWT
        """
        if kind not in TOKEN_KINDS:
            raise ValueError(f"Unknown token kind: {kind}")
        if not payload.get("user_id") or not payload.get("role"):
            raise ValueError("Token payload requires user_id and role")

        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self.ttls[kind])

        role = payload["role"]
        claims = {
            "sub": str(payload["user_id"]),
            "role": role.value if isinstance(role, Role) else str(role).upper(),
            "type": kind,
            "iat": now,
            "exp": expire,
            "jti": str(uuid.uuid4()),
        }
        if payload.get("email"):
            claims["email"] = payload["email"]

        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str, kind: str = ACCESS) -> TokenPayload:
        """
        Decode and validate a token of the expected kind.

        Raises:
            TokenExpired: If the token has passed its expiry
            InvalidToken: For any other verification failure
        """
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpired("Token has expired")
        except JWTError as e:
            raise InvalidToken(f"Could not validate token: {e}")

        if claims.get("type") != kind:
            raise InvalidToken(f"Expected {kind} token, got {claims.get('type')}")

        user_id = claims.get("sub")
        if not user_id:
            raise InvalidToken("Token has no subject")

        try:
            role = Role(str(claims.get("role", "")).upper())
        except ValueError:
            raise InvalidToken("Token carries an unknown role")

        return TokenPayload(
            identity=Identity(user_id=user_id, role=role, email=claims.get("email")),
            kind=kind,
            jti=claims.get("jti", ""),
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def issue_pair(self, identity: Identity) -> Tuple[str, str]:
        """Create both access and refresh tokens for an identity."""
        payload = {
            "user_id": identity.user_id,
            "role": identity.role,
            "email": identity.email,
        }
        return self.sign(payload, ACCESS), self.sign(payload, REFRESH)


@lru_cache
def get_token_codec() -> TokenCodec:
    """Build the process token codec from settings."""
    return TokenCodec(
        secret_key=settings.SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False
