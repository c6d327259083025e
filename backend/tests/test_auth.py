"""Tests for session tokens, the session cookie and the auth endpoints."""

import pytest
from datetime import datetime, timezone, timedelta
from jose import jwt
from app.core.config import settings
from app.core.security import (
    ACCESS,
    REFRESH,
    Identity,
    InvalidToken,
    TokenCodec,
    TokenError,
    TokenExpired,
    get_token_codec,
    hash_password,
    verify_password,
)
from app.models.user import Role, User

from conftest import TEST_PASSWORD


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret_key="unit-test-secret")


@pytest.mark.unit
class TestTokenCodec:
    """Test signing and verifying session tokens."""

    def test_sign_access_token_claims(self, codec):
        """An access token carries subject, role, kind and timing claims."""
        token = codec.sign({"user_id": "u-1", "role": Role.EDITOR, "email": "e@example.com"})

        payload = jwt.decode(token, "unit-test-secret", algorithms=["HS256"])
        assert payload["sub"] == "u-1"
        assert payload["role"] == "EDITOR"
        assert payload["email"] == "e@example.com"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload
        assert "jti" in payload

    def test_sign_requires_user_id_and_role(self, codec):
        with pytest.raises(ValueError):
            codec.sign({"role": Role.USER})
        with pytest.raises(ValueError):
            codec.sign({"user_id": "u-1"})

    def test_access_and_refresh_expirations_differ(self):
        """Each kind uses its own lifetime."""
        codec = TokenCodec(
            secret_key="unit-test-secret",
            access_ttl=timedelta(hours=1),
            refresh_ttl=timedelta(days=7),
        )
        access, refresh = codec.issue_pair(Identity(user_id="u-1", role=Role.USER))

        access_payload = codec.verify(access, kind=ACCESS)
        refresh_payload = codec.verify(refresh, kind=REFRESH)

        access_life = (access_payload.expires_at - access_payload.issued_at).total_seconds()
        refresh_life = (refresh_payload.expires_at - refresh_payload.issued_at).total_seconds()
        assert 3500 < access_life < 3700
        assert 7 * 86400 - 100 < refresh_life < 7 * 86400 + 100
        assert access_payload.jti != refresh_payload.jti

    def test_custom_expiry(self, codec):
        token = codec.sign({"user_id": "u-1", "role": Role.USER}, expires_delta=timedelta(hours=2))
        payload = codec.verify(token)

        time_diff = (payload.expires_at - payload.issued_at).total_seconds()
        assert 7100 < time_diff < 7300

    def test_verify_round_trip_identity(self, codec):
        identity = Identity(user_id="u-42", role=Role.REPORTER, email="r@example.com")
        access, _ = codec.issue_pair(identity)

        payload = codec.verify(access)
        assert payload.identity == identity
        assert payload.kind == ACCESS

    def test_verify_expired_token(self, codec):
        token = codec.sign(
            {"user_id": "u-1", "role": Role.USER}, expires_delta=timedelta(seconds=-10)
        )
        with pytest.raises(TokenExpired):
            codec.verify(token)

    def test_verify_wrong_secret(self, codec):
        token = TokenCodec(secret_key="someone-else").sign({"user_id": "u-1", "role": Role.USER})
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_verify_garbage(self, codec):
        with pytest.raises(InvalidToken):
            codec.verify("not.a.token")

    def test_refresh_token_is_not_an_access_token(self, codec):
        _, refresh = codec.issue_pair(Identity(user_id="u-1", role=Role.USER))
        with pytest.raises(InvalidToken):
            codec.verify(refresh, kind=ACCESS)

    def test_verify_unknown_role(self, codec):
        token = codec.sign({"user_id": "u-1", "role": "SUPERUSER"})
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_verify_missing_subject(self, codec):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"role": "USER", "type": "access", "iat": now, "exp": now + timedelta(hours=1)},
            "unit-test-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            codec.verify(token)

    def test_both_failures_are_token_errors(self):
        assert issubclass(TokenExpired, TokenError)
        assert issubclass(InvalidToken, TokenError)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec(secret_key="")

    def test_settings_codec(self):
        codec = get_token_codec()
        assert codec.secret_key == settings.SECRET_KEY
        assert codec.ttls[ACCESS] == timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


@pytest.mark.unit
class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_against_malformed_hash(self):
        assert not verify_password("s3cret!", "not-a-bcrypt-hash")
        assert not verify_password("s3cret!", "")


@pytest.mark.integration
class TestSessionCookie:
    """The access token cookie is the only session signal."""

    def test_missing_cookie(self, client):
        response = client.post(
            "/api/articles/",
            json={"title": "Hello", "content": "Long enough content"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Authorization token missing"
        assert response.json()["error"] == "unauthenticated"

    def test_invalid_cookie(self, client):
        client.cookies.set(settings.ACCESS_TOKEN_COOKIE, "garbage")
        response = client.post(
            "/api/articles/",
            json={"title": "Hello", "content": "Long enough content"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_expired_cookie(self, client, reporter):
        token = get_token_codec().sign(
            {"user_id": reporter.id, "role": reporter.role},
            expires_delta=timedelta(seconds=-10),
        )
        client.cookies.set(settings.ACCESS_TOKEN_COOKIE, token)
        response = client.post(
            "/api/articles/",
            json={"title": "Hello", "content": "Long enough content"},
        )
        assert response.status_code == 401

    def test_bearer_header_is_ignored(self, client, reporter):
        from conftest import session_token

        response = client.post(
            "/api/articles/",
            json={"title": "Hello", "content": "Long enough content"},
            headers={"Authorization": f"Bearer {session_token(reporter)}"},
        )
        assert response.status_code == 401

    def test_optional_route_ignores_bad_cookie(self, client):
        client.cookies.set(settings.ACCESS_TOKEN_COOKIE, "garbage")
        response = client.get("/api/articles/")
        assert response.status_code == 200


@pytest.mark.integration
class TestAuthEndpoints:
    def test_register(self, client, db_session):
        response = client.post(
            "/api/auth/register",
            json={"name": "New Reader", "email": "New.Reader@Example.com", "password": "secret1"},
        )
        assert response.status_code == 201
        data = response.json()["user"]
        assert data["email"] == "new.reader@example.com"
        assert data["role"] == "USER"
        assert "password_hash" not in data

        user = db_session.query(User).filter(User.email == "new.reader@example.com").first()
        assert user is not None
        assert user.password_hash != "secret1"

    def test_register_duplicate_email(self, client, reader):
        response = client.post(
            "/api/auth/register",
            json={"name": "Another", "email": reader.email, "password": "secret1"},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_register_validation(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "X", "email": "not-an-email", "password": "123"},
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_failed"
        fields = body["details"]["fields"]
        assert "name" in fields
        assert "email" in fields
        assert "password" in fields

    def test_login_sets_cookies(self, client, editor):
        response = client.post(
            "/api/auth/login",
            json={"email": editor.email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "EDITOR"
        assert settings.ACCESS_TOKEN_COOKIE in response.cookies
        assert settings.REFRESH_TOKEN_COOKIE in response.cookies

        me = client.get("/api/auth/me")
        assert me.status_code == 200
        assert me.json()["authenticated"] is True
        assert me.json()["user"]["id"] == editor.id

    def test_login_email_is_case_insensitive(self, client, editor):
        response = client.post(
            "/api/auth/login",
            json={"email": editor.email.upper(), "password": TEST_PASSWORD},
        )
        assert response.status_code == 200

    def test_login_wrong_password(self, client, editor):
        response = client.post(
            "/api/auth/login",
            json={"email": editor.email, "password": "wrong-password"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_login_unknown_user(self, client):
        response = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": TEST_PASSWORD},
        )
        assert response.status_code == 401

    def test_login_inactive_user(self, client, make_user):
        user = make_user(role=Role.REPORTER, is_active=False)
        response = client.post(
            "/api/auth/login",
            json={"email": user.email, "password": TEST_PASSWORD},
        )
        assert response.status_code == 403

    def test_me_anonymous(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "user": None}

    def test_me_with_cookie(self, client_for, reporter):
        response = client_for(reporter).get("/api/auth/me")
        assert response.json()["authenticated"] is True
        assert response.json()["user"]["email"] == reporter.email

    def test_refresh_issues_new_access_token(self, client, reporter, db_session):
        client.post(
            "/api/auth/login",
            json={"email": reporter.email, "password": TEST_PASSWORD},
        )

        # Role changes are picked up on refresh
        reporter.role = Role.EDITOR
        db_session.commit()

        response = client.post("/api/auth/refresh")
        assert response.status_code == 200
        new_token = response.cookies[settings.ACCESS_TOKEN_COOKIE]
        payload = get_token_codec().verify(new_token)
        assert payload.identity.user_id == reporter.id
        assert payload.identity.role == Role.EDITOR

    def test_refresh_without_cookie(self, client):
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401

    def test_refresh_rejects_access_token(self, client, reporter):
        from conftest import session_token

        client.cookies.set(settings.REFRESH_TOKEN_COOKIE, session_token(reporter))
        response = client.post("/api/auth/refresh")
        assert response.status_code == 401

    def test_refresh_for_deactivated_user(self, client, reporter, db_session):
        client.post(
            "/api/auth/login",
            json={"email": reporter.email, "password": TEST_PASSWORD},
        )
        reporter.is_active = False
        db_session.commit()

        response = client.post("/api/auth/refresh")
        assert response.status_code == 401

    def test_logout_clears_cookies(self, client, reporter):
        client.post(
            "/api/auth/login",
            json={"email": reporter.email, "password": TEST_PASSWORD},
        )
        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        set_cookie = ",".join(response.headers.get_list("set-cookie"))
        assert settings.ACCESS_TOKEN_COOKIE in set_cookie
        assert settings.REFRESH_TOKEN_COOKIE in set_cookie

        me = client.get("/api/auth/me")
        assert me.json()["authenticated"] is False

    def test_registered_user_can_sign_in(self, client):
        client.post(
            "/api/auth/register",
            json={"name": "Fresh User", "email": "fresh@example.com", "password": "secret1"},
        )
        response = client.post(
            "/api/auth/login",
            json={"email": "fresh@example.com", "password": "secret1"},
        )
        assert response.status_code == 200
        assert response.json()["user"]["role"] == "USER"
