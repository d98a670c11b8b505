"""Unit tests for access-token verification."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

from core.auth import JWTManager, extract_token
from core.exceptions import AuthenticationError

SECRET = "unit-test-secret"


@pytest.mark.unit
class TestJWTManager:
    def test_round_trip(self):
        manager = JWTManager(secret_key=SECRET)

        assert manager.viewer_id_from_token(manager.create_access_token("a" * 32)) == "a" * 32

    def test_expired_token(self):
        manager = JWTManager(secret_key=SECRET)
        token = manager.create_access_token("a" * 32, expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            manager.verify_token(token)

        assert exc_info.value.message == "Access token has expired"

    def test_other_token_type_rejected(self):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "a" * 32, "type": "refresh", "exp": now + timedelta(minutes=5), "iat": now},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthenticationError) as exc_info:
            JWTManager(secret_key=SECRET).verify_token(token)

        assert exc_info.value.message == "Invalid token type. Expected access"

    def test_wrong_secret(self):
        token = JWTManager(secret_key="other").create_access_token("a" * 32)

        with pytest.raises(AuthenticationError):
            JWTManager(secret_key=SECRET).verify_token(token)


@pytest.mark.unit
class TestExtractToken:
    def test_bearer_header_wins(self):
        request = SimpleNamespace(headers={"Authorization": "Bearer abc"}, cookies={"accessToken": "xyz"})

        assert extract_token(request) == "abc"

    def test_cookie_fallback(self):
        request = SimpleNamespace(headers={}, cookies={"accessToken": "xyz"})

        assert extract_token(request) == "xyz"

    def test_missing(self):
        request = SimpleNamespace(headers={"Authorization": "Basic abc"}, cookies={})

        assert extract_token(request) is None
