"""
Access-token verification.

The VidShare API does not run login or session flows itself; it only needs to
turn an incoming access token into a viewer identity. Tokens are HS256 JWTs
(PyJWT) whose `sub` claim is the user id and whose `type` claim is `access`.
`create_access_token` exists for the account service and for tests.

Key Components:
- `JWTManager`: issues and verifies access tokens.
- `extract_token`: pulls the raw token from the `Authorization: Bearer`
  header or the `accessToken` cookie.
- `get_jwt_manager`: process-wide manager built from settings.
"""

import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

import jwt
from fastapi import Request

from core.config import get_settings
from core.exceptions import AuthenticationError
from core.logging_config import get_logger

logger = get_logger(__name__)


class TokenType(Enum):
    """Token types"""

    ACCESS = "access"


class JWTManager:
    """JWT token management"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: str = "HS256",
        access_token_expire: timedelta = timedelta(days=1),
    ):
        self.secret_key = secret_key or self._generate_secret_key()
        self.algorithm = algorithm
        self.access_token_expire = access_token_expire

    def _generate_secret_key(self) -> str:
        """Generate a secure secret key"""
        key = secrets.token_urlsafe(32)
        logger.warning(
            "Generated new JWT secret key. This should be set via JWT_SECRET_KEY environment variable."
        )
        return key

    def create_access_token(
        self, user_id: str, expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create JWT access token"""
        if expires_delta is None:
            expires_delta = self.access_token_expire

        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "type": TokenType.ACCESS.value,
            "exp": now + expires_delta,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(
        self, token: str, token_type: TokenType = TokenType.ACCESS
    ) -> Dict[str, Any]:
        """Verify and decode JWT token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Access token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid access token: {e}")

        if payload.get("type") != token_type.value:
            raise AuthenticationError(
                f"Invalid token type. Expected {token_type.value}"
            )
        if not payload.get("sub"):
            raise AuthenticationError("Invalid access token: missing subject")

        return payload

    def viewer_id_from_token(self, token: str) -> str:
        return str(self.verify_token(token)["sub"])


def extract_token(request: Request) -> Optional[str]:
    """Read the access token from the Authorization header or cookie"""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get("accessToken") or None


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get global JWT manager"""
    global _jwt_manager
    if _jwt_manager is None:
        settings = get_settings()
        _jwt_manager = JWTManager(
            secret_key=settings.jwt_secret_key or None,
            algorithm=settings.jwt_algorithm,
            access_token_expire=timedelta(minutes=settings.access_token_expire_minutes),
        )
    return _jwt_manager
