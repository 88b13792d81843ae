import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from firebase_admin import auth as firebase_auth
from jose import JWTError, jwt

from voicenotes.common.common_message import CommonMessage
from voicenotes.common.exceptions import Unauthorized
from voicenotes.config import settings
from voicenotes.core.firebase_config import init_firebase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    uid: str
    claims: dict = field(default_factory=dict)


class TokenVerifier(ABC):
    @abstractmethod
    def verify(self, token: str) -> AuthenticatedUser:
        """Return the token owner or raise Unauthorized."""


class FirebaseTokenVerifier(TokenVerifier):
    def __init__(self, check_revoked: bool = None):
        self.check_revoked = settings.CHECK_REVOKED_TOKENS if check_revoked is None else check_revoked
        init_firebase()

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            decoded = firebase_auth.verify_id_token(token, check_revoked=self.check_revoked)
        except Exception as exc:
            logger.error("Token verification error: %s", exc)
            raise Unauthorized(CommonMessage.UNAUTHORIZED_INVALID_TOKEN) from exc
        return AuthenticatedUser(uid=decoded["uid"], claims=decoded)


class JwtTokenVerifier(TokenVerifier):
    def __init__(self, secret_key: str = None, algorithm: str = None):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.ALGORITHM
        if not self.secret_key:
            raise ValueError("JWT_SECRET_KEY must be set when AUTH_PROVIDER=jwt")

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError as exc:
            logger.info("Token has expired")
            raise Unauthorized(CommonMessage.UNAUTHORIZED_INVALID_TOKEN) from exc
        except JWTError as exc:
            logger.info("JWT Error: %s", exc)
            raise Unauthorized(CommonMessage.UNAUTHORIZED_INVALID_TOKEN) from exc

        subject = payload.get("sub")
        if not subject:
            raise Unauthorized(CommonMessage.UNAUTHORIZED_INVALID_TOKEN)
        return AuthenticatedUser(uid=str(subject), claims=payload)


def create_access_token(
    subject: Union[str, Any],
    secret_key: str = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue an HS256 token for local development and tests."""
    if expires_delta is None:
        expires_delta = timedelta(hours=1)
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, secret_key or settings.JWT_SECRET_KEY, settings.ALGORITHM)


def parse_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized(CommonMessage.UNAUTHORIZED_MISSING_TOKEN)
    token = authorization[len("Bearer "):].strip()
    if not token:
        raise Unauthorized(CommonMessage.UNAUTHORIZED_MISSING_TOKEN)
    return token


def create_token_verifier() -> TokenVerifier:
    provider = settings.AUTH_PROVIDER.lower()
    if provider == "firebase":
        return FirebaseTokenVerifier()
    if provider == "jwt":
        return JwtTokenVerifier()
    raise ValueError(f"Unknown AUTH_PROVIDER: {settings.AUTH_PROVIDER}")
