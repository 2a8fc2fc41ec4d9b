import hmac
import hashlib
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from core.config import settings
from core.logger import logger


@dataclass(frozen=True)
class Principal:
    """Authenticated caller. Identity is opaque to the quiz core."""
    user_id: str


class IdentityProvider(Protocol):
    def authenticate(self, token: str) -> Optional[Principal]:
        ...


class SignedTokenIdentityProvider:
    """
    Verifies tokens signed with the shared secret.
    Format: {user_id}:{timestamp}:{signature}
    """

    def __init__(self, secret: str, ttl_seconds: int = 3600):
        self.secret = secret.encode()
        self.ttl_seconds = ttl_seconds

    def _sign(self, data: str) -> str:
        return hmac.new(self.secret, data.encode(), hashlib.sha256).hexdigest()

    def issue(self, user_id: str, timestamp: Optional[int] = None) -> str:
        timestamp = int(time.time()) if timestamp is None else timestamp
        data = f"{user_id}:{timestamp}"
        return f"{data}:{self._sign(data)}"

    def authenticate(self, token: str) -> Optional[Principal]:
        if not token or not self.secret:
            return None

        parts = token.rsplit(':', 2)
        if len(parts) != 3:
            return None

        user_id, timestamp_str, signature = parts
        if not user_id:
            return None

        try:
            issued_at = int(timestamp_str)
        except ValueError:
            return None

        if int(time.time()) - issued_at > self.ttl_seconds:
            logger.warning("Token expired", user_id=user_id)
            return None

        expected_signature = self._sign(f"{user_id}:{timestamp_str}")
        if hmac.compare_digest(expected_signature, signature):
            return Principal(user_id=user_id)

        logger.warning("Token signature mismatch", user_id=user_id)
        return None


def get_identity_provider() -> IdentityProvider:
    return SignedTokenIdentityProvider(settings.AUTH_SECRET, ttl_seconds=settings.TOKEN_TTL_SECONDS)


class AuthError(Exception):
    """Missing, malformed or rejected credentials."""
    pass


def authenticate_bearer(provider: IdentityProvider, authorization: Optional[str]) -> Principal:
    """Resolve an `Authorization: Bearer <token>` header to a Principal or raise AuthError."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthError("Missing bearer token")

    principal = provider.authenticate(authorization.split(" ", 1)[1].strip())
    if principal is None:
        raise AuthError("Invalid or expired token")
    return principal
