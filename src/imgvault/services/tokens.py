"""Stateless session tokens.

Tokens are HS256 JWTs carrying ``sub`` (the username) and ``exp`` (epoch
seconds). Nothing is stored server side; a token is valid exactly when its
signature checks out against the configured secret and ``exp`` is in the
future. Changing the secret invalidates every outstanding token.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from ..config import get_jwt_secret, get_token_ttl_hours
from ..error_handling import AuthenticationError
from ..logging_config import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionClaims:
    """Decoded token payload."""

    subject: str
    expires_at: datetime


class TokenService:
    """Issue and verify signed session tokens."""

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=24)) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self.ttl = ttl

    def issue(self, subject: str, now: datetime | None = None) -> str:
        """
        Sign a token for ``subject`` that expires ``ttl`` after ``now``.

        Args:
            subject: Authenticated username
            now: Issue time, defaults to the current time

        Returns:
            Encoded token
        """
        issued_at = now or datetime.now(UTC)
        expires_at = issued_at + self.ttl
        payload = {"sub": subject, "exp": int(expires_at.timestamp())}
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        logger.debug("session_token_issued", subject=subject, expires_at=expires_at.isoformat())
        return token

    def verify(self, token: str) -> SessionClaims:
        """
        Validate signature and expiry.

        Raises:
            AuthenticationError: For any invalid token. The reason is logged
                but never reported to the client.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as e:
            raise AuthenticationError(
                f"Invalid session token: {e}",
                code="invalid_token",
                details={"reason": type(e).__name__},
                original_exception=e,
            ) from e

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Session token has an empty subject", code="invalid_token")

        return SessionClaims(
            subject=subject,
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )


def create_token_service() -> TokenService:
    """Build a token service from configuration (``JWT_SECRET``, ``TOKEN_TTL_HOURS``)."""
    return TokenService(get_jwt_secret(), timedelta(hours=get_token_ttl_hours()))
