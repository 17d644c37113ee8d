"""Authentication service for imgvault.

Login checks a username/password pair and issues a session token. Every
other authenticated request presents that token as ``Authorization: Bearer``.
All failures collapse into one generic unauthorized response, so callers
cannot tell an unknown username from a wrong password.
"""

from collections.abc import Mapping

from ..error_handling import AuthenticationError, Outcome, outcome_from_exception
from ..logging_config import get_logger, log_security_event, log_user_action
from ..models.user import Credentials
from .passwords import CredentialHasher
from .tokens import SessionClaims, TokenService
from .users import UserStore

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_SCHEME = "bearer"


class AuthService:
    """Password login and bearer-token request authentication."""

    def __init__(self, users: UserStore, hasher: CredentialHasher, tokens: TokenService) -> None:
        self.users = users
        self.hasher = hasher
        self.tokens = tokens

    def authenticate(self, credentials: Credentials) -> str:
        """
        Verify credentials and issue a session token.

        Returns:
            Signed session token

        Raises:
            AuthenticationError: On unknown user or wrong password
            CredentialHashError: If the stored hash is malformed
            DatabaseError: If the user lookup fails
        """
        user = self.users.get_user(credentials.username)

        if user is None:
            self.hasher.verify_dummy(credentials.password)
            raise AuthenticationError(
                "Invalid credentials",
                code="invalid_credentials",
                user_message="Invalid credentials",
                details={"username": credentials.username, "reason": "unknown_user"},
            )

        if not self.hasher.verify(credentials.password, user.password_hash):
            raise AuthenticationError(
                "Invalid credentials",
                code="invalid_credentials",
                user_message="Invalid credentials",
                details={"username": credentials.username, "reason": "password_mismatch"},
            )

        if self.hasher.needs_rehash(user.password_hash):
            logger.info("password_hash_outdated", username=user.username)

        log_user_action(user.username, "login_success")
        return self.tokens.issue(user.username)

    def login(self, credentials: Credentials) -> Outcome:
        """``authenticate`` rendered as a client-facing outcome."""
        try:
            token = self.authenticate(credentials)
        except Exception as e:
            return outcome_from_exception(e, {"operation": "login"})
        return Outcome(200, {"token": token})

    def parse_bearer_header(self, headers: Mapping[str, str]) -> str:
        """
        Extract the token from an ``Authorization: Bearer <token>`` header.

        Raises:
            AuthenticationError: If the header is missing or malformed
        """
        header = _get_header(headers, AUTHORIZATION_HEADER)
        if not header:
            log_security_event("missing_authorization_header")
            raise AuthenticationError("Missing Authorization header", code="missing_token")

        scheme, _, token = header.partition(" ")
        token = token.strip()
        if scheme.lower() != BEARER_SCHEME or not token:
            log_security_event("malformed_authorization_header", scheme=scheme)
            raise AuthenticationError("Malformed Authorization header", code="malformed_token")

        return token

    def authenticate_request(self, headers: Mapping[str, str]) -> SessionClaims:
        """
        Authenticate a request from its headers.

        Returns:
            Verified session claims; ``subject`` is the only trusted identity

        Raises:
            AuthenticationError: If no valid token is present
        """
        claims = self.tokens.verify(self.parse_bearer_header(headers))
        logger.debug("request_authenticated", subject=claims.subject)
        return claims


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None
