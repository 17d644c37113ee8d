"""User accounts in DuckDB."""

from datetime import UTC, datetime

import duckdb

from ..error_handling import ConflictError, DatabaseError, ValidationError
from ..logging_config import get_logger, log_user_action
from ..models.database import DatabaseManager, is_duplicate_key_error
from ..models.image import to_db_timestamp
from ..models.user import Credentials, User
from .passwords import CredentialHasher

logger = get_logger(__name__)

MAX_USERNAME_LENGTH = 64


class UserStore:
    """Create and look up users. Passwords are only ever stored hashed."""

    def __init__(self, db_manager: DatabaseManager, hasher: CredentialHasher) -> None:
        self.db_manager = db_manager
        self.hasher = hasher

    def create_user(self, credentials: Credentials) -> User:
        """
        Register a new account.

        Raises:
            ValidationError: If the username is empty or too long
            ConflictError: If the username is taken
            DatabaseError: For other database failures
        """
        username = credentials.username.strip()
        if not username or len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be 1-{MAX_USERNAME_LENGTH} characters",
                code="invalid_username",
            )

        password_hash = self.hasher.hash(credentials.password)

        try:
            rows = self.db_manager.execute_query(
                """INSERT INTO users (username, password_hash, created_at)
                   VALUES (?, ?, ?)
                   RETURNING username, password_hash, created_at""",
                (username, password_hash, to_db_timestamp(datetime.now(UTC))),
            )
        except (duckdb.ConstraintException, duckdb.TransactionException) as e:
            if not is_duplicate_key_error(e):
                raise DatabaseError(
                    f"Failed to create user: {e}",
                    code="user_create_failed",
                    details={"username": username},
                    original_exception=e,
                ) from e
            raise ConflictError(
                f"Username '{username}' already exists",
                code="username_exists",
                user_message="Username already exists",
                details={"username": username},
            ) from e
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to create user: {e}",
                code="user_create_failed",
                details={"username": username},
                original_exception=e,
            ) from e

        log_user_action(username, "user_created")
        return User.from_row(rows[0])

    def get_user(self, username: str) -> User | None:
        """
        Look up a user by name.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            rows = self.db_manager.execute_query(
                "SELECT username, password_hash, created_at FROM users WHERE username = ?",
                (username,),
            )
        except duckdb.Error as e:
            raise DatabaseError(
                f"Failed to look up user: {e}",
                code="user_lookup_failed",
                details={"username": username},
                original_exception=e,
            ) from e

        if not rows:
            return None
        return User.from_row(rows[0])
