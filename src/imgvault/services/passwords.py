"""Password hashing with Argon2id.

Hashes are PHC strings (``$argon2id$v=19$m=65536,t=2,p=2$<salt>$<digest>``),
so the cost parameters and salt travel with the hash. Verification always
uses the parameters embedded in the stored string.
"""

import threading

from argon2 import PasswordHasher, Type
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from ..config import get_argon2_parameters
from ..error_handling import CredentialHashError
from ..logging_config import get_logger

logger = get_logger(__name__)

_DUMMY_PASSWORD = "imgvault-timing-equalizer"


class CredentialHasher:
    """Hash and verify passwords with a per-call random salt."""

    def __init__(self, memory_cost: int = 65536, time_cost: int = 2, parallelism: int = 2) -> None:
        """
        Args:
            memory_cost: Memory in KiB
            time_cost: Number of iterations
            parallelism: Number of lanes
        """
        self.memory_cost = memory_cost
        self.time_cost = time_cost
        self.parallelism = parallelism
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=Type.ID,
        )
        self._dummy_hash: str | None = None
        self._dummy_lock = threading.Lock()

    def hash(self, password: str) -> str:
        """
        Hash a password.

        Raises:
            CredentialHashError: If the configured parameters are rejected
        """
        try:
            return self._hasher.hash(password)
        except HashingError as e:
            raise CredentialHashError(
                f"Password hashing failed: {e}",
                details={
                    "memory_cost": self.memory_cost,
                    "time_cost": self.time_cost,
                    "parallelism": self.parallelism,
                },
                original_exception=e,
            ) from e

    def verify(self, password: str, hash_string: str) -> bool:
        """
        Check ``password`` against a stored hash in constant time.

        Returns:
            True on match, False on mismatch

        Raises:
            CredentialHashError: If the stored hash is malformed
        """
        try:
            return self._hasher.verify(hash_string, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            raise CredentialHashError(
                f"Stored password hash could not be verified: {e}",
                original_exception=e,
            ) from e

    def needs_rehash(self, hash_string: str) -> bool:
        """Whether ``hash_string`` was made with parameters other than the current ones."""
        try:
            return self._hasher.check_needs_rehash(hash_string)
        except InvalidHashError as e:
            raise CredentialHashError(f"Stored password hash is malformed: {e}", original_exception=e) from e

    def verify_dummy(self, password: str) -> None:
        """
        Spend one verification on a throwaway hash.

        Used when the username does not exist so that the response time does
        not reveal whether an account exists.
        """
        with self._dummy_lock:
            if self._dummy_hash is None:
                self._dummy_hash = self.hash(_DUMMY_PASSWORD)
            dummy_hash = self._dummy_hash
        self.verify(password, dummy_hash)


_credential_hasher: CredentialHasher | None = None


def get_credential_hasher() -> CredentialHasher:
    """Get the process-wide hasher built from configuration."""
    global _credential_hasher
    if _credential_hasher is None:
        params = get_argon2_parameters()
        _credential_hasher = CredentialHasher(**params)
        logger.debug("credential_hasher_initialized", **params)
    return _credential_hasher
