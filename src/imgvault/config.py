"""Configuration management for imgvault.

Values come from environment variables, optionally seeded from a ``.env``
file. Lookups are cast and cached; call ``clear_cache`` after changing the
environment at runtime (tests do this).
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TOKEN_TTL_HOURS = 24
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# Argon2id cost parameters used when hashing new passwords
DEFAULT_ARGON2_MEMORY_COST = 65536
DEFAULT_ARGON2_TIME_COST = 2
DEFAULT_ARGON2_PARALLELISM = 2


_TRUE_VALUES = ("true", "1", "yes", "on")
_DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local", "test")
_PRODUCTION_ENVIRONMENTS = ("production", "prod")


class Config:
    """Environment-backed settings with typed, cached lookups."""

    def __init__(self, env_file: str | None = None):
        """
        Args:
            env_file: Optional dotenv file. Variables already present in the
                environment win over the file.
        """
        self._cache: dict[tuple[str, type], Any] = {}
        if env_file and Path(env_file).exists():
            load_dotenv(dotenv_path=env_file, override=False)
            logger.debug("env_file_loaded", env_file=env_file)

    @staticmethod
    def _cast(value: Any, cast_type: type) -> Any:
        if cast_type is bool:
            return value.lower() in _TRUE_VALUES if isinstance(value, str) else bool(value)
        if cast_type is str:
            return value
        return cast_type(value)

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """
        Read ``key`` from the environment.

        Args:
            key: Variable name
            default: Returned when the variable is unset or fails to cast
            cast_type: One of str, int, float, bool

        Returns:
            The cast value, or ``default``
        """
        cache_key = (key, cast_type)
        if cache_key not in self._cache:
            raw = os.getenv(key)
            value = default if raw is None else raw
            if value is not None:
                try:
                    value = self._cast(value, cast_type)
                except (TypeError, ValueError) as e:
                    logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                    value = default
            self._cache[cache_key] = value
        return self._cache[cache_key]

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """
        Read a variable that must be set and non-empty.

        Raises:
            ValueError: If ``key`` is unset or empty
        """
        value = self.get(key, cast_type=cast_type)
        if value in (None, ""):
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def environment(self) -> str:
        return str(self.get("ENVIRONMENT", "development")).lower()

    def is_development(self) -> bool:
        return self.environment() in _DEVELOPMENT_ENVIRONMENTS

    def is_production(self) -> bool:
        return self.environment() in _PRODUCTION_ENVIRONMENTS

    def clear_cache(self) -> None:
        """Forget cached lookups so the next read sees the current environment."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config(env_file=os.getenv("IMGVAULT_ENV_FILE", ".env"))
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    """Get environment variable with type casting."""
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get required environment variable.

    Raises:
        ValueError: If the required environment variable is not found
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def get_jwt_secret() -> str:
    """Get the secret used to sign session tokens."""
    return str(get_required_env("JWT_SECRET"))


def get_token_ttl_hours() -> int:
    """Get session token lifetime in hours."""
    return int(get_env("TOKEN_TTL_HOURS", DEFAULT_TOKEN_TTL_HOURS, int))


def get_storage_root() -> Path:
    """Get the directory holding uploaded image blobs."""
    return Path(get_env("IMAGE_STORAGE_PATH", "./data/images"))


def get_database_path() -> str:
    """Get the DuckDB database file path."""
    return str(get_env("DATABASE_PATH", "./data/imgvault.duckdb"))


def get_max_upload_bytes() -> int:
    """Get the maximum accepted request body size for uploads."""
    return int(get_env("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, int))


def get_argon2_parameters() -> dict[str, int]:
    """Get Argon2id cost parameters for newly hashed passwords."""
    return {
        "memory_cost": int(get_env("ARGON2_MEMORY_COST", DEFAULT_ARGON2_MEMORY_COST, int)),
        "time_cost": int(get_env("ARGON2_TIME_COST", DEFAULT_ARGON2_TIME_COST, int)),
        "parallelism": int(get_env("ARGON2_PARALLELISM", DEFAULT_ARGON2_PARALLELISM, int)),
    }
