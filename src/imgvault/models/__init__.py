"""
Models module for imgvault.

This module contains data models and schemas:
- ImageRecord / ImageKey: ownership-scoped image metadata
- User / Credentials: account data and login input
- DatabaseManager: DuckDB connection and schema management
"""

from .database import DatabaseManager, create_database, get_database_manager
from .image import IMAGE_COLUMNS, ImageKey, ImageRecord
from .schema import get_schema_statements, validate_schema_compatibility
from .user import Credentials, User

__all__ = [
    "Credentials",
    "DatabaseManager",
    "IMAGE_COLUMNS",
    "ImageKey",
    "ImageRecord",
    "User",
    "create_database",
    "get_database_manager",
    "get_schema_statements",
    "validate_schema_compatibility",
]
