"""
Services module for imgvault.

This module contains all service classes that handle business logic:
- CredentialHasher: Argon2id password hashing
- TokenService: signed, expiring session tokens
- MetadataExtractor: EXIF GPS extraction
- ImageRecordStore / UserStore: DuckDB persistence
- BlobStorage: content-addressed files on disk
- AuthService: login and bearer authentication
- IngestionService: upload, list, fetch and delete orchestration
"""

from .auth import AuthService
from .exif import GpsCoordinates, MetadataExtractor, extract_gps
from .hashing import digest, is_digest
from .ingestion import IngestionService, UploadRequest
from .passwords import CredentialHasher, get_credential_hasher
from .records import ImageRecordStore, InsertOutcome
from .storage import BlobStorage, get_blob_storage
from .tokens import SessionClaims, TokenService, create_token_service
from .users import UserStore

__all__ = [
    "AuthService",
    "BlobStorage",
    "CredentialHasher",
    "GpsCoordinates",
    "ImageRecordStore",
    "IngestionService",
    "InsertOutcome",
    "MetadataExtractor",
    "SessionClaims",
    "TokenService",
    "UploadRequest",
    "UserStore",
    "create_token_service",
    "digest",
    "extract_gps",
    "get_blob_storage",
    "get_credential_hasher",
    "is_digest",
]
