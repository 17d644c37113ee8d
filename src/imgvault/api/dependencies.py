"""Service wiring and FastAPI dependencies."""

from dataclasses import dataclass
from pathlib import Path

from fastapi import Depends, HTTPException, Request, status

from ..config import get_database_path, get_max_upload_bytes
from ..error_handling import AuthenticationError
from ..models.database import DatabaseManager, get_database_manager
from ..services.auth import AuthService
from ..services.exif import MetadataExtractor
from ..services.ingestion import IngestionService
from ..services.passwords import CredentialHasher, get_credential_hasher
from ..services.records import ImageRecordStore
from ..services.storage import BlobStorage, get_blob_storage
from ..services.tokens import TokenService, create_token_service
from ..services.users import UserStore


@dataclass
class Services:
    """Everything a request handler needs, built once per process."""

    db_manager: DatabaseManager
    storage: BlobStorage
    users: UserStore
    auth: AuthService
    ingestion: IngestionService

    def close(self) -> None:
        self.db_manager.close()


def build_services(
    db_path: str | None = None,
    storage_root: str | Path | None = None,
    token_service: TokenService | None = None,
    hasher: CredentialHasher | None = None,
    max_upload_bytes: int | None = None,
) -> Services:
    """
    Build the service graph. Arguments left as None come from configuration.

    Raises:
        ValueError: If ``JWT_SECRET`` is required but not configured
        RuntimeError: If the database cannot be initialized
    """
    db_manager = get_database_manager(db_path or get_database_path())
    storage = get_blob_storage(storage_root)
    hasher = hasher or get_credential_hasher()
    users = UserStore(db_manager, hasher)
    auth = AuthService(users, hasher, token_service or create_token_service())
    ingestion = IngestionService(
        records=ImageRecordStore(db_manager),
        storage=storage,
        extractor=MetadataExtractor(),
        max_upload_bytes=max_upload_bytes or get_max_upload_bytes(),
    )
    return Services(db_manager=db_manager, storage=storage, users=users, auth=auth, ingestion=ingestion)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_subject(request: Request, services: Services = Depends(get_services)) -> str:
    """
    Authenticate the request from its bearer token.

    The returned subject is the only identity handlers may use; client
    supplied owner fields are never trusted.
    """
    try:
        claims = services.auth.authenticate_request(request.headers)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.user_message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return claims.subject
