"""
Pytest configuration and fixtures for imgvault tests.
"""

import base64
import io
import struct
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from imgvault.api import Services, build_services, create_app
from imgvault.models.database import DatabaseManager, create_database
from imgvault.models.user import Credentials, User
from imgvault.services.auth import AuthService
from imgvault.services.ingestion import IngestionService
from imgvault.services.passwords import CredentialHasher
from imgvault.services.records import ImageRecordStore
from imgvault.services.storage import BlobStorage
from imgvault.services.tokens import TokenService
from imgvault.services.users import UserStore

TEST_JWT_SECRET = "test-secret-0123456789abcdef0123456789abcdef"

# Cheap Argon2id parameters; production defaults are far slower
FAST_ARGON2 = {"memory_cost": 1024, "time_cost": 1, "parallelism": 1}

_GPS_IFD_POINTER = 0x8825
_ASCII = 2
_LONG = 4
_RATIONAL = 5


class ImageFactory:
    """Builds small real images, optionally carrying an EXIF GPS block."""

    @staticmethod
    def gps_exif(
        latitude: tuple | None = None,
        latitude_ref: str | None = None,
        longitude: tuple | None = None,
        longitude_ref: str | None = None,
    ) -> bytes:
        """Build an APP1 EXIF payload whose GPS IFD holds the given axes.

        Args:
            latitude: Three (numerator, denominator) pairs for deg/min/sec
            latitude_ref: "N" or "S", omitted when None
            longitude: Three (numerator, denominator) pairs for deg/min/sec
            longitude_ref: "E" or "W", omitted when None

        Returns:
            ``Exif\\0\\0`` followed by a little-endian TIFF structure
        """
        entries = []
        if latitude_ref is not None:
            entries.append((1, _ASCII, 2, latitude_ref.encode("ascii") + b"\x00"))
        if latitude is not None:
            entries.append((2, _RATIONAL, 3, b"".join(struct.pack("<II", n, d) for n, d in latitude)))
        if longitude_ref is not None:
            entries.append((3, _ASCII, 2, longitude_ref.encode("ascii") + b"\x00"))
        if longitude is not None:
            entries.append((4, _RATIONAL, 3, b"".join(struct.pack("<II", n, d) for n, d in longitude)))

        # Header (8) + IFD0 with one entry (2 + 12 + 4)
        gps_offset = 26
        data_offset = gps_offset + 2 + 12 * len(entries) + 4

        ifd0 = struct.pack("<H", 1) + struct.pack("<HHII", _GPS_IFD_POINTER, _LONG, 1, gps_offset) + struct.pack("<I", 0)

        gps_entries = b""
        data_area = b""
        for tag, field_type, count, payload in entries:
            if len(payload) <= 4:
                gps_entries += struct.pack("<HHI", tag, field_type, count) + payload.ljust(4, b"\x00")
            else:
                gps_entries += struct.pack("<HHII", tag, field_type, count, data_offset + len(data_area))
                data_area += payload
        gps_ifd = struct.pack("<H", len(entries)) + gps_entries + struct.pack("<I", 0)

        tiff = b"II*\x00" + struct.pack("<I", 8) + ifd0 + gps_ifd + data_area
        return b"Exif\x00\x00" + tiff

    @staticmethod
    def jpeg(color: tuple[int, int, int] = (200, 30, 30), exif: bytes | None = None) -> bytes:
        """Encode an 8x8 solid JPEG. Different colors give different bytes."""
        buffer = io.BytesIO()
        image = Image.new("RGB", (8, 8), color)
        if exif is not None:
            image.save(buffer, "JPEG", exif=exif)
        else:
            image.save(buffer, "JPEG")
        return buffer.getvalue()

    @staticmethod
    def png(color: tuple[int, int, int] = (30, 200, 30)) -> bytes:
        buffer = io.BytesIO()
        Image.new("RGB", (4, 4), color).save(buffer, "PNG")
        return buffer.getvalue()

    @staticmethod
    def b64(data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")


@pytest.fixture
def image_factory() -> type[ImageFactory]:
    """Provide the image factory."""
    return ImageFactory


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point configuration at throwaway paths and a known secret."""
    monkeypatch.setenv("IMGVAULT_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "env" / "imgvault.duckdb"))
    monkeypatch.setenv("IMAGE_STORAGE_PATH", str(tmp_path / "env" / "images"))
    monkeypatch.setenv("ARGON2_MEMORY_COST", str(FAST_ARGON2["memory_cost"]))
    monkeypatch.setenv("ARGON2_TIME_COST", str(FAST_ARGON2["time_cost"]))
    monkeypatch.setenv("ARGON2_PARALLELISM", str(FAST_ARGON2["parallelism"]))
    monkeypatch.setattr("imgvault.config._config", None)
    monkeypatch.setattr("imgvault.services.passwords._credential_hasher", None)


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(**FAST_ARGON2)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TEST_JWT_SECRET)


@pytest.fixture
def db_manager(temp_dir: Path) -> Generator[DatabaseManager, None, None]:
    """Initialized DuckDB database in a temporary file."""
    manager = create_database(str(temp_dir / "test.duckdb"))
    yield manager
    manager.close()


@pytest.fixture
def blob_storage(temp_dir: Path) -> BlobStorage:
    return BlobStorage(temp_dir / "images")


@pytest.fixture
def user_store(db_manager: DatabaseManager, hasher: CredentialHasher) -> UserStore:
    return UserStore(db_manager, hasher)


@pytest.fixture
def record_store(db_manager: DatabaseManager) -> ImageRecordStore:
    return ImageRecordStore(db_manager)


@pytest.fixture
def auth_service(user_store: UserStore, hasher: CredentialHasher, token_service: TokenService) -> AuthService:
    return AuthService(user_store, hasher, token_service)


@pytest.fixture
def ingestion_service(record_store: ImageRecordStore, blob_storage: BlobStorage) -> IngestionService:
    return IngestionService(record_store, blob_storage, max_upload_bytes=1024 * 1024)


@pytest.fixture
def create_user(user_store: UserStore) -> Callable[..., User]:
    """Register users directly through the store."""

    def _create(username: str = "alice", password: str = "correct horse") -> User:
        return user_store.create_user(Credentials(username=username, password=password))

    return _create


@pytest.fixture
def services(temp_dir: Path, hasher: CredentialHasher, token_service: TokenService) -> Generator[Services, None, None]:
    """Fully wired services on temporary storage."""
    built = build_services(
        db_path=str(temp_dir / "api.duckdb"),
        storage_root=temp_dir / "api-images",
        token_service=token_service,
        hasher=hasher,
        max_upload_bytes=1024 * 1024,
    )
    yield built
    built.close()


@pytest.fixture
def client(services: Services) -> TestClient:
    return TestClient(create_app(services=services, max_upload_bytes=1024 * 1024))


@pytest.fixture
def login(client: TestClient, services: Services) -> Callable[..., dict[str, str]]:
    """Create a user if needed, log in over HTTP and return bearer headers."""

    def _login(username: str = "alice", password: str = "correct horse") -> dict[str, str]:
        if services.users.get_user(username) is None:
            services.users.create_user(Credentials(username=username, password=password))
        response = client.post("/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login
