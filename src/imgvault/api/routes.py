"""HTTP routes. Handlers only translate between JSON and service calls."""

from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from ..error_handling import Outcome
from ..health import perform_health_check
from ..models.user import Credentials
from ..services.ingestion import UploadRequest
from .dependencies import Services, get_current_subject, get_services

router = APIRouter()


class LoginRequest(BaseModel):
    username: str
    password: str


class UploadBody(BaseModel):
    content: str
    extension: str | None = None
    image_name: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None


def render(outcome: Outcome) -> JSONResponse:
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.get("/health", response_class=PlainTextResponse)
def health() -> str:
    """Liveness only."""
    return "OK"


@router.get("/health-auth", response_class=PlainTextResponse)
def health_auth(subject: str = Depends(get_current_subject)) -> str:
    """Liveness behind authentication, for checking a token end to end."""
    return "OK"


@router.get("/health/ready")
def readiness(services: Services = Depends(get_services)) -> JSONResponse:
    report = perform_health_check(services.db_manager, services.storage)
    return JSONResponse(status_code=200 if report["status"] == "healthy" else 503, content=report)


@router.post("/login")
def login(body: LoginRequest, services: Services = Depends(get_services)) -> JSONResponse:
    return render(services.auth.login(Credentials(username=body.username, password=body.password)))


@router.post("/img")
def upload_image(
    body: UploadBody,
    subject: str = Depends(get_current_subject),
    services: Services = Depends(get_services),
) -> JSONResponse:
    request = UploadRequest(
        content=body.content,
        extension=body.extension,
        image_name=body.image_name,
        created_at=body.created_at,
        modified_at=body.modified_at,
    )
    return render(services.ingestion.upload(subject, request))


# Registered before /img/{content_hash} so "hashes" is not taken for a hash
@router.get("/img/hashes")
def list_image_hashes(
    subject: str = Depends(get_current_subject),
    services: Services = Depends(get_services),
) -> JSONResponse:
    return render(services.ingestion.list_hashes(subject))


@router.get("/img/{content_hash}")
def get_image(
    content_hash: str,
    subject: str = Depends(get_current_subject),
    services: Services = Depends(get_services),
) -> JSONResponse:
    return render(services.ingestion.get_image(subject, content_hash))


@router.delete("/img/{content_hash}")
def delete_image(
    content_hash: str,
    subject: str = Depends(get_current_subject),
    services: Services = Depends(get_services),
) -> JSONResponse:
    return render(services.ingestion.delete_image(subject, content_hash))
