"""
HTTP API for imgvault.

- create_app: FastAPI application factory
- build_services: wires the services from configuration
"""

from .app import create_app
from .dependencies import Services, build_services

__all__ = ["Services", "build_services", "create_app"]
