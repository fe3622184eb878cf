"""Transformation service backends."""

from pdfturn.services.base import TransformationService
from pdfturn.services.factory import backend_from_config, get_backend, get_default_backend
from pdfturn.services.mock import MockBackend

__all__ = [
    "TransformationService",
    "MockBackend",
    "backend_from_config",
    "get_backend",
    "get_default_backend",
]
