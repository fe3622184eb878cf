"""Factory functions for transformation service selection."""

from typing import TYPE_CHECKING

from pdfturn.config import ServiceBackend, ServiceConfig

if TYPE_CHECKING:
    from pdfturn.services.base import TransformationService


def get_default_backend() -> "TransformationService":
    """Get the in-process pypdf backend."""
    from pdfturn.services.local import LocalBackend
    return LocalBackend()


def get_backend(name: str, **kwargs) -> "TransformationService":
    """Get a specific backend by name.

    Args:
        name: Backend name ('local', 'http', 'mock')
        **kwargs: Passed to the backend constructor

    Returns:
        TransformationService instance

    Raises:
        ValueError: If backend name is not recognized
    """
    backends = {
        "local": _get_local,
        "http": _get_http,
        "mock": _get_mock,
    }

    if name not in backends:
        available = ", ".join(sorted(backends.keys()))
        raise ValueError(f"Unknown service backend: '{name}'. Available: {available}")

    return backends[name](**kwargs)


def backend_from_config(config: ServiceConfig) -> "TransformationService":
    """Build the backend a ServiceConfig selects."""
    if config.backend == ServiceBackend.HTTP:
        return get_backend("http", base_url=config.base_url, timeout=config.timeout)
    return get_backend(config.backend.value)


def _get_local(**kwargs) -> "TransformationService":
    from pdfturn.services.local import LocalBackend
    return LocalBackend(**kwargs)


def _get_http(**kwargs) -> "TransformationService":
    from pdfturn.services.http import HttpBackend
    return HttpBackend(**kwargs)


def _get_mock(**kwargs) -> "TransformationService":
    from pdfturn.services.mock import MockBackend
    return MockBackend(**kwargs)
