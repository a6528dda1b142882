"""Object storage backends for user-uploaded assets.

Learn: The backend is chosen by MEDIAHUB_STORAGE_BACKEND:
    get_object_store()  # CloudinaryStore or MemoryStore, built once

Route handlers receive it via Depends(get_object_store), so tests can
swap in their own store with app.dependency_overrides.
"""

from typing import Callable, Optional

from mediahub.config import settings
from mediahub.storage.base import (
    AssetInput,
    AssetKind,
    AssetRef,
    ObjectStore,
    StorageError,
    UploadResult,
)
from mediahub.storage.cloudinary import CloudinaryStore
from mediahub.storage.memory import MemoryStore

__all__ = [
    "AssetInput",
    "AssetKind",
    "AssetRef",
    "ObjectStore",
    "StorageError",
    "UploadResult",
    "get_object_store",
    "list_backends",
]

# ─── Registry ──────────────────────────────────────────────


def _cloudinary() -> ObjectStore:
    return CloudinaryStore(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        timeout=settings.storage_timeout_seconds,
    )


_BACKENDS: dict[str, Callable[[], ObjectStore]] = {
    "cloudinary": _cloudinary,
    "memory": MemoryStore,
}

_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    """Get the configured object store (built on first use).

    Raises ValueError if the backend name is not registered.
    """
    global _store
    if _store is None:
        factory = _BACKENDS.get(settings.storage_backend)
        if not factory:
            available = ", ".join(sorted(_BACKENDS))
            raise ValueError(
                f"Unknown storage backend '{settings.storage_backend}'. Available: {available}"
            )
        _store = factory()
    return _store


def list_backends() -> list[str]:
    """List registered backend names."""
    return sorted(_BACKENDS)
