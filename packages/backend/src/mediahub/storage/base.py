"""Object store interface — the contract every blob backend implements.

Learn: The object store is an external, non-transactional service. Upload
returns a stable storage key plus a public URL; delete takes the key back.
Either call can fail, and nothing here rolls anything back. That is the
job of services/assets.py (the asset coordinator).

The storage key is the only handle needed to delete a blob later; the URL
is what clients see. Both travel together as an AssetRef.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Protocol


class AssetKind(str, enum.Enum):
    """Resource type of a blob. Cloudinary addresses images and videos separately."""

    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class AssetInput:
    """A file received from a client, ready to be uploaded."""

    filename: str
    content: bytes
    kind: AssetKind = AssetKind.IMAGE
    content_type: Optional[str] = None


@dataclass(frozen=True)
class AssetRef:
    """Durable pointer to a blob: public URL + storage key."""

    url: str
    storage_key: str
    kind: AssetKind = AssetKind.IMAGE


@dataclass(frozen=True)
class UploadResult:
    """What the object store hands back after an upload."""

    url: str
    storage_key: str
    kind: AssetKind
    duration: Optional[float] = None  # seconds, videos only

    def to_ref(self) -> AssetRef:
        return AssetRef(url=self.url, storage_key=self.storage_key, kind=self.kind)


class StorageError(Exception):
    """Raised by a backend when an upload or delete request fails."""


class ObjectStore(Protocol):
    """Blob storage backend."""

    async def upload(self, asset: AssetInput) -> UploadResult:
        """Upload a blob. Raises StorageError on failure."""
        ...

    async def delete(self, storage_key: str, kind: AssetKind = AssetKind.IMAGE) -> bool:
        """Delete a blob. Returns False (or raises StorageError) on failure."""
        ...
