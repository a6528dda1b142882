"""In-process object store for local development and tests.

Blobs live in a dict keyed by storage key. Nothing survives a restart.
"""

import uuid

from mediahub.storage.base import AssetInput, AssetKind, UploadResult


class MemoryStore:
    """ObjectStore that keeps blobs in memory."""

    def __init__(self, base_url: str = "memory://mediahub"):
        self.base_url = base_url.rstrip("/")
        self.blobs: dict[str, bytes] = {}

    async def upload(self, asset: AssetInput) -> UploadResult:
        key = f"{asset.kind.value}/{uuid.uuid4().hex}"
        self.blobs[key] = asset.content
        return UploadResult(
            url=f"{self.base_url}/{key}",
            storage_key=key,
            kind=asset.kind,
            duration=0.0 if asset.kind == AssetKind.VIDEO else None,
        )

    async def delete(self, storage_key: str, kind: AssetKind = AssetKind.IMAGE) -> bool:
        self.blobs.pop(storage_key, None)
        return True

    def __contains__(self, storage_key: str) -> bool:
        return storage_key in self.blobs
