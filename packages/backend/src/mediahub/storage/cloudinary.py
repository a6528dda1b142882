"""Cloudinary object store — signed REST calls over httpx.

Learn: Cloudinary's upload API is plain multipart HTTP, so we talk to it
with httpx instead of pulling in the vendor SDK. Every call is signed:

    signature = sha1("param1=v1&param2=v2" + api_secret)

with params sorted by name and `file`, `api_key`, `resource_type` left out.
Images and videos live in separate namespaces, so both upload and destroy
are addressed by resource type: /{cloud}/{image|video}/upload.
"""

import hashlib
import time
from typing import Optional

import httpx
import structlog

from mediahub.storage.base import AssetInput, AssetKind, StorageError, UploadResult

logger = structlog.get_logger()

API_BASE = "https://api.cloudinary.com/v1_1"


def sign_params(params: dict, api_secret: str) -> str:
    """Compute the Cloudinary request signature for `params`."""
    to_sign = "&".join(
        f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


class CloudinaryStore:
    """ObjectStore backed by a Cloudinary account."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "mediahub",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError(
                "Cloudinary storage needs MEDIAHUB_CLOUDINARY_CLOUD_NAME, "
                "MEDIAHUB_CLOUDINARY_API_KEY and MEDIAHUB_CLOUDINARY_API_SECRET"
            )
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{API_BASE}/{self.cloud_name}",
            timeout=self.timeout,
            transport=self._transport,
        )

    def _signed(self, params: dict) -> dict:
        params = {**params, "timestamp": int(time.time())}
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def upload(self, asset: AssetInput) -> UploadResult:
        data = self._signed({"folder": self.folder})
        files = {
            "file": (
                asset.filename,
                asset.content,
                asset.content_type or "application/octet-stream",
            )
        }
        try:
            async with self._client() as c:
                r = await c.post(f"/{asset.kind.value}/upload", data=data, files=files)
        except httpx.HTTPError as e:
            raise StorageError(f"Upload of {asset.filename} failed: {e}") from e

        if r.status_code != 200:
            raise StorageError(
                f"Upload of {asset.filename} rejected ({r.status_code}): {r.text[:200]}"
            )
        body = r.json()
        logger.info(
            "storage.uploaded",
            storage_key=body["public_id"],
            kind=asset.kind.value,
            bytes=len(asset.content),
        )
        return UploadResult(
            url=body["secure_url"],
            storage_key=body["public_id"],
            kind=asset.kind,
            duration=body.get("duration"),
        )

    async def delete(self, storage_key: str, kind: AssetKind = AssetKind.IMAGE) -> bool:
        data = self._signed({"public_id": storage_key, "invalidate": "true"})
        try:
            async with self._client() as c:
                r = await c.post(f"/{kind.value}/destroy", data=data)
        except httpx.HTTPError as e:
            raise StorageError(f"Delete of {storage_key} failed: {e}") from e

        if r.status_code != 200:
            return False
        # "not found": the blob is already gone
        return r.json().get("result") in ("ok", "not found")
