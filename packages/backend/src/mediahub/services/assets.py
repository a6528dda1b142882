"""Asset coordinator — keep object storage and the database in step.

Learn: A blob upload and a database write can't share a transaction, so
every mutation that touches both follows the same two-phase shape:

    create:   upload all → write row → (write failed) delete what we uploaded
    replace:  upload new → write row → (ok) delete old / (failed) delete new
    delete:   delete all blobs → (all ok) delete row / (any failed) keep row

Ordering rules:
- The old blob is deleted only AFTER the new reference is committed, so a
  row never points at a blob that's already gone.
- A row is deleted only after ALL of its blobs are gone, so we never have
  a row whose assets are in an unknown state.

Compensating deletes are tried once. If they fail we log and move on: an
orphaned blob costs storage, blocking the user's request costs more.
Uploads are never retried.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import structlog

from mediahub.errors import (
    ApiError,
    AssetDeletionFailed,
    NotFound,
    PersistenceError,
    UploadFailed,
)
from mediahub.storage.base import AssetInput, AssetRef, ObjectStore, UploadResult

logger = structlog.get_logger()

R = TypeVar("R")
K = TypeVar("K")


class AssetCoordinator:
    """Runs asset-touching mutations with upload/compensate semantics."""

    def __init__(self, store: ObjectStore):
        self.store = store

    # ─── Primitives ───────────────────────────────────────

    async def _upload(self, asset: AssetInput) -> UploadResult:
        try:
            return await self.store.upload(asset)
        except Exception as e:
            logger.warning("assets.upload_failed", filename=asset.filename, error=str(e))
            raise UploadFailed(f"Upload of {asset.filename} failed") from e

    async def _delete(self, ref: AssetRef) -> bool:
        try:
            return bool(await self.store.delete(ref.storage_key, ref.kind))
        except Exception as e:
            logger.warning("assets.delete_error", storage_key=ref.storage_key, error=str(e))
            return False

    async def _compensate(self, refs: Sequence[AssetRef], reason: str) -> None:
        """Best-effort delete of blobs nobody references. Never raises."""
        for ref in refs:
            if await self._delete(ref):
                logger.info("assets.compensated", storage_key=ref.storage_key, reason=reason)
            else:
                logger.warning(
                    "assets.compensation_failed",
                    storage_key=ref.storage_key,
                    reason=reason,
                )

    @staticmethod
    def _as_persistence_error(e: Exception) -> ApiError:
        if isinstance(e, ApiError):
            return e
        return PersistenceError(f"Database write failed: {e.__class__.__name__}")

    # ─── Create ───────────────────────────────────────────

    async def create_with_assets(
        self,
        build_record: Callable[[list[UploadResult]], Awaitable[R]],
        inputs: Sequence[AssetInput],
    ) -> R:
        """Upload `inputs`, then persist a record built from the results.

        build_record receives the upload results in the same order as
        `inputs` and must commit the record. If it raises, every uploaded
        blob is deleted before the error propagates.
        """
        results = await asyncio.gather(
            *(self._upload(asset) for asset in inputs), return_exceptions=True
        )
        uploaded = [r for r in results if isinstance(r, UploadResult)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            # Nothing persisted yet; drop the siblings that did make it
            await self._compensate([r.to_ref() for r in uploaded], reason="sibling_upload_failed")
            first = failures[0]
            if isinstance(first, UploadFailed):
                raise first
            raise UploadFailed() from first

        try:
            return await build_record(uploaded)
        except Exception as e:
            logger.warning("assets.persist_failed", error=str(e), uploaded=len(uploaded))
            await self._compensate([r.to_ref() for r in uploaded], reason="persist_failed")
            raise self._as_persistence_error(e) from e

    # ─── Replace ──────────────────────────────────────────

    async def replace_asset(
        self,
        record_id: K,
        fetch_current: Callable[[K], Awaitable[Optional[R]]],
        new_input: AssetInput,
        current_ref: Callable[[R], Optional[AssetRef]],
        apply_new_ref: Callable[[R, UploadResult], Awaitable[R]],
    ) -> R:
        """Swap one asset of a record for a freshly uploaded one.

        apply_new_ref must commit. The old blob is deleted only after it
        returns; if it raises, the new blob is deleted instead and the
        record keeps its old reference.
        """
        record = await fetch_current(record_id)
        if record is None:
            raise NotFound("Record not found")
        old_ref = current_ref(record)

        uploaded = await self._upload(new_input)

        try:
            record = await apply_new_ref(record, uploaded)
        except Exception as e:
            logger.warning("assets.persist_failed", error=str(e), record_id=str(record_id))
            await self._compensate([uploaded.to_ref()], reason="persist_failed")
            raise self._as_persistence_error(e) from e

        # Committed, so the old blob is now unreferenced
        if old_ref is not None and old_ref.storage_key != uploaded.storage_key:
            if not await self._delete(old_ref):
                logger.warning(
                    "assets.orphaned",
                    storage_key=old_ref.storage_key,
                    record_id=str(record_id),
                )
        return record

    # ─── Delete ───────────────────────────────────────────

    async def delete_with_assets(
        self,
        record_id: K,
        fetch_current: Callable[[K], Awaitable[Optional[R]]],
        authorize: Callable[[R], None],
        asset_refs: Callable[[R], Sequence[AssetRef]],
        delete_record: Callable[[R], Awaitable[None]],
    ) -> None:
        """Delete a record and every blob it owns.

        authorize raises (usually Forbidden) to stop the operation. If any
        blob delete fails, the record is left in place and
        AssetDeletionFailed is raised.
        """
        record = await fetch_current(record_id)
        if record is None:
            raise NotFound("Record not found")
        authorize(record)

        refs = list(asset_refs(record))
        outcomes = await asyncio.gather(*(self._delete(ref) for ref in refs))
        failed = [ref.storage_key for ref, ok in zip(refs, outcomes) if not ok]
        if failed:
            logger.error(
                "assets.delete_failed",
                record_id=str(record_id),
                storage_keys=failed,
            )
            raise AssetDeletionFailed("An error occurred while deleting stored assets")

        try:
            await delete_record(record)
        except Exception as e:
            raise self._as_persistence_error(e) from e
        logger.info("assets.record_deleted", record_id=str(record_id), assets=len(refs))
