"""Asset coordinator — upload/persist/compensate ordering.

Learn: The coordinator only sees callables, so these tests don't need a
database: build/apply/delete callbacks are plain async functions that
record what happened (or raise) and the store is a FlakyStore.
"""

import pytest

from mediahub.errors import (
    AssetDeletionFailed,
    Conflict,
    Forbidden,
    NotFound,
    PersistenceError,
    UploadFailed,
)
from mediahub.services.assets import AssetCoordinator
from mediahub.storage.base import AssetInput, AssetKind, AssetRef


def _input(name: str, kind: AssetKind = AssetKind.IMAGE) -> AssetInput:
    return AssetInput(filename=name, content=name.encode(), kind=kind)


class Record:
    def __init__(self, ref=None):
        self.ref = ref


# ═══════════════════════════════════════════════════════════
# create_with_assets
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_passes_uploads_in_input_order(store):
    coordinator = AssetCoordinator(store)

    async def build(uploads):
        return [u.kind for u in uploads]

    kinds = await coordinator.create_with_assets(
        build, [_input("v.mp4", AssetKind.VIDEO), _input("t.png")]
    )
    assert kinds == [AssetKind.VIDEO, AssetKind.IMAGE]
    assert len(store.blobs) == 2


@pytest.mark.asyncio
async def test_create_upload_failure_skips_build_and_cleans_siblings(store):
    store.fail_uploads.add("bad.png")
    built = []

    async def build(uploads):
        built.append(uploads)

    with pytest.raises(UploadFailed):
        await AssetCoordinator(store).create_with_assets(
            build, [_input("good.png"), _input("bad.png")]
        )
    assert built == []
    assert store.blobs == {}
    assert len(store.deleted) == 1


@pytest.mark.asyncio
async def test_create_persist_failure_deletes_every_upload(store):
    async def build(uploads):
        raise RuntimeError("db is down")

    with pytest.raises(PersistenceError):
        await AssetCoordinator(store).create_with_assets(
            build, [_input("a.png"), _input("b.png")]
        )
    assert store.blobs == {}
    assert sorted(store.deleted) == sorted(store.uploaded)


@pytest.mark.asyncio
async def test_create_keeps_api_error_from_build(store):
    async def build(uploads):
        raise Conflict("User with email or username already exists")

    with pytest.raises(Conflict):
        await AssetCoordinator(store).create_with_assets(build, [_input("a.png")])
    assert store.blobs == {}


@pytest.mark.asyncio
async def test_create_compensation_failure_is_not_raised(store):
    store.fail_deletes = True

    async def build(uploads):
        raise RuntimeError("db is down")

    # The persist failure surfaces, not the cleanup failure
    with pytest.raises(PersistenceError):
        await AssetCoordinator(store).create_with_assets(build, [_input("a.png")])
    assert len(store.blobs) == 1


# ═══════════════════════════════════════════════════════════
# replace_asset
# ═══════════════════════════════════════════════════════════


async def _seeded(store) -> Record:
    old = await store.upload(_input("old.png"))
    return Record(old.to_ref())


@pytest.mark.asyncio
async def test_replace_deletes_old_only_after_commit(store):
    record = await _seeded(store)
    old_key = record.ref.storage_key
    events = []

    async def fetch(_id):
        return record

    async def apply(rec, upload):
        events.append(("apply", old_key in store))
        rec.ref = upload.to_ref()
        return rec

    result = await AssetCoordinator(store).replace_asset(
        "r1", fetch, _input("new.png"), lambda r: r.ref, apply
    )
    # The old blob still existed when the new ref was applied
    assert events == [("apply", True)]
    assert old_key not in store
    assert result.ref.storage_key in store


@pytest.mark.asyncio
async def test_replace_persist_failure_deletes_new_keeps_old(store):
    record = await _seeded(store)
    old_ref = record.ref

    async def fetch(_id):
        return record

    async def apply(rec, upload):
        raise RuntimeError("write failed")

    with pytest.raises(PersistenceError):
        await AssetCoordinator(store).replace_asset(
            "r1", fetch, _input("new.png"), lambda r: r.ref, apply
        )
    assert record.ref == old_ref
    assert old_ref.storage_key in store
    assert list(store.blobs) == [old_ref.storage_key]


@pytest.mark.asyncio
async def test_replace_missing_record_uploads_nothing(store):
    async def fetch(_id):
        return None

    async def apply(rec, upload):
        return rec

    with pytest.raises(NotFound):
        await AssetCoordinator(store).replace_asset(
            "missing", fetch, _input("new.png"), lambda r: r.ref, apply
        )
    assert store.uploaded == []


@pytest.mark.asyncio
async def test_replace_upload_failure_leaves_record(store):
    record = await _seeded(store)
    old_ref = record.ref
    store.fail_uploads.add("new.png")
    applied = []

    async def fetch(_id):
        return record

    async def apply(rec, upload):
        applied.append(upload)
        return rec

    with pytest.raises(UploadFailed):
        await AssetCoordinator(store).replace_asset(
            "r1", fetch, _input("new.png"), lambda r: r.ref, apply
        )
    assert applied == []
    assert record.ref == old_ref


@pytest.mark.asyncio
async def test_replace_without_previous_asset(store):
    record = Record(ref=None)

    async def fetch(_id):
        return record

    async def apply(rec, upload):
        rec.ref = upload.to_ref()
        return rec

    await AssetCoordinator(store).replace_asset(
        "r1", fetch, _input("first.png"), lambda r: r.ref, apply
    )
    assert store.deleted == []
    assert record.ref.storage_key in store


# ═══════════════════════════════════════════════════════════
# delete_with_assets
# ═══════════════════════════════════════════════════════════


async def _record_with_two_blobs(store):
    video = await store.upload(_input("v.mp4", AssetKind.VIDEO))
    thumb = await store.upload(_input("t.png"))
    return [video.to_ref(), thumb.to_ref()]


@pytest.mark.asyncio
async def test_delete_removes_blobs_then_record(store):
    refs = await _record_with_two_blobs(store)
    events = []

    async def fetch(_id):
        return refs

    async def delete_record(rec):
        events.append(("row", len(store.blobs)))

    await AssetCoordinator(store).delete_with_assets(
        "r1", fetch, lambda r: None, lambda r: r, delete_record
    )
    assert events == [("row", 0)]


@pytest.mark.asyncio
async def test_delete_blob_failure_keeps_record(store):
    refs = await _record_with_two_blobs(store)
    store.fail_deletes = True
    deleted_rows = []

    async def fetch(_id):
        return refs

    async def delete_record(rec):
        deleted_rows.append(rec)

    with pytest.raises(AssetDeletionFailed):
        await AssetCoordinator(store).delete_with_assets(
            "r1", fetch, lambda r: None, lambda r: r, delete_record
        )
    assert deleted_rows == []


@pytest.mark.asyncio
async def test_delete_store_exception_counts_as_failure(store):
    refs = [AssetRef(url="x", storage_key="k1")]

    async def exploding_delete(storage_key, kind=AssetKind.IMAGE):
        raise ConnectionError("store unreachable")

    store.delete = exploding_delete

    async def fetch(_id):
        return refs

    async def delete_record(rec):
        raise AssertionError("row must not be deleted")

    with pytest.raises(AssetDeletionFailed):
        await AssetCoordinator(store).delete_with_assets(
            "r1", fetch, lambda r: None, lambda r: r, delete_record
        )


@pytest.mark.asyncio
async def test_delete_unauthorized_touches_nothing(store):
    refs = await _record_with_two_blobs(store)

    async def fetch(_id):
        return refs

    def authorize(rec):
        raise Forbidden("not yours")

    async def delete_record(rec):
        raise AssertionError("row must not be deleted")

    with pytest.raises(Forbidden):
        await AssetCoordinator(store).delete_with_assets(
            "r1", fetch, authorize, lambda r: r, delete_record
        )
    assert store.deleted == []
    assert len(store.blobs) == 2


@pytest.mark.asyncio
async def test_delete_missing_record(store):
    async def fetch(_id):
        return None

    async def delete_record(rec):
        pass

    with pytest.raises(NotFound):
        await AssetCoordinator(store).delete_with_assets(
            "r1", fetch, lambda r: None, lambda r: [], delete_record
        )
