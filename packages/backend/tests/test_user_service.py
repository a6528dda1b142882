"""UserService against the test database — the failure paths that are
hard to reach over HTTP (a commit that fails after the uploads landed).
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError

from mediahub.auth.dependencies import RequestContext
from mediahub.db.models import User
from mediahub.errors import Conflict, NotFound, PersistenceError, ValidationError
from mediahub.services.assets import AssetCoordinator
from mediahub.services.user_service import UserService
from mediahub.storage.base import AssetInput

from conftest import PASSWORD


def _image(name: str) -> AssetInput:
    return AssetInput(filename=name, content=b"png", content_type="image/png")


def _failing_commit():
    async def commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    return commit


@pytest_asyncio.fixture()
async def svc(db_session, store):
    return UserService(db_session, AssetCoordinator(store))


async def _register(svc, username="alice", email=None):
    return await svc.register(
        fullname="Alice Example",
        email=email or f"{username}@example.com",
        username=username,
        password=PASSWORD,
        avatar=_image(f"{username}-a.png"),
        cover_image=_image(f"{username}-c.png"),
    )


@pytest.mark.asyncio
async def test_register_commit_failure_deletes_uploads(svc, store, db_session, monkeypatch):
    monkeypatch.setattr(db_session, "commit", _failing_commit())

    with pytest.raises(PersistenceError):
        await _register(svc)
    assert len(store.uploaded) == 2
    assert store.blobs == {}


@pytest.mark.asyncio
async def test_register_race_maps_to_conflict(svc, store, monkeypatch):
    await _register(svc, "alice")
    uploads = len(store.uploaded)

    # Pretend the duplicate check ran before the other registration landed
    async def nothing_found(email, username):
        return None

    monkeypatch.setattr(svc, "_find_existing", nothing_found)
    with pytest.raises(Conflict):
        await _register(svc, "alice", email="second@example.com")

    # The racing registration's two uploads were cleaned up
    assert len(store.uploaded) == uploads + 2
    assert len(store.blobs) == 2


@pytest.mark.asyncio
async def test_register_invalid_username(svc, store):
    with pytest.raises(ValidationError):
        await _register(svc, "no spaces allowed")
    assert store.uploaded == []


@pytest.mark.asyncio
async def test_avatar_commit_failure_keeps_old_avatar(svc, store, db_session, monkeypatch):
    user = await _register(svc)
    user_id = user.id
    old_ref = user.avatar
    ctx = RequestContext(user_id=user_id, username=user.username)

    monkeypatch.setattr(db_session, "commit", _failing_commit())
    with pytest.raises(PersistenceError):
        await svc.update_avatar(ctx, _image("new.png"))
    monkeypatch.undo()

    reloaded = await db_session.get(User, user_id, populate_existing=True)
    assert reloaded.avatar == old_ref
    assert old_ref.storage_key in store
    # The new upload was compensated, the old blob never touched
    assert store.deleted == [store.uploaded[-1]]


@pytest.mark.asyncio
async def test_avatar_for_missing_user(svc, store):
    ctx = RequestContext(user_id=uuid.uuid4(), username="ghost")
    with pytest.raises(NotFound):
        await svc.update_avatar(ctx, _image("new.png"))
    assert store.uploaded == []


@pytest.mark.asyncio
async def test_authenticate_by_either_identifier(svc):
    await _register(svc)
    assert (await svc.authenticate(PASSWORD, email="ALICE@example.com")).username == "alice"
    assert (await svc.authenticate(PASSWORD, username=" alice ")).username == "alice"
