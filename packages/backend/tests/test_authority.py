"""Token authority — the refresh slot, rotation and revocation.

Learn: These tests drive TokenAuthority directly against the test
database; the HTTP-level equivalents live in test_auth_api.py.
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import update

from mediahub.auth.authority import TokenAuthority
from mediahub.auth.tokens import TokenKind, create_token, hash_token, verify
from mediahub.db.models import User
from mediahub.errors import PersistenceError, TokenInvalid, Unauthorized


@pytest_asyncio.fixture()
async def user(db_session):
    u = User(
        username="alice",
        email="alice@example.com",
        fullname="Alice Example",
        password_hash="not-used-here",
    )
    db_session.add(u)
    await db_session.commit()
    return u


async def _slot(db_session, user_id):
    u = await db_session.get(User, user_id, populate_existing=True)
    return u.refresh_token_hash, u.refresh_token_version


@pytest.mark.asyncio
async def test_issue_persists_hash_of_refresh_token(db_session, user):
    pair = await TokenAuthority(db_session).issue_and_persist(user.id)

    stored, version = await _slot(db_session, user.id)
    assert stored == hash_token(pair.refresh_token)
    assert stored != pair.refresh_token
    assert version == 1
    assert verify(pair.refresh_token, TokenKind.REFRESH)["ver"] == 1


@pytest.mark.asyncio
async def test_issue_for_missing_user(db_session):
    with pytest.raises(PersistenceError):
        await TokenAuthority(db_session).issue_and_persist(uuid.uuid4())


@pytest.mark.asyncio
async def test_refresh_rotates_slot(db_session, user):
    authority = TokenAuthority(db_session)
    first = await authority.issue_and_persist(user.id)

    second = await authority.refresh_session(first.refresh_token)
    assert second.refresh_token != first.refresh_token
    stored, version = await _slot(db_session, user.id)
    assert stored == hash_token(second.refresh_token)
    assert version == 2


@pytest.mark.asyncio
async def test_refresh_rejects_superseded_token(db_session, user):
    authority = TokenAuthority(db_session)
    first = await authority.issue_and_persist(user.id)
    await authority.issue_and_persist(user.id)  # e.g. a second login

    with pytest.raises(Unauthorized, match="expired or used"):
        await authority.refresh_session(first.refresh_token)


@pytest.mark.asyncio
async def test_refresh_rejects_access_token(db_session, user):
    pair = await TokenAuthority(db_session).issue_and_persist(user.id)
    with pytest.raises(TokenInvalid):
        await TokenAuthority(db_session).refresh_session(pair.access_token)


@pytest.mark.asyncio
async def test_refresh_for_deleted_user(db_session, user):
    pair = await TokenAuthority(db_session).issue_and_persist(user.id)
    await db_session.delete(user)
    await db_session.commit()

    with pytest.raises(Unauthorized):
        await TokenAuthority(db_session).refresh_session(pair.refresh_token)


@pytest.mark.asyncio
async def test_concurrent_rotation_only_one_wins(db_session, user):
    user_id = user.id
    authority = TokenAuthority(db_session)
    await authority.issue_and_persist(user_id)

    # Two refreshes both read version 1; the first one lands
    await authority.issue_and_persist(user_id, expected_version=1)
    with pytest.raises(Unauthorized, match="already used"):
        await authority.issue_and_persist(user_id, expected_version=1)

    _, version = await _slot(db_session, user_id)
    assert version == 2


@pytest.mark.asyncio
async def test_revoke_clears_slot(db_session, user):
    authority = TokenAuthority(db_session)
    pair = await authority.issue_and_persist(user.id)

    await authority.revoke(user.id)
    stored, version = await _slot(db_session, user.id)
    assert stored is None
    assert version == 2

    with pytest.raises(Unauthorized):
        await authority.refresh_session(pair.refresh_token)


@pytest.mark.asyncio
async def test_revoke_is_idempotent(db_session, user):
    authority = TokenAuthority(db_session)
    await authority.revoke(user.id)
    await authority.revoke(user.id)
    await authority.revoke(uuid.uuid4())  # unknown user: no-op

    stored, _ = await _slot(db_session, user.id)
    assert stored is None


@pytest.mark.asyncio
async def test_login_wins_over_concurrent_slot_write(db_session, user, monkeypatch):
    user_id = user.id
    authority = TokenAuthority(db_session)
    await authority.issue_and_persist(user_id)
    original_load = authority._load

    async def load_then_race(uid):
        # Someone else rotates the slot right after we read it
        loaded = await original_load(uid)
        await db_session.execute(
            update(User)
            .where(User.id == uid)
            .values(refresh_token_version=User.refresh_token_version + 1)
            .execution_options(synchronize_session=False)
        )
        return loaded

    monkeypatch.setattr(authority, "_load", load_then_race)
    pair = await authority.issue_and_persist(user_id)

    stored, version = await _slot(db_session, user_id)
    assert stored == hash_token(pair.refresh_token)
    assert version == 3
    assert verify(pair.refresh_token, TokenKind.REFRESH)["ver"] == 3


@pytest.mark.asyncio
async def test_refresh_rejects_version_mismatch(db_session, user):
    user_id = user.id
    authority = TokenAuthority(db_session)
    await authority.issue_and_persist(user_id)

    # Matching hash, but minted for a slot version that never existed
    forged = create_token(str(user_id), TokenKind.REFRESH, version=7)
    await db_session.execute(
        update(User).where(User.id == user_id).values(refresh_token_hash=hash_token(forged))
    )
    await db_session.commit()

    with pytest.raises(Unauthorized, match="expired or used"):
        await authority.refresh_session(forged)
