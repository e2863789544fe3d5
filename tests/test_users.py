"""Tests for UserRepository."""

from __future__ import annotations

import asyncio

import pytest

from spoticord.errors import Conflict, NotFound


@pytest.mark.asyncio
async def test_get_missing_user_raises_not_found(store):
    with pytest.raises(NotFound):
        await store.users.get("missing")


@pytest.mark.asyncio
async def test_create_and_get(store):
    created = await store.users.create("1001")
    fetched = await store.users.get("1001")

    assert created.id == "1001"
    assert fetched.id == "1001"
    assert fetched.device_name is None


@pytest.mark.asyncio
async def test_create_duplicate_raises_conflict(store):
    await store.users.create("1001")

    with pytest.raises(Conflict):
        await store.users.create("1001")


@pytest.mark.asyncio
async def test_get_or_create_is_stable(store):
    first = await store.users.get_or_create("1001")
    second = await store.users.get_or_create("1001")

    assert first.id == second.id == "1001"


@pytest.mark.asyncio
async def test_get_or_create_concurrently(store):
    users = await asyncio.gather(
        store.users.get_or_create("1001"),
        store.users.get_or_create("1001"),
        store.users.get_or_create("1001"),
    )

    assert {user.id for user in users} == {"1001"}


@pytest.mark.asyncio
async def test_get_or_create_does_not_mask_other_errors(store, monkeypatch):
    async def _broken_get(user_id):
        raise RuntimeError("backend down")

    create_calls = []

    async def _create(user_id):
        create_calls.append(user_id)

    monkeypatch.setattr(store.users, "get", _broken_get)
    monkeypatch.setattr(store.users, "create", _create)

    with pytest.raises(RuntimeError, match="backend down"):
        await store.users.get_or_create("1001")

    assert create_calls == []


@pytest.mark.asyncio
async def test_update_device_name(store):
    await store.users.create("1001")

    updated = await store.users.update_device_name("1001", "Living Room")

    assert updated == 1
    assert (await store.users.get("1001")).device_name == "Living Room"


@pytest.mark.asyncio
async def test_update_device_name_unknown_user_is_not_an_error(store):
    assert await store.users.update_device_name("nobody", "Kitchen") == 0


@pytest.mark.asyncio
async def test_delete_user(store):
    await store.users.create("1001")

    assert await store.users.delete("1001") == 1
    assert await store.users.delete("1001") == 0

    with pytest.raises(NotFound):
        await store.users.get("1001")


@pytest.mark.asyncio
async def test_delete_user_cascades_to_account_and_link_request(store, make_account):
    await make_account("1001")
    await store.link_requests.create("1001")

    await store.users.delete("1001")

    with pytest.raises(NotFound):
        await store.accounts.get("1001")
    with pytest.raises(NotFound):
        await store.link_requests.get("1001")


@pytest.mark.asyncio
async def test_returned_users_are_independent_copies(store):
    await store.users.create("1001")

    first = await store.users.get("1001")
    first.device_name = "changed locally"
    second = await store.users.get("1001")

    assert second.device_name is None
    assert first is not second
