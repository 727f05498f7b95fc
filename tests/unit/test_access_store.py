import pytest
from unittest.mock import AsyncMock, MagicMock

from backoffice.models.access import ADMIN_ROLE_ID, AppUser, Role, build_default_state
from backoffice.repositories.access import InMemoryAccessStore, MongoAccessStore, normalise_loaded_state

def test_normalise_moves_viewer_users():
    state = build_default_state("acme")
    state.roles.append(Role(role_id="viewer", name="Viewer"))
    state.users.append(AppUser(user_id="u9", name="Guest", email="guest@company.com", role_id="viewer"))

    loaded = normalise_loaded_state(state)

    assert loaded.get_role("viewer") is None
    assert loaded.get_user("u9").role_id == ADMIN_ROLE_ID
    assert "viewer" in loaded.permission_matrix

@pytest.mark.asyncio
async def test_in_memory_store_round_trip():
    store = InMemoryAccessStore("acme")
    state = await store.load()
    assert len(state.users) == 4

    state.user_overrides["u2"] = {"Expenses:Approve": True}
    await store.save(state)
    state.user_overrides.clear()

    reloaded = await store.load()
    assert reloaded.user_overrides == {"u2": {"Expenses:Approve": True}}

@pytest.mark.asyncio
async def test_mongo_store_defaults_when_empty():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)

    state = await MongoAccessStore(collection, "acme").load()

    assert state.tenant_id == "acme"
    collection.find_one.assert_called_once_with({"tenant_id": "acme"})

@pytest.mark.asyncio
async def test_mongo_store_upserts_by_tenant():
    collection = MagicMock()
    collection.replace_one = AsyncMock()
    store = MongoAccessStore(collection, "acme")

    state = build_default_state("acme")
    state.id = "65f0c2aa91b3d4e5f6a7b8c9"
    await store.save(state)

    filter_, doc = collection.replace_one.call_args[0]
    assert filter_ == {"tenant_id": "acme"}
    assert "_id" not in doc
    assert doc["tenant_id"] == "acme"
    assert collection.replace_one.call_args.kwargs["upsert"] is True
