import pytest
import pytest_asyncio

from bloom.errors import StoreError
from bloom.managers.store_manager import SqlAlchemySessionStore


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SqlAlchemySessionStore(f"sqlite+aiosqlite:///{tmp_path / 'bloom.db'}")
    await store.wait_until_ready(timeout=5)
    yield store
    await store.close()


@pytest.mark.asyncio
async def test_settings_document_is_created_on_first_upsert(sql_store):
    assert sql_store.is_ready()
    assert await sql_store.find_global_settings() is None

    settings = await sql_store.upsert_global_settings({"active_instance_id": "bot1"})

    assert settings.id == "global"
    assert settings.active_instance_id == "bot1"
    assert settings.rotation_enabled is True
    assert settings.maintenance_mode is False
    assert settings.updated_at is not None


@pytest.mark.asyncio
async def test_settings_patch_keeps_other_fields(sql_store):
    await sql_store.upsert_global_settings({"active_instance_id": "bot2", "rotation_enabled": False})
    await sql_store.upsert_global_settings({"maintenance_mode": True, "maintenance_reason": "Upgrading"})

    settings = await sql_store.find_global_settings()

    assert settings.active_instance_id == "bot2"
    assert settings.rotation_enabled is False
    assert settings.maintenance_mode is True
    assert settings.maintenance_reason == "Upgrading"


@pytest.mark.asyncio
async def test_unknown_settings_field_is_rejected(sql_store):
    with pytest.raises(StoreError):
        await sql_store.upsert_global_settings({"favourite_colour": "pink"})


@pytest.mark.asyncio
async def test_instance_credentials(sql_store):
    assert await sql_store.get_instance_credentials("bot1") is None
    assert await sql_store.credentials_exist("bot1") is False

    await sql_store.save_instance_credentials("bot1", {"me": "first"})
    await sql_store.save_instance_credentials("bot1", {"me": "second"})

    assert await sql_store.credentials_exist("bot1") is True
    assert await sql_store.get_instance_credentials("bot1") == {"me": "second"}
    assert await sql_store.get_instance_credentials("bot2") is None


@pytest.mark.asyncio
async def test_document_collection_crud(sql_store):
    users = sql_store.collection("bloom_bot1", "users")

    await users.upsert("u1", {"name": "Amina", "level": 2})
    await users.upsert("u2", {"name": "Brian", "level": 2})
    await users.upsert("u1", {"level": 3})

    assert await users.find_one("u1") == {"_id": "u1", "name": "Amina", "level": 3}
    assert [doc["_id"] for doc in await users.find(level=2)] == ["u2"]
    assert await users.count() == 2

    assert await users.delete("u2") is True
    assert await users.delete("u2") is False
    assert await users.count() == 1


@pytest.mark.asyncio
async def test_collections_are_namespaced(sql_store):
    bot1_users = sql_store.collection("bloom_bot1", "users")
    bot2_users = sql_store.collection("bloom_bot2", "users")
    bot1_afk = sql_store.collection("bloom_bot1", "afk")

    await bot1_users.upsert("u1", {"name": "Amina"})

    assert await bot2_users.find_one("u1") is None
    assert await bot1_afk.find_one("u1") is None
    assert await bot2_users.count() == 0


@pytest.mark.asyncio
async def test_wait_until_ready_is_idempotent(sql_store):
    await sql_store.wait_until_ready(timeout=1)

    assert sql_store.is_ready()
