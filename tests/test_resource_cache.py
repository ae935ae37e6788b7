import asyncio

import pytest

from bloom.errors import ResourceConstructionError
from bloom.managers.resource_manager import FEATURE_COLLECTIONS, InstanceResourceCache, instance_namespace


@pytest.mark.asyncio
async def test_concurrent_gets_share_one_construction(store):
    cache = InstanceResourceCache(store)

    bundles = await asyncio.gather(*(cache.get("bot1") for _ in range(10)))

    assert cache.construction_count == 1
    assert store.ready_calls == 1
    assert all(bundle is bundles[0] for bundle in bundles)
    assert await cache.get("bot1") is bundles[0]


@pytest.mark.asyncio
async def test_bundle_carries_namespaced_collections(store):
    cache = InstanceResourceCache(store)

    bundle = await cache.get("bot2")

    assert bundle.namespace == instance_namespace("bot2") == "bloom_bot2"
    for name in FEATURE_COLLECTIONS:
        assert bundle.collection(name).namespace == "bloom_bot2"
        assert bundle.collection(name).name == name
    with pytest.raises(KeyError):
        bundle.collection("wallets")


@pytest.mark.asyncio
async def test_failed_construction_is_not_cached(store):
    store.ready_failures = 1
    cache = InstanceResourceCache(store)

    with pytest.raises(ResourceConstructionError):
        await cache.get("bot1")
    assert cache.peek("bot1") is None

    bundle = await cache.get("bot1")
    assert bundle.instance_id == "bot1"
    assert cache.construction_count == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_a_failure(store):
    store.ready_failures = 1
    cache = InstanceResourceCache(store)

    results = await asyncio.gather(cache.get("bot1"), cache.get("bot1"), return_exceptions=True)

    assert all(isinstance(r, ResourceConstructionError) for r in results)
    assert cache.construction_count == 1


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_construction(store):
    cache = InstanceResourceCache(store)

    first = asyncio.ensure_future(cache.get("bot1"))
    second = asyncio.ensure_future(cache.get("bot1"))
    await asyncio.sleep(0)
    first.cancel()

    bundle = await second
    assert bundle is cache.peek("bot1")
    assert cache.construction_count == 1


@pytest.mark.asyncio
async def test_peek_invalidate_and_clear(store):
    cache = InstanceResourceCache(store)

    assert cache.peek("bot1") is None
    assert cache.construction_count == 0

    first = await cache.get("bot1")
    await cache.get("bot2")
    assert cache.cached_ids() == ["bot1", "bot2"]

    assert cache.invalidate("bot1") is True
    assert cache.invalidate("bot1") is False
    assert await cache.get("bot1") is not first

    cache.clear()
    assert cache.cached_ids() == []


@pytest.mark.asyncio
async def test_instances_do_not_see_each_others_documents(store):
    cache = InstanceResourceCache(store)
    bot1 = await cache.get("bot1")
    bot2 = await cache.get("bot2")

    await bot1.users.upsert("254700000099", {"name": "Amina", "exp": 10})

    assert await bot1.users.find_one("254700000099") == {"_id": "254700000099", "name": "Amina", "exp": 10}
    assert await bot2.users.find_one("254700000099") is None
    assert await bot2.users.count() == 0


@pytest.mark.asyncio
async def test_shared_settings_and_credentials_accessors(store):
    cache = InstanceResourceCache(store)
    bundle = await cache.get("bot1")

    await bundle.settings.update({"maintenance_mode": True})
    await bundle.credentials.save({"me": "bot1"})

    assert (await bundle.settings.get()).maintenance_mode is True
    assert await bundle.credentials.exists()
    assert await bundle.credentials.get() == {"me": "bot1"}
