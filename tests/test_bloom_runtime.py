import asyncio

import pytest

from bloom.bot import Bloom
from bloom.errors import ConfigurationError
from bloom.lib.config import ServerSettings
from bloom.managers.connection_manager import DisconnectReason
from bloom.managers.logging_manager import LoggingManager
from tests.conftest import make_settings
from tests.fakes import FakeDriver, InMemorySessionStore, eventually


def _bloom(tmp_path, store=None, driver=None, **overrides):
    overrides.setdefault("server", ServerSettings(enabled=False))
    return Bloom(
        make_settings(str(tmp_path), **overrides),
        store=store or InMemorySessionStore(),
        driver=driver,
        logging_manager=LoggingManager(bot_name="Bloom", log_dir=str(tmp_path / "logs")),
    )


def test_driver_is_loaded_from_settings(tmp_path):
    bloom = _bloom(tmp_path, driver_path="tests.fakes:create_fake_driver")

    assert isinstance(bloom.driver, FakeDriver)


def test_missing_driver_path_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        _bloom(tmp_path)


@pytest.mark.asyncio
async def test_start_brings_everything_up(tmp_path):
    driver = FakeDriver()
    store = InMemorySessionStore()
    bloom = _bloom(tmp_path, store=store, driver=driver)

    results = await bloom.start()
    await driver.settle()

    assert [r.success for r in results] == [True, True, True]
    assert store.settings.active_instance_id == "bot1"
    assert bloom.rotation.is_running()
    await eventually(lambda: bloom.context.resource_cache.cached_ids() == ["bot1", "bot2", "bot3"])
    for instance_id in ("bot1", "bot2", "bot3"):
        assert any("Startup Complete" in text for text in driver.sessions[instance_id].texts())
    await eventually(lambda: any("Bloom Online" in t for t in driver.sessions["bot1"].texts()))
    assert not any("Bloom Online" in t for t in driver.sessions["bot2"].texts())

    await bloom.shutdown()
    assert store.closed
    assert not bloom.rotation.is_running()
    assert bloom.context.scheduler.armed_keys() == []


@pytest.mark.asyncio
async def test_reconnect_sends_connection_restored(tmp_path):
    driver = FakeDriver()
    bloom = _bloom(tmp_path, driver=driver)
    await bloom.start()
    await driver.settle()

    await driver.disconnect("bot2", DisconnectReason.CONNECTION_LOST)
    await eventually(lambda: any("Connection Restored" in t for t in driver.sessions["bot2"].texts()))

    await bloom.shutdown()


@pytest.mark.asyncio
async def test_every_instance_logged_out_requests_exit(tmp_path):
    driver = FakeDriver()
    bloom = _bloom(tmp_path, driver=driver)
    await bloom.start()
    await driver.settle()

    for instance_id in ("bot1", "bot2", "bot3"):
        await driver.disconnect(instance_id, DisconnectReason.LOGGED_OUT)

    assert bloom.exit_code == 1
    await bloom.shutdown()


@pytest.mark.asyncio
async def test_run_returns_one_when_nothing_starts(tmp_path):
    driver = FakeDriver()
    for instance_id in ("bot1", "bot2", "bot3"):
        driver.behave(instance_id, "raise")
    store = InMemorySessionStore()
    bloom = _bloom(tmp_path, store=store, driver=driver)

    assert await bloom.run_async() == 1
    assert store.closed
    assert not bloom.rotation.is_running()


@pytest.mark.asyncio
async def test_run_returns_one_when_store_is_unreachable(tmp_path):
    store = InMemorySessionStore()
    store.ready_failures = 1
    bloom = _bloom(tmp_path, store=store, driver=FakeDriver())

    assert await bloom.run_async() == 1


@pytest.mark.asyncio
async def test_run_until_shutdown_requested(tmp_path):
    driver = FakeDriver()
    bloom = _bloom(tmp_path, driver=driver)
    asyncio.get_running_loop().call_later(0.2, bloom.request_shutdown)

    assert await bloom.run_async() == 0
    assert not bloom.supervisor.connected_ids()
