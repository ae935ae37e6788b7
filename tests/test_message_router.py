import pytest
import pytest_asyncio

from bloom.managers.admin_manager import AdminManager
from bloom.managers.connection_manager import ConnectionSupervisor
from bloom.managers.message_manager import (
    MessageDisposition, MessageRouter, format_maintenance_notice, maintenance_middleware,
    normalize_jid, parse_command
)
from bloom.managers.rotation_manager import RotationManager
from tests.conftest import OWNER_JID, USER_JID


def _payload(text, sender=USER_JID, chat_id="group@g.us", **extra):
    return {"chat_id": chat_id, "sender": sender, "text": text, "message_id": "MSG1", **extra}


@pytest_asyncio.fixture
async def supervisor(context, driver):
    supervisor = ConnectionSupervisor(context, driver)
    for descriptor in context.registry:
        await supervisor.start(descriptor)
    await driver.settle()
    yield supervisor
    await supervisor.stop_all()
    context.scheduler.cancel_all()


@pytest.fixture
def router(context, supervisor, store):
    store.set_active("bot1")
    rotation = RotationManager(context)
    router = MessageRouter(context, supervisor, active_instance_provider=rotation.get_current_active_instance)
    AdminManager(context, rotation).register_commands(router)
    return router


@pytest.fixture
def seen(router):
    calls = []

    async def ping(message, reply):
        calls.append((message.instance_id, message.command, message.args))
        await reply("pong")

    router.register_command("ping", ping)
    return calls


def test_parse_command():
    assert parse_command("!bloom bot2", "!") == ("bloom", ["bot2"])
    assert parse_command("  !PING  ", "!") == ("ping", [])
    assert parse_command("hello", "!") == (None, [])
    assert parse_command("!", "!") == (None, [])


def test_normalize_jid():
    assert normalize_jid("254700000001@s.whatsapp.net") == "254700000001"
    assert normalize_jid("254700000001:12@s.whatsapp.net") == "254700000001"
    assert normalize_jid("254700000001") == "254700000001"


def test_maintenance_notice_includes_reason():
    assert "Reason: Upgrading" in format_maintenance_notice("Upgrading")
    assert "try again later" in format_maintenance_notice("")


@pytest.mark.asyncio
async def test_status_broadcast_and_own_messages_are_ignored(router, seen):
    assert await router.handle("bot1", _payload("!ping", chat_id="status@broadcast")) == MessageDisposition.IGNORED
    assert await router.handle("bot1", _payload("!ping", from_me=True)) == MessageDisposition.IGNORED
    assert await router.handle("bot1", {"text": "!ping"}) == MessageDisposition.IGNORED
    assert seen == []


@pytest.mark.asyncio
async def test_only_active_instance_dispatches(router, seen, driver):
    assert await router.handle("bot1", _payload("!ping")) == MessageDisposition.DISPATCHED
    assert await router.handle("bot2", _payload("!ping")) == MessageDisposition.BLOCKED

    assert seen == [("bot1", "ping", [])]
    assert driver.sessions["bot1"].sent == [("group@g.us", {"text": "pong", "quoted": "MSG1"})]
    assert driver.sessions["bot2"].sent == []


@pytest.mark.asyncio
async def test_missing_active_pointer_means_default_instance(router, seen, store):
    store.set_active(None)

    assert await router.handle("bot1", _payload("!ping")) == MessageDisposition.DISPATCHED
    assert await router.handle("bot3", _payload("!ping")) == MessageDisposition.BLOCKED


@pytest.mark.asyncio
async def test_unknown_active_pointer_is_healed_on_first_message(router, seen, store):
    store.set_active("Z")

    dispositions = [await router.handle(i, _payload("!ping")) for i in ("bot1", "bot2", "bot3")]

    assert dispositions == [
        MessageDisposition.DISPATCHED, MessageDisposition.BLOCKED, MessageDisposition.BLOCKED
    ]
    assert seen == [("bot1", "ping", [])]
    assert store.settings.active_instance_id == "bot1"


@pytest.mark.asyncio
async def test_instance_check_fails_closed(router, seen, store):
    store.fail_reads = True

    assert await router.handle("bot1", _payload("!ping")) == MessageDisposition.BLOCKED
    assert seen == []


@pytest.mark.asyncio
async def test_switch_command_runs_on_inactive_instance(router, store, driver):
    disposition = await router.handle("bot2", _payload("!bloom bot2", sender=OWNER_JID))

    assert disposition == MessageDisposition.DISPATCHED
    assert store.settings.active_instance_id == "bot2"
    assert "Now active: bot2" in driver.sessions["bot2"].texts()[0]


@pytest.mark.asyncio
async def test_switch_command_is_owner_only(router, store):
    disposition = await router.handle("bot1", _payload("!bloom bot2"))

    assert disposition == MessageDisposition.BLOCKED
    assert store.settings.active_instance_id == "bot1"


@pytest.mark.asyncio
async def test_maintenance_blocks_non_owners_with_notice(router, seen, store, driver):
    await store.upsert_global_settings({"maintenance_mode": True, "maintenance_reason": "Upgrading"})

    assert await router.handle("bot1", _payload("!ping")) == MessageDisposition.BLOCKED
    assert await router.handle("bot1", _payload("just chatting")) == MessageDisposition.BLOCKED
    assert await router.handle("bot1", _payload("!ping", sender=OWNER_JID)) == MessageDisposition.DISPATCHED

    texts = driver.sessions["bot1"].texts()
    assert texts == [format_maintenance_notice("Upgrading"), "pong"]
    assert seen == [("bot1", "ping", [])]


@pytest.mark.asyncio
async def test_maintenance_check_fails_open(context, supervisor, store):
    router = MessageRouter(context, supervisor, middlewares=[maintenance_middleware])
    await store.upsert_global_settings({"maintenance_mode": True})
    store.fail_reads = True
    calls = []

    async def ping(message, reply):
        calls.append(message.command)

    router.register_command("ping", ping)

    assert await router.handle("bot2", _payload("!ping")) == MessageDisposition.DISPATCHED
    assert calls == ["ping"]


@pytest.mark.asyncio
async def test_default_handler_and_unhandled(router):
    assert await router.handle("bot1", _payload("hello there")) == MessageDisposition.UNHANDLED

    received = []

    async def fallback(message, reply):
        received.append(message.text)

    router.set_default_handler(fallback)
    assert await router.handle("bot1", _payload("hello there")) == MessageDisposition.DISPATCHED
    assert received == ["hello there"]


@pytest.mark.asyncio
async def test_handler_errors_are_contained(router):
    async def broken(message, reply):
        raise RuntimeError("boom")

    router.register_command("broken", broken)

    assert await router.handle("bot1", _payload("!broken")) == MessageDisposition.DISPATCHED


@pytest.mark.asyncio
async def test_messages_arrive_through_the_driver(router, seen, driver):
    await driver.deliver("bot1", _payload("!ping now"))

    assert seen == [("bot1", "ping", ["now"])]
