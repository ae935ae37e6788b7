from datetime import timedelta

import pytest

from bloom.errors import ConfigurationError
from bloom.lib.config import get_bloom_settings, get_instance_descriptors
from bloom.lib.config.loader import describe_settings


def test_default_instances():
    descriptors = get_instance_descriptors({})

    assert [d.id for d in descriptors] == ["bot1", "bot2", "bot3"]
    assert [d.priority for d in descriptors] == [1, 2, 3]
    assert all(d.rotation_period == timedelta(hours=8) for d in descriptors)
    assert descriptors[1].session_dir == "heart_bot2"


def test_per_instance_values():
    env = {
        "BLOOM_INSTANCES": "bot1,bot2",
        "SESSION_2": "BLOOM~abc",
        "LOGS_CHAT": "shared@g.us",
        "LOGS_CHAT_1": "first@g.us",
        "BOT2_PRIORITY": "0",
        "BOT2_ROTATION_HOURS": "2.5",
    }

    bot1, bot2 = get_instance_descriptors(env)

    assert bot1.logs_chat == "first@g.us"
    assert bot2.logs_chat == "shared@g.us"
    assert bot2.credential_source == "BLOOM~abc"
    assert bot2.priority == 0
    assert bot2.rotation_period == timedelta(hours=2.5)


@pytest.mark.parametrize("env", [
    {"BOT1_PRIORITY": "first"},
    {"BOT1_ROTATION_HOURS": "eight"},
    {"BOT1_ROTATION_HOURS": "0"},
])
def test_invalid_instance_is_skipped(env):
    descriptors = get_instance_descriptors(env)

    assert [d.id for d in descriptors] == ["bot2", "bot3"]


def test_invalid_instance_does_not_stop_the_others():
    settings = get_bloom_settings({"BLOOM_INSTANCES": "bot1,bot2,bot3", "BOT2_ROTATION_HOURS": "0"})

    assert [d.id for d in settings.instances] == ["bot1", "bot3"]


def test_no_valid_instance_is_an_error():
    with pytest.raises(ConfigurationError):
        get_instance_descriptors({"BLOOM_INSTANCES": "bot1", "BOT1_ROTATION_HOURS": "eight"})


def test_full_settings_from_env():
    env = {
        "DATABASE_URL": "postgresql://bloom:secret@db:5432/bloom",
        "OWNERNUMBER": "254700000001, 254700000002",
        "PREFIX": ".",
        "STARTUP_SEQUENTIAL": "false",
        "ROTATION_ENABLED": "no",
        "PRIMARY_INSTANCE": "bot2",
        "RECONNECT_MAX_RETRIES": "4",
        "BLOOM_DRIVER": "drivers.baileys:create_driver",
        "PORT": "8080",
    }

    settings = get_bloom_settings(env)

    assert settings.database_url == "postgresql+asyncpg://bloom:secret@db:5432/bloom"
    assert settings.owner_jids == ["254700000001@s.whatsapp.net", "254700000002@s.whatsapp.net"]
    assert settings.prefix == "."
    assert settings.startup.sequential_start is False
    assert settings.rotation.enabled is False
    assert settings.rotation.primary_instance_id == "bot2"
    assert settings.reconnect.max_retries == 4
    assert settings.driver_path == "drivers.baileys:create_driver"
    assert settings.server.port == 8080


def test_defaults_from_empty_env():
    settings = get_bloom_settings({})

    assert settings.database_url.startswith("sqlite+aiosqlite")
    assert settings.owner_jids == []
    assert settings.driver_path is None
    assert settings.rotation.enabled is True
    assert settings.notifications.bot_name == "Bloom"


@pytest.mark.parametrize("env", [
    {"PRIMARY_INSTANCE": "bot9"},
    {"RECONNECT_BASE_DELAY": "10", "RECONNECT_MAX_DELAY": "5"},
    {"BLOOM_INSTANCES": "bot1,bot1"},
    {"PORT": "not-a-port"},
])
def test_invalid_settings(env):
    with pytest.raises(ConfigurationError):
        get_bloom_settings(env)


def test_describe_settings_hides_credentials():
    settings = get_bloom_settings({"DATABASE_URL": "postgresql://bloom:secret@db:5432/bloom"})

    summary = describe_settings(settings)

    assert "secret" not in summary["database"]
    assert summary["instances"].startswith("bot1(p1, 8h)")
