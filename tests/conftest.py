"""
Shared fixtures: settings for three instances, a fresh context per test,
the in-memory store and the scripted driver.
"""

from datetime import timedelta

import pytest

from bloom.context import BloomContext
from bloom.lib.config import (
    BloomSettings, InstanceDescriptor, ReconnectSettings, RotationSettings, StartupSettings
)
from tests.fakes import FakeDriver, InMemorySessionStore

OWNER_JID = "254700000001@s.whatsapp.net"
USER_JID = "254700000099@s.whatsapp.net"


def make_descriptors(count: int = 3, hours: float = 8):
    return [
        InstanceDescriptor(
            id=f"bot{n}",
            priority=n,
            rotation_period=timedelta(hours=hours),
            session_dir=f"heart_bot{n}",
            logs_chat=f"logs{n}@g.us",
        )
        for n in range(1, count + 1)
    ]


def make_settings(sessions_root: str = ".", **overrides) -> BloomSettings:
    values = dict(
        instances=make_descriptors(),
        sessions_root=sessions_root,
        owner_jids=[OWNER_JID],
        startup=StartupSettings(connect_timeout=0.5, inter_instance_delay=0, session_paste_url="http://paste.test/raw"),
        rotation=RotationSettings(enabled=True),
        reconnect=ReconnectSettings(base_delay=0.01, max_delay=0.04, max_retries=3),
    )
    values.update(overrides)
    return BloomSettings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(sessions_root=str(tmp_path))


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def context(settings, store):
    return BloomContext(settings, store)
