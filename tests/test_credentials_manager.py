import json

import pytest

from bloom.errors import CredentialError
from bloom.lib.config import StartupSettings
from bloom.managers.credentials_manager import CredentialsManager, CredentialSource, parse_session_token
from tests.conftest import make_descriptors
from tests.fakes import fake_client_session

PASTE_URL = "http://paste.test/raw"


@pytest.fixture
def credentials(store, tmp_path):
    return CredentialsManager(store, str(tmp_path), StartupSettings(session_paste_url=PASTE_URL))


@pytest.fixture
def descriptor():
    return make_descriptors(1)[0].model_copy(update={"credential_source": "BLOOM~abc123"})


@pytest.mark.parametrize("token, expected", [
    ("BLOOM~abc123", "abc123"),
    ("  BLOOM~abc123  ", "abc123"),
    ("BLOOM~", None),
    ("abc123", None),
    ("OTHER~abc123", None),
    ("", None),
])
def test_parse_session_token(token, expected):
    assert parse_session_token(token) == expected


def test_parse_session_token_with_custom_marker():
    assert parse_session_token("HEART~xyz", marker="HEART") == "xyz"


@pytest.mark.asyncio
async def test_local_file_wins(credentials, descriptor, store, tmp_path):
    (tmp_path / "heart_bot1").mkdir()
    (tmp_path / "heart_bot1" / "creds.json").write_text(json.dumps({"me": "local"}))
    store.credentials["bot1"] = {"me": "stored"}

    creds, source = await credentials.resolve(descriptor)

    assert source == CredentialSource.LOCAL
    assert creds == {"me": "local"}


@pytest.mark.asyncio
async def test_corrupt_local_file_is_ignored(credentials, descriptor, store, tmp_path):
    (tmp_path / "heart_bot1").mkdir()
    (tmp_path / "heart_bot1" / "creds.json").write_text("not json")
    store.credentials["bot1"] = {"me": "stored"}

    creds, source = await credentials.resolve(descriptor)

    assert source == CredentialSource.STORE
    assert creds == {"me": "stored"}


@pytest.mark.asyncio
async def test_undecodable_local_file_is_ignored(credentials, descriptor, store, tmp_path):
    (tmp_path / "heart_bot1").mkdir()
    (tmp_path / "heart_bot1" / "creds.json").write_bytes(b"\xff\xfe{garbage")
    store.credentials["bot1"] = {"me": "stored"}

    creds, source = await credentials.resolve(descriptor)

    assert source == CredentialSource.STORE
    assert creds == {"me": "stored"}


@pytest.mark.asyncio
async def test_undecodable_files_everywhere_fall_back_to_qr(credentials, descriptor, tmp_path, monkeypatch):
    (tmp_path / "heart_bot1").mkdir()
    (tmp_path / "heart_bot1" / "creds.json").write_bytes(b"\xff\xfe{garbage")
    responses = {f"{PASTE_URL}/abc123": (200, b"\xff\xfe{garbage")}
    monkeypatch.setattr("aiohttp.ClientSession", fake_client_session(responses, []))

    assert await credentials.resolve(descriptor) == (None, CredentialSource.QR)


@pytest.mark.asyncio
async def test_store_credentials_are_written_locally(credentials, descriptor, store, tmp_path):
    store.credentials["bot1"] = {"me": "stored"}

    creds, source = await credentials.resolve(descriptor)

    assert source == CredentialSource.STORE
    assert json.loads((tmp_path / "heart_bot1" / "creds.json").read_text()) == {"me": "stored"}
    assert credentials.has_local_credentials(descriptor)


@pytest.mark.asyncio
async def test_remote_token_is_downloaded_and_saved(credentials, descriptor, store, tmp_path, monkeypatch):
    requested = []
    responses = {f"{PASTE_URL}/abc123": (200, json.dumps({"me": "remote"}))}
    monkeypatch.setattr("aiohttp.ClientSession", fake_client_session(responses, requested))

    creds, source = await credentials.resolve(descriptor)

    assert source == CredentialSource.REMOTE
    assert creds == {"me": "remote"}
    assert requested == [f"{PASTE_URL}/abc123"]
    assert store.credentials["bot1"] == {"me": "remote"}
    assert json.loads((tmp_path / "heart_bot1" / "creds.json").read_text()) == {"me": "remote"}


@pytest.mark.asyncio
async def test_failed_download_falls_back_to_qr(credentials, descriptor, monkeypatch):
    monkeypatch.setattr("aiohttp.ClientSession", fake_client_session({}, []))

    creds, source = await credentials.resolve(descriptor)

    assert creds is None
    assert source == CredentialSource.QR


@pytest.mark.asyncio
async def test_no_sources_means_qr(credentials):
    descriptor = make_descriptors(1)[0]

    assert await credentials.resolve(descriptor) == (None, CredentialSource.QR)


@pytest.mark.asyncio
async def test_store_read_failure_falls_through(credentials, store):
    store.credentials["bot1"] = {"me": "stored"}
    store.fail_reads = True

    creds, source = await credentials.resolve(make_descriptors(1)[0])

    assert source == CredentialSource.QR


@pytest.mark.asyncio
async def test_fetch_remote_rejects_malformed_token(credentials):
    with pytest.raises(CredentialError):
        await credentials.fetch_remote("not-a-token")


@pytest.mark.asyncio
@pytest.mark.parametrize("status, body", [
    (500, "oops"),
    (200, "not json"),
    (200, json.dumps(["a", "list"])),
    (200, b"\xff\xfe{garbage"),
])
async def test_fetch_remote_rejects_bad_responses(credentials, monkeypatch, status, body):
    responses = {f"{PASTE_URL}/abc123": (status, body)}
    monkeypatch.setattr("aiohttp.ClientSession", fake_client_session(responses, []))

    with pytest.raises(CredentialError):
        await credentials.fetch_remote("BLOOM~abc123")


@pytest.mark.asyncio
async def test_save_reports_store_failure(credentials, store):
    store.fail_writes = True

    assert await credentials.save("bot1", {"me": "x"}) is False
    store.fail_writes = False
    assert await credentials.save("bot1", {"me": "x"}) is True
    assert store.credentials["bot1"] == {"me": "x"}
