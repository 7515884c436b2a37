import json
import threading
from datetime import timedelta

import pytest

from servicetrade_api_client import (
    ClientSettings,
    CredentialStoreError,
    InMemoryCredentialStore,
    JsonFileCredentialStore,
    ManualScheduler,
    ServiceTradeClient,
    ThreadingScheduler,
    ValidationError,
)
from servicetrade_api_client import scheduler as scheduler_module
from servicetrade_api_client import store as store_module
from servicetrade_api_client.scheduler import validate_interval


def test_in_memory_store_basic_operations() -> None:
    store = InMemoryCredentialStore()
    assert store.get("missing") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    store.delete("k")
    store.delete("k")
    assert store.get("k") is None


def test_file_store_persists_between_instances(tmp_path) -> None:
    path = tmp_path / "state" / "session.json"
    JsonFileCredentialStore(path).set("SESSION_COOKIES", "PHPSESSID=1")

    reopened = JsonFileCredentialStore(path)
    assert reopened.get("SESSION_COOKIES") == "PHPSESSID=1"
    reopened.delete("SESSION_COOKIES")
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_file_store_missing_file_reads_empty(tmp_path) -> None:
    store = JsonFileCredentialStore(tmp_path / "absent.json")
    assert store.get("SESSION_COOKIES") is None
    store.delete("SESSION_COOKIES")
    assert not (tmp_path / "absent.json").exists()


def test_file_store_rejects_corrupt_file(tmp_path) -> None:
    path = tmp_path / "session.json"
    path.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(CredentialStoreError):
        JsonFileCredentialStore(path).get("SESSION_COOKIES")


def test_file_store_expands_home(tmp_path, monkeypatch) -> None:
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)

    store = JsonFileCredentialStore("~/.servicetrade/session.json")
    store.set("k", "v")

    assert (home / ".servicetrade" / "session.json").exists()
    assert not (tmp_path / "~").exists()


def test_file_store_failed_write_keeps_previous_contents(tmp_path, monkeypatch) -> None:
    path = tmp_path / "session.json"
    store = JsonFileCredentialStore(path)
    store.set("SESSION_COOKIES", "PHPSESSID=1")

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(store_module.os, "replace", fail_replace)
    with pytest.raises(CredentialStoreError):
        store.set("SESSION_COOKIES", "PHPSESSID=2")
    monkeypatch.undo()

    assert store.get("SESSION_COOKIES") == "PHPSESSID=1"
    assert [p.name for p in tmp_path.iterdir()] == ["session.json"]


@pytest.mark.parametrize(
    "interval",
    [timedelta(minutes=m) for m in (1, 5, 10, 15, 30)] + [timedelta(hours=1), timedelta(hours=6)],
)
def test_supported_intervals(interval) -> None:
    validate_interval(interval)


@pytest.mark.parametrize(
    "interval",
    [timedelta(0), timedelta(minutes=2), timedelta(minutes=45), timedelta(minutes=90), timedelta(seconds=30)],
)
def test_unsupported_intervals(interval) -> None:
    with pytest.raises(ValidationError):
        validate_interval(interval)


def test_manual_scheduler_register_replaces() -> None:
    scheduler = ManualScheduler()
    fired = []
    scheduler.register("check", lambda: fired.append("a"), timedelta(hours=1))
    scheduler.register("check", lambda: fired.append("b"), timedelta(minutes=5))

    assert scheduler.run_pending() == ["check"]
    assert fired == ["b"]
    scheduler.cancel("check")
    scheduler.cancel("check")
    assert not scheduler.is_registered("check")


def test_threading_scheduler_fires_and_cancels(monkeypatch) -> None:
    scheduler = ThreadingScheduler()
    fired = threading.Event()

    # skip the one-minute minimum so the timer fires quickly
    monkeypatch.setattr(scheduler_module, "validate_interval", lambda interval: None)
    scheduler.register("check", fired.set, timedelta(milliseconds=10))
    try:
        assert fired.wait(2)
        assert scheduler.is_registered("check")
    finally:
        scheduler.shutdown()
    assert not scheduler.is_registered("check")


def test_settings_from_env(tmp_path) -> None:
    path = tmp_path / "session.json"
    settings = ClientSettings.from_env(
        {
            "SERVICETRADE_BASE_URL": "https://example.test/api",
            "SERVICETRADE_SESSION_FILE": str(path),
            "SERVICETRADE_REQUEST_TIMEOUT": "12.5",
        }
    )
    assert settings.base_url == "https://example.test/api"
    assert settings.request_timeout == 12.5
    assert isinstance(settings.make_store(), JsonFileCredentialStore)

    defaults = ClientSettings.from_env({})
    assert defaults.base_url == "https://api.servicetrade.com/api"
    assert isinstance(defaults.make_store(), InMemoryCredentialStore)


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_settings_reject_bad_timeout(value) -> None:
    with pytest.raises(ValidationError):
        ClientSettings.from_env({"SERVICETRADE_REQUEST_TIMEOUT": value})


def test_client_from_env(tmp_path) -> None:
    client = ServiceTradeClient.from_env(
        scheduler=ManualScheduler(),
        environ={"SERVICETRADE_SESSION_FILE": str(tmp_path / "s.json")},
    )
    assert isinstance(client.store, JsonFileCredentialStore)
    assert client.is_logged_in() is False
