"""Environment-driven settings and the storage retry policy."""

from pathlib import Path

import pytest

from rwa_vault.config import VaultSettings
from rwa_vault.errors import EntryArchived, StorageError
from rwa_vault.retry_policy import RetryConfig, retry_with_backoff, should_retry


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("RWA_VAULT_STATE_PATH", str(tmp_path / "s.json"))
    monkeypatch.setenv("RWA_VAULT_NAV_SOURCE", "LIVE")
    monkeypatch.setenv("RWA_VAULT_ENFORCE_LIQUIDITY", "false")
    monkeypatch.setenv("RWA_VAULT_EVENT_WEBHOOK", "https://indexer.example/hook")
    monkeypatch.setenv("RWA_VAULT_RETRY_MAX_ATTEMPTS", "5")

    settings = VaultSettings.from_env(dotenv=False)

    assert settings.state_path == tmp_path / "s.json"
    assert settings.nav_source == "live"
    assert settings.enforce_redeem_liquidity is False
    assert settings.event_webhook == "https://indexer.example/hook"
    assert settings.retry_max_attempts == 5


def test_settings_defaults_survive_bad_values(monkeypatch):
    for name in ("RWA_VAULT_STATE_PATH", "RWA_VAULT_EVENT_WEBHOOK", "RWA_VAULT_ENFORCE_LIQUIDITY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RWA_VAULT_NAV_SOURCE", "oracle-only")
    monkeypatch.setenv("RWA_VAULT_LOCK_TIMEOUT", "soon")
    monkeypatch.setenv("RWA_VAULT_RETRY_MAX_ATTEMPTS", "0")

    settings = VaultSettings.from_env(dotenv=False)

    assert settings.state_path == Path("vault_state.json")
    assert settings.nav_source == "cached"
    assert settings.enforce_redeem_liquidity is True
    assert settings.event_webhook is None
    assert settings.lock_timeout_s == 3600
    assert settings.retry_max_attempts == 1


def test_retry_recovers_from_transient_failure():
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise OSError("disk busy")
        return "saved"

    config = RetryConfig(max_attempts=3, initial_delay=0.0, jitter=False)
    assert retry_with_backoff(flaky, config=config) == "saved"
    assert len(attempts) == 3


def test_retry_gives_up_after_max_attempts():
    config = RetryConfig(max_attempts=2, initial_delay=0.0)

    def always_fails():
        raise StorageError("state file locked")

    with pytest.raises(StorageError):
        retry_with_backoff(always_fails, config=config)


def test_only_transient_errors_are_retried():
    config = RetryConfig(max_attempts=5)
    assert should_retry(OSError("x"), 0, config)
    assert should_retry(StorageError("x"), 0, config)
    assert not should_retry(EntryArchived("x"), 0, config)
    assert not should_retry(ValueError("x"), 0, config)
    assert not should_retry(OSError("x"), 4, config)


def test_backoff_grows_and_caps():
    config = RetryConfig(initial_delay=1.0, max_delay=3.0, jitter=False)
    assert [config.get_delay(n) for n in range(4)] == [1.0, 2.0, 3.0, 3.0]
