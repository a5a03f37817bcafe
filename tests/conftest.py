"""
Shared pytest fixtures for the Offline Vault test suite.

The autouse fixture below isolates tests from live application data:
  - Audit logger -> temp directory (prevents test events in ./audit_logs)
"""

from datetime import datetime, timedelta, timezone

import pytest


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path):
    """Point the global AuditLogger at a temp directory for every test.

    Without this, any test that (directly or indirectly) calls
    ``get_audit_logger().log_event(...)`` writes into the real
    ``./audit_logs/`` directory.
    """
    import offline_vault.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_logger = audit_mod.AuditLogger(log_dir=tmp_path / "audit_logs")
    audit_mod._audit_logger = audit_logger

    yield audit_logger

    audit_logger.close()
    audit_mod._audit_logger = old_logger


class FakeClock:
    """Controllable clock for timestamps and unlock backoff."""

    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    from offline_vault.storage import KeyValueStore

    return KeyValueStore(db_path=tmp_path / "vault_store.db")


@pytest.fixture
def manager(store, clock):
    from offline_vault.vault import VaultManager

    return VaultManager(store, clock=clock)


@pytest.fixture
def unlocked(manager):
    """A freshly created vault, unlocked with PIN 1234."""
    result = manager.unlock("1234")
    assert result.success
    return manager
