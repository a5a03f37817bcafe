# Durable Key/Value Store
# SQLite-backed store for the vault's persisted records.
#
# The vault writes whole values only: the salt, the ciphertext and the
# secret-kind flag. Every connection uses WAL mode and a busy timeout.

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

from ..exceptions import StorageError

logger = logging.getLogger(__name__)

# Well-known record keys
SALT_KEY = "offlinevault_salt"
DATA_KEY = "offlinevault_data"
AUTH_TYPE_KEY = "vault-auth-type"


def connect(
    db_path: Union[str, Path],
    *,
    row_factory: bool = False,
) -> sqlite3.Connection:
    """Open a SQLite connection with WAL mode and safe PRAGMAs.

    Args:
        db_path: Path to the database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


class KeyValueStore:
    """SQLite key/value store for vault records.

    Args:
        db_path: Path to SQLite file. Defaults to data/vault_store.db.

    Raises:
        StorageError: from any operation the database rejects.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else Path("data/vault_store.db")
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory: {e}") from e
        self._init_database()

    def _init_database(self):
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize store: {e}") from e

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """One connection per call, closed on exit."""
        conn = connect(self.db_path, row_factory=True)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get a value by key. Returns default if not found."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        if row is None:
            return default
        return row["value"]

    def set(self, key: str, value: str) -> None:
        """Set a value (upsert)."""
        self.set_many({key: value})

    def set_many(self, values: Dict[str, str]) -> None:
        """Upsert several values in one transaction (all or nothing)."""
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                conn.executemany(
                    """INSERT INTO kv_store (key, value, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT(key) DO UPDATE SET
                           value = excluded.value,
                           updated_at = excluded.updated_at""",
                    [(k, v, now) for k, v in values.items()],
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.warning("kv_store write failed for %s: %s", sorted(values), e)
            raise StorageError(f"Failed to write {sorted(values)}: {e}") from e

    def delete(self, key: str) -> bool:
        """Delete a value. Returns True if the key existed."""
        return self.delete_many([key]) > 0

    def delete_many(self, keys: Iterable[str]) -> int:
        """Delete several keys in one transaction. Returns rows removed."""
        keys = list(keys)
        try:
            with self._connect() as conn:
                removed = 0
                for key in keys:
                    cur = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                    removed += cur.rowcount
                conn.commit()
                return removed
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete {keys}: {e}") from e
