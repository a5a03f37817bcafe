# Vault Manager - Encrypted Entry/Folder Store
#
# Owns the decrypted vault while unlocked.
# Every mutation re-encrypts the whole aggregate and persists it before the
# in-memory copy is replaced.

import functools
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from .encryption import (
    EncryptionService,
    SECRET_KIND_PASSWORD,
    SECRET_KIND_PIN,
    detect_secret_kind,
    verify_secret,
)
from ..exceptions import (
    AccessDeniedError,
    DecryptionError,
    EntryNotFoundError,
    FolderNotFoundError,
    MalformedVaultError,
    NotFoundError,
    StorageError,
    VaultError,
    VaultLockedError,
    VaultValidationError,
)
from .models import NO_PASSWORD, EntryUpdate, VaultData, VaultEntry, VaultFolder
from ..core import get_audit_logger, EventType, EventSeverity
from ..storage.kv_store import KeyValueStore, SALT_KEY, DATA_KEY, AUTH_TYPE_KEY

logger = logging.getLogger(__name__)

T = TypeVar("T", VaultEntry, VaultFolder)


class VaultState(str, Enum):
    LOCKED = "locked"
    UNLOCKING = "unlocking"
    UNLOCKED = "unlocked"


class ErrorKind(str, Enum):
    """Failure classes reported to callers."""
    LOCKED = "locked"
    ACCESS_DENIED = "access_denied"
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERSISTENCE = "persistence"


@dataclass
class OperationResult:
    """Outcome of a vault operation. Truthy on success."""
    success: bool
    message: str
    value: Any = None
    error: Optional[ErrorKind] = None

    def __bool__(self):
        return self.success


class _RateLimited(VaultError):
    pass


_ERROR_KINDS = (
    (VaultLockedError, ErrorKind.LOCKED, EventSeverity.ALERT),
    (_RateLimited, ErrorKind.RATE_LIMITED, EventSeverity.ALERT),
    (AccessDeniedError, ErrorKind.ACCESS_DENIED, EventSeverity.ALERT),
    (NotFoundError, ErrorKind.NOT_FOUND, EventSeverity.INVESTIGATE),
    (VaultValidationError, ErrorKind.VALIDATION, EventSeverity.INVESTIGATE),
    (StorageError, ErrorKind.PERSISTENCE, EventSeverity.CRITICAL),
)


def _vault_operation(func):
    """Run under the manager lock and turn VaultErrors into failed results."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            try:
                return func(self, *args, **kwargs)
            except VaultError as e:
                return self._failure(func.__name__, e)
    return wrapper


class VaultManager:
    """
    Manages the encrypted vault of entries and folders.

    States: LOCKED -> (UNLOCKING) -> UNLOCKED -> LOCKED.

    Security:
    - The whole aggregate is encrypted with AES-256-GCM under a PBKDF2 key
    - The secret is never stored; only the salt sits next to the ciphertext
    - The derived key is held only while unlocked and zeroed on lock
    - Failed unlocks back off exponentially

    Concurrency: all operations are serialized through one re-entrant lock,
    so each mutation is applied and persisted before the next starts, and
    lock() waits for an in-flight mutation to finish.
    """

    MAX_LOCKOUT_SECONDS = 16

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize vault manager.

        Args:
            store: Durable key/value store holding salt, ciphertext and
                   the secret-kind flag
            clock: Returns the current aware datetime (default: UTC now)
        """
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()

        self._state = VaultState.LOCKED
        self._data: Optional[VaultData] = None
        self._key: Optional[bytearray] = None

        # Rate limiting for unlock attempts (prevent brute force)
        self.failed_attempts = 0
        self.lockout_until: Optional[datetime] = None

        self.logger = get_audit_logger()

    # ── State ────────────────────────────────────────────────────────

    @property
    def state(self) -> VaultState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._state == VaultState.UNLOCKED

    def vault_exists(self) -> bool:
        """True when both salt and ciphertext are persisted.

        Raises:
            StorageError: the store cannot be read
        """
        with self._lock:
            return bool(self.store.get(SALT_KEY)) and bool(self.store.get(DATA_KEY))

    def get_auth_type(self) -> Optional[str]:
        """Which secret kind ("pin" or "password") created the vault.

        Raises:
            StorageError: the store cannot be read
        """
        with self._lock:
            kind = self.store.get(AUTH_TYPE_KEY)
        if kind in (SECRET_KIND_PIN, SECRET_KIND_PASSWORD):
            return kind
        return None

    @_vault_operation
    def status(self) -> OperationResult:
        """
        Lock state plus what the store says about the vault.

        Returns:
            OperationResult whose value holds is_unlocked, vault_exists
            and auth_type
        """
        return OperationResult(True, "Vault status", value={
            "is_unlocked": self.is_unlocked,
            "vault_exists": self.vault_exists(),
            "auth_type": self.get_auth_type(),
        })

    # ── Lock / unlock ────────────────────────────────────────────────

    @_vault_operation
    def unlock(self, secret: str) -> OperationResult:
        """
        Unlock the vault, creating it first if nothing is persisted yet.

        On failure the manager stays LOCKED and keeps neither the secret
        nor any key material.

        Security: Rate limiting with exponential backoff.
        - 1st failed attempt: no delay
        - 2nd failed attempt: 2 second delay
        - 3rd failed attempt: 4 second delay
        - 4th failed attempt: 8 second delay
        - 5th+ failed attempt: 16 second delay
        """
        if self.is_unlocked:
            raise VaultValidationError("Vault is already unlocked")

        now = self._clock()
        if self.lockout_until and now < self.lockout_until:
            remaining = int((self.lockout_until - now).total_seconds()) + 1
            raise _RateLimited(
                f"Too many failed attempts. Please wait {remaining} seconds."
            )

        self._state = VaultState.UNLOCKING
        try:
            if self.vault_exists():
                key, data = self._open_existing(secret)
                created = False
            else:
                key, data = self._create_new(secret)
                created = True
        except AccessDeniedError:
            self._state = VaultState.LOCKED
            self._register_failed_unlock()
            raise
        except Exception:
            self._state = VaultState.LOCKED
            raise

        self._key = bytearray(key)
        self._data = data
        self._state = VaultState.UNLOCKED
        self.failed_attempts = 0
        self.lockout_until = None

        if created:
            self.logger.log_vault_event(
                EventType.VAULT_CREATED,
                "Vault created",
                details={"auth_type": detect_secret_kind(secret)},
            )
            return OperationResult(True, "Vault created successfully!", value="created")

        self.logger.log_vault_event(
            EventType.VAULT_UNLOCKED,
            "Vault unlocked",
            details={"entries": len(data.entries), "folders": len(data.folders)},
        )
        return OperationResult(True, "Vault unlocked successfully!", value="unlocked")

    def _create_new(self, secret: str):
        is_valid, error_msg = verify_secret(secret)
        if not is_valid:
            raise VaultValidationError(error_msg)

        salt = EncryptionService.generate_salt()
        key = EncryptionService.derive_key(secret, salt)
        data = VaultData()
        ciphertext = EncryptionService.encrypt(data.serialize(), key)

        self.store.set_many({
            SALT_KEY: EncryptionService.encode_for_storage(salt),
            DATA_KEY: ciphertext,
            AUTH_TYPE_KEY: detect_secret_kind(secret),
        })
        return key, data

    def _open_existing(self, secret: str):
        if not secret:
            raise AccessDeniedError("Access denied")

        salt_b64 = self.store.get(SALT_KEY)
        ciphertext = self.store.get(DATA_KEY)

        try:
            salt = EncryptionService.decode_from_storage(salt_b64)
            key = EncryptionService.derive_key(secret, salt)
            data = VaultData.deserialize(EncryptionService.decrypt(ciphertext, key))
        except (DecryptionError, MalformedVaultError, ValueError) as e:
            # Wrong secret and corrupted storage are reported the same way
            logger.debug("vault open rejected: %s", e)
            raise AccessDeniedError("Access denied") from e

        return key, data

    def _register_failed_unlock(self):
        self.failed_attempts += 1
        if self.failed_attempts > 1:
            delay_seconds = min(2 ** (self.failed_attempts - 1), self.MAX_LOCKOUT_SECONDS)
            self.lockout_until = self._clock() + timedelta(seconds=delay_seconds)

    @_vault_operation
    def lock(self) -> OperationResult:
        """Drop the decrypted vault and key material. Idempotent."""
        was_unlocked = self.is_unlocked
        self._discard()

        if was_unlocked:
            self.logger.log_vault_event(EventType.VAULT_LOCKED, "Vault locked")
        return OperationResult(True, "Vault locked")

    def _discard(self):
        if self._key is not None:
            for i in range(len(self._key)):
                self._key[i] = 0
        self._key = None
        self._data = None
        self._state = VaultState.LOCKED

    @_vault_operation
    def reset_vault(self) -> OperationResult:
        """
        Permanently erase the vault (salt, ciphertext, secret kind).

        There is no recovery: a reset vault cannot be decrypted again.
        """
        self._discard()
        self.store.delete_many([SALT_KEY, DATA_KEY, AUTH_TYPE_KEY])
        self.failed_attempts = 0
        self.lockout_until = None

        self.logger.log_event(
            event_type=EventType.VAULT_RESET,
            severity=EventSeverity.ALERT,
            message="Vault erased",
        )
        return OperationResult(True, "Vault reset")

    # ── Reads ────────────────────────────────────────────────────────

    def snapshot(self) -> Optional[VaultData]:
        """Copy of the vault in display order, or None while locked."""
        with self._lock:
            if not self.is_unlocked:
                return None
            return self._data.sorted()

    def get_entry(self, entry_id: str) -> Optional[VaultEntry]:
        with self._lock:
            if not self.is_unlocked:
                return None
            entry = self._data.find_entry(entry_id)
            return replace(entry) if entry else None

    def get_folder(self, folder_id: str) -> Optional[VaultFolder]:
        with self._lock:
            if not self.is_unlocked:
                return None
            folder = self._data.find_folder(folder_id)
            return replace(folder) if folder else None

    def filter_entries(
        self,
        folder_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[VaultEntry]:
        """
        Entries visible in a view, in display order.

        Args:
            folder_id: Only entries in this folder (None = all entries)
            search: Case-insensitive match on title, username or website
        """
        snapshot = self.snapshot()
        if snapshot is None:
            return []

        entries = snapshot.entries
        if folder_id is not None:
            entries = [e for e in entries if e.folder_id == folder_id]

        if search:
            term = search.lower()
            entries = [
                e for e in entries
                if term in e.title.lower()
                or term in e.username.lower()
                or (e.website and term in e.website.lower())
            ]
        return entries

    def count_entries_in_folder(self, folder_id: str) -> int:
        with self._lock:
            if not self.is_unlocked:
                return 0
            return sum(1 for e in self._data.entries if e.folder_id == folder_id)

    # ── Entries ──────────────────────────────────────────────────────

    @_vault_operation
    def create_entry(
        self,
        title: str,
        username: str = "",
        password: str = "",
        website: Optional[str] = None,
        folder_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Add a new entry at the end of the display order.

        Returns:
            OperationResult with the new entry id as value
        """
        data = self._working_copy()
        self._require_folder(data, folder_id)

        now = self._now()
        entry = VaultEntry(
            id=self._fresh_id(data.entries),
            title=self._clean_title(title),
            username=(username or "").strip(),
            password=password or NO_PASSWORD,
            website=self._clean_website(website),
            folder_id=folder_id,
            created_at=now,
            updated_at=now,
            order=self._next_order(data.entries),
        )
        data.entries.append(entry)
        self._commit(data)

        self.logger.log_vault_event(
            EventType.ENTRY_CREATED,
            "Entry created",
            details={"entry_id": entry.id, "folder_id": folder_id},
        )
        return OperationResult(True, "Entry saved", value=entry.id)

    @_vault_operation
    def update_entry(self, entry_id: str, update: EntryUpdate) -> OperationResult:
        """Merge the supplied fields into an entry and refresh updated_at."""
        data = self._working_copy()
        entry = self._require_entry(data, entry_id)

        changes = update.supplied()
        if not changes:
            return OperationResult(True, "No changes", value=entry_id)

        if "title" in changes:
            entry.title = self._clean_title(changes["title"])
        if "username" in changes:
            entry.username = (changes["username"] or "").strip()
        if "password" in changes:
            entry.password = changes["password"] or NO_PASSWORD
        if "website" in changes:
            entry.website = self._clean_website(changes["website"])
        if "folder_id" in changes:
            self._require_folder(data, changes["folder_id"])
            entry.folder_id = changes["folder_id"]
        entry.updated_at = self._now()

        self._commit(data)

        self.logger.log_vault_event(
            EventType.ENTRY_UPDATED,
            "Entry updated",
            details={"entry_id": entry_id, "fields": sorted(changes)},
        )
        return OperationResult(True, "Entry updated", value=entry_id)

    @_vault_operation
    def delete_entry(self, entry_id: str) -> OperationResult:
        data = self._working_copy()
        self._require_entry(data, entry_id)
        data.entries = [e for e in data.entries if e.id != entry_id]
        self._commit(data)

        self.logger.log_vault_event(
            EventType.ENTRY_DELETED,
            "Entry deleted",
            details={"entry_id": entry_id},
        )
        return OperationResult(True, "Entry deleted")

    @_vault_operation
    def reorder_entries(self, entry_ids: Sequence[str]) -> OperationResult:
        """
        Apply a new display order.

        entry_ids is either every entry id or the ids of a visible subset
        (e.g. one folder or a search result). A subset keeps the positions
        it already occupies; the whole collection is renumbered 0..N-1.
        """
        entry_ids = list(entry_ids)
        data = self._working_copy()
        data.entries = _reorder(data.entries, entry_ids, EntryNotFoundError, "entry")
        self._commit(data)

        self.logger.log_vault_event(
            EventType.ENTRIES_REORDERED,
            "Entries reordered",
            details={"count": len(entry_ids)},
        )
        return OperationResult(True, "Entries reordered")

    @_vault_operation
    def move_entry_to_folder(
        self,
        entry_id: str,
        folder_id: Optional[str] = None,
    ) -> OperationResult:
        """Assign an entry to a folder (None = unfiled)."""
        data = self._working_copy()
        entry = self._require_entry(data, entry_id)
        self._require_folder(data, folder_id)

        entry.folder_id = folder_id
        entry.updated_at = self._now()
        self._commit(data)

        self.logger.log_vault_event(
            EventType.ENTRY_MOVED,
            "Entry moved",
            details={"entry_id": entry_id, "folder_id": folder_id},
        )
        return OperationResult(True, "Entry moved")

    # ── Folders ──────────────────────────────────────────────────────

    @_vault_operation
    def create_folder(self, name: str) -> OperationResult:
        """
        Add a folder at the end of the folder order.

        Returns:
            OperationResult with the new folder id as value
        """
        data = self._working_copy()
        clean_name = self._clean_folder_name(data, name)

        folder = VaultFolder(
            id=self._fresh_id(data.folders),
            name=clean_name,
            order=self._next_order(data.folders),
            created_at=self._now(),
        )
        data.folders.append(folder)
        self._commit(data)

        self.logger.log_vault_event(
            EventType.FOLDER_CREATED,
            "Folder created",
            details={"folder_id": folder.id},
        )
        return OperationResult(True, "Folder created", value=folder.id)

    @_vault_operation
    def update_folder(self, folder_id: str, name: str) -> OperationResult:
        """Rename a folder."""
        data = self._working_copy()
        folder = data.find_folder(folder_id)
        if folder is None:
            raise FolderNotFoundError(f"Folder not found: {folder_id}")

        folder.name = self._clean_folder_name(data, name, exclude_id=folder_id)
        self._commit(data)

        self.logger.log_vault_event(
            EventType.FOLDER_UPDATED,
            "Folder renamed",
            details={"folder_id": folder_id},
        )
        return OperationResult(True, "Folder renamed")

    @_vault_operation
    def delete_folder(self, folder_id: str) -> OperationResult:
        """Delete a folder. Its entries become unfiled, never deleted."""
        data = self._working_copy()
        if data.find_folder(folder_id) is None:
            raise FolderNotFoundError(f"Folder not found: {folder_id}")

        data.folders = [f for f in data.folders if f.id != folder_id]
        released = 0
        for entry in data.entries:
            if entry.folder_id == folder_id:
                entry.folder_id = None
                released += 1
        self._commit(data)

        self.logger.log_vault_event(
            EventType.FOLDER_DELETED,
            "Folder deleted",
            details={"folder_id": folder_id, "entries_unfiled": released},
        )
        return OperationResult(True, "Folder deleted", value=released)

    @_vault_operation
    def reorder_folders(self, folder_ids: Sequence[str]) -> OperationResult:
        """Apply a new folder order (full set or subset, as reorder_entries)."""
        folder_ids = list(folder_ids)
        data = self._working_copy()
        data.folders = _reorder(data.folders, folder_ids, FolderNotFoundError, "folder")
        self._commit(data)

        self.logger.log_vault_event(
            EventType.FOLDERS_REORDERED,
            "Folders reordered",
            details={"count": len(folder_ids)},
        )
        return OperationResult(True, "Folders reordered")

    # ── Internals ────────────────────────────────────────────────────

    def _working_copy(self) -> VaultData:
        if not self.is_unlocked:
            raise VaultLockedError("Vault is locked. Unlock vault first.")
        return self._data.copy()

    def _commit(self, data: VaultData):
        """Encrypt and persist, then (only then) replace the in-memory vault."""
        ciphertext = EncryptionService.encrypt(data.serialize(), bytes(self._key))
        self.store.set(DATA_KEY, ciphertext)
        self._data = data

    def _failure(self, operation: str, error: VaultError) -> OperationResult:
        kind, severity = ErrorKind.VALIDATION, EventSeverity.INVESTIGATE
        for exc_type, exc_kind, exc_severity in _ERROR_KINDS:
            if isinstance(error, exc_type):
                kind, severity = exc_kind, exc_severity
                break

        if operation == "unlock" and kind in (ErrorKind.ACCESS_DENIED, ErrorKind.RATE_LIMITED):
            event_type = EventType.VAULT_UNLOCK_FAILED
        else:
            event_type = EventType.VAULT_ERROR

        self.logger.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Vault {operation} failed: {error}",
            details={"error": kind.value, "failed_attempts": self.failed_attempts},
        )
        return OperationResult(False, str(error), error=kind)

    def _now(self) -> str:
        return self._clock().isoformat()

    @staticmethod
    def _fresh_id(items: Sequence[T]) -> str:
        existing = {item.id for item in items}
        while True:
            candidate = EncryptionService.generate_id()
            if candidate not in existing:
                return candidate

    @staticmethod
    def _next_order(items: Sequence[T]) -> int:
        return max((item.order for item in items), default=-1) + 1

    @staticmethod
    def _require_entry(data: VaultData, entry_id: str) -> VaultEntry:
        entry = data.find_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Entry not found: {entry_id}")
        return entry

    @staticmethod
    def _require_folder(data: VaultData, folder_id: Optional[str]):
        if folder_id is not None and data.find_folder(folder_id) is None:
            raise FolderNotFoundError(f"Folder not found: {folder_id}")

    @staticmethod
    def _clean_title(title: Optional[str]) -> str:
        clean = (title or "").strip()
        if not clean:
            raise VaultValidationError("Title is required")
        return clean

    @staticmethod
    def _clean_website(website: Optional[str]) -> Optional[str]:
        clean = (website or "").strip()
        return clean or None

    @staticmethod
    def _clean_folder_name(
        data: VaultData,
        name: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> str:
        clean = (name or "").strip()
        if not clean:
            raise VaultValidationError("Folder name is required")

        lowered = clean.lower()
        for folder in data.folders:
            if folder.id != exclude_id and folder.name.lower() == lowered:
                raise VaultValidationError(
                    "A folder with this name already exists. Please choose a different name."
                )
        return clean


def _reorder(
    items: List[T],
    ids: Sequence[str],
    not_found: type,
    kind: str,
) -> List[T]:
    """
    Place `ids` into the slots their items currently hold and renumber
    the whole collection 0..N-1.
    """
    ids = list(ids)
    if len(set(ids)) != len(ids):
        raise VaultValidationError(f"Duplicate {kind} id in new order")

    by_id = {item.id: item for item in items}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise not_found(f"Unknown {kind} id(s): {', '.join(missing)}")

    moving = set(ids)
    requested = iter(ids)
    current = sorted(items, key=lambda item: item.order)
    result = [by_id[next(requested)] if item.id in moving else item for item in current]

    for index, item in enumerate(result):
        item.order = index
    return result
