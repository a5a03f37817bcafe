# Vault Module - Encrypted credential store
#
# Whole-vault AES-256-GCM encryption under a PBKDF2-derived key.
# Entries and folders live in memory only while the vault is unlocked.

from .encryption import EncryptionService, detect_secret_kind, verify_secret
from ..exceptions import (
    VaultError,
    VaultLockedError,
    AccessDeniedError,
    DecryptionError,
    MalformedVaultError,
    VaultValidationError,
    NotFoundError,
    EntryNotFoundError,
    FolderNotFoundError,
    StorageError,
)
from .generator import generate_password
from .models import NO_PASSWORD, UNSET, EntryUpdate, VaultData, VaultEntry, VaultFolder
from .vault_manager import ErrorKind, OperationResult, VaultManager, VaultState

__all__ = [
    "VaultManager",
    "VaultState",
    "OperationResult",
    "ErrorKind",
    "EncryptionService",
    "detect_secret_kind",
    "verify_secret",
    "generate_password",
    "VaultData",
    "VaultEntry",
    "VaultFolder",
    "EntryUpdate",
    "NO_PASSWORD",
    "UNSET",
    "VaultError",
    "VaultLockedError",
    "AccessDeniedError",
    "DecryptionError",
    "MalformedVaultError",
    "VaultValidationError",
    "NotFoundError",
    "EntryNotFoundError",
    "FolderNotFoundError",
    "StorageError",
]
