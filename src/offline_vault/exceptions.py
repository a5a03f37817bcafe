"""
Vault Exception Classes
"""


class VaultError(Exception):
    """Base exception for vault operations"""
    pass


class VaultLockedError(VaultError):
    """Raised when an operation needs an unlocked vault"""
    pass


class AccessDeniedError(VaultError):
    """Raised when a secret does not open the stored vault"""
    pass


class DecryptionError(VaultError):
    """Raised when ciphertext is malformed, tampered, or keyed differently"""
    pass


class MalformedVaultError(VaultError):
    """Raised when decrypted data is not a well-formed vault"""
    pass


class VaultValidationError(VaultError):
    """Raised when a requested change breaks a vault rule"""
    pass


class NotFoundError(VaultError):
    """Raised when an id does not exist in the vault"""
    pass


class EntryNotFoundError(NotFoundError):
    """Raised when an entry id does not exist"""
    pass


class FolderNotFoundError(NotFoundError):
    """Raised when a folder id does not exist"""
    pass


class StorageError(VaultError):
    """Raised when the durable store rejects a read or write"""
    pass
