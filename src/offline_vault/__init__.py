# Offline Vault - Main Package
#
# Local, PIN/password-protected credential vault.
# Entries and folders are kept encrypted on this device only; losing the
# PIN/password means losing the data.

__version__ = "0.1.0"
__description__ = "Local encrypted credential vault"

from .core import (
    EventType,
    EventSeverity,
    get_audit_logger,
    load_config,
)
from .storage import KeyValueStore
from .vault import VaultManager, OperationResult, ErrorKind

__all__ = [
    "__version__",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "load_config",
    "KeyValueStore",
    "VaultManager",
    "OperationResult",
    "ErrorKind",
]
