"""
Vault Data Models

The persisted plaintext is exactly ``{"entries": [...], "folders": [...]}``
with camelCase keys. Optional fields are omitted when absent.
"""

import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..exceptions import MalformedVaultError


# Password placeholder for entries saved intentionally without a password
NO_PASSWORD = "(No password)"


class _Unset:
    """Marker for EntryUpdate fields the caller did not supply."""

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


@dataclass
class VaultEntry:
    """A single credential record"""
    id: str
    title: str
    username: str
    password: str
    created_at: str
    updated_at: str
    order: int
    website: Optional[str] = None
    folder_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "username": self.username,
            "password": self.password,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "order": self.order,
        }
        if self.website is not None:
            data["website"] = self.website
        if self.folder_id is not None:
            data["folderId"] = self.folder_id
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "VaultEntry":
        if not isinstance(data, dict):
            raise MalformedVaultError("Entry is not an object")
        return cls(
            id=_require_str(data, "id", "entry"),
            title=_require_str(data, "title", "entry"),
            username=_require_str(data, "username", "entry"),
            password=_require_str(data, "password", "entry"),
            created_at=_require_str(data, "createdAt", "entry"),
            updated_at=_require_str(data, "updatedAt", "entry"),
            order=_require_int(data, "order", "entry"),
            website=_optional_str(data, "website", "entry"),
            folder_id=_optional_str(data, "folderId", "entry"),
        )


@dataclass
class VaultFolder:
    """A named grouping of entries"""
    id: str
    name: str
    order: int
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "VaultFolder":
        if not isinstance(data, dict):
            raise MalformedVaultError("Folder is not an object")
        return cls(
            id=_require_str(data, "id", "folder"),
            name=_require_str(data, "name", "folder"),
            order=_require_int(data, "order", "folder"),
            created_at=_require_str(data, "createdAt", "folder"),
        )


@dataclass
class VaultData:
    """The aggregate root: every entry and folder, persisted as one unit"""
    entries: List[VaultEntry] = field(default_factory=list)
    folders: List[VaultFolder] = field(default_factory=list)

    def copy(self) -> "VaultData":
        return VaultData(
            entries=[replace(e) for e in self.entries],
            folders=[replace(f) for f in self.folders],
        )

    def sorted(self) -> "VaultData":
        """Copy with both collections in display order."""
        data = self.copy()
        data.entries.sort(key=lambda e: e.order)
        data.folders.sort(key=lambda f: f.order)
        return data

    def find_entry(self, entry_id: str) -> Optional[VaultEntry]:
        return next((e for e in self.entries if e.id == entry_id), None)

    def find_folder(self, folder_id: str) -> Optional[VaultFolder]:
        return next((f for f in self.folders if f.id == folder_id), None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "folders": [f.to_dict() for f in self.folders],
        }

    def serialize(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_dict(cls, data: Any) -> "VaultData":
        if not isinstance(data, dict):
            raise MalformedVaultError("Vault payload is not an object")
        entries = data.get("entries")
        folders = data.get("folders")
        if not isinstance(entries, list) or not isinstance(folders, list):
            raise MalformedVaultError("Vault payload needs 'entries' and 'folders' lists")

        vault = cls(
            entries=[VaultEntry.from_dict(e) for e in entries],
            folders=[VaultFolder.from_dict(f) for f in folders],
        )

        if len({e.id for e in vault.entries}) != len(vault.entries):
            raise MalformedVaultError("Duplicate entry id")
        if len({f.id for f in vault.folders}) != len(vault.folders):
            raise MalformedVaultError("Duplicate folder id")

        return vault

    @classmethod
    def deserialize(cls, payload: bytes) -> "VaultData":
        """Parse decrypted bytes into a validated aggregate.

        Raises:
            MalformedVaultError: not UTF-8 JSON, or not a well-formed vault
        """
        try:
            raw = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedVaultError(f"Vault payload is not JSON: {e}") from e
        return cls.from_dict(raw)


@dataclass
class EntryUpdate:
    """
    Explicit partial update for an entry.

    A field left as UNSET keeps its current value; any supplied value
    (including None for website/folder_id) replaces it.
    """
    title: Any = UNSET
    username: Any = UNSET
    password: Any = UNSET
    website: Any = UNSET
    folder_id: Any = UNSET

    def supplied(self) -> Dict[str, Any]:
        return {
            name: value
            for name, value in (
                ("title", self.title),
                ("username", self.username),
                ("password", self.password),
                ("website", self.website),
                ("folder_id", self.folder_id),
            )
            if value is not UNSET
        }


def _require_str(data: Dict[str, Any], key: str, kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MalformedVaultError(f"{kind} field '{key}' must be a string")
    return value


def _optional_str(data: Dict[str, Any], key: str, kind: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedVaultError(f"{kind} field '{key}' must be a string")
    return value


def _require_int(data: Dict[str, Any], key: str, kind: str) -> int:
    value = data.get(key)
    # bool is an int subclass
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedVaultError(f"{kind} field '{key}' must be an integer")
    return value
