"""Tests for vault data models: serialization, validation and partial updates."""

import json

import pytest

from offline_vault.exceptions import MalformedVaultError
from offline_vault.vault.models import (
    UNSET,
    EntryUpdate,
    VaultData,
    VaultEntry,
    VaultFolder,
)

NOW = "2026-01-01T12:00:00+00:00"


def _entry(entry_id="e1", order=0, **kwargs):
    fields = dict(
        id=entry_id, title="Mail", username="a@b.com", password="x",
        created_at=NOW, updated_at=NOW, order=order,
    )
    fields.update(kwargs)
    return VaultEntry(**fields)


class TestSerialization:

    def test_entry_uses_camel_case_keys(self):
        data = _entry(website="https://mail.example", folder_id="f1").to_dict()
        assert data["createdAt"] == NOW
        assert data["updatedAt"] == NOW
        assert data["folderId"] == "f1"
        assert data["website"] == "https://mail.example"

    def test_optional_fields_omitted(self):
        data = _entry().to_dict()
        assert "website" not in data
        assert "folderId" not in data

    def test_payload_contains_only_entries_and_folders(self):
        vault = VaultData(entries=[_entry()], folders=[VaultFolder("f1", "Work", 0, NOW)])
        assert set(json.loads(vault.serialize())) == {"entries", "folders"}

    def test_roundtrip(self):
        vault = VaultData(
            entries=[_entry("e1", 0, folder_id="f1"), _entry("e2", 1, website="w")],
            folders=[VaultFolder("f1", "Work", 0, NOW)],
        )
        assert VaultData.deserialize(vault.serialize()) == vault

    def test_sorted_orders_both_collections(self):
        vault = VaultData(
            entries=[_entry("b", 1), _entry("a", 0)],
            folders=[VaultFolder("y", "Y", 3, NOW), VaultFolder("x", "X", 1, NOW)],
        )
        ordered = vault.sorted()
        assert [e.id for e in ordered.entries] == ["a", "b"]
        assert [f.id for f in ordered.folders] == ["x", "y"]
        # original untouched
        assert [e.id for e in vault.entries] == ["b", "a"]

    def test_copy_is_independent(self):
        vault = VaultData(entries=[_entry()])
        clone = vault.copy()
        clone.entries[0].title = "Changed"
        assert vault.entries[0].title == "Mail"


class TestValidation:

    def test_not_json(self):
        with pytest.raises(MalformedVaultError):
            VaultData.deserialize(b"\x8f\x00garbage")

    def test_not_an_object(self):
        with pytest.raises(MalformedVaultError):
            VaultData.deserialize(b"[1, 2, 3]")

    def test_missing_collections(self):
        with pytest.raises(MalformedVaultError):
            VaultData.deserialize(b'{"entries": []}')

    def test_missing_entry_field(self):
        raw = _entry().to_dict()
        del raw["title"]
        with pytest.raises(MalformedVaultError):
            VaultData.from_dict({"entries": [raw], "folders": []})

    def test_order_must_be_integer(self):
        raw = _entry().to_dict()
        raw["order"] = True
        with pytest.raises(MalformedVaultError):
            VaultData.from_dict({"entries": [raw], "folders": []})

    def test_folder_id_must_be_string(self):
        raw = _entry().to_dict()
        raw["folderId"] = 7
        with pytest.raises(MalformedVaultError):
            VaultData.from_dict({"entries": [raw], "folders": []})

    def test_duplicate_entry_ids(self):
        raw = _entry().to_dict()
        with pytest.raises(MalformedVaultError):
            VaultData.from_dict({"entries": [raw, raw], "folders": []})

    def test_duplicate_folder_ids(self):
        raw = VaultFolder("f1", "Work", 0, NOW).to_dict()
        with pytest.raises(MalformedVaultError):
            VaultData.from_dict({"entries": [], "folders": [raw, raw]})


class TestEntryUpdate:

    def test_nothing_supplied(self):
        assert EntryUpdate().supplied() == {}

    def test_only_supplied_fields(self):
        update = EntryUpdate(title="New", website=None)
        assert update.supplied() == {"title": "New", "website": None}

    def test_unset_is_falsy(self):
        assert not UNSET
        assert repr(UNSET) == "UNSET"
