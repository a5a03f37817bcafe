"""Tests for the vault API routes.

Covers:
  - Status, unlock (create and reopen), lock, reset
  - Entry and folder CRUD, reorder and move over HTTP
  - Error kinds mapped to HTTP status codes
  - Session token enforcement
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from offline_vault.api.main import app
from offline_vault.api.security import verify_session_token
from offline_vault.api.vault_routes import set_vault_manager
from offline_vault.exceptions import StorageError
from offline_vault.vault import VaultManager


@pytest.fixture
def vault(store, clock):
    manager = VaultManager(store, clock=clock)
    set_vault_manager(manager)
    yield manager
    set_vault_manager(None)


@pytest.fixture
def client(vault):
    app.dependency_overrides[verify_session_token] = lambda: "test-token"
    yield TestClient(app)
    app.dependency_overrides.pop(verify_session_token, None)


@pytest.fixture
def open_client(client):
    resp = client.post("/api/vault/unlock", json={"secret": "1234"})
    assert resp.status_code == 200
    return client


class TestStatusAndUnlock:

    def test_status_before_creation(self, client):
        resp = client.get("/api/vault/status")
        assert resp.status_code == 200
        assert resp.json() == {"is_unlocked": False, "vault_exists": False, "auth_type": None}

    def test_first_unlock_creates(self, client):
        resp = client.post("/api/vault/unlock", json={"secret": "1234"})
        assert resp.status_code == 200
        assert resp.json()["created"] is True

        status = client.get("/api/vault/status").json()
        assert status == {"is_unlocked": True, "vault_exists": True, "auth_type": "pin"}

    def test_reopen_reports_not_created(self, open_client):
        open_client.post("/api/vault/lock")
        resp = open_client.post("/api/vault/unlock", json={"secret": "1234"})
        assert resp.json()["created"] is False

    def test_wrong_secret_is_401(self, open_client):
        open_client.post("/api/vault/lock")
        resp = open_client.post("/api/vault/unlock", json={"secret": "0000"})
        assert resp.status_code == 401

    def test_backoff_is_429(self, open_client):
        open_client.post("/api/vault/lock")
        open_client.post("/api/vault/unlock", json={"secret": "0000"})
        open_client.post("/api/vault/unlock", json={"secret": "0000"})
        resp = open_client.post("/api/vault/unlock", json={"secret": "1234"})
        assert resp.status_code == 429

    def test_short_pin_is_400(self, client):
        resp = client.post("/api/vault/unlock", json={"secret": "12"})
        assert resp.status_code == 400

    def test_unencodable_secret_is_400(self, client):
        resp = client.post(
            "/api/vault/unlock",
            content=b'{"secret": "ab\\ud800cd"}',
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400
        assert client.get("/api/vault/status").json()["vault_exists"] is False

    def test_unreadable_store_is_500(self, client, store):
        with patch.object(store, "get", side_effect=StorageError("disk gone")):
            resp = client.get("/api/vault/status")
        assert resp.status_code == 500

    def test_entry_without_password_shows_placeholder(self, open_client):
        entry_id = open_client.post("/api/vault/entries", json={"title": "Wifi"}).json()["entry_id"]
        entry = open_client.get(f"/api/vault/entries/{entry_id}").json()
        assert entry["password"] == "(No password)"

    def test_empty_secret_rejected_by_schema(self, client):
        resp = client.post("/api/vault/unlock", json={"secret": ""})
        assert resp.status_code == 422


class TestLockedAccess:

    def test_data_requires_unlock(self, client):
        assert client.get("/api/vault/data").status_code == 403

    def test_create_requires_unlock(self, client):
        resp = client.post("/api/vault/entries", json={"title": "Mail"})
        assert resp.status_code == 403

    def test_lock_then_data_forbidden(self, open_client):
        assert open_client.post("/api/vault/lock").status_code == 200
        assert open_client.get("/api/vault/data").status_code == 403


class TestEntryRoutes:

    def test_create_and_get(self, open_client):
        resp = open_client.post("/api/vault/entries", json={
            "title": "Mail", "username": "a@b.com", "password": "x",
        })
        assert resp.status_code == 200
        entry_id = resp.json()["entry_id"]

        entry = open_client.get(f"/api/vault/entries/{entry_id}").json()
        assert entry["title"] == "Mail"
        assert entry["order"] == 0
        assert "website" not in entry

    def test_get_missing_is_404(self, open_client):
        assert open_client.get("/api/vault/entries/missing").status_code == 404

    def test_partial_update(self, open_client):
        entry_id = open_client.post("/api/vault/entries", json={
            "title": "Mail", "username": "a@b.com", "password": "x", "website": "w",
        }).json()["entry_id"]

        resp = open_client.patch(f"/api/vault/entries/{entry_id}", json={
            "password": "y", "website": None,
        })
        assert resp.status_code == 200

        entry = open_client.get(f"/api/vault/entries/{entry_id}").json()
        assert entry["password"] == "y"
        assert entry["username"] == "a@b.com"
        assert "website" not in entry

    def test_delete(self, open_client):
        entry_id = open_client.post("/api/vault/entries", json={"title": "Mail"}).json()["entry_id"]
        assert open_client.delete(f"/api/vault/entries/{entry_id}").status_code == 200
        assert open_client.delete(f"/api/vault/entries/{entry_id}").status_code == 404

    def test_reorder(self, open_client):
        a = open_client.post("/api/vault/entries", json={"title": "A"}).json()["entry_id"]
        b = open_client.post("/api/vault/entries", json={"title": "B"}).json()["entry_id"]

        resp = open_client.post("/api/vault/entries/reorder", json={"ids": [b, a]})
        assert resp.status_code == 200

        titles = [e["title"] for e in open_client.get("/api/vault/data").json()["entries"]]
        assert titles == ["B", "A"]

    def test_reorder_duplicate_is_400(self, open_client):
        a = open_client.post("/api/vault/entries", json={"title": "A"}).json()["entry_id"]
        resp = open_client.post("/api/vault/entries/reorder", json={"ids": [a, a]})
        assert resp.status_code == 400

    def test_move_and_filter(self, open_client):
        folder_id = open_client.post("/api/vault/folders", json={"name": "Work"}).json()["folder_id"]
        entry_id = open_client.post("/api/vault/entries", json={"title": "Jira"}).json()["entry_id"]
        open_client.post("/api/vault/entries", json={"title": "Bank"})

        resp = open_client.post(f"/api/vault/entries/{entry_id}/move", json={"folder_id": folder_id})
        assert resp.status_code == 200

        listed = open_client.get("/api/vault/entries", params={"folder_id": folder_id}).json()
        assert [e["title"] for e in listed["entries"]] == ["Jira"]

        searched = open_client.get("/api/vault/entries", params={"search": "ban"}).json()
        assert [e["title"] for e in searched["entries"]] == ["Bank"]

    def test_move_to_missing_folder_is_404(self, open_client):
        entry_id = open_client.post("/api/vault/entries", json={"title": "Jira"}).json()["entry_id"]
        resp = open_client.post(f"/api/vault/entries/{entry_id}/move", json={"folder_id": "nope"})
        assert resp.status_code == 404


class TestFolderRoutes:

    def test_duplicate_name_is_400(self, open_client):
        open_client.post("/api/vault/folders", json={"name": "work"})
        resp = open_client.post("/api/vault/folders", json={"name": "Work"})
        assert resp.status_code == 400

    def test_rename(self, open_client):
        folder_id = open_client.post("/api/vault/folders", json={"name": "Work"}).json()["folder_id"]
        assert open_client.patch(f"/api/vault/folders/{folder_id}", json={"name": "Office"}).status_code == 200

        folders = open_client.get("/api/vault/data").json()["folders"]
        assert [f["name"] for f in folders] == ["Office"]

    def test_delete_unfiles_entries(self, open_client):
        folder_id = open_client.post("/api/vault/folders", json={"name": "Work"}).json()["folder_id"]
        open_client.post("/api/vault/entries", json={"title": "Jira", "folder_id": folder_id})

        resp = open_client.delete(f"/api/vault/folders/{folder_id}")
        assert resp.json()["entries_unfiled"] == 1

        data = open_client.get("/api/vault/data").json()
        assert data["folders"] == []
        assert "folderId" not in data["entries"][0]

    def test_reorder_folders(self, open_client):
        w = open_client.post("/api/vault/folders", json={"name": "Work"}).json()["folder_id"]
        h = open_client.post("/api/vault/folders", json={"name": "Home"}).json()["folder_id"]
        assert open_client.post("/api/vault/folders/reorder", json={"ids": [h, w]}).status_code == 200

        folders = open_client.get("/api/vault/data").json()["folders"]
        assert [f["name"] for f in folders] == ["Home", "Work"]


class TestResetAndGenerator:

    def test_reset(self, open_client):
        open_client.post("/api/vault/entries", json={"title": "Mail"})
        assert open_client.post("/api/vault/reset").status_code == 200

        status = open_client.get("/api/vault/status").json()
        assert status["vault_exists"] is False
        assert status["is_unlocked"] is False

    def test_generate_password(self, client):
        resp = client.get("/api/vault/generate-password", params={"length": 24})
        assert resp.status_code == 200
        assert len(resp.json()["password"]) == 24

    def test_generate_password_bounds(self, client):
        assert client.get("/api/vault/generate-password", params={"length": 0}).status_code == 422


class TestSessionToken:

    def test_requests_without_token_rejected(self, vault):
        app.dependency_overrides.pop(verify_session_token, None)
        resp = TestClient(app).get("/api/vault/status")
        assert resp.status_code in (401, 503)

    def test_api_info_is_public(self, vault):
        resp = TestClient(app).get("/api")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Offline Vault API"
