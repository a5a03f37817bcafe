# Vault API - RESTful endpoints for the vault UI
#
# - Unlock/lock/reset the vault
# - CRUD, reorder and move operations for entries and folders
# - Everything except /status requires an unlocked vault

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ..core import load_config
from ..storage import KeyValueStore
from ..vault import (
    EntryUpdate,
    ErrorKind,
    OperationResult,
    VaultManager,
    generate_password,
)
from ..vault.generator import DEFAULT_PASSWORD_LENGTH, MAX_PASSWORD_LENGTH
from .security import verify_session_token

router = APIRouter(
    prefix="/api/vault",
    tags=["vault"],
    dependencies=[Depends(verify_session_token)],
)

# Global vault instance (one vault per desktop backend)
_vault_manager: Optional[VaultManager] = None


def get_vault_manager() -> VaultManager:
    """Get or create the global VaultManager singleton."""
    global _vault_manager
    if _vault_manager is None:
        config = load_config()
        _vault_manager = VaultManager(KeyValueStore(config.store_path))
    return _vault_manager


def set_vault_manager(manager: Optional[VaultManager]):
    """Allow DI for testing."""
    global _vault_manager
    _vault_manager = manager


_STATUS_BY_ERROR = {
    ErrorKind.LOCKED: status.HTTP_403_FORBIDDEN,
    ErrorKind.ACCESS_DENIED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_on_failure(result: OperationResult) -> OperationResult:
    if not result.success:
        raise HTTPException(
            status_code=_STATUS_BY_ERROR.get(result.error, status.HTTP_400_BAD_REQUEST),
            detail=result.message,
        )
    return result


def _require_unlocked(manager: VaultManager):
    if not manager.is_unlocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vault is locked. Unlock vault first."
        )


# Request/Response Models
class UnlockVaultRequest(BaseModel):
    secret: str = Field(..., min_length=1)


class CreateEntryRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    username: str = ""
    password: str = ""
    website: Optional[str] = None
    folder_id: Optional[str] = None


class UpdateEntryRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    username: Optional[str] = None
    password: Optional[str] = None
    website: Optional[str] = None
    folder_id: Optional[str] = None


class MoveEntryRequest(BaseModel):
    folder_id: Optional[str] = None


class FolderRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class ReorderRequest(BaseModel):
    ids: List[str]


class VaultStatusResponse(BaseModel):
    is_unlocked: bool
    vault_exists: bool
    auth_type: Optional[str]


# Endpoints

@router.get("/status", response_model=VaultStatusResponse)
async def get_vault_status():
    """Whether the vault exists, is unlocked, and which secret kind opens it."""
    result = _raise_on_failure(get_vault_manager().status())
    return VaultStatusResponse(**result.value)


@router.post("/unlock")
async def unlock_vault(request: UnlockVaultRequest):
    """
    Unlock the vault with a PIN or password.

    The first unlock on an empty store creates the vault.
    """
    result = _raise_on_failure(get_vault_manager().unlock(request.secret))
    return {"success": True, "message": result.message, "created": result.value == "created"}


@router.post("/lock")
async def lock_vault():
    get_vault_manager().lock()
    return {"success": True, "message": "Vault locked"}


@router.post("/reset")
async def reset_vault():
    """Erase the vault permanently. There is no recovery."""
    result = _raise_on_failure(get_vault_manager().reset_vault())
    return {"success": True, "message": result.message}


@router.get("/data")
async def get_vault_data():
    """Full vault snapshot (entries and folders in display order)."""
    manager = get_vault_manager()
    _require_unlocked(manager)
    return manager.snapshot().to_dict()


@router.get("/entries")
async def list_entries(
    folder_id: Optional[str] = None,
    search: Optional[str] = None,
):
    """Entries for a view: optional folder filter and search term."""
    manager = get_vault_manager()
    _require_unlocked(manager)
    entries = manager.filter_entries(folder_id=folder_id, search=search)
    return {"entries": [e.to_dict() for e in entries]}


@router.post("/entries")
async def create_entry(request: CreateEntryRequest):
    result = _raise_on_failure(get_vault_manager().create_entry(
        title=request.title,
        username=request.username,
        password=request.password,
        website=request.website,
        folder_id=request.folder_id,
    ))
    return {"success": True, "entry_id": result.value}


@router.post("/entries/reorder")
async def reorder_entries(request: ReorderRequest):
    """Apply a new entry order (all entries, or the visible subset)."""
    _raise_on_failure(get_vault_manager().reorder_entries(request.ids))
    return {"success": True}


@router.get("/entries/{entry_id}")
async def get_entry(entry_id: str):
    manager = get_vault_manager()
    _require_unlocked(manager)

    entry = manager.get_entry(entry_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Entry not found"
        )
    return entry.to_dict()


@router.patch("/entries/{entry_id}")
async def update_entry(entry_id: str, request: UpdateEntryRequest):
    """Replace only the fields present in the request body."""
    supplied = request.model_dump(exclude_unset=True)
    _raise_on_failure(get_vault_manager().update_entry(entry_id, EntryUpdate(**supplied)))
    return {"success": True, "entry_id": entry_id}


@router.delete("/entries/{entry_id}")
async def delete_entry(entry_id: str):
    result = _raise_on_failure(get_vault_manager().delete_entry(entry_id))
    return {"success": True, "message": result.message}


@router.post("/entries/{entry_id}/move")
async def move_entry(entry_id: str, request: MoveEntryRequest):
    """Move an entry into a folder, or out of any folder with folder_id=null."""
    _raise_on_failure(get_vault_manager().move_entry_to_folder(entry_id, request.folder_id))
    return {"success": True}


@router.post("/folders")
async def create_folder(request: FolderRequest):
    result = _raise_on_failure(get_vault_manager().create_folder(request.name))
    return {"success": True, "folder_id": result.value}


@router.post("/folders/reorder")
async def reorder_folders(request: ReorderRequest):
    _raise_on_failure(get_vault_manager().reorder_folders(request.ids))
    return {"success": True}


@router.patch("/folders/{folder_id}")
async def rename_folder(folder_id: str, request: FolderRequest):
    _raise_on_failure(get_vault_manager().update_folder(folder_id, request.name))
    return {"success": True}


@router.delete("/folders/{folder_id}")
async def delete_folder(folder_id: str):
    """Delete a folder; its entries become unfiled."""
    result = _raise_on_failure(get_vault_manager().delete_folder(folder_id))
    return {"success": True, "entries_unfiled": result.value}


@router.get("/generate-password")
async def generate_random_password(
    length: int = Query(DEFAULT_PASSWORD_LENGTH, ge=1, le=MAX_PASSWORD_LENGTH),
):
    return {"password": generate_password(length)}
