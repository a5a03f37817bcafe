# Vault API - FastAPI Backend
#
# Local-only REST API that the vault UI talks to.

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
    load_config,
    set_audit_logger,
)
from .security import TOKEN_HEADER, get_session_token, initialize_session_token
from .vault_routes import get_vault_manager, router as vault_router

# Dev server and the packaged UI; nothing remote
UI_ORIGINS = [
    f"http://{host}:{port}"
    for host in ("localhost", "127.0.0.1")
    for port in (3000, 8000)
]

app = FastAPI(
    title="Offline Vault API",
    description="Local encrypted credential vault",
    version=__version__,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=UI_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", TOKEN_HEADER],
)
app.include_router(vault_router)


@app.on_event("startup")
async def startup_event():
    """Issue the session token and open the configured audit log."""
    initialize_session_token()
    set_audit_logger(AuditLogger(log_dir=load_config().log_dir))

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message=f"Offline Vault API {__version__} started",
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Lock the vault so nothing decrypted outlives the server."""
    get_vault_manager().lock()
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_STOP,
        severity=EventSeverity.INFO,
        message="Offline Vault API stopped",
    )


@app.get("/api/session")
async def get_session():
    """
    Session token for the local UI.

    The UI calls this once on load and sends the token back in the
    X-Session-Token header. A restart issues a new token.
    """
    return {"session_token": get_session_token()}


@app.get("/api")
async def api_info():
    return {"name": "Offline Vault API", "version": __version__}


def start_api_server(host: str = "127.0.0.1", port: int = 8000):
    """Serve the API with uvicorn until interrupted."""
    uvicorn.run(app, host=host, port=port, log_level="info")
