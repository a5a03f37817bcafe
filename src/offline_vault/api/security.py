# API Security - Per-process session token
#
# The local UI reads the token once from /api/session and echoes it in the
# X-Session-Token header. Other processes on the machine never see it, so
# they cannot drive the vault API.

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

TOKEN_HEADER = "X-Session-Token"

_session_token: Optional[str] = None


def initialize_session_token() -> str:
    """Issue a fresh 256-bit token, invalidating the previous one."""
    global _session_token
    _session_token = secrets.token_urlsafe(32)
    return _session_token


def get_session_token() -> str:
    if _session_token is None:
        raise RuntimeError("Session token requested before API startup")
    return _session_token


async def verify_session_token(
    x_session_token: Optional[str] = Header(None, alias=TOKEN_HEADER),
) -> str:
    """
    Route dependency: reject requests that do not carry the session token.

    Raises:
        HTTPException: 503 until startup has issued a token,
                       401 when the header is absent or wrong
    """
    expected = _session_token
    if expected is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Vault API is still starting",
        )
    if not x_session_token or not secrets.compare_digest(x_session_token, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing or invalid {TOKEN_HEADER} header",
        )
    return x_session_token
