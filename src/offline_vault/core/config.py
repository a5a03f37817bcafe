# Core Module - Configuration
#
# Settings come from environment variables; a local .env file is loaded
# first so desktop installs can keep overrides next to the app.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass
class VaultConfig:
    """Runtime settings for the vault backend."""
    data_dir: Path = Path("data")
    log_dir: Path = Path("audit_logs")
    host: str = "127.0.0.1"
    port: int = 8000

    @property
    def store_path(self) -> Path:
        return self.data_dir / "vault_store.db"


def load_config(env_file: Optional[Path] = None) -> VaultConfig:
    """
    Build a VaultConfig from the environment.

    Variables:
        OFFLINE_VAULT_DATA_DIR: directory for the key/value store
        OFFLINE_VAULT_LOG_DIR: directory for audit logs
        OFFLINE_VAULT_HOST / OFFLINE_VAULT_PORT: API bind address

    Raises:
        ValueError: OFFLINE_VAULT_PORT is not an integer
    """
    load_dotenv(dotenv_path=env_file, override=False)

    port_raw = os.environ.get("OFFLINE_VAULT_PORT", "8000")
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"OFFLINE_VAULT_PORT must be an integer, got {port_raw!r}")

    return VaultConfig(
        data_dir=Path(os.environ.get("OFFLINE_VAULT_DATA_DIR", "data")),
        log_dir=Path(os.environ.get("OFFLINE_VAULT_LOG_DIR", "audit_logs")),
        host=os.environ.get("OFFLINE_VAULT_HOST", "127.0.0.1"),
        port=port,
    )
