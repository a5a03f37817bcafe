# Storage Module - Durable local key/value records
#
# The vault persists its salt, ciphertext and secret-kind flag here.

from .kv_store import KeyValueStore, SALT_KEY, DATA_KEY, AUTH_TYPE_KEY

__all__ = ["KeyValueStore", "SALT_KEY", "DATA_KEY", "AUTH_TYPE_KEY"]
