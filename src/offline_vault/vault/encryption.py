# Vault - Encryption Service
#
# PIN/password -> Encryption key (PBKDF2)
# Vault payload encryption (AES-256-GCM)
# Salt and identifier generation

import os
import base64
import binascii
from typing import Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.backends import default_backend

from ..exceptions import DecryptionError


SECRET_KIND_PIN = "pin"
SECRET_KIND_PASSWORD = "password"

PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 8


class EncryptionService:
    """
    Handles key derivation and encryption of the serialized vault.

    The service knows nothing about entries or folders: it maps a secret and
    a salt to a key, and an opaque byte payload to a self-describing
    ciphertext string.

    Flow:
    1. User enters PIN or password
    2. PBKDF2 derives 256-bit key from secret + per-vault salt
    3. AES-256-GCM encrypts/decrypts the whole vault payload
    4. Every encryption uses a fresh nonce, stored in front of the ciphertext
    """

    PBKDF2_ITERATIONS = 10_000
    KEY_LENGTH = 32  # 256 bits for AES-256
    SALT_LENGTH = 32  # 256-bit salt
    NONCE_LENGTH = 12  # 96-bit nonce for GCM (recommended)
    TAG_LENGTH = 16
    ID_LENGTH = 16

    @staticmethod
    def derive_key(secret: str, salt: bytes) -> bytes:
        """
        Derive encryption key from the user's secret using PBKDF2.

        Same (secret, salt) always yields the same key, so the key never has
        to be stored.

        Args:
            secret: User's PIN or password
            salt: Random salt (stored next to the vault)

        Returns:
            256-bit encryption key

        Raises:
            DecryptionError: secret cannot be encoded as UTF-8
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=EncryptionService.KEY_LENGTH,
            salt=salt,
            iterations=EncryptionService.PBKDF2_ITERATIONS,
            backend=default_backend()
        )

        try:
            secret_bytes = secret.encode('utf-8')
        except UnicodeEncodeError as e:
            raise DecryptionError("Secret is not valid text") from e
        return kdf.derive(secret_bytes)

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically random salt."""
        return os.urandom(EncryptionService.SALT_LENGTH)

    @staticmethod
    def generate_id() -> str:
        """Random identifier for entries and folders (32 hex chars)."""
        return os.urandom(EncryptionService.ID_LENGTH).hex()

    @staticmethod
    def encrypt(plaintext: bytes, key: bytes) -> str:
        """
        Encrypt a payload using AES-256-GCM.

        Args:
            plaintext: Serialized vault bytes
            key: 256-bit encryption key (from derive_key)

        Returns:
            base64 text of nonce + ciphertext + tag
        """
        nonce = os.urandom(EncryptionService.NONCE_LENGTH)

        aesgcm = AESGCM(key)
        ciphertext = aesgcm.encrypt(nonce, plaintext, None)

        return EncryptionService.encode_for_storage(nonce + ciphertext)

    @staticmethod
    def decrypt(ciphertext: str, key: bytes) -> bytes:
        """
        Decrypt a payload produced by encrypt().

        Args:
            ciphertext: base64 text of nonce + ciphertext + tag
            key: 256-bit encryption key (same as encryption)

        Returns:
            Decrypted payload bytes

        Raises:
            DecryptionError: Malformed input, wrong key, or tampered data
        """
        try:
            blob = EncryptionService.decode_from_storage(ciphertext)
        except (binascii.Error, ValueError, TypeError, AttributeError) as e:
            raise DecryptionError("Ciphertext is not valid base64") from e

        if len(blob) < EncryptionService.NONCE_LENGTH + EncryptionService.TAG_LENGTH:
            raise DecryptionError("Ciphertext too short")

        nonce = blob[:EncryptionService.NONCE_LENGTH]
        body = blob[EncryptionService.NONCE_LENGTH:]

        try:
            return AESGCM(key).decrypt(nonce, body, None)
        except InvalidTag as e:
            # Wrong key and tampered data both fail the tag check
            raise DecryptionError("Authentication tag mismatch") from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Encode binary data as base64 text for the key-value store."""
        return base64.b64encode(data).decode('utf-8')

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode base64 text from the key-value store."""
        return base64.b64decode(data.encode('utf-8'), validate=True)


def detect_secret_kind(secret: str) -> str:
    """Numeric secrets are PINs, everything else is a password."""
    if secret and secret.isascii() and secret.isdigit():
        return SECRET_KIND_PIN
    return SECRET_KIND_PASSWORD


def verify_secret(secret: str) -> Tuple[bool, str]:
    """
    Verify a PIN/password is acceptable for creating or opening a vault.

    Requirements:
    - Not empty (whitespace only counts as empty)
    - Encodable as UTF-8
    - A numeric PIN has 4 to 8 digits

    Returns:
        (is_valid, error_message)
    """
    if not secret or not secret.strip():
        return False, "PIN or password is required"

    try:
        secret.encode("utf-8")
    except UnicodeEncodeError:
        return False, "PIN or password contains invalid characters"

    if detect_secret_kind(secret) == SECRET_KIND_PIN:
        if len(secret) < PIN_MIN_LENGTH:
            return False, f"PIN must be at least {PIN_MIN_LENGTH} digits"
        if len(secret) > PIN_MAX_LENGTH:
            return False, f"PIN must be at most {PIN_MAX_LENGTH} digits"

    return True, ""
