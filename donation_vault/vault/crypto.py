"""
Vault Crypto Core — Key derivation, envelope encryption and masking.

Every secret field is sealed independently:
    PBKDF2-HMAC-SHA256(master_key, salt 64B) → AES-256-GCM(iv 16B) → iv:salt:tag:ciphertext

Each component is standard base64. IV and salt are fresh on every call, so
the same plaintext never produces the same envelope twice.

Security Note:
    Never log plaintext or ciphertext values.
    Key derivation is deliberately slow; async callers must run it through
    ``asyncio.to_thread``.
"""
import os
import base64
import binascii
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import KDF_ITERATIONS, KEY_LENGTH, MIN_KDF_ITERATIONS
from .exceptions import (
    AuthenticationFailed,
    KeyDerivationError,
    MalformedEnvelope,
)

logger = logging.getLogger("donation_vault.vault")

IV_SIZE = 16
SALT_SIZE = 64
TAG_SIZE = 16
SEPARATOR = ":"
MASK = "****"


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def _check_master_key(master_key: Optional[bytes]) -> bytes:
    if master_key is None:
        raise KeyDerivationError("Master encryption key is not configured")
    if not isinstance(master_key, bytes) or len(master_key) != KEY_LENGTH:
        raise KeyDerivationError(
            f"Master encryption key must be exactly {KEY_LENGTH} bytes"
        )
    return master_key


def derive_key(
    master_key: bytes, salt: bytes, iterations: int = MIN_KDF_ITERATIONS
) -> bytes:
    """Derive a 32-byte data-encryption key using PBKDF2-HMAC-SHA256.

    Args:
        master_key: Raw 32-byte master key.
        salt: Per-field random salt.
        iterations: PBKDF2 rounds, never below 100,000.

    Returns:
        32-byte derived key.
    """
    if iterations < MIN_KDF_ITERATIONS:
        raise KeyDerivationError(
            f"Key derivation requires at least {MIN_KDF_ITERATIONS} iterations"
        )
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(_check_master_key(master_key))


# ---------------------------------------------------------------------------
# Envelope encoding
# ---------------------------------------------------------------------------

def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _split_envelope(envelope: str) -> tuple[bytes, bytes, bytes, bytes]:
    """Parse ``iv:salt:tag:ciphertext`` into raw components.

    Raises:
        MalformedEnvelope: On wrong part count, invalid base64 or bad sizes.
    """
    if not isinstance(envelope, str) or not envelope:
        raise MalformedEnvelope("Envelope must be a non-empty string")
    parts = envelope.split(SEPARATOR)
    if len(parts) != 4:
        raise MalformedEnvelope(
            f"Envelope must have 4 parts, got {len(parts)}"
        )
    try:
        iv, salt, tag, ct = (
            base64.b64decode(part, validate=True) for part in parts
        )
    except (binascii.Error, ValueError):
        raise MalformedEnvelope("Envelope part is not valid base64") from None
    if len(iv) != IV_SIZE or len(salt) != SALT_SIZE or len(tag) != TAG_SIZE:
        raise MalformedEnvelope("Envelope component has an unexpected size")
    if not ct:
        raise MalformedEnvelope("Envelope ciphertext is empty")
    return iv, salt, tag, ct


def is_envelope(value: Optional[str]) -> bool:
    """Return True if ``value`` has the exact shape of an envelope.

    Plaintext that merely contains colons is not treated as encrypted.
    """
    try:
        _split_envelope(value)
    except MalformedEnvelope:
        return False
    return True


# ---------------------------------------------------------------------------
# Field encryption
# ---------------------------------------------------------------------------

def encrypt_field(
    plaintext: str,
    master_key: Optional[bytes],
) -> str:
    """Encrypt one secret field into an envelope string.

    Args:
        plaintext: Non-empty secret value.
        master_key: Raw 32-byte master key.

    Returns:
        ``iv:salt:tag:ciphertext`` (each base64).

    Raises:
        ValueError: If plaintext is empty or not a string.
        KeyDerivationError: If the master key is missing or malformed.
    """
    if not plaintext or not isinstance(plaintext, str):
        raise ValueError("Plaintext must be a non-empty string")
    _check_master_key(master_key)
    iv = os.urandom(IV_SIZE)
    salt = os.urandom(SALT_SIZE)
    key = derive_key(master_key, salt, KDF_ITERATIONS)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ct, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return SEPARATOR.join((_b64(iv), _b64(salt), _b64(tag), _b64(ct)))


def decrypt_field(
    envelope: str,
    master_key: Optional[bytes],
) -> str:
    """Decrypt an envelope string back to plaintext.

    Raises:
        KeyDerivationError: If the master key is missing or malformed.
        MalformedEnvelope: If the envelope does not parse.
        AuthenticationFailed: If the tag does not verify. No partial
            plaintext is ever returned.
    """
    _check_master_key(master_key)
    iv, salt, tag, ct = _split_envelope(envelope)
    key = derive_key(master_key, salt, KDF_ITERATIONS)
    try:
        plaintext = AESGCM(key).decrypt(iv, ct + tag, None)
    except InvalidTag:
        raise AuthenticationFailed(
            "Envelope authentication failed: key mismatch or corrupted data"
        ) from None
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedEnvelope("Decrypted value is not valid UTF-8") from None


# ---------------------------------------------------------------------------
# Display masking
# ---------------------------------------------------------------------------

def mask_key(value: Optional[str]) -> str:
    """Mask a key for display, keeping only the last 4 characters.

    Values of 4 characters or fewer map to the ``****`` sentinel.
    """
    if not value or not isinstance(value, str) or len(value) <= 4:
        return MASK
    return MASK + value[-4:]
