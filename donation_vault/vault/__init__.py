"""Wallet Vault — Encrypted tenant payment credentials.

Security Note (Threat Model):
    Decrypted keys exist in process memory only while a gateway client is
    being built or verified. Anyone holding the master key and a copy of the
    store can recover every wallet; PBKDF2 only slows brute force of a
    leaked master key. This is an accepted limitation, mitigation requires
    an external KMS which is out of scope.
"""

from .admin import WalletAdmin
from .config import VaultConfig, PlatformCredentials, load_master_key, generate_master_key
from .crypto import encrypt_field, decrypt_field, is_envelope, mask_key
from .exceptions import (
    VaultError,
    CryptoError,
    MalformedEnvelope,
    AuthenticationFailed,
    KeyDerivationError,
    CredentialsCorrupted,
    WalletNotFound,
    WalletInactive,
    WalletExists,
    PlatformCredentialsMissing,
    VerificationFailed,
)
from .record import WalletRecord, VerificationStatus, encrypt_on_write, decrypted_view, masked_view
from .resolver import ClientConfig, VaultResolver
from .store import MemoryWalletStore, SQLWalletStore, MemoryEventDirectory, EventCreator
from .verification import GatewayVerifier, VerificationResult

__all__ = [
    "WalletAdmin",
    "VaultConfig",
    "PlatformCredentials",
    "load_master_key",
    "generate_master_key",
    "encrypt_field",
    "decrypt_field",
    "is_envelope",
    "mask_key",
    "VaultError",
    "CryptoError",
    "MalformedEnvelope",
    "AuthenticationFailed",
    "KeyDerivationError",
    "CredentialsCorrupted",
    "WalletNotFound",
    "WalletInactive",
    "WalletExists",
    "PlatformCredentialsMissing",
    "VerificationFailed",
    "WalletRecord",
    "VerificationStatus",
    "encrypt_on_write",
    "decrypted_view",
    "masked_view",
    "ClientConfig",
    "VaultResolver",
    "MemoryWalletStore",
    "SQLWalletStore",
    "MemoryEventDirectory",
    "EventCreator",
    "GatewayVerifier",
    "VerificationResult",
]
