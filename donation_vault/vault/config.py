"""
Vault Configuration — Master key loading and validated settings.

Reads configuration from environment variables:
    WALLET_ENCRYPTION_KEY = <64 hex characters | 32 characters>
    PAYMONGO_PUBLIC_KEY / PAYMONGO_SECRET_KEY / PAYMONGO_WEBHOOK_SECRET
    PAYMONGO_API_BASE, PAYMONGO_TIMEOUT, WALLET_VERIFY_TIMEOUT

The environment is read once, in ``VaultConfig.from_env()``. Everything below
the config receives it by injection.

Security Note:
    Never log key material. Only log whether a value is present.
"""
import os
import secrets
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .exceptions import KeyDerivationError

logger = logging.getLogger("donation_vault.vault")

KEY_LENGTH = 32  # AES-256
MIN_KDF_ITERATIONS = 100_000
# Envelopes do not record the round count, so it can never change.
KDF_ITERATIONS = MIN_KDF_ITERATIONS
DEFAULT_API_BASE = "https://api.paymongo.com/v1"


def coerce_master_key(raw: str | bytes | None) -> bytes:
    """Normalize a master key into exactly 32 raw bytes.

    Accepted shapes: 32 raw bytes, a 64-character hex string, or a
    32-character string taken as UTF-8.

    Raises:
        KeyDerivationError: If the key is absent or has any other shape.
    """
    if raw is None or raw == "" or raw == b"":
        raise KeyDerivationError(
            "WALLET_ENCRYPTION_KEY is required for wallet encryption"
        )
    if isinstance(raw, bytes):
        if len(raw) != KEY_LENGTH:
            raise KeyDerivationError(
                f"Master key must be exactly {KEY_LENGTH} bytes"
            )
        return raw
    if len(raw) == KEY_LENGTH * 2:
        try:
            return bytes.fromhex(raw)
        except ValueError:
            raise KeyDerivationError(
                "Master key of 64 characters must be hex encoded"
            ) from None
    key = raw.encode("utf-8")
    if len(raw) == KEY_LENGTH and len(key) == KEY_LENGTH:
        return key
    raise KeyDerivationError(
        "WALLET_ENCRYPTION_KEY must be 32 bytes "
        "(64 hex characters or 32 UTF-8 characters)"
    )


def load_master_key() -> Optional[bytes]:
    """Load the master key from WALLET_ENCRYPTION_KEY.

    Returns:
        Raw 32-byte key, or None if the variable is unset. Absence is only
        fatal when encryption or decryption is first attempted.

    Raises:
        KeyDerivationError: If the variable is set but malformed.
    """
    raw = os.environ.get("WALLET_ENCRYPTION_KEY")
    if not raw:
        logger.warning("WALLET_ENCRYPTION_KEY is not set")
        return None
    return coerce_master_key(raw)


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return it as a hex string.

    This is a utility for operators to generate new keys.
    """
    return secrets.token_hex(KEY_LENGTH)


class PlatformCredentials(BaseModel):
    """Operator-supplied default gateway credentials (not a tenant wallet)."""

    public_key: Optional[str] = None
    secret_key: Optional[str] = None
    webhook_secret: Optional[str] = None

    def missing(self) -> list[str]:
        """Names of the required values that are not configured."""
        missing = []
        if not self.public_key:
            missing.append("PAYMONGO_PUBLIC_KEY")
        if not self.secret_key:
            missing.append("PAYMONGO_SECRET_KEY")
        return missing

    @classmethod
    def from_env(cls) -> "PlatformCredentials":
        return cls(
            public_key=os.environ.get("PAYMONGO_PUBLIC_KEY") or None,
            secret_key=os.environ.get("PAYMONGO_SECRET_KEY") or None,
            webhook_secret=os.environ.get("PAYMONGO_WEBHOOK_SECRET") or None,
        )


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    master_key: Optional[bytes] = None
    platform: PlatformCredentials = Field(default_factory=PlatformCredentials)
    api_base: str = Field(default=DEFAULT_API_BASE)
    client_timeout: float = Field(default=15.0, gt=0, le=120)
    verify_timeout: float = Field(default=10.0, gt=0, le=60)

    model_config = {"arbitrary_types_allowed": True, "extra": "forbid"}

    @field_validator("master_key", mode="before")
    @classmethod
    def validate_master_key(cls, v):
        """Accept hex/raw string forms; a provisioned key must be 32 bytes."""
        if v is None:
            return None
        return coerce_master_key(v)

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        """Ensure the gateway base URL is absolute."""
        if not v.startswith(("https://", "http://")):
            raise ValueError(f"Unsupported gateway base URL: {v}")
        return v.rstrip("/")

    def require_master_key(self) -> bytes:
        """Return the master key, failing hard if it was never provisioned.

        Raises:
            KeyDerivationError: If no master key is configured.
        """
        if self.master_key is None:
            raise KeyDerivationError(
                "WALLET_ENCRYPTION_KEY environment variable is required "
                "for wallet encryption"
            )
        return self.master_key

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        return cls(
            master_key=load_master_key(),
            platform=PlatformCredentials.from_env(),
            api_base=os.environ.get("PAYMONGO_API_BASE", DEFAULT_API_BASE),
            client_timeout=float(os.environ.get("PAYMONGO_TIMEOUT", "15")),
            verify_timeout=float(os.environ.get("WALLET_VERIFY_TIMEOUT", "10")),
        )
