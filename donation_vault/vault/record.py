"""
Wallet Record — One tenant's encrypted gateway credentials.

Secret fields (public key, secret key, webhook secret) are held as envelope
strings. Plaintext is only reachable through ``decrypted_view``; everything
meant for display goes through ``masked_view`` or ``display``.
"""
import logging
from enum import Enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .crypto import MASK, decrypt_field, encrypt_field, is_envelope, mask_key
from .exceptions import CredentialsCorrupted, CryptoError

logger = logging.getLogger("donation_vault.vault")

SECRET_FIELDS = ("public_key", "secret_key", "webhook_secret")


class VerificationStatus(str, Enum):
    NEVER = "never"
    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class WalletRecord(BaseModel):
    """Stored credential record, unique per tenant."""

    tenant_id: str
    public_key: str
    secret_key: str
    webhook_secret: Optional[str] = None
    is_active: bool = True
    verification_status: VerificationStatus = VerificationStatus.NEVER
    last_verified_at: Optional[datetime] = None
    last_verification_error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return (
            f'<WalletRecord [tenant:{self.tenant_id}, active:{self.is_active}, '
            f'status:{self.verification_status.value}]>'
        )

    __str__ = __repr__

    @property
    def is_encrypted(self) -> bool:
        return all(
            is_envelope(getattr(self, name))
            for name in SECRET_FIELDS
            if getattr(self, name) is not None
        )


class DecryptedKeys(BaseModel):
    public_key: str
    secret_key: str
    webhook_secret: Optional[str] = None

    def __repr__(self) -> str:
        return f'<DecryptedKeys public_key={mask_key(self.public_key)}>'

    __str__ = __repr__


class MaskedKeys(BaseModel):
    public_key: str
    secret_key: str
    webhook_secret: Optional[str] = None


# ---------------------------------------------------------------------------
# Encryption on write
# ---------------------------------------------------------------------------

def encrypt_on_write(
    record: WalletRecord,
    master_key: Optional[bytes],
) -> WalletRecord:
    """Return a copy of ``record`` with every secret field encrypted exactly once.

    Fields already in envelope shape are left untouched, so saving a record
    read back from the store never double-encrypts.
    """
    update = {}
    for name in SECRET_FIELDS:
        value = getattr(record, name)
        if not value:
            if name == "webhook_secret":
                update[name] = None
                continue
            raise ValueError(f"{name} is required")
        if is_envelope(value):
            continue
        update[name] = encrypt_field(value, master_key)
    if not update:
        return record
    return record.model_copy(update=update)


# ---------------------------------------------------------------------------
# Decrypted and masked views
# ---------------------------------------------------------------------------

def decrypted_view(
    record: WalletRecord,
    master_key: Optional[bytes],
) -> DecryptedKeys:
    """Decrypt all present secret fields.

    Raises:
        CredentialsCorrupted: If any present field fails to decrypt. The
            crypto error is chained, never included in the message.
    """
    values = {}
    for name in SECRET_FIELDS:
        envelope = getattr(record, name)
        if envelope is None:
            values[name] = None
            continue
        try:
            values[name] = decrypt_field(envelope, master_key)
        except CryptoError as err:
            logger.error(
                "Failed to decrypt %s for tenant=%s: %s",
                name, record.tenant_id, type(err).__name__,
            )
            raise CredentialsCorrupted(record.tenant_id, name) from err
    return DecryptedKeys(**values)


def masked_view(
    record: WalletRecord,
    master_key: Optional[bytes],
) -> MaskedKeys:
    """Build the display form of the credentials.

    The secret key is always the full ``****`` sentinel. Decryption failures
    degrade every present field to the sentinel instead of raising.
    """
    try:
        keys = decrypted_view(record, master_key)
    except CredentialsCorrupted:
        return MaskedKeys(
            public_key=MASK,
            secret_key=MASK,
            webhook_secret=MASK if record.webhook_secret else None,
        )
    return MaskedKeys(
        public_key=mask_key(keys.public_key),
        secret_key=MASK,
        webhook_secret=mask_key(keys.webhook_secret) if keys.webhook_secret else None,
    )


def display(
    record: WalletRecord,
    master_key: Optional[bytes],
    privileged: bool = False,
) -> dict:
    """Response shape for a wallet.

    Administrators see the masked webhook secret and the last verification
    error; the owning tenant sees neither.
    """
    masked = masked_view(record, master_key)
    data = {
        "tenant_id": record.tenant_id,
        "public_key": masked.public_key,
        "secret_key": MASK,
        "webhook_secret": masked.webhook_secret if privileged else None,
        "is_active": record.is_active,
        "verification_status": record.verification_status.value,
        "last_verified_at": record.last_verified_at,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    if privileged:
        data["last_verification_error"] = record.last_verification_error
    return data


def status_summary(
    record: WalletRecord,
    master_key: Optional[bytes],
) -> dict:
    masked = masked_view(record, master_key)
    return {
        "is_active": record.is_active,
        "last_verified_at": record.last_verified_at,
        "verification_status": record.verification_status.value,
        "public_key": masked.public_key,
        "has_webhook_secret": bool(record.webhook_secret),
    }


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

_UNSET = object()


def apply_rotation(
    record: WalletRecord,
    public_key=_UNSET,
    secret_key=_UNSET,
    webhook_secret=_UNSET,
    is_active=_UNSET,
) -> WalletRecord:
    """Apply a partial credential update.

    Changing either gateway key resets verification to ``pending``. Passing
    an empty webhook secret clears it. New values are plaintext until
    ``encrypt_on_write`` runs.
    """
    update = {}
    if public_key is not _UNSET:
        update["public_key"] = public_key
    if secret_key is not _UNSET:
        update["secret_key"] = secret_key
    if webhook_secret is not _UNSET:
        update["webhook_secret"] = webhook_secret or None
    if is_active is not _UNSET:
        update["is_active"] = bool(is_active)
    if public_key is not _UNSET or secret_key is not _UNSET:
        update["verification_status"] = VerificationStatus.PENDING
        update["last_verified_at"] = None
        update["last_verification_error"] = None
    return record.model_copy(update=update)


def apply_verification(
    record: WalletRecord, valid: bool, error: Optional[str], now: datetime
) -> WalletRecord:
    """Overwrite the verification snapshot with the outcome of one run."""
    return record.model_copy(update={
        "last_verified_at": now,
        "verification_status": (
            VerificationStatus.VERIFIED if valid else VerificationStatus.FAILED
        ),
        "last_verification_error": None if valid else (error or "Invalid credentials"),
    })
