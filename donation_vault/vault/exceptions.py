"""
Vault Exceptions — Error taxonomy for credential storage, routing and verification.

Exception Hierarchy:
- VaultError (base)
  - CryptoError
    - MalformedEnvelope
    - AuthenticationFailed
    - KeyDerivationError
  - CredentialsCorrupted
  - WalletNotFound
  - WalletInactive
  - WalletExists
  - PlatformCredentialsMissing
  - VerificationFailed

Security Note:
    ``message`` is for internal logs. ``public_message`` is the only text that
    may reach an end user and never carries ciphertext or key material.
"""

GENERIC_CREDENTIALS_MESSAGE = "Failed to secure or retrieve wallet credentials"


class VaultError(Exception):
    """Base exception for all vault errors."""

    public_message = GENERIC_CREDENTIALS_MESSAGE

    def __init__(self, message: str, retry_allowed: bool = False):
        super().__init__(message)
        self.message = message
        self.retry_allowed = retry_allowed


# ---------------------------------------------------------------------------
# Envelope crypto errors
# ---------------------------------------------------------------------------

class CryptoError(VaultError):
    """Base class for envelope encryption failures."""


class MalformedEnvelope(CryptoError):
    """Envelope string is not ``iv:salt:tag:ciphertext`` with valid base64 parts."""


class AuthenticationFailed(CryptoError):
    """AEAD tag did not verify: wrong key, corruption or tampering."""


class KeyDerivationError(CryptoError):
    """Master key is missing or malformed.

    Raised the first time encryption or decryption is attempted without a
    usable key. It is a configuration fault and is never retried.
    """


# ---------------------------------------------------------------------------
# Record / resolver errors
# ---------------------------------------------------------------------------

class CredentialsCorrupted(VaultError):
    """A stored credential field could not be decrypted."""

    def __init__(self, tenant_id: str | None, field: str):
        super().__init__(
            f"Failed to decrypt {field} for tenant {tenant_id}"
        )
        self.tenant_id = tenant_id
        self.field = field


class WalletNotFound(VaultError):
    """No credential record exists for the tenant."""

    public_message = "Wallet not found"

    def __init__(self, tenant_id: str):
        super().__init__(f"Wallet not found for tenant {tenant_id}")
        self.tenant_id = tenant_id


class WalletInactive(VaultError):
    """The tenant's wallet exists but has been deactivated."""

    public_message = "This wallet cannot process payments"

    def __init__(self, tenant_id: str):
        super().__init__(f"Wallet is inactive for tenant {tenant_id}")
        self.tenant_id = tenant_id


class WalletExists(VaultError):
    """A credential record already exists for the tenant."""

    public_message = "Wallet already exists for this tenant"

    def __init__(self, tenant_id: str):
        super().__init__(f"Wallet already exists for tenant {tenant_id}")
        self.tenant_id = tenant_id


class PlatformCredentialsMissing(VaultError):
    """Platform default credentials are not configured."""

    public_message = "Payment processing is not configured"

    def __init__(self, missing: list[str]):
        super().__init__(
            f"Platform credentials missing: {', '.join(missing)}"
        )
        self.missing = missing


class VerificationFailed(VaultError):
    """The gateway rejected a credential set."""

    public_message = "Wallet credentials verification failed"

    def __init__(self, detail: str | None):
        super().__init__(f"Verification failed: {detail}")
        self.detail = detail
