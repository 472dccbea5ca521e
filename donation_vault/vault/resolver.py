"""
VaultResolver — Turn a tenant id into ready-to-use gateway credentials.

Provides:
- ``resolve_tenant(tenant_id)`` — decrypt an active tenant wallet
- ``resolve_platform_default()`` — operator configured credentials
- ``resolve_webhook_secret(tenant_id)`` — lookup that never raises

Security Note:
    Never log plaintext or ciphertext values. Only log tenant ids and
    outcomes. Decryption runs in a worker thread because key derivation is
    deliberately slow.
"""
import asyncio
import logging
from typing import Optional

import aiohttp
from pydantic import BaseModel, SecretStr

from .config import VaultConfig
from .exceptions import (
    CredentialsCorrupted,
    PlatformCredentialsMissing,
    WalletInactive,
    WalletNotFound,
)
from .record import DecryptedKeys, WalletRecord, decrypted_view
from .store import WalletStore
from .verification import basic_authorization

logger = logging.getLogger("donation_vault.vault")


class ClientConfig(BaseModel):
    """Gateway credentials ready to build a client."""

    public_key: str
    secret_key: SecretStr
    webhook_secret: Optional[SecretStr] = None

    def authorization(self) -> str:
        """HTTP Basic header value in the gateway's ``secret_key:`` form."""
        return basic_authorization(self.secret_key.get_secret_value())

    def open_session(
        self, base_url: str, timeout: float = 15.0
    ) -> aiohttp.ClientSession:
        """Open a gateway client session. The caller owns closing it."""
        return aiohttp.ClientSession(
            base_url=base_url.rstrip("/") + "/",
            headers={
                "Authorization": self.authorization(),
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=aiohttp.ClientTimeout(total=timeout),
        )

    @classmethod
    def from_keys(cls, keys: DecryptedKeys) -> "ClientConfig":
        return cls(
            public_key=keys.public_key,
            secret_key=keys.secret_key,
            webhook_secret=keys.webhook_secret,
        )


class VaultResolver:
    """Load, validate and decrypt wallet records from a keyed store.

    Args:
        config: Vault configuration (master key, platform credentials).
        store: Wallet store keyed on tenant id.
    """

    def __init__(self, config: VaultConfig, store: WalletStore):
        self._config = config
        self._store = store

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def store(self) -> WalletStore:
        return self._store

    # ------------------------------------------------------------------
    # Decryption helpers
    # ------------------------------------------------------------------

    async def decrypt(self, record: WalletRecord) -> DecryptedKeys:
        """Decrypt a record off the event loop.

        Raises:
            KeyDerivationError: If no master key is configured.
            CredentialsCorrupted: If a field fails to decrypt.
        """
        master_key = self._config.require_master_key()
        return await asyncio.to_thread(decrypted_view, record, master_key)

    async def load_active(self, tenant_id: str) -> WalletRecord:
        """Fetch a tenant's record, failing unless it exists and is active."""
        if not tenant_id:
            raise ValueError("tenant_id is required to resolve a wallet")
        record = await self._store.get(tenant_id)
        if record is None:
            raise WalletNotFound(tenant_id)
        if not record.is_active:
            raise WalletInactive(tenant_id)
        return record

    def open_session(self, client: ClientConfig) -> aiohttp.ClientSession:
        """Gateway session for resolved credentials, using the configured
        base URL and client timeout."""
        return client.open_session(
            self._config.api_base, timeout=self._config.client_timeout,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve_tenant(self, tenant_id: str) -> ClientConfig:
        """Return the client configuration for a tenant's wallet.

        No fallback happens here.

        Raises:
            WalletNotFound: If the tenant has no wallet.
            WalletInactive: If the wallet is deactivated.
            CredentialsCorrupted: If the stored keys cannot be decrypted.
        """
        record = await self.load_active(tenant_id)
        keys = await self.decrypt(record)
        logger.debug("Resolved wallet for tenant=%s", tenant_id)
        return ClientConfig.from_keys(keys)

    def resolve_platform_default(self) -> ClientConfig:
        """Return the platform default credentials from configuration.

        Raises:
            PlatformCredentialsMissing: If public or secret key is unset.
        """
        platform = self._config.platform
        missing = platform.missing()
        if missing:
            logger.error("Platform credentials missing: %s", missing)
            raise PlatformCredentialsMissing(missing)
        return ClientConfig(
            public_key=platform.public_key,
            secret_key=platform.secret_key,
            webhook_secret=platform.webhook_secret,
        )

    async def resolve_webhook_secret(self, tenant_id: Optional[str]) -> Optional[str]:
        """Return the webhook secret for a tenant, or the platform one for None.

        Missing wallets, inactive wallets, unset or undecryptable secrets all
        resolve to None.
        """
        if not tenant_id:
            return self._config.platform.webhook_secret or None
        try:
            record = await self._store.get(tenant_id)
            if record is None or not record.is_active or not record.webhook_secret:
                return None
            keys = await self.decrypt(record)
        except CredentialsCorrupted:
            return None
        except Exception as err:  # store and configuration faults included
            logger.error(
                "Failed to resolve webhook secret for tenant=%s: %s",
                tenant_id, type(err).__name__,
            )
            return None
        return keys.webhook_secret
