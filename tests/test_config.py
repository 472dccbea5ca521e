"""
Tests for vault configuration.

Tests cover:
- Master key shapes (hex, raw string, bytes) and rejection of others
- Environment loading
- Platform credential completeness
- Validation of timeouts and base URL; fixed key derivation rounds
"""
import pytest
from pydantic import ValidationError

from donation_vault.vault.config import (
    KDF_ITERATIONS,
    PlatformCredentials,
    VaultConfig,
    coerce_master_key,
    generate_master_key,
    load_master_key,
)
from donation_vault.vault.exceptions import KeyDerivationError

from conftest import MASTER_KEY_HEX


class TestCoerceMasterKey:
    """Tests for master key normalization."""

    def test_hex_string(self):
        """64 hex characters decode to 32 bytes."""
        assert coerce_master_key(MASTER_KEY_HEX) == bytes.fromhex(MASTER_KEY_HEX)

    def test_raw_string(self):
        """32 characters are used as UTF-8 bytes."""
        raw = "0123456789abcdef0123456789ABCDEF"
        assert coerce_master_key(raw) == raw.encode("utf-8")

    def test_raw_bytes(self):
        """32 raw bytes are accepted unchanged."""
        assert coerce_master_key(b"k" * 32) == b"k" * 32

    @pytest.mark.parametrize("raw", [None, "", b"", "short", "z" * 64, b"k" * 31, "x" * 33])
    def test_rejected(self, raw):
        """Any other shape is a key derivation error."""
        with pytest.raises(KeyDerivationError):
            coerce_master_key(raw)

    def test_generated_key_is_valid(self):
        """Generated keys are 64 hex characters accepted by the loader."""
        key = generate_master_key()
        assert len(key) == 64
        assert len(coerce_master_key(key)) == 32


class TestEnvironment:
    """Tests for loading configuration from the environment."""

    def test_missing_master_key_is_deferred(self, monkeypatch):
        """An unset key loads as None and fails on first use."""
        monkeypatch.delenv("WALLET_ENCRYPTION_KEY", raising=False)
        assert load_master_key() is None
        config = VaultConfig.from_env()
        assert config.master_key is None
        with pytest.raises(KeyDerivationError):
            config.require_master_key()

    def test_malformed_master_key_fails_at_load(self, monkeypatch):
        """A set but malformed key is rejected immediately."""
        monkeypatch.setenv("WALLET_ENCRYPTION_KEY", "not-a-key")
        with pytest.raises(KeyDerivationError):
            load_master_key()

    def test_from_env(self, monkeypatch):
        """All values are read from the environment once."""
        monkeypatch.setenv("WALLET_ENCRYPTION_KEY", MASTER_KEY_HEX)
        monkeypatch.setenv("PAYMONGO_PUBLIC_KEY", "pk_env")
        monkeypatch.setenv("PAYMONGO_SECRET_KEY", "sk_env")
        monkeypatch.delenv("PAYMONGO_WEBHOOK_SECRET", raising=False)
        monkeypatch.setenv("PAYMONGO_API_BASE", "https://gateway.test/v1/")
        monkeypatch.setenv("WALLET_VERIFY_TIMEOUT", "12")
        monkeypatch.delenv("PAYMONGO_TIMEOUT", raising=False)
        config = VaultConfig.from_env()
        assert config.require_master_key() == bytes.fromhex(MASTER_KEY_HEX)
        assert config.platform.public_key == "pk_env"
        assert config.platform.secret_key == "sk_env"
        assert config.platform.webhook_secret is None
        assert config.api_base == "https://gateway.test/v1"
        assert config.verify_timeout == 12.0
        assert config.client_timeout == 15.0

    def test_kdf_iterations_not_configurable(self, monkeypatch):
        """Stored envelopes depend on a fixed round count; the environment
        cannot change it."""
        monkeypatch.setenv("WALLET_KDF_ITERATIONS", "200000")
        config = VaultConfig.from_env()
        assert "kdf_iterations" not in config.model_dump()
        assert KDF_ITERATIONS == 100_000


class TestPlatformCredentials:
    """Tests for platform default completeness."""

    def test_complete(self, platform):
        """Configured public and secret keys leave nothing missing."""
        assert platform.missing() == []

    def test_missing(self):
        """Absent keys are reported by their variable names."""
        creds = PlatformCredentials(public_key="pk_only")
        assert creds.missing() == ["PAYMONGO_SECRET_KEY"]


class TestVaultConfigValidation:
    """Tests for VaultConfig field validation."""

    def test_unknown_field_rejected(self):
        """Unknown settings such as an iteration override are refused."""
        with pytest.raises(ValidationError):
            VaultConfig(kdf_iterations=200_000)

    def test_excessive_verify_timeout_rejected(self):
        """Verification timeout must stay bounded."""
        with pytest.raises(ValidationError):
            VaultConfig(verify_timeout=600)

    def test_relative_base_url_rejected(self):
        """Gateway base URL must be absolute."""
        with pytest.raises(ValidationError):
            VaultConfig(api_base="api.paymongo.com")

    def test_bad_master_key_rejected(self):
        """A provisioned but malformed key is a key derivation error."""
        with pytest.raises(KeyDerivationError):
            VaultConfig(master_key="short")
