"""
Tests for GatewayVerifier against a local fake gateway.

Tests cover:
- Successful verification and the Basic auth header sent
- 401/403 mapping to "authentication failed"
- Other error statuses carrying gateway detail
- Transport failures and timeouts
- Missing keys short-circuit without a network call
- Secret keys containing a colon
"""
import base64

import pytest
import aiohttp
from aiohttp import test_utils

from donation_vault.vault.exceptions import VerificationFailed
from donation_vault.vault.verification import GatewayVerifier, VerificationResult

from conftest import gateway_app


def base_url(server: test_utils.TestServer) -> str:
    return str(server.make_url("/v1"))


class TestVerificationResult:
    """Tests for the result model."""

    def test_valid_does_not_raise(self):
        """Valid results pass raise_for_failure."""
        VerificationResult(valid=True).raise_for_failure()

    def test_invalid_raises_with_detail(self):
        """Invalid results raise VerificationFailed with the detail."""
        with pytest.raises(VerificationFailed) as exc:
            VerificationResult(valid=False, error="authentication failed").raise_for_failure()
        assert exc.value.detail == "authentication failed"


class TestGatewayVerifier:
    """Tests for the gateway probe."""

    @pytest.mark.asyncio
    async def test_valid(self):
        """2xx means valid, one call with Basic secret_key: auth."""
        app, calls = gateway_app(200)
        async with test_utils.TestServer(app) as server:
            result = await GatewayVerifier(base_url(server)).verify("pk_1", "sk_test_1")
        assert result.valid is True
        assert result.error is None
        assert len(calls) == 1
        request = calls[0]
        expected = base64.b64encode(b"sk_test_1:").decode()
        assert request.headers["Authorization"] == f"Basic {expected}"
        assert request.query["limit"] == "1"

    @pytest.mark.asyncio
    async def test_secret_key_with_colon(self):
        """A colon in the secret key is sent verbatim, not rejected."""
        app, calls = gateway_app(200)
        async with test_utils.TestServer(app) as server:
            result = await GatewayVerifier(base_url(server)).verify("pk_1", "sk_live:abc")
        assert result.valid is True
        expected = base64.b64encode(b"sk_live:abc:").decode()
        assert calls[0].headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_auth_failure(self, status):
        """401 and 403 are reported as authentication failures."""
        app, calls = gateway_app(status, {"errors": [{"detail": "bad key"}]})
        async with test_utils.TestServer(app) as server:
            result = await GatewayVerifier(base_url(server)).verify("pk_1", "sk_bad")
        assert result.valid is False
        assert result.error == "authentication failed"

    @pytest.mark.asyncio
    async def test_gateway_detail(self):
        """Other error statuses carry the gateway's detail."""
        app, calls = gateway_app(422, {"errors": [{"code": "x", "detail": "limit is invalid"}]})
        async with test_utils.TestServer(app) as server:
            result = await GatewayVerifier(base_url(server)).verify("pk_1", "sk_1")
        assert result.valid is False
        assert result.error == "limit is invalid"

    @pytest.mark.asyncio
    async def test_status_without_detail(self):
        """Error bodies without detail fall back to the status."""
        app, calls = gateway_app(500, {"message": "oops"})
        async with test_utils.TestServer(app) as server:
            result = await GatewayVerifier(base_url(server)).verify("pk_1", "sk_1")
        assert result.valid is False
        assert result.error == "HTTP 500"

    @pytest.mark.asyncio
    async def test_timeout(self):
        """A slow gateway is cut off by the bounded timeout."""
        app, calls = gateway_app(200, delay=1.0)
        async with test_utils.TestServer(app) as server:
            verifier = GatewayVerifier(base_url(server), timeout=0.2)
            result = await verifier.verify("pk_1", "sk_1")
        assert result.valid is False
        assert result.error == "Gateway verification timed out"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Transport failures are reported, not raised."""
        app, calls = gateway_app(200)
        async with test_utils.TestServer(app) as server:
            url = base_url(server)
        result = await GatewayVerifier(url, timeout=2).verify("pk_1", "sk_1")
        assert result.valid is False
        assert result.error

    @pytest.mark.asyncio
    async def test_missing_keys(self):
        """Missing keys are invalid without any request."""
        result = await GatewayVerifier("http://127.0.0.1:9").verify("", "sk_1")
        assert result.valid is False
        assert result.error == "Public key and secret key are required"

    @pytest.mark.asyncio
    async def test_shared_session(self):
        """A supplied session is used and left open."""
        app, calls = gateway_app(200)
        async with test_utils.TestServer(app) as server:
            async with aiohttp.ClientSession() as session:
                verifier = GatewayVerifier(base_url(server), session=session)
                result = await verifier.verify("pk_1", "sk_1")
                assert not session.closed
        assert result.valid is True
