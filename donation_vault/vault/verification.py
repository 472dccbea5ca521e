"""
Gateway Verification — Probe a credential set against the payment gateway.

A single lightweight, read-only request authenticated with
``Basic base64(secret_key:)`` decides whether the credentials work. The
outcome is returned, never raised: a rejected key is a business result.
"""
import asyncio
import base64
import logging
from typing import Any, Optional

import aiohttp
import orjson
from pydantic import BaseModel

from .config import DEFAULT_API_BASE
from .exceptions import VerificationFailed

logger = logging.getLogger("donation_vault.vault")

AUTH_FAILED = "authentication failed"


def basic_authorization(secret_key: str) -> str:
    """Authorization header value for the gateway: ``Basic base64(secret_key:)``.

    Secret keys are opaque and may contain ``:``, which
    ``aiohttp.BasicAuth`` rejects as a login.
    """
    token = base64.b64encode(f"{secret_key}:".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


class VerificationResult(BaseModel):
    valid: bool
    error: Optional[str] = None

    def raise_for_failure(self) -> None:
        """Raise VerificationFailed if the gateway rejected the credentials."""
        if not self.valid:
            raise VerificationFailed(self.error)


def _gateway_detail(payload: Any) -> Optional[str]:
    """Extract ``errors[0].detail`` from a gateway error body."""
    if not isinstance(payload, dict):
        return None
    errors = payload.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("detail")
    return None


class GatewayVerifier:
    """Verify gateway credentials with one bounded HTTP call.

    Args:
        base_url: Gateway API base URL.
        timeout: Total timeout for the probe, in seconds.
        probe_path: Read-only endpoint used as the probe.
        session: Optional shared ``aiohttp.ClientSession``; a short-lived
            session is opened per call otherwise.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 10.0,
        probe_path: str = "/payment_methods",
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._probe_path = probe_path
        self._session = session

    async def _probe(
        self, session: aiohttp.ClientSession, secret_key: str
    ) -> VerificationResult:
        async with session.get(
            f"{self._base_url}{self._probe_path}",
            params={"limit": "1"},
            headers={
                "Accept": "application/json",
                "Authorization": basic_authorization(secret_key),
            },
            timeout=self._timeout,
        ) as resp:
            if 200 <= resp.status < 300:
                return VerificationResult(valid=True)
            if resp.status in (401, 403):
                return VerificationResult(valid=False, error=AUTH_FAILED)
            try:
                payload = orjson.loads(await resp.read())
            except orjson.JSONDecodeError:
                payload = None
            detail = _gateway_detail(payload) or f"HTTP {resp.status}"
            return VerificationResult(valid=False, error=detail)

    async def verify(self, public_key: str, secret_key: str) -> VerificationResult:
        """Check a public/secret key pair against the gateway.

        Returns:
            ``valid=True`` on 2xx; otherwise ``valid=False`` with the gateway
            detail or the transport error message.
        """
        if not public_key or not secret_key:
            return VerificationResult(
                valid=False, error="Public key and secret key are required",
            )
        try:
            if self._session is not None:
                result = await self._probe(self._session, secret_key)
            else:
                async with aiohttp.ClientSession() as session:
                    result = await self._probe(session, secret_key)
        except asyncio.TimeoutError:
            result = VerificationResult(
                valid=False, error="Gateway verification timed out",
            )
        except aiohttp.ClientError as err:
            result = VerificationResult(
                valid=False, error=str(err) or "Failed to verify credentials",
            )
        logger.info(
            "Gateway verification finished: valid=%s", result.valid,
        )
        return result
