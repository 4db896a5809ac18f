"""
Client for the proof protocol service.

The service owns session registration and the cryptographic verification
of proofs; this module only speaks its HTTP API.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import SessionConfig
from .errors import ProofVerifierError, SessionError
from .models import ProofPayload

log = logging.getLogger(__name__)

SECRET_HEADER = "X-Application-Secret"


class ProtocolClient:
    """
    Client for the proof protocol service.

    Args:
        api_url: Base URL of the protocol service
        application_id: Application id registered with the protocol
        application_secret: Application secret. Sent server-to-server only.
        timeout_s: Request timeout in seconds. Default: 5.0

    Example:
        >>> client = ProtocolClient.from_config(config)
        >>> session_id = await client.init_session(config.provider_id, config.callback_url, ts)
        >>> valid, reason = await client.verify_proof(payload)
    """

    def __init__(
        self,
        api_url: str,
        application_id: str,
        application_secret: str,
        timeout_s: float = 5.0,
    ):
        self.api_url = api_url.rstrip("/")
        self.application_id = application_id
        self._application_secret = application_secret
        self.timeout_s = timeout_s

    @classmethod
    def from_config(cls, config: SessionConfig) -> "ProtocolClient":
        return cls(
            api_url=config.proof_api_url,
            application_id=config.application_id,
            application_secret=config.application_secret,
            timeout_s=config.verifier_timeout_s,
        )

    @property
    def sessions_url(self) -> str:
        return f"{self.api_url}/sessions"

    @property
    def verify_url(self) -> str:
        return f"{self.api_url}/verify"

    async def init_session(
        self,
        provider_id: str,
        callback_url: str,
        timestamp: str,
    ) -> str:
        """
        Register a new proof session with the protocol service.

        Args:
            provider_id: Provider whose claim is requested
            callback_url: Where proofs for this session must be posted
            timestamp: Request timestamp (milliseconds since epoch)

        Returns:
            The session id assigned by the service

        Raises:
            SessionError: On network errors or a refused registration
        """
        payload = {
            "applicationId": self.application_id,
            "providerId": provider_id,
            "callbackUrl": callback_url,
            "timestamp": timestamp,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(
                    self.sessions_url,
                    json=payload,
                    headers={SECRET_HEADER: self._application_secret},
                )
        except httpx.HTTPError as e:
            raise SessionError.init_failed(f"{type(e).__name__}: {e}") from e

        return self._parse_session_response(response)

    async def verify_proof(self, payload: ProofPayload) -> tuple[bool, str | None]:
        """
        Ask the protocol service to verify a proof.

        Returns:
            (valid, reason) where reason explains a rejection

        Raises:
            ProofVerifierError: On network errors or a broken service response
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(self.verify_url, json=payload.claim_data)
        except httpx.HTTPError as e:
            raise ProofVerifierError(f"Verifier unreachable: {type(e).__name__}: {e}") from e

        return self._parse_verify_response(response)

    def _parse_session_response(self, response: httpx.Response) -> str:
        """Extract the session id from a registration response."""
        data = _json_or_none(response)
        if response.status_code >= 400:
            detail = (data or {}).get("error") or f"HTTP {response.status_code}"
            raise SessionError.init_failed(str(detail))
        session_id = (data or {}).get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise SessionError.init_failed("protocol service returned no sessionId")
        log.debug("Registered proof session %s", session_id)
        return session_id

    def _parse_verify_response(self, response: httpx.Response) -> tuple[bool, str | None]:
        """Parse verifier response into (valid, reason)."""
        data = _json_or_none(response)
        if data is None:
            raise ProofVerifierError(f"Invalid verifier response: {response.status_code}")

        if response.status_code >= 500:
            raise ProofVerifierError(data.get("error") or "Verifier service error")

        valid = data.get("valid") is True
        reason = data.get("reason") or data.get("error")
        if not valid and not reason:
            reason = "Invalid proof data"
        return valid, reason


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None
