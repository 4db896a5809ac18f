"""
Client-side flow: proof first, registration second.

The coordinator mirrors what the browser does against the backend and keeps
the two-step state machine honest: registration can only be submitted once
the backend has verified a proof.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx

log = logging.getLogger(__name__)


class ClientState(str, Enum):
    IDLE = "Idle"
    AWAITING_SCAN = "AwaitingScan"
    PROOF_VERIFIED = "ProofVerified"
    REGISTRATION_SUBMITTED = "RegistrationSubmitted"
    FAILED = "Failed"


class InvalidTransition(Exception):
    """An action was attempted in a state that does not allow it."""


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if not isinstance(data, dict):
        return fallback
    return data.get("error") or data.get("details") or fallback


class ClientStateCoordinator:
    """
    Drives the proof and registration steps against the backend.

    Args:
        client: HTTP client whose base_url points at the backend

    Attributes:
        state: Current ClientState
        status_message: Last message for the status area; server errors
            are copied verbatim
        session_id: Current proof session
        request_url: URL to render as a QR code while awaiting the scan
        proof_data: Verified proof, once held
        registration: Registration echoed by the backend

    Example:
        >>> async with httpx.AsyncClient(base_url="http://localhost:3000") as http:
        ...     flow = ClientStateCoordinator(http)
        ...     url = await flow.start()
        ...     if await flow.await_proof(timeout_s=120):
        ...         await flow.submit_registration("12345", "R&D", "Jane Doe")
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self.state = ClientState.IDLE
        self.status_message = ""
        self.session_id: str | None = None
        self.request_url: str | None = None
        self.proof_data: dict[str, Any] | None = None
        self.registration: dict[str, Any] | None = None

    def _require(self, *states: ClientState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"Cannot do this in state {self.state.value} (needs {allowed})")

    def _fail(self, message: str) -> None:
        log.warning("Flow failed in state %s: %s", self.state.value, message)
        self.state = ClientState.FAILED
        self.status_message = message
        self.request_url = None

    def retry(self) -> ClientState:
        """
        Leave the failure state.

        Returns to ProofVerified if a verified proof is still held, so only
        the registration has to be redone; otherwise back to Idle.
        """
        self._require(ClientState.FAILED)
        self.state = ClientState.PROOF_VERIFIED if self.proof_data else ClientState.IDLE
        self.status_message = ""
        return self.state

    async def start(self) -> str | None:
        """
        Open a proof session. Only ever called on explicit user action.

        Returns:
            The session URL to render, or None on failure
        """
        self._require(ClientState.IDLE, ClientState.FAILED)
        self.proof_data = None
        self.registration = None
        try:
            response = await self.client.get("/reclaim/generate-config")
        except httpx.HTTPError as e:
            self._fail(f"Could not reach backend: {e}")
            return None

        if response.status_code != 200:
            self._fail(_error_message(response, "Failed to generate request config"))
            return None

        try:
            config = json.loads(response.json()["reclaimProofRequestConfig"])
            self.session_id = config["sessionId"]
            self.request_url = config["requestUrl"]
        except (ValueError, KeyError, TypeError):
            self._fail("Backend returned an unreadable request config")
            return None

        self.state = ClientState.AWAITING_SCAN
        self.status_message = "Scan the QR code to start the proof"
        return self.request_url

    async def await_proof(
        self,
        timeout_s: float = 300.0,
        poll_interval_s: float = 2.0,
        cancel: asyncio.Event | None = None,
    ) -> bool:
        """
        Wait for the proof-issuing app's callback to be verified.

        Args:
            timeout_s: Give up after this many seconds
            poll_interval_s: Delay between status polls
            cancel: Set to abandon the wait

        Returns:
            True once the proof is verified
        """
        self._require(ClientState.AWAITING_SCAN)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_s
        cancel = cancel or asyncio.Event()

        while True:
            if cancel.is_set():
                self._fail("Proof request cancelled")
                return False
            try:
                response = await self.client.get(f"/reclaim/sessions/{self.session_id}")
            except httpx.HTTPError as e:
                self._fail(f"Could not reach backend: {e}")
                return False

            if response.status_code != 200:
                self._fail(_error_message(response, "Proof session lost"))
                return False

            data = response.json()
            if data.get("state") == "Verified":
                self.proof_data = data.get("proofData")
                self.state = ClientState.PROOF_VERIFIED
                self.request_url = None
                self.status_message = "Proof verified. Enter your employee details."
                return True
            if data.get("state") == "Failed":
                self._fail(data.get("reason") or "Proof verification failed")
                return False

            remaining = deadline - loop.time()
            if remaining <= 0:
                self._fail("Timed out waiting for proof")
                return False
            try:
                await asyncio.wait_for(cancel.wait(), timeout=min(poll_interval_s, remaining))
            except asyncio.TimeoutError:
                pass

    async def deliver_proof(self, proof: Any) -> bool:
        """
        Forward a proof the browser received itself to the backend.

        Accepts a proof object, a list of proofs or a JSON string.

        Returns:
            True if the backend verified it
        """
        self._require(ClientState.AWAITING_SCAN)
        if isinstance(proof, str):
            try:
                proof = json.loads(proof)
            except ValueError:
                self._fail("Received proof is malformed")
                return False
        if isinstance(proof, list):
            proof = proof[0] if proof else None
        if not isinstance(proof, dict):
            self._fail("Received proof has an unknown format")
            return False

        self.status_message = "Proof received. Verifying with backend..."
        try:
            response = await self.client.post(
                "/receive-proofs",
                content=quote(json.dumps(proof), safe=""),
                headers={"Content-Type": "text/plain"},
            )
        except httpx.HTTPError as e:
            self._fail(f"Could not reach backend: {e}")
            return False

        if response.status_code == 200 and response.json().get("status") == "success":
            self.proof_data = proof
            self.state = ClientState.PROOF_VERIFIED
            self.request_url = None
            self.status_message = "Proof verified. Enter your employee details."
            return True
        self._fail(_error_message(response, "Verification failed"))
        return False

    async def submit_registration(self, employee_id: str, department: str, name: str) -> bool:
        """
        Submit registration data for the verified proof.

        Empty fields are refused locally without leaving ProofVerified.

        Raises:
            InvalidTransition: If no proof has been verified yet
        """
        self._require(ClientState.PROOF_VERIFIED)
        if not (employee_id and department and name):
            self.status_message = "All employee fields are required"
            return False

        self.status_message = "Submitting employee details..."
        try:
            response = await self.client.post(
                "/submit-user-info",
                json={
                    "userInfo": {
                        "employeeId": employee_id,
                        "department": department,
                        "name": name,
                    },
                    "proof": self.proof_data,
                },
            )
        except httpx.HTTPError as e:
            self._fail(f"Could not reach backend: {e}")
            return False

        if response.status_code == 200 and response.json().get("status") == "success":
            data = response.json()
            self.registration = data.get("registration")
            self.state = ClientState.REGISTRATION_SUBMITTED
            self.status_message = data.get("message") or "Employee details submitted"
            return True
        self._fail(_error_message(response, "Failed to submit employee details"))
        return False
