"""
Data models for the proof handshake.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SessionState(str, Enum):
    """Lifecycle of a ProofSession."""
    CREATED = "Created"
    AWAITING_PROOF = "AwaitingProof"
    VERIFIED = "Verified"
    FAILED = "Failed"


@dataclass
class ProofSession:
    """
    A proof request issued to the proof-issuing application.

    Attributes:
        session_id: Opaque session token from the proof protocol
        application_id: Application the session belongs to
        provider_id: Provider whose claim is requested
        callback_url: Where the proof-issuing app posts the proof
        request_url: Shareable URL, rendered as a QR code
        created_at: Creation time (Unix epoch seconds)
        state: Current state
    """
    session_id: str
    application_id: str
    provider_id: str
    callback_url: str
    request_url: str = ""
    created_at: float = 0.0
    state: SessionState = SessionState.CREATED

    def template(self) -> dict[str, Any]:
        """Session parameters handed to the proof-issuing application."""
        return {
            "sessionId": self.session_id,
            "applicationId": self.application_id,
            "providerId": self.provider_id,
            "callbackUrl": self.callback_url,
            "timestamp": str(int(self.created_at * 1000)),
        }

    def to_request_config(self) -> str:
        """Serialized request config for the browser. Never holds the secret."""
        config = self.template()
        config["requestUrl"] = self.request_url
        return json.dumps(config, separators=(",", ":"))


def _load_json_object(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value:
        try:
            decoded = json.loads(value)
        except ValueError:
            return {}
        if isinstance(decoded, dict):
            return decoded
    return {}


@dataclass(frozen=True)
class ProofPayload:
    """
    A proof pushed by the proof-issuing application.

    Attributes:
        claim_data: Decoded proof record (claim, signatures, parameters)
        raw_encoding: The body as it arrived on the wire
    """
    claim_data: dict[str, Any]
    raw_encoding: str = ""

    @property
    def claim(self) -> dict[str, Any]:
        value = self.claim_data.get("claimData")
        return value if isinstance(value, dict) else {}

    @property
    def context(self) -> dict[str, Any]:
        """The claim context; the protocol ships it as a JSON string."""
        return _load_json_object(self.claim.get("context"))

    @property
    def provider(self) -> str | None:
        return self.claim.get("provider")

    @property
    def signatures(self) -> list[Any]:
        value = self.claim_data.get("signatures")
        return value if isinstance(value, list) else []

    @property
    def session_id(self) -> str | None:
        for candidate in (
            self.context.get("reclaimSessionId"),
            self.claim_data.get("sessionId"),
        ):
            if candidate:
                return str(candidate)
        return None

    @property
    def identifier(self) -> str:
        """Stable proof identifier, falling back to a digest of the record."""
        for candidate in (self.claim_data.get("identifier"), self.claim.get("identifier")):
            if candidate:
                return str(candidate)
        canonical = json.dumps(self.claim_data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    @property
    def parameters(self) -> dict[str, str]:
        """
        Claim parameters extracted from the attested source.

        Top-level `extractedParameterValues` wins; otherwise the
        `extractedParameters` of the claim context are used.
        """
        params = self.claim_data.get("extractedParameterValues")
        if not isinstance(params, dict):
            params = self.context.get("extractedParameters")
        if not isinstance(params, dict):
            return {}
        return {str(k): v if isinstance(v, str) else json.dumps(v) for k, v in params.items()}


@dataclass(frozen=True)
class VerificationResult:
    """
    Verdict of the verification gate.

    Attributes:
        valid: Whether the proof was accepted
        payload: The proof the verdict is about
        reason: Why the proof was rejected
        fault: True if the verifier itself failed, not the proof
    """
    valid: bool
    payload: ProofPayload
    reason: str | None = None
    fault: bool = False


@dataclass(frozen=True)
class UserInfo:
    """
    Employee details entered after the proof step.

    Attributes:
        employee_id: Employee number
        department: Department name
        name: Full name
    """
    employee_id: str
    department: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UserInfo":
        def text(key: str) -> str:
            value = data.get(key)
            return value.strip() if isinstance(value, str) else ""

        return cls(
            employee_id=text("employeeId"),
            department=text("department"),
            name=text("name"),
        )


@dataclass(frozen=True)
class RegistrationRecord:
    """
    Registration data bound to a verified proof.

    Attributes:
        employee_id: Employee number
        department: Department name
        name: Full name
        extracted_claim_fields: The proof's claim parameters
        proof_identifier: Identifier of the verified proof
        submitted_at: Submission time (UTC)
    """
    employee_id: str
    department: str
    name: str
    extracted_claim_fields: dict[str, str] = field(default_factory=dict)
    proof_identifier: str = ""
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def claim_field(self, key: str) -> str | None:
        return self.extracted_claim_fields.get(key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "department": self.department,
            "name": self.name,
            "extractedClaimFields": dict(self.extracted_claim_fields),
            "proofIdentifier": self.proof_identifier,
            "submittedAt": self.submitted_at.isoformat(),
        }
