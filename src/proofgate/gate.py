"""
The verification gate: the only path by which a proof becomes trusted.
"""

from __future__ import annotations

import logging

from .errors import ProofVerifierError
from .models import ProofPayload, VerificationResult
from .sessions import SessionStore
from .verifier import ProofVerifier

log = logging.getLogger(__name__)


def structural_problem(payload: ProofPayload) -> str | None:
    """
    Check the shape of a proof before spending a verifier call on it.

    Returns:
        A description of the first problem found, or None
    """
    claim = payload.claim_data.get("claimData")
    if not isinstance(claim, dict):
        return "Proof has no claimData"
    if not payload.provider:
        return "Proof claim names no provider"
    if not payload.signatures:
        return "Proof carries no signatures"
    return None


class VerificationGate:
    """
    Validates proofs.

    Args:
        verifier: Proof verification capability
        store: Issued sessions and verified proofs
        require_known_session: Reject proofs whose session this process did
            not issue, or which has expired
    """

    def __init__(
        self,
        verifier: ProofVerifier,
        store: SessionStore,
        require_known_session: bool = True,
    ):
        self.verifier = verifier
        self.store = store
        self.require_known_session = require_known_session

    async def verify(self, payload: ProofPayload, record: bool = True) -> VerificationResult:
        """
        Verify a proof.

        A rejected proof yields valid=False with a reason; a verifier that
        could not decide yields valid=False with fault=True.

        Only a verdict from the verifier itself is recorded against the
        session. Pre-check rejections and faults leave the session as it was.

        Args:
            payload: The proof
            record: Record the verdict against the session and the ledger
        """
        result, decided = await self._evaluate(payload)
        if record and decided and not result.fault:
            self.store.record(result)
        if result.valid:
            log.info("Proof %s verified", payload.identifier)
        elif result.fault:
            log.error("Verifier fault on proof %s: %s", payload.identifier, result.reason)
        else:
            log.warning("Proof %s rejected: %s", payload.identifier, result.reason)
        return result

    async def _evaluate(self, payload: ProofPayload) -> tuple[VerificationResult, bool]:
        """Returns the verdict and whether the verifier was consulted."""
        problem = structural_problem(payload)
        if problem:
            return VerificationResult(valid=False, payload=payload, reason=problem), False

        if self.require_known_session and self.store.get(payload.session_id) is None:
            return VerificationResult(
                valid=False,
                payload=payload,
                reason="Proof does not belong to a known, unexpired session",
            ), False

        try:
            valid = await self.verifier.verify(payload)
        except ProofVerifierError as e:
            return VerificationResult(valid=False, payload=payload, reason=str(e), fault=True), True
        except Exception as e:
            log.exception("Unexpected verifier error")
            return VerificationResult(
                valid=False,
                payload=payload,
                reason=f"Verification failed: {e}",
                fault=True,
            ), True

        if not valid:
            return VerificationResult(valid=False, payload=payload, reason="Invalid proof data"), True
        return VerificationResult(valid=True, payload=payload), True
