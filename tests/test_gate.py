"""Tests for the verification gate."""

import pytest

from proofgate import (
    ProofPayload,
    ProofSession,
    SessionState,
    SessionStore,
    VerificationGate,
)

from conftest import StubVerifier, make_proof


@pytest.fixture
def store():
    store = SessionStore()
    store.add(ProofSession(
        session_id="sess-1",
        application_id="0xApp",
        provider_id="github-username",
        callback_url="https://rp.example.com/receive-proofs",
        state=SessionState.AWAITING_PROOF,
    ))
    return store


class TestVerificationGate:
    """Tests for VerificationGate."""

    @pytest.mark.asyncio
    async def test_valid_proof(self, store):
        verifier = StubVerifier(valid=True)
        gate = VerificationGate(verifier, store)
        payload = ProofPayload(make_proof())

        result = await gate.verify(payload)

        assert result.valid is True
        assert result.payload is payload
        assert result.reason is None
        assert verifier.seen == [payload]
        assert store.get("sess-1").state is SessionState.VERIFIED

    @pytest.mark.asyncio
    async def test_rejected_proof(self, store):
        gate = VerificationGate(StubVerifier(valid=False), store)
        payload = ProofPayload(make_proof())

        result = await gate.verify(payload)

        assert result.valid is False
        assert result.fault is False
        assert result.reason == "Invalid proof data"
        assert store.get("sess-1").state is SessionState.FAILED
        assert store.verified_result(payload.identifier) is None

    @pytest.mark.asyncio
    async def test_verifier_fault(self, store, faulty_verifier):
        """A broken verifier is a fault, distinct from a bad proof."""
        gate = VerificationGate(faulty_verifier, store)

        result = await gate.verify(ProofPayload(make_proof()))

        assert result.valid is False
        assert result.fault is True
        assert "unreachable" in result.reason
        assert store.get("sess-1").state is SessionState.AWAITING_PROOF

    @pytest.mark.asyncio
    async def test_unexpected_verifier_exception(self, store):
        gate = VerificationGate(StubVerifier(error=RuntimeError("kaput")), store)

        result = await gate.verify(ProofPayload(make_proof()))

        assert result.fault is True
        assert "kaput" in result.reason
        assert store.get("sess-1").state is SessionState.AWAITING_PROOF

    @pytest.mark.asyncio
    async def test_verify_without_recording(self, store):
        """record=False leaves the session and the ledger alone."""
        gate = VerificationGate(StubVerifier(valid=False), store)

        result = await gate.verify(ProofPayload(make_proof()), record=False)

        assert result.valid is False
        assert store.get("sess-1").state is SessionState.AWAITING_PROOF
        assert store.result_for("sess-1") is None

    @pytest.mark.parametrize(
        "mutate,reason",
        [
            (lambda p: p.pop("claimData"), "claimData"),
            (lambda p: p["claimData"].pop("provider"), "provider"),
            (lambda p: p.update(signatures=[]), "signatures"),
        ],
    )
    @pytest.mark.asyncio
    async def test_structural_rejection(self, store, mutate, reason):
        """Malformed proofs never reach the verifier."""
        verifier = StubVerifier(valid=True)
        gate = VerificationGate(verifier, store)
        proof = make_proof()
        mutate(proof)

        result = await gate.verify(ProofPayload(proof))

        assert result.valid is False
        assert reason in result.reason
        assert verifier.seen == []
        assert store.get("sess-1").state is SessionState.AWAITING_PROOF

    @pytest.mark.asyncio
    async def test_unknown_session(self, store):
        """Proofs for sessions we did not issue are rejected."""
        verifier = StubVerifier(valid=True)
        gate = VerificationGate(verifier, store)

        result = await gate.verify(ProofPayload(make_proof(session_id="forged")))

        assert result.valid is False
        assert "session" in result.reason
        assert verifier.seen == []

    @pytest.mark.asyncio
    async def test_unknown_session_allowed_when_not_required(self, store):
        gate = VerificationGate(StubVerifier(valid=True), store, require_known_session=False)

        result = await gate.verify(ProofPayload(make_proof(session_id="elsewhere")))

        assert result.valid is True
