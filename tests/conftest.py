"""Shared fixtures."""

import json

import pytest

from proofgate import SessionConfig
from proofgate.errors import ProofVerifierError

ENV = {
    "RECLAIM_APP_ID": "0xApp",
    "RECLAIM_APP_SECRET": "s3cr3t-value",
    "RECLAIM_PROVIDER_ID": "github-username",
    "PUBLIC_BASE_URL": "https://rp.example.com",
    "PROOF_API_URL": "http://localhost:8081",
}


def make_proof(
    session_id="sess-1",
    params=None,
    identifier="0xproof1",
    signatures=("0xsig",),
):
    """Build a proof shaped like the protocol's callback payload."""
    if params is None:
        params = {"username": "octocat", "contributions": "42"}
    context = {
        "contextAddress": "0x0",
        "contextMessage": "",
        "extractedParameters": params,
        "reclaimSessionId": session_id,
    }
    return {
        "identifier": identifier,
        "claimData": {
            "provider": "http",
            "parameters": json.dumps({"url": "https://github.com/settings/profile"}),
            "owner": "0xowner",
            "timestampS": 1700000000,
            "context": json.dumps(context),
            "identifier": identifier,
            "epoch": 1,
        },
        "signatures": list(signatures),
        "witnesses": [{"id": "0xwitness", "url": "wss://witness.example"}],
    }


class StubVerifier:
    """Verifier with a fixed verdict that records what it saw."""

    def __init__(self, valid=True, error=None):
        self.valid = valid
        self.error = error
        self.seen = []

    async def verify(self, payload):
        self.seen.append(payload)
        if self.error is not None:
            raise self.error
        return self.valid


class FakeProtocol:
    """Protocol client issuing sequential session ids."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def init_session(self, provider_id, callback_url, timestamp):
        self.calls.append((provider_id, callback_url, timestamp))
        if self.error is not None:
            raise self.error
        return f"sess-{len(self.calls)}"


class ListSink:
    def __init__(self):
        self.records = []

    def save(self, record):
        self.records.append(record)


@pytest.fixture
def env():
    return dict(ENV)


@pytest.fixture
def config():
    return SessionConfig(
        application_id="0xApp",
        application_secret="s3cr3t-value",
        provider_id="github-username",
        public_base_url="https://rp.example.com",
        proof_api_url="http://localhost:8081",
    )


@pytest.fixture
def faulty_verifier():
    return StubVerifier(error=ProofVerifierError("Verifier unreachable"))
