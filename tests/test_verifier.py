"""Tests for verifier selection."""

import dataclasses

import pytest
import respx

from proofgate import (
    AlwaysValidVerifier,
    ConfigError,
    HttpProofVerifier,
    Profile,
    ProofPayload,
    select_verifier,
)

from conftest import make_proof


class TestSelectVerifier:
    def test_production_uses_protocol_service(self, config):
        verifier = select_verifier(config)

        assert isinstance(verifier, HttpProofVerifier)
        assert verifier.client.verify_url == "http://localhost:8081/verify"

    def test_development_always_valid(self, config):
        dev = dataclasses.replace(config, profile=Profile.DEVELOPMENT, always_valid=True)

        assert isinstance(select_verifier(dev), AlwaysValidVerifier)

    def test_development_without_flag_still_verifies(self, config):
        dev = dataclasses.replace(config, profile=Profile.DEVELOPMENT)

        assert isinstance(select_verifier(dev), HttpProofVerifier)


class TestAlwaysValidVerifier:
    def test_refused_in_production(self):
        """Constructing the debug verifier under production fails."""
        with pytest.raises(ConfigError):
            AlwaysValidVerifier(Profile.PRODUCTION)

    @pytest.mark.asyncio
    async def test_accepts_anything(self):
        verifier = AlwaysValidVerifier(Profile.DEVELOPMENT)

        assert await verifier.verify(ProofPayload({"junk": True})) is True


class TestHttpProofVerifier:
    @pytest.mark.asyncio
    async def test_returns_service_verdict(self, config):
        verifier = select_verifier(config)
        with respx.mock:
            respx.post("http://localhost:8081/verify").respond(json={"valid": False})

            assert await verifier.verify(ProofPayload(make_proof())) is False
