"""
Pluggable proof verifiers.

The gate never inspects signatures itself. It asks a ProofVerifier, which is
either the protocol service or, in development only, a verifier that accepts
everything.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .client import ProtocolClient
from .config import Profile, SessionConfig
from .errors import ConfigError
from .models import ProofPayload

log = logging.getLogger(__name__)


class ProofVerifier(Protocol):
    """Capability that decides whether a proof is authentic."""

    async def verify(self, payload: ProofPayload) -> bool:
        """
        Returns:
            True if the proof is authentic

        Raises:
            ProofVerifierError: If no verdict could be reached
        """
        ...


class HttpProofVerifier:
    """
    Verifier backed by the proof protocol service.

    Args:
        client: Protocol service client
    """

    def __init__(self, client: ProtocolClient):
        self.client = client

    async def verify(self, payload: ProofPayload) -> bool:
        valid, reason = await self.client.verify_proof(payload)
        if not valid:
            log.warning("Protocol service rejected proof %s: %s", payload.identifier, reason)
        return valid


class AlwaysValidVerifier:
    """
    Debug verifier that accepts every proof.

    Only constructible under the development profile, so a production
    configuration can never select it.
    """

    def __init__(self, profile: Profile):
        if profile is not Profile.DEVELOPMENT:
            raise ConfigError(
                "AlwaysValidVerifier requires the development profile",
                field="PROOFGATE_PROFILE",
            )
        self.profile = profile

    async def verify(self, payload: ProofPayload) -> bool:
        log.warning("Skipping verification of proof %s (development profile)", payload.identifier)
        return True


def select_verifier(config: SessionConfig) -> ProofVerifier:
    """Pick the verifier for a configuration."""
    if config.always_valid:
        return AlwaysValidVerifier(config.profile)
    return HttpProofVerifier(ProtocolClient.from_config(config))
