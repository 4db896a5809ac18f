"""
Proof session issuance and the short-lived session store.

The store correlates the out-of-band proof callback with a session this
process issued, and remembers which proofs passed verification so that
registration can be bound to them.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote

from .client import ProtocolClient
from .config import SessionConfig
from .errors import ProofGateError, SessionError
from .models import ProofSession, SessionState, VerificationResult

log = logging.getLogger(__name__)


@dataclass
class _Entry:
    session: ProofSession
    expires_at: float
    result: VerificationResult | None = None


class SessionStore:
    """
    In-memory proof sessions with expiry.

    Args:
        ttl_s: Lifetime of a session and of a verified-proof record
        now_fn: Clock returning Unix epoch seconds
    """

    def __init__(self, ttl_s: float = 600, now_fn: Callable[[], float] = time.time):
        self.ttl_s = ttl_s
        self.now_fn = now_fn
        self._lock = threading.Lock()
        self._sessions: dict[str, _Entry] = {}
        self._verified: dict[str, tuple[VerificationResult, float]] = {}

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._sessions)

    def _purge(self) -> None:
        now = self.now_fn()
        for sid in [s for s, e in self._sessions.items() if e.expires_at <= now]:
            del self._sessions[sid]
        for pid in [p for p, (_, exp) in self._verified.items() if exp <= now]:
            del self._verified[pid]

    def add(self, session: ProofSession) -> None:
        with self._lock:
            self._purge()
            self._sessions[session.session_id] = _Entry(
                session=session,
                expires_at=self.now_fn() + self.ttl_s,
            )

    def get(self, session_id: str | None) -> ProofSession | None:
        """Return a live session, or None if unknown or expired."""
        if not session_id:
            return None
        with self._lock:
            self._purge()
            entry = self._sessions.get(session_id)
            return entry.session if entry else None

    def result_for(self, session_id: str) -> VerificationResult | None:
        with self._lock:
            self._purge()
            entry = self._sessions.get(session_id)
            return entry.result if entry else None

    def record(self, result: VerificationResult) -> None:
        """Store a verdict against its session and the verified-proof ledger."""
        payload = result.payload
        with self._lock:
            self._purge()
            entry = self._sessions.get(payload.session_id or "")
            if entry is not None:
                entry.session.state = (
                    SessionState.VERIFIED if result.valid else SessionState.FAILED
                )
                entry.result = result
            if result.valid:
                self._verified[payload.identifier] = (result, self.now_fn() + self.ttl_s)

    def verified_result(self, proof_identifier: str) -> VerificationResult | None:
        """Return the successful verdict for a proof, if still held."""
        with self._lock:
            self._purge()
            held = self._verified.get(proof_identifier)
            return held[0] if held else None


def build_request_url(share_url: str, session: ProofSession) -> str:
    """
    Build the shareable URL the proof-issuing app opens.

    Examples:
        >>> build_request_url("https://share.example/verifier/", session)
        'https://share.example/verifier/?template=%7B%22sessionId%22...'
    """
    template = json.dumps(session.template(), separators=(",", ":"))
    separator = "&" if "?" in share_url else "?"
    return f"{share_url}{separator}template={quote(template, safe='')}"


class ProofSessionInitiator:
    """
    Opens proof sessions.

    Args:
        config: Process configuration
        protocol: Protocol service client
        store: Where issued sessions are kept
    """

    def __init__(self, config: SessionConfig, protocol: ProtocolClient, store: SessionStore):
        self.config = config
        self.protocol = protocol
        self.store = store

    async def create_session(self) -> ProofSession:
        """
        Register a session bound to this backend's callback URL.

        Returns:
            A session in the AwaitingProof state

        Raises:
            SessionError: If the protocol service could not open a session
        """
        created_at = self.store.now_fn()
        timestamp = str(int(created_at * 1000))
        try:
            session_id = await self.protocol.init_session(
                provider_id=self.config.provider_id,
                callback_url=self.config.callback_url,
                timestamp=timestamp,
            )
        except ProofGateError:
            raise
        except Exception as e:
            raise SessionError.init_failed(f"{type(e).__name__}: {e}") from e

        session = ProofSession(
            session_id=session_id,
            application_id=self.config.application_id,
            provider_id=self.config.provider_id,
            callback_url=self.config.callback_url,
            created_at=created_at,
        )
        session.request_url = build_request_url(self.config.share_url, session)
        session.state = SessionState.AWAITING_PROOF
        self.store.add(session)
        log.info("Issued proof session %s for provider %s", session_id, self.config.provider_id)
        return session
