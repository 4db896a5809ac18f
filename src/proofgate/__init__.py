"""
proofgate: relying-party backend for zero-knowledge proof claims

Issues proof sessions, receives and verifies proofs pushed by a
proof-issuing application, and registers user data bound to a verified
proof.
"""

__version__ = "0.1.0"

from .config import Profile, SessionConfig, load_config
from .errors import (
    ConfigError,
    InfrastructureFault,
    MalformedPayload,
    ProofGateError,
    ProofVerifierError,
    SessionError,
    ValidationError,
    VerificationFailure,
)
from .models import (
    ProofPayload,
    ProofSession,
    RegistrationRecord,
    SessionState,
    UserInfo,
    VerificationResult,
)
from .client import ProtocolClient
from .payloads import decode_proof_body
from .verifier import AlwaysValidVerifier, HttpProofVerifier, ProofVerifier, select_verifier
from .sessions import ProofSessionInitiator, SessionStore
from .gate import VerificationGate
from .registration import LoggingSink, RegistrationCollector, RegistrationSink
from .coordinator import ClientState, ClientStateCoordinator, InvalidTransition

__all__ = [
    "Profile",
    "SessionConfig",
    "load_config",
    "ConfigError",
    "InfrastructureFault",
    "MalformedPayload",
    "ProofGateError",
    "ProofVerifierError",
    "SessionError",
    "ValidationError",
    "VerificationFailure",
    "ProofPayload",
    "ProofSession",
    "RegistrationRecord",
    "SessionState",
    "UserInfo",
    "VerificationResult",
    "ProtocolClient",
    "decode_proof_body",
    "AlwaysValidVerifier",
    "HttpProofVerifier",
    "ProofVerifier",
    "select_verifier",
    "ProofSessionInitiator",
    "SessionStore",
    "VerificationGate",
    "LoggingSink",
    "RegistrationCollector",
    "RegistrationSink",
    "ClientState",
    "ClientStateCoordinator",
    "InvalidTransition",
]
