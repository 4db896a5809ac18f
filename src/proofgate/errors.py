"""
Error taxonomy for the proof handshake.

Every error carries the HTTP status it maps to at the endpoint boundary, so
the app can translate it into a `{"status": "failure", "error": ...}` body
without a lookup table.
"""

from __future__ import annotations


class ProofGateError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    kind = "ProofGateError"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(ProofGateError):
    """
    Configuration is missing or malformed.

    Attributes:
        field: Name of the offending environment variable, if any
    """

    kind = "ConfigError"
    status_code = 500

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    @classmethod
    def missing_field(cls, name: str) -> "ConfigError":
        return cls(f"Missing required configuration: {name}", field=name)


class SessionError(ProofGateError):
    """The proof protocol refused or failed to open a session."""

    kind = "SessionError"
    status_code = 500

    @classmethod
    def init_failed(cls, detail: str) -> "SessionError":
        return cls(f"Failed to initialise proof session: {detail}")


class MalformedPayload(ProofGateError):
    """The request body could not be decoded into a proof."""

    kind = "MalformedPayload"
    status_code = 400


class VerificationFailure(ProofGateError):
    """The proof was rejected; the user has to restart the proof flow."""

    kind = "VerificationFailure"
    status_code = 400


class ValidationError(ProofGateError):
    """
    Registration data is incomplete.

    Attributes:
        field: The first missing field
    """

    kind = "ValidationError"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    @classmethod
    def missing_field(cls, name: str) -> "ValidationError":
        return cls(f"Missing required field: {name}", field=name)


class InfrastructureFault(ProofGateError):
    """An external collaborator failed unexpectedly."""

    kind = "InfrastructureFault"
    status_code = 500


class ProofVerifierError(Exception):
    """Raised by verifier backends when they cannot reach a verdict."""
