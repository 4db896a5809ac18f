"""
Process configuration.

All environment access happens here, once, at startup. The resulting
SessionConfig is immutable and handed to every component explicitly.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping

from .errors import ConfigError

log = logging.getLogger(__name__)

CALLBACK_PATH = "/receive-proofs"

DEFAULT_PROOF_API_URL = "http://localhost:8081"
DEFAULT_SHARE_URL = "https://share.reclaimprotocol.org/verifier/"

REQUIRED_VARS = (
    "RECLAIM_APP_ID",
    "RECLAIM_APP_SECRET",
    "RECLAIM_PROVIDER_ID",
    "PUBLIC_BASE_URL",
)

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


class Profile(str, Enum):
    """
    Deployment profile.

    Attributes:
        PRODUCTION: Proofs are always checked by the protocol service
        DEVELOPMENT: Allows the always-valid debug verifier
    """
    PRODUCTION = "production"
    DEVELOPMENT = "development"


@dataclass(frozen=True)
class SessionConfig:
    """
    Identity parameters and service settings.

    Attributes:
        application_id: Application id registered with the proof protocol
        application_secret: Application secret, server side only
        provider_id: Provider whose claim the user proves
        public_base_url: Externally reachable base URL of this backend
        proof_api_url: Base URL of the proof protocol service
        share_url: Base URL of the page the proof-issuing app opens
        profile: Deployment profile
        always_valid: Use the debug verifier (development profile only)
        session_ttl_s: Lifetime of an issued proof session
        require_known_session: Reject proofs for sessions we did not issue
        verifier_timeout_s: Timeout for protocol service calls
        host: Bind address
        port: Bind port
        cors_allow_origins: Origins allowed to call the API from a browser
        log_level: Root logging level
    """

    application_id: str
    application_secret: str = field(repr=False)
    provider_id: str
    public_base_url: str
    proof_api_url: str = DEFAULT_PROOF_API_URL
    share_url: str = DEFAULT_SHARE_URL
    profile: Profile = Profile.PRODUCTION
    always_valid: bool = False
    session_ttl_s: int = 600
    require_known_session: bool = True
    verifier_timeout_s: float = 5.0
    host: str = "0.0.0.0"
    port: int = 3000
    cors_allow_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name, value in (
            ("RECLAIM_APP_ID", self.application_id),
            ("RECLAIM_APP_SECRET", self.application_secret),
            ("RECLAIM_PROVIDER_ID", self.provider_id),
            ("PUBLIC_BASE_URL", self.public_base_url),
        ):
            if not value or not value.strip():
                raise ConfigError.missing_field(name)
        if self.always_valid and self.profile is not Profile.DEVELOPMENT:
            raise ConfigError(
                "PROOFGATE_ALWAYS_VALID is only allowed with PROOFGATE_PROFILE=development",
                field="PROOFGATE_ALWAYS_VALID",
            )

    @property
    def callback_url(self) -> str:
        """URL the proof-issuing application posts proofs to."""
        return self.public_base_url.rstrip("/") + CALLBACK_PATH


def _get_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {raw!r}", field=name)


def _get_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigError(f"Invalid number for {name}: {raw!r}", field=name) from None
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}", field=name)
    return value


def load_config(environ: Mapping[str, str] | None = None) -> SessionConfig:
    """
    Build a SessionConfig from environment variables.

    Args:
        environ: Mapping to read from. Default: os.environ

    Returns:
        The immutable configuration

    Raises:
        ConfigError: If a required variable is absent or blank, or an
            optional one cannot be parsed
    """
    if environ is None:
        environ = os.environ

    for name in REQUIRED_VARS:
        if not environ.get(name, "").strip():
            raise ConfigError.missing_field(name)

    raw_profile = environ.get("PROOFGATE_PROFILE", Profile.PRODUCTION.value).strip().lower()
    try:
        profile = Profile(raw_profile)
    except ValueError:
        raise ConfigError(
            f"Unknown PROOFGATE_PROFILE: {raw_profile!r}", field="PROOFGATE_PROFILE"
        ) from None

    origins = tuple(
        o.strip() for o in environ.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()
    )

    config = SessionConfig(
        application_id=environ["RECLAIM_APP_ID"].strip(),
        application_secret=environ["RECLAIM_APP_SECRET"].strip(),
        provider_id=environ["RECLAIM_PROVIDER_ID"].strip(),
        public_base_url=environ["PUBLIC_BASE_URL"].strip(),
        proof_api_url=environ.get("PROOF_API_URL", DEFAULT_PROOF_API_URL).strip(),
        share_url=environ.get("PROOF_SHARE_URL", DEFAULT_SHARE_URL).strip(),
        profile=profile,
        always_valid=_get_bool(environ, "PROOFGATE_ALWAYS_VALID", False),
        session_ttl_s=_get_number(environ, "SESSION_TTL_SECONDS", 600, int),
        require_known_session=_get_bool(environ, "REQUIRE_KNOWN_SESSION", True),
        verifier_timeout_s=_get_number(environ, "VERIFIER_TIMEOUT_S", 5.0, float),
        host=environ.get("HOST", "0.0.0.0").strip(),
        port=_get_number(environ, "PORT", 3000, int),
        cors_allow_origins=origins or ("*",),
        log_level=environ.get("LOG_LEVEL", "INFO").strip().upper(),
    )
    log.debug("Loaded configuration: %r", config)
    return config
