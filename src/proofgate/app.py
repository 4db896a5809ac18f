"""
Relying-party HTTP service (FastAPI).

Usage:
    # Required environment
    export RECLAIM_APP_ID=... RECLAIM_APP_SECRET=... RECLAIM_PROVIDER_ID=...
    export PUBLIC_BASE_URL=https://rp.example.com

    # Run the server
    proofgate

    # Or with uvicorn
    uvicorn proofgate.app:create_app --factory --port 3000

Endpoints:
    GET  /reclaim/generate-config          - open a proof session
    GET  /reclaim/sessions/{id}            - session state, for browser polling
    GET  /reclaim/sessions/{id}/qr.png     - session URL as a QR code
    POST /receive-proofs                   - proof callback (text/plain or JSON)
    POST /submit-user-info                 - registration bound to a verified proof
    GET  /health
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .client import ProtocolClient
from .config import SessionConfig, load_config
from .errors import (
    ConfigError,
    InfrastructureFault,
    MalformedPayload,
    ProofGateError,
    SessionError,
    VerificationFailure,
)
from .gate import VerificationGate
from .middleware import FailureBoundaryMiddleware
from .models import UserInfo
from .payloads import coerce_proof, decode_proof_body
from .qr import render_png
from .registration import RegistrationCollector, RegistrationSink
from .sessions import ProofSessionInitiator, SessionStore
from .verifier import ProofVerifier, select_verifier

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s.%(funcName)s] %(message)s"
DECISION_HEADER = "X-Proof-Decision"


def _failure(status_code: int, error: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "failure", "error": error},
        headers=headers,
    )


def create_app(
    config: SessionConfig | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    protocol: Any = None,
    verifier: ProofVerifier | None = None,
    store: SessionStore | None = None,
    sink: RegistrationSink | None = None,
) -> FastAPI:
    """
    Build the application.

    Configuration is loaded here, eagerly. If it is broken the error is
    logged immediately and every endpoint that depends on it answers 500.

    Args:
        config: Configuration. Default: loaded from `environ`
        environ: Environment mapping for load_config. Default: os.environ
        protocol: Protocol service client (anything with `init_session`).
            Default: ProtocolClient built from the configuration
        verifier: Proof verifier. Default: chosen by select_verifier
        store: Session store. Default: a new SessionStore
        sink: Registration sink. Default: LoggingSink
    """
    config_error: ConfigError | None = None
    if config is None:
        try:
            config = load_config(environ)
        except ConfigError as e:
            log.error("Configuration error, proof endpoints disabled: %s", e.message)
            config_error = e

    cors_origins = list(config.cors_allow_origins) if config else ["*"]
    if store is None:
        store = SessionStore(ttl_s=config.session_ttl_s if config else 600)

    initiator: ProofSessionInitiator | None = None
    gate: VerificationGate | None = None
    if config is not None:
        if protocol is None:
            protocol = ProtocolClient.from_config(config)
        if verifier is None:
            verifier = select_verifier(config)
        initiator = ProofSessionInitiator(config, protocol, store)
        gate = VerificationGate(verifier, store, require_known_session=config.require_known_session)
        log.info(
            "Proof callbacks expected at %s (profile=%s, verifier=%s)",
            config.callback_url,
            config.profile.value,
            type(verifier).__name__,
        )
    collector = RegistrationCollector(sink)

    app = FastAPI(
        title="proofgate",
        description="Relying-party backend for zero-knowledge proof claims",
        version=__version__,
    )
    app.state.config = config
    app.state.store = store

    app.add_middleware(FailureBoundaryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(ProofGateError)
    async def proofgate_error(request: Request, exc: ProofGateError):
        if exc.status_code >= 500:
            log.error("%s on %s: %s", exc.kind, request.url.path, exc.message)
        else:
            log.warning("%s on %s: %s", exc.kind, request.url.path, exc.message)
        return _failure(exc.status_code, exc.message)

    def require_gate() -> VerificationGate:
        if gate is None:
            raise InfrastructureFault("Proof verification is not configured")
        return gate

    @app.get("/reclaim/generate-config")
    async def generate_config():
        """Open a proof session and hand its request config to the browser."""
        if initiator is None:
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Failed to generate request config",
                    "details": config_error.message if config_error else "not configured",
                },
            )
        try:
            session = await initiator.create_session()
        except SessionError as e:
            log.error("Error generating request config: %s", e.message)
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to generate request config", "details": e.message},
            )
        return {"reclaimProofRequestConfig": session.to_request_config()}

    @app.get("/reclaim/sessions/{session_id}")
    async def session_status(session_id: str):
        """Session state; the browser polls this while the user scans."""
        session = store.get(session_id)
        if session is None:
            return _failure(404, "Unknown or expired session")
        body: dict[str, Any] = {"sessionId": session.session_id, "state": session.state.value}
        result = store.result_for(session_id)
        if result is not None:
            if result.valid:
                body["proofData"] = result.payload.claim_data
            else:
                body["reason"] = result.reason
        return body

    @app.get("/reclaim/sessions/{session_id}/qr.png")
    async def session_qr(session_id: str):
        session = store.get(session_id)
        if session is None:
            return _failure(404, "Unknown or expired session")
        return Response(render_png(session.request_url), media_type="image/png")

    @app.post("/receive-proofs")
    async def receive_proofs(request: Request):
        """Proof callback from the proof-issuing application."""
        active_gate = require_gate()
        body = await request.body()
        payload = decode_proof_body(body, request.headers.get("content-type"))
        log.debug("Received proof %s for session %s", payload.identifier, payload.session_id)

        result = await active_gate.verify(payload)
        if result.valid:
            return JSONResponse(
                status_code=200,
                content={
                    "status": "success",
                    "message": "Proof verified successfully",
                    "proofData": payload.claim_data,
                },
                headers={DECISION_HEADER: "verified"},
            )
        if result.fault:
            return _failure(500, "Failed to process proof", headers={DECISION_HEADER: "fault"})
        return _failure(
            400,
            result.reason or "Invalid proof data",
            headers={DECISION_HEADER: "rejected"},
        )

    @app.post("/submit-user-info")
    async def submit_user_info(request: Request):
        """Registration data bound to a verified proof."""
        try:
            data = await request.json()
        except ValueError:
            raise MalformedPayload(
                "Invalid JSON format in request body for /submit-user-info"
            ) from None
        if not isinstance(data, dict) or not data.get("userInfo") or not data.get("proof"):
            return _failure(400, "Missing userInfo or proof data in request body.")
        if not isinstance(data["userInfo"], dict):
            return _failure(400, "userInfo must be an object")

        user_info = UserInfo.from_dict(data["userInfo"])
        collector.validate(user_info)
        payload = coerce_proof(data["proof"])

        verification = store.verified_result(payload.identifier)
        if verification is None:
            verification = await require_gate().verify(payload, record=False)
        if verification.fault:
            raise InfrastructureFault("Failed to process user information and proof.")
        if not verification.valid:
            raise VerificationFailure(verification.reason or "Invalid proof submitted with user info.")

        record = collector.submit(user_info, verification)
        return {
            "status": "success",
            "message": "User information and proof received successfully.",
            "registration": record.to_dict(),
        }

    @app.get("/health")
    async def health():
        return {"status": "ok" if config is not None else "misconfigured"}

    return app


def main() -> None:
    """Console entry point: validate configuration, then serve."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    try:
        config = load_config()
    except ConfigError as e:
        log.error("Refusing to start: %s", e.message)
        raise SystemExit(2) from None

    logging.getLogger().setLevel(config.log_level)
    app = create_app(config)
    log.info("Backend listening on %s:%d", config.host, config.port)
    log.info("Request config endpoint: %s/reclaim/generate-config", config.public_base_url.rstrip("/"))
    log.info("Proof callback endpoint: %s", config.callback_url)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
