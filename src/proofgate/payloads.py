"""
Proof body decoding for the callback endpoint.

Proof-issuing clients disagree on transport: some post a URL-encoded JSON
string as text/plain, others post structured JSON. Both are accepted.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import unquote

from .errors import MalformedPayload
from .models import ProofPayload

JSON_CONTENT_TYPES = frozenset({
    "application/json",
    "text/json",
})


def media_type(content_type: str | None) -> str:
    """
    Return the bare media type of a Content-Type header value.

    Examples:
        >>> media_type("application/json; charset=utf-8")
        'application/json'
        >>> media_type(None)
        ''
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _json_loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise MalformedPayload(f"Invalid JSON format in proof body: {e}") from None


def coerce_proof(document: Any, raw: str = "") -> ProofPayload:
    """
    Turn a decoded JSON document into a ProofPayload.

    A list of proofs yields its first element, as the proof-issuing app may
    batch proofs for a single claim.

    Raises:
        MalformedPayload: If the document is not a proof object
    """
    if isinstance(document, list):
        if not document:
            raise MalformedPayload("Empty proof list")
        document = document[0]
    if not isinstance(document, dict):
        raise MalformedPayload("Proof must be a JSON object")
    return ProofPayload(claim_data=document, raw_encoding=raw)


def decode_proof_body(body: bytes | str, content_type: str | None) -> ProofPayload:
    """
    Decode a /receive-proofs request body.

    Rules:
    1. application/json: JSON-decode. A JSON string holding a JSON document
       is decoded a second time.
    2. text/plain, or any other content type: URL-decode, then JSON-decode.

    Args:
        body: Raw request body
        content_type: Content-Type header value

    Returns:
        The decoded proof

    Raises:
        MalformedPayload: If any decoding step fails
    """
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedPayload("Proof body is not valid UTF-8") from None
    else:
        text = body

    if not text.strip():
        raise MalformedPayload("Empty proof body")

    if media_type(content_type) in JSON_CONTENT_TYPES:
        document = _json_loads(text)
        if isinstance(document, str):
            document = _json_loads(document)
    else:
        document = _json_loads(unquote(text))

    return coerce_proof(document, raw=text)
