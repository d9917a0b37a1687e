"""Compact signed-token codec.

Token format
------------
The token is a dot-separated string:
    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg": "ES256K-R", "typ": "JWT", "kid": "<did>#controller"}``
- payload: compact JSON of the credential or presentation claims
- signature: 65 bytes ``r || s || recovery`` over SHA-256 of
  ``header.payload``

Segments are unpadded base64url. JSON is serialised with ``(",", ":")``
separators and keys in insertion order, so the claims map of a credential
comes back in the order it was issued. The signature always covers the
segment text exactly as it appears in the token, so re-serialisation is
never needed for verification.

Parsing is split in two on purpose: :func:`parse_token` decodes only the
header and signature, and :meth:`TokenParts.payload` decodes the payload on
demand. The verifier checks the signature between the two steps.

Input is untrusted: tokens over ``MAX_TOKEN_LENGTH`` and JSON nested deeper
than ``MAX_JSON_DEPTH`` are rejected before ``json.loads`` sees them.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from did_wallet.errors import MalformedTokenError

ALGORITHM = "ES256K-R"
TOKEN_TYPE = "JWT"
SIGNATURE_LENGTH = 65
# Bounds on untrusted input; a presentation of ~100 credentials fits.
MAX_TOKEN_LENGTH = 64 * 1024
MAX_JSON_DEPTH = 32


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def b64url_encode(data: bytes) -> str:
    """Encode *data* as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode an unpadded base64url segment.

    Raises
    ------
    MalformedTokenError
        If the segment contains characters outside the base64url alphabet.
    """
    try:
        return base64.b64decode(
            segment + "=" * (-len(segment) % 4), altchars=b"-_", validate=True
        )
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"invalid base64url segment: {exc}") from exc


def canonical_json(data: dict[str, Any]) -> bytes:
    """Serialise *data* to compact UTF-8 JSON."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def json_depth(text: str) -> int:
    """Return the deepest ``[``/``{`` nesting in *text*, ignoring strings.

    Runs in a flat loop, so it is safe on input that would exhaust the
    stack of a recursive parser.
    """
    depth = deepest = 0
    in_string = escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
            if depth > deepest:
                deepest = depth
        elif char in "]}":
            depth -= 1
    return deepest


def _decode_json_segment(segment: str, name: str) -> dict[str, Any]:
    raw = b64url_decode(segment)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedTokenError(f"{name} is not valid UTF-8: {exc}") from exc
    if json_depth(text) > MAX_JSON_DEPTH:
        raise MalformedTokenError(f"{name} nests deeper than {MAX_JSON_DEPTH} levels")
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise MalformedTokenError(f"{name} is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise MalformedTokenError(f"{name} must be a JSON object")
    return value


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def build_header(did: str) -> dict[str, str]:
    """Return the token header asserting *did* as the signer."""
    return {"alg": ALGORITHM, "typ": TOKEN_TYPE, "kid": f"{did}#controller"}


def signing_input(header: dict[str, Any], payload: dict[str, Any]) -> str:
    """Return the ``header.payload`` string the signature covers."""
    return f"{b64url_encode(canonical_json(header))}.{b64url_encode(canonical_json(payload))}"


def assemble(signing_input_text: str, signature: bytes) -> str:
    """Append the encoded *signature* to a signing input."""
    return f"{signing_input_text}.{b64url_encode(signature)}"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenParts:
    """A structurally split token.

    Parameters
    ----------
    header:
        Decoded header object.
    payload_segment:
        The raw base64url payload segment, still encoded.
    signature:
        Decoded signature bytes.
    signing_input:
        ``header.payload`` exactly as it appears in the token.
    """

    header: dict[str, Any]
    payload_segment: str
    signature: bytes
    signing_input: str

    @property
    def asserted_signer(self) -> str | None:
        """DID named in the header ``kid``, without its fragment."""
        kid = self.header.get("kid")
        if not isinstance(kid, str) or not kid:
            return None
        return kid.split("#", 1)[0]

    def payload(self) -> dict[str, Any]:
        """Decode the payload segment.

        Raises
        ------
        MalformedTokenError
            If the segment is not base64url-encoded JSON object.
        """
        return _decode_json_segment(self.payload_segment, "payload")


def parse_token(token: str) -> TokenParts:
    """Split *token* and decode its header and signature.

    Raises
    ------
    MalformedTokenError
        When the token is longer than ``MAX_TOKEN_LENGTH``, does not have
        three segments, the header is not a JSON object naming the
        ``ES256K-R`` algorithm, or the signature is not 65 bytes.
    """
    if not isinstance(token, str):
        raise MalformedTokenError(f"expected str, got {type(token).__name__}")
    if len(token) > MAX_TOKEN_LENGTH:
        raise MalformedTokenError(
            f"token is {len(token)} characters, limit is {MAX_TOKEN_LENGTH}"
        )
    parts = token.strip().split(".")
    if len(parts) != 3:
        raise MalformedTokenError(f"expected 3 dot-separated parts, got {len(parts)}")
    header_segment, payload_segment, signature_segment = parts
    if not payload_segment:
        raise MalformedTokenError("empty payload segment")

    header = _decode_json_segment(header_segment, "header")
    if header.get("alg") != ALGORITHM:
        raise MalformedTokenError(f"unsupported alg {header.get('alg')!r}")

    signature = b64url_decode(signature_segment)
    if len(signature) != SIGNATURE_LENGTH:
        raise MalformedTokenError(
            f"signature must be {SIGNATURE_LENGTH} bytes, got {len(signature)}"
        )
    return TokenParts(
        header=header,
        payload_segment=payload_segment,
        signature=signature,
        signing_input=f"{header_segment}.{payload_segment}",
    )


def decode_payload(token: str) -> dict[str, Any]:
    """Parse *token* and return its payload without checking the signature."""
    return parse_token(token).payload()
