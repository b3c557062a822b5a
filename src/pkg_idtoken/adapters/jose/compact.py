import binascii
import json
import re
from typing import Any, Dict, Type

from jwt.utils import base64url_decode, base64url_encode

from ...domain.entities import CompactToken
from ...domain.exceptions import IdTokenValidationError, MalformedTokenError, SignatureInvalidError

SEGMENT_DELIMITER = b"."

_BASE64URL = re.compile(rb"[A-Za-z0-9_-]+")


def _decode_segment(
    segment: bytes,
    name: str,
    error: Type[IdTokenValidationError] = MalformedTokenError,
) -> bytes:
    """
    Decode one unpadded base64url segment.

    Only the canonical encoding is accepted: one text per byte string, so a
    segment cannot be altered without altering what it decodes to.
    """
    if not _BASE64URL.fullmatch(segment):
        raise error(f"Token {name} is not valid base64url")
    try:
        raw = base64url_decode(segment)
    except (binascii.Error, ValueError) as exc:
        raise error(f"Token {name} is not valid base64url") from exc
    if base64url_encode(raw) != segment:
        raise error(f"Token {name} is not canonical base64url")
    return raw


def _decode_json_object(segment: bytes, name: str) -> Dict[str, Any]:
    raw = _decode_segment(segment, name)
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise MalformedTokenError(f"Token {name} is not valid JSON") from exc
    if not isinstance(value, dict):
        raise MalformedTokenError(f"Token {name} must be a JSON object")
    return value


def decode_compact(token: str | bytes) -> CompactToken:
    """
    Split a JWS compact token and decode its parts.

    No signature or claim is checked here, except that a signature segment
    which is not canonical base64url can never verify and is reported as
    SignatureInvalidError.

    Raises:
        MalformedTokenError
        SignatureInvalidError
    """
    if isinstance(token, str):
        try:
            token = token.strip().encode("ascii")
        except UnicodeEncodeError as exc:
            raise MalformedTokenError("Token contains non-ASCII characters") from exc
    if not isinstance(token, bytes):
        raise MalformedTokenError(f"Token must be a string, got {type(token).__name__}")

    segments = token.split(SEGMENT_DELIMITER)
    if len(segments) != 3:
        raise MalformedTokenError(
            f"Token must have 3 segments, found {len(segments)}"
        )
    if not all(segments):
        raise MalformedTokenError("Token has an empty segment")

    header_segment, payload_segment, signature_segment = segments
    header = _decode_json_object(header_segment, "header")
    payload = _decode_json_object(payload_segment, "payload")
    if not isinstance(header.get("alg"), str):
        raise MalformedTokenError("Token header has no 'alg'")

    signature = _decode_segment(signature_segment, "signature", SignatureInvalidError)

    return CompactToken(
        header=header,
        payload=payload,
        header_segment=header_segment,
        payload_segment=payload_segment,
        signature=signature,
    )
