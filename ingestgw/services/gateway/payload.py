"""Request body decoding and JSON re-serialization."""

import json


class PayloadError(ValueError):
    """Request body cannot be turned into a message."""

    reason = "invalid_payload"


class InvalidEncodingError(PayloadError):
    reason = "invalid_utf8"


class InvalidJSONError(PayloadError):
    reason = "invalid_json"


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def canonicalize(body: bytes) -> bytes:
    """Decode, parse and re-serialize a JSON body.

    Any JSON value is accepted. The output is compact with sorted object keys,
    so formatting may differ from the input while the content stays the same.
    """

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncodingError("Invalid UTF-8 data") from exc

    try:
        value = json.loads(text, parse_constant=_reject_constant)
        # Overflowing numbers parse to inf and unpaired surrogates parse too;
        # neither can be written back as JSON.
        out = json.dumps(value, ensure_ascii=False, allow_nan=False, separators=(",", ":"), sort_keys=True)
        return out.encode("utf-8")
    except (ValueError, RecursionError) as exc:
        raise InvalidJSONError(f"Invalid JSON data: {exc}") from exc
