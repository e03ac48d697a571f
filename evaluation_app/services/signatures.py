import base64
import binascii
import re

from evaluation_app.exceptions import BadRequest

MIN_SIGNATURE_BYTES = 16

_DATA_URL_PREFIX = re.compile(r"^data:.*?;base64,", re.IGNORECASE | re.DOTALL)


def decode_signature(signature):
    """
    Turn a base64 signature (optionally a ``data:*;base64,`` URL) into raw bytes.
    Returns None when there is nothing to decode or the payload is not base64.
    """
    if not signature:
        return None
    if isinstance(signature, (bytes, bytearray, memoryview)):
        return bytes(signature)

    text = _DATA_URL_PREFIX.sub("", str(signature).strip(), count=1)
    try:
        return base64.b64decode(text)
    except (binascii.Error, ValueError):
        return None


def require_signature(signature):
    """Minimal sanity check only: decodable and at least 16 bytes, no image validation."""
    raw = decode_signature(signature)
    if raw is None or len(raw) < MIN_SIGNATURE_BYTES:
        raise BadRequest("A signature is required.", code="SIGNATURE_REQUIRED")
    return raw
