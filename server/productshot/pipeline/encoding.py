# ─────────────────────────────────────────────────────────────────────────────
# Encoding Utilities — base64 / data URI helpers
# ─────────────────────────────────────────────────────────────────────────────


import base64
import binascii
import re

DEFAULT_MIME_TYPE = "image/png"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(;[^,]*)?;base64,(?P<data>.*)$", re.S)


def to_data_uri(data_b64: str, mime_type: str | None = None) -> str:
    """Wrap base64 image bytes in a self-describing data URI."""
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{data_b64}"


def encode_bytes(data: bytes) -> str:
    """Encode raw bytes to a base64 ASCII string."""
    return base64.b64encode(data).decode("ascii")


def decode_image_field(value: str, mime_type: str | None = None) -> tuple[bytes, str]:
    """Decode a JSON image field: raw base64 or a 'data:' URI.

    A media type embedded in a data URI wins over the companion field.

    Raises:
        ValueError: if the payload is not valid base64 or is empty.
    """
    payload = value.strip()
    match = _DATA_URI_RE.match(payload)
    if match:
        payload = match.group("data")
        mime_type = match.group("mime") or mime_type
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"not valid base64: {e}") from None
    if not raw:
        raise ValueError("image payload is empty")
    return raw, mime_type or DEFAULT_MIME_TYPE


def truncate(text: str, max_chars: int) -> str:
    """Bound diagnostic text carried back to the client."""
    return text if len(text) <= max_chars else text[:max_chars]
