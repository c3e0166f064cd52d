"""Base64 data-URI helpers for audio payloads carried in request records."""

import base64
import binascii
import re

from audio_segmenter.utils.errors import DecodeError

WAV_MIME_TYPE = "audio/wav"

# data:<mime>[;param]*;base64,
_MIME_PREFIX = re.compile(r"^data:[^,;]*(?:;[^,;]*)*;base64,", re.IGNORECASE)


def strip_mime_prefix(text: str) -> str:
    """Remove a leading ``data:<mime>;base64,`` prefix if present."""
    match = _MIME_PREFIX.match(text)
    if match:
        return text[match.end():]
    return text


def decode_base64_audio(text: str) -> bytes:
    """Decode a (possibly MIME-prefixed) base64 audio payload.

    Args:
        text: Base64 text, optionally prefixed with a data-URI header.

    Returns:
        The decoded bytes.

    Raises:
        DecodeError: If the payload is not valid base64.
    """
    payload = strip_mime_prefix(text.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Audio payload is not valid base64: {exc}") from exc


def to_data_uri(data: bytes, mime_type: str = WAV_MIME_TYPE) -> str:
    """Encode bytes as ``data:<mime_type>;base64,<payload>``."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
