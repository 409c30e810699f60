# Document Encoder
# Converts uploaded documents to and from transport-safe base64 payloads

import base64
import binascii
import logging

from agents.errors import DocumentReadError
from agents.state import UploadedDocument

logger = logging.getLogger(__name__)


def strip_data_url_prefix(payload: str) -> str:
    """Drop a ``data:<type>;base64,`` prefix, keeping only the encoded content."""
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


def encode_document(document: UploadedDocument) -> str:
    """
    Base64-encode the bytes of a document for inclusion in a request payload.

    Raises:
        DocumentReadError: If the document bytes cannot be read
    """
    raw = document.read()
    encoded = base64.b64encode(raw).decode("ascii")
    logger.debug(f"Encoded '{document.name}' ({len(raw)} bytes -> {len(encoded)} chars)")
    return encoded


def decode_data_url(name: str, payload: str, media_type: str | None = None) -> UploadedDocument:
    """
    Build an UploadedDocument from a browser ``FileReader`` data URL (or bare base64).

    The media type is taken from the data URL header unless given explicitly.
    """
    if media_type is None:
        media_type = "application/octet-stream"
        if payload.startswith("data:") and ";" in payload:
            media_type = payload[len("data:"):payload.index(";")]

    try:
        content = base64.b64decode(strip_data_url_prefix(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DocumentReadError(f"Invalid base64 payload for '{name}': {e}") from e

    return UploadedDocument(name=name, media_type=media_type, content=content)
