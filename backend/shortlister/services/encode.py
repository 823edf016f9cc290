from __future__ import annotations
import base64
import logging
import re

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)


class EncodingError(Exception):
    """The document could not be read into a transport payload."""


def strip_data_uri(encoded: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix if the reader produced one."""
    return _DATA_URI_RE.sub("", encoded, count=1)


def encode_bytes(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


async def encode_document(document) -> str:
    """
    Read the whole document and return its base64 text.

    `document` is anything with an awaitable ``read()`` (an UploadedDocument,
    or FastAPI's UploadFile). Failures to read surface as EncodingError.
    """
    name = getattr(document, "file_name", None) or getattr(document, "filename", None) or "document"
    try:
        raw = await document.read()
    except Exception as e:
        logger.warning("Could not read %s: %s", name, e)
        raise EncodingError(str(e) or f"Could not read {name}") from e

    if isinstance(raw, str):
        # some readers hand back a data URI rather than bytes
        return strip_data_uri(raw)
    if raw is None:
        raise EncodingError(f"Could not read {name}")
    return encode_bytes(bytes(raw))
