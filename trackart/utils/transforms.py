import base64
import binascii
import re
from typing import Optional

from ..errors import InvalidBase64Error

KILOBYTE = 1024

_DATA_URI_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,", re.IGNORECASE)


def strip_data_uri(payload: str) -> str:
    return _DATA_URI_PREFIX.sub("", payload.strip(), count=1)


def decode_base64(payload: str) -> bytes:
    """Decode a base64 image, with or without a data: URI prefix."""
    body = "".join(strip_data_uri(payload).split())
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidBase64Error(str(e)) from e


def format_kb(size_bytes: int) -> str:
    return f"{size_bytes // KILOBYTE} KB"


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")
