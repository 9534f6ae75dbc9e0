import ipaddress
import re
import socket
from typing import List, Optional
from urllib.parse import urlsplit

from ..errors import (
    ImageTooSmallError,
    InvalidEntityIDError,
    InvalidSourceError,
    InvalidURLError,
    NotAnImageError,
)
from ..models import ImageInfo, OptimizationConfig
from ..utils.images import read_image_info

ALLOWED_SCHEMES = ("http", "https")

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class ValidatedURL(str):
    """
    A URL whose scheme and host have been checked.
    Only `ValidatedURL.parse` produces one; the downloader refuses plain strings.
    """
    scheme: str
    host: str
    port: Optional[int]

    def __new__(cls, *args, **kwargs):
        raise TypeError("use ValidatedURL.parse()")

    @classmethod
    def parse(cls, url: str) -> "ValidatedURL":
        raw = (url or "").strip()
        if not raw:
            raise InvalidURLError(raw, "empty URL")
        try:
            parts = urlsplit(raw)
            port = parts.port
        except ValueError as e:
            raise InvalidURLError(raw, str(e)) from e

        scheme = parts.scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise InvalidURLError(raw, "only HTTP and HTTPS URLs are allowed")
        if not parts.hostname:
            raise InvalidURLError(raw, "no hostname given")

        obj = str.__new__(cls, raw)
        obj.scheme = scheme
        obj.host = parts.hostname
        obj.port = port
        return obj


def resolve_addresses(host: str, port: Optional[int]) -> List[str]:
    try:
        infos = socket.getaddrinfo(host, port, proto=socket.IPPROTO_TCP)
    except socket.gaierror as e:
        raise InvalidURLError(host, f"host cannot be resolved: {e}") from e
    return sorted({info[4][0] for info in infos})


def is_public_address(addr: str) -> bool:
    ip = ipaddress.ip_address(addr.split("%", 1)[0])
    return ip.is_global and not ip.is_multicast


def ensure_public_address(url: str, addr: str) -> None:
    if not is_public_address(addr):
        raise InvalidURLError(url, f"host resolves to a non-public address ({addr})")


def ensure_public_host(url: ValidatedURL) -> None:
    """
    Reject hosts that resolve to loopback, private, link-local or otherwise non-public addresses.
    This is the early check; the downloader checks the connected peer again.
    """
    for addr in resolve_addresses(url.host, url.port):
        ensure_public_address(str(url), addr)


def validate_content_type(url: str, content_type: Optional[str]) -> None:
    # An absent content type is allowed; the bytes are checked later anyway
    if content_type and not content_type.strip().lower().startswith("image/"):
        raise NotAnImageError(url, content_type)


def validate_image(data: bytes, config: OptimizationConfig) -> ImageInfo:
    """Header-only validation: supported format and minimum dimensions."""
    info = read_image_info(data)
    if config.reject_smaller and (info.width < config.target_width or info.height < config.target_height):
        raise ImageTooSmallError(have=info.dimensions, want=config.target)
    return info


def validate_entity_id(entity_id: str, label: str) -> str:
    if not entity_id:
        raise InvalidEntityIDError(label, entity_id, "must not be empty")
    if not _UUID_RE.match(entity_id):
        raise InvalidEntityIDError(label, entity_id, "must be a UUID")
    return entity_id


def validate_upload_source(url: Optional[str], image: Optional[str]) -> None:
    has_url = bool(url and url.strip())
    has_image = bool(image and image.strip())
    if not has_url and not has_image:
        raise InvalidSourceError("an image is required: give either 'url' or 'image'")
    if has_url and has_image:
        raise InvalidSourceError("use either 'url' or 'image', not both")
