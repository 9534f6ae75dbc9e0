import logging
from typing import Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from ..errors import (
    DownloadFailedError,
    DownloadTimeoutError,
    InvalidURLError,
    ResponseTooLargeError,
)
from ..utils.transforms import decode_base64
from .validators import (
    ValidatedURL,
    ensure_public_host,
    is_public_address,
    validate_content_type,
    validate_upload_source,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_REDIRECTS = 5
CHUNK_SIZE = 64 * 1024
USER_AGENT = "trackart-image-fetcher/1.0"


class _PublicPeerMixin:
    """Checks the address the socket actually connected to, before anything is sent."""

    def _new_conn(self):
        sock = super()._new_conn()
        peer = sock.getpeername()[0]
        if not is_public_address(peer):
            sock.close()
            logger.warning("Blocked connection to %s: peer address %s is not public", self.host, peer)
            raise InvalidURLError(self.host, f"host resolves to a non-public address ({peer})")
        return sock


class _PublicHTTPConnection(_PublicPeerMixin, HTTPConnection):
    pass


class _PublicHTTPSConnection(_PublicPeerMixin, HTTPSConnection):
    pass


class _PublicHTTPConnectionPool(HTTPConnectionPool):
    ConnectionCls = _PublicHTTPConnection


class _PublicHTTPSConnectionPool(HTTPSConnectionPool):
    ConnectionCls = _PublicHTTPSConnection


class PublicAddressAdapter(HTTPAdapter):
    """
    Transport adapter that refuses to talk to non-public peers.
    The host is resolved again when connecting, so the pre-flight lookup alone
    cannot stop a DNS answer that changes in between.
    """

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": _PublicHTTPConnectionPool,
            "https": _PublicHTTPSConnectionPool,
        }


def new_session(block_private_networks: bool = True) -> requests.Session:
    session = requests.Session()
    if block_private_networks:
        adapter = PublicAddressAdapter()
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return session


def download_image(
    url: ValidatedURL,
    max_bytes: int,
    timeout: float = DEFAULT_TIMEOUT,
    block_private_networks: bool = True,
    session: Optional[requests.Session] = None,
) -> bytes:
    """
    Fetch an image over HTTP(S) with a hard size cap.
    Redirects are followed by hand so every hop is validated again.
    The response is always closed, also on errors and timeouts.
    A caller-supplied session should come from `new_session()` so the
    connected peer is checked as well.
    """
    if not isinstance(url, ValidatedURL):
        raise TypeError("download_image() requires a ValidatedURL")

    own_session = session is None
    http = session or new_session(block_private_networks)
    try:
        current = url
        for _ in range(MAX_REDIRECTS + 1):
            if block_private_networks:
                ensure_public_host(current)

            resp = _get(http, current, timeout)
            with resp:
                if resp.is_redirect:
                    location = resp.headers.get("Location", "")
                    current = ValidatedURL.parse(urljoin(str(current), location))
                    logger.debug("Following redirect to %s", current)
                    continue
                return _read_body(resp, current, max_bytes, timeout)

        raise DownloadFailedError(str(url), reason=f"more than {MAX_REDIRECTS} redirects")
    finally:
        if own_session:
            http.close()


def _get(http: requests.Session, url: ValidatedURL, timeout: float) -> requests.Response:
    try:
        return http.get(
            str(url),
            stream=True,
            timeout=timeout,
            allow_redirects=False,
            headers={"User-Agent": USER_AGENT, "Accept": "image/*"},
        )
    except requests.Timeout as e:
        raise DownloadTimeoutError(str(url), timeout) from e
    except requests.RequestException as e:
        raise DownloadFailedError(str(url), reason=str(e)) from e


def _read_body(resp: requests.Response, url: ValidatedURL, max_bytes: int, timeout: float) -> bytes:
    if not 200 <= resp.status_code < 300:
        raise DownloadFailedError(str(url), status=resp.status_code)

    validate_content_type(str(url), resp.headers.get("Content-Type"))

    declared = resp.headers.get("Content-Length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise ResponseTooLargeError(str(url), max_bytes)

    buf = bytearray()
    try:
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            if len(buf) + len(chunk) > max_bytes:
                raise ResponseTooLargeError(str(url), max_bytes)
            buf.extend(chunk)
    except requests.Timeout as e:
        raise DownloadTimeoutError(str(url), timeout) from e
    except requests.RequestException as e:
        raise DownloadFailedError(str(url), reason=f"error while reading: {e}") from e

    logger.info("Downloaded %d bytes from %s", len(buf), url.host)
    return bytes(buf)


def acquire(
    url: Optional[str],
    image: Optional[str],
    max_bytes: int,
    timeout: float = DEFAULT_TIMEOUT,
    block_private_networks: bool = True,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Raw image bytes from exactly one of a URL or a base64 payload."""
    validate_upload_source(url, image)
    if url and url.strip():
        validated = ValidatedURL.parse(url)
        return download_image(
            validated,
            max_bytes,
            timeout=timeout,
            block_private_networks=block_private_networks,
            session=session,
        )
    return decode_base64(image)
