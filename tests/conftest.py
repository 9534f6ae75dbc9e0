import base64
import uuid
from io import BytesIO

import pytest
from PIL import Image
from requests.structures import CaseInsensitiveDict

from trackart.errors import NoImageError, NotFoundError
from trackart.models import OptimizationConfig
from trackart.repository import EntityType
from trackart.schemas import ArtistDetails, TrackDetails


# --- image factories ---

def make_image(size, fmt="JPEG", color=(200, 40, 40), noise=False, mode="RGB", **save_kw) -> bytes:
    if noise:
        img = Image.merge("RGB", [Image.effect_noise(size, 80) for _ in range(3)])
    else:
        img = Image.new(mode, size, color)
    buf = BytesIO()
    img.save(buf, format=fmt, **save_kw)
    return buf.getvalue()


def padded_jpeg(total_size: int) -> bytes:
    """A real JPEG header padded with trailing bytes to an exact size."""
    data = make_image((32, 32), "JPEG")
    assert len(data) <= total_size
    return data + b"\x00" * (total_size - len(data))


def b64(data: bytes, prefix: str = "") -> str:
    return prefix + base64.b64encode(data).decode("ascii")


class StubEncoder:
    def __init__(self, name, size=None, error=None):
        self.name = name
        self.size = size
        self.error = error
        self.calls = 0

    def encode(self, img, quality):
        self.calls += 1
        if self.error:
            raise self.error
        return padded_jpeg(self.size)


# --- fake HTTP ---

class FakeResponse:
    def __init__(self, status_code=200, headers=None, chunks=(), redirect_to=None):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._chunks = list(chunks)
        self.chunks_read = 0
        self.closed = False
        if redirect_to:
            self.headers["Location"] = redirect_to

    @property
    def is_redirect(self):
        return "Location" in self.headers and self.status_code in (301, 302, 303, 307, 308)

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            self.chunks_read += 1
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        result = self.routes[url]
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        pass


# --- in-memory repository ---

class FakeRepository:
    def __init__(self):
        self.artists = {}
        self.tracks = {}
        self.images = {EntityType.ARTIST: {}, EntityType.TRACK: {}}

    def add_artist(self, name="Daft Punk", image=None):
        artist_id = str(uuid.uuid4())
        self.artists[artist_id] = {"_id": artist_id, "artist": name}
        self.images[EntityType.ARTIST][artist_id] = image
        return artist_id

    def add_track(self, title="Get Lucky", artist="Daft Punk", image=None):
        track_id = str(uuid.uuid4())
        self.tracks[track_id] = {"_id": track_id, "title": title, "artist": artist}
        self.images[EntityType.TRACK][track_id] = image
        return track_id

    def _docs(self, entity_type):
        return self.artists if entity_type is EntityType.ARTIST else self.tracks

    async def get_artist(self, artist_id):
        if artist_id not in self.artists:
            raise NotFoundError("artist", artist_id)
        doc = dict(self.artists[artist_id], has_image=bool(self.images[EntityType.ARTIST][artist_id]))
        return ArtistDetails.from_document(doc)

    async def get_track(self, track_id):
        if track_id not in self.tracks:
            raise NotFoundError("track", track_id)
        doc = dict(self.tracks[track_id], has_image=bool(self.images[EntityType.TRACK][track_id]))
        return TrackDetails.from_document(doc)

    async def get_image(self, entity_type, entity_id):
        if entity_id not in self._docs(entity_type):
            raise NotFoundError(entity_type.label, entity_id)
        data = self.images[entity_type][entity_id]
        if not data:
            raise NoImageError(entity_type.label, entity_id)
        return data

    async def update_image(self, entity_type, entity_id, data):
        if entity_id not in self._docs(entity_type):
            raise NotFoundError(entity_type.label, entity_id)
        self.images[entity_type][entity_id] = data

    async def delete_image(self, entity_type, entity_id):
        if entity_id not in self._docs(entity_type):
            raise NotFoundError(f"{entity_type.label} image", entity_id)
        self.images[entity_type][entity_id] = None

    async def count_with_images(self, entity_type):
        return sum(1 for v in self.images[entity_type].values() if v)

    async def count_without_images(self, entity_type):
        return sum(1 for v in self.images[entity_type].values() if not v)

    async def delete_all_images(self, entity_type):
        n = 0
        for k, v in self.images[entity_type].items():
            if v:
                self.images[entity_type][k] = None
                n += 1
        return n


@pytest.fixture
def config():
    return OptimizationConfig(target_width=640, target_height=640, quality=85,
                              reject_smaller=False, max_download_bytes=5 * 1024 * 1024)


@pytest.fixture
def repo():
    return FakeRepository()
