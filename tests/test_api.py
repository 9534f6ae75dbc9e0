import pytest
from fastapi.testclient import TestClient

from conftest import FakeResponse, FakeSession, StubEncoder, b64, make_image
from trackart import db
from trackart.config import Settings, get_settings
from trackart.dependencies import get_media_service
from trackart.errors import DatabaseError
from trackart.main import create_app
from trackart.repository import EntityType
from trackart.services.media import MediaService

API_KEY = "test-key-123"
IMAGE_URL = "https://images.example.com/cover.png"
UNKNOWN_ID = "00000000-0000-4000-8000-000000000000"


@pytest.fixture
def settings():
    s = Settings()
    s.API_ENABLED = True
    s.API_KEYS = [API_KEY]
    s.MONGO_DB = "trackart_test"
    return s


@pytest.fixture
def session():
    return FakeSession({})


@pytest.fixture
def app(settings, repo, config, session):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_media_service] = lambda: MediaService(
        repo, config, block_private_networks=False, http_session=session,
    )
    return app


@pytest.fixture
def client(app):
    return TestClient(app, headers={"X-API-Key": API_KEY})


# --- auth / health ---

def test_missing_api_key_is_rejected(app):
    resp = TestClient(app).get("/api/artists")
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Unauthorized: invalid or missing API key"}


def test_wrong_api_key_is_rejected(app):
    resp = TestClient(app, headers={"X-API-Key": "nope"}).get("/api/tracks")
    assert resp.status_code == 401


def test_auth_disabled(app, settings):
    settings.API_ENABLED = False
    assert TestClient(app).get("/api/artists").status_code == 200


def test_health_needs_no_key(app, monkeypatch):
    async def fake_ping():
        return True

    monkeypatch.setattr(db, "ping", fake_ping)
    resp = TestClient(app).get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "data": {
            "status": "healthy",
            "version": "1.0.0",
            "database": "trackart_test",
            "database_status": "connected",
        },
    }


def test_health_reports_database_down(app, monkeypatch):
    async def fake_ping():
        return False

    monkeypatch.setattr(db, "ping", fake_ping)
    body = TestClient(app).get("/api/health").json()
    assert body["data"]["database_status"] == "disconnected"


def test_unknown_endpoint(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Endpoint not found"}


# --- reads ---

def test_stats(client, repo):
    repo.add_artist(image=make_image((10, 10), "JPEG"))
    repo.add_artist()
    repo.add_artist()

    resp = client.get("/api/artists")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"total": 3, "with_images": 1, "without_images": 2}


def test_artist_details(client, repo):
    artist_id = repo.add_artist(name="Daft Punk")
    data = client.get(f"/api/artists/{artist_id}").json()["data"]
    assert data["id"] == artist_id
    assert data["artist"] == "Daft Punk"
    assert data["has_image"] is False


def test_track_details(client, repo):
    track_id = repo.add_track(title="One More Time", image=make_image((10, 10), "PNG"))
    data = client.get(f"/api/tracks/{track_id}").json()["data"]
    assert data["title"] == "One More Time"
    assert data["has_image"] is True


def test_details_unknown_id(client):
    resp = client.get(f"/api/artists/{UNKNOWN_ID}")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert UNKNOWN_ID in resp.json()["error"]


def test_details_malformed_id(client):
    resp = client.get("/api/tracks/not-a-uuid")
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_get_image(client, repo):
    png = make_image((10, 10), "PNG")
    track_id = repo.add_track(image=png)

    resp = client.get(f"/api/tracks/{track_id}/image")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.content == png


def test_get_image_when_none_stored(client, repo):
    artist_id = repo.add_artist()
    resp = client.get(f"/api/artists/{artist_id}/image")
    assert resp.status_code == 404
    assert "has no image" in resp.json()["error"]


# --- upload ---

def test_upload_base64(client, repo):
    artist_id = repo.add_artist(name="Justice")
    original = make_image((1200, 800), "PNG", noise=True)

    resp = client.post(f"/api/artists/{artist_id}/image",
                       json={"image": b64(original, "data:image/png;base64,")})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["artist"] == "Justice"
    assert "track" not in data
    assert data["original_size"] == len(original)
    assert data["optimized_size"] < data["original_size"]
    assert data["savings_percent"] > 0
    assert " vs " in data["encoder"]

    stored = repo.images[EntityType.ARTIST][artist_id]
    assert len(stored) == data["optimized_size"]
    assert stored[:3] == b"\xff\xd8\xff"


def test_upload_from_url(client, repo, session):
    track_id = repo.add_track(title="Genesis", artist="Justice")
    session.routes[IMAGE_URL] = FakeResponse(
        200, {"Content-Type": "image/png"}, [make_image((900, 900), "PNG", noise=True)]
    )

    data = client.post(f"/api/tracks/{track_id}/image", json={"url": IMAGE_URL}).json()["data"]
    assert data["track"] == "Genesis"
    assert data["artist"] == "Justice"
    assert repo.images[EntityType.TRACK][track_id] is not None


def test_upload_reports_encoder_label(app, client, repo, config):
    app.dependency_overrides[get_media_service] = lambda: MediaService(
        repo, config, encoders=[StubEncoder("standard", 120 * 1024), StubEncoder("alt", 98 * 1024)],
    )
    artist_id = repo.add_artist()
    original = make_image((2000, 2000), "JPEG", noise=True, quality=95)

    data = client.post(f"/api/artists/{artist_id}/image", json={"image": b64(original)}).json()["data"]
    assert data["encoder"] == "alt (98 KB) vs standard (120 KB)"
    assert data["optimized_size"] == 98 * 1024


@pytest.mark.parametrize("body", [
    {},
    {"url": None, "image": None},
    {"url": IMAGE_URL, "image": "aGVsbG8="},
])
def test_upload_needs_exactly_one_source(client, repo, body):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json=body)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert repo.images[EntityType.ARTIST][artist_id] is None


def test_upload_invalid_base64(client, repo):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json={"image": "not-valid-base64!!"})
    assert resp.status_code == 400
    assert "base64" in resp.json()["error"]


def test_upload_unsupported_format(client, repo):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json={"image": b64(make_image((20, 20), "GIF"))})
    assert resp.status_code == 400


def test_upload_corrupt_image(client, repo):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json={"image": b64(b"\xff\xd8\xff\xe0 broken")})
    assert resp.status_code == 422


def test_upload_url_not_found(client, repo, session):
    artist_id = repo.add_artist()
    session.routes[IMAGE_URL] = FakeResponse(404, {"Content-Type": "text/html"}, [b"gone"])

    resp = client.post(f"/api/artists/{artist_id}/image", json={"url": IMAGE_URL})
    assert resp.status_code == 400
    assert "404" in resp.json()["error"]


def test_upload_bad_scheme(client, repo, session):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json={"url": "ftp://images.example.com/a.png"})
    assert resp.status_code == 400
    assert session.calls == []


def test_upload_to_unknown_entity_fetches_nothing(client, session):
    resp = client.post(f"/api/tracks/{UNKNOWN_ID}/image", json={"url": IMAGE_URL})
    assert resp.status_code == 404
    assert session.calls == []


def test_malformed_json(client, repo):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", content=b"{not json",
                       headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid request body"}


# --- deletes ---

def test_delete_image(client, repo):
    track_id = repo.add_track(image=make_image((10, 10), "JPEG"))
    resp = client.delete(f"/api/tracks/{track_id}/image")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"message": "track image deleted", "track_id": track_id}
    assert repo.images[EntityType.TRACK][track_id] is None


def test_delete_image_unknown_entity(client):
    assert client.delete(f"/api/artists/{UNKNOWN_ID}/image").status_code == 404


def test_bulk_delete_requires_confirmation(client, repo):
    artist_id = repo.add_artist(image=make_image((10, 10), "JPEG"))
    resp = client.delete("/api/artists/bulk-delete")
    assert resp.status_code == 400
    assert repo.images[EntityType.ARTIST][artist_id] is not None

    resp = client.delete("/api/artists/bulk-delete", headers={"X-Confirm-Bulk-Delete": "yes"})
    assert resp.status_code == 400


def test_bulk_delete(client, repo):
    for _ in range(2):
        repo.add_artist(image=make_image((10, 10), "JPEG"))
    repo.add_artist()

    resp = client.delete("/api/artists/bulk-delete", headers={"X-Confirm-Bulk-Delete": "DELETE ALL"})
    assert resp.status_code == 200
    assert resp.json()["data"] == {"deleted": 2, "message": "2 artist images deleted"}
    assert all(v is None for v in repo.images[EntityType.ARTIST].values())


def test_database_failure_is_500(app, client, repo, config):
    class Broken(type(repo)):
        async def count_with_images(self, entity_type):
            raise DatabaseError("counting", RuntimeError("connection reset"))

    app.dependency_overrides[get_media_service] = lambda: MediaService(Broken(), config)
    resp = client.get("/api/tracks")
    assert resp.status_code == 500
    assert resp.json()["success"] is False


@pytest.mark.parametrize("body, status, kind", [
    ({"image": "not-valid-base64!!"}, 400, "InvalidBase64"),
    ({"url": "ftp://images.example.com/a.png"}, 400, "InvalidURL"),
    ({}, 400, "InvalidSource"),
])
def test_error_envelope_carries_kind(client, repo, body, status, kind):
    artist_id = repo.add_artist()
    resp = client.post(f"/api/artists/{artist_id}/image", json=body)
    assert resp.status_code == status
    assert resp.json()["kind"] == kind
    assert resp.json()["success"] is False


def test_not_found_envelope_kind(client):
    assert client.get(f"/api/tracks/{UNKNOWN_ID}").json()["kind"] == "NotFound"
