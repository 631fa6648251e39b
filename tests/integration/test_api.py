"""
Integration tests for the back-office API.

External services are replaced through FastAPI dependency overrides; the
database is in-memory SQLite.
"""

from unittest.mock import MagicMock

import pytest
import requests
from fastapi.testclient import TestClient

from src.api.main import (
    app,
    get_auth_client,
    get_batch_registry,
    get_completion_client,
    get_db_engine_dep,
    get_image_search_client,
    get_image_storage,
    get_proxy_session,
    get_settings,
)
from src.flies import BatchJobRegistry
from src.flies.records import Fly
from tests.fakes import ADMIN_TOKEN, FakeAuth, FakeCompleter, FakeImageSearch, FakeStorage

AUTH = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def services():
    proxy = MagicMock()
    return {
        "completer": FakeCompleter(),
        "search": FakeImageSearch(),
        "storage": FakeStorage(),
        "proxy": proxy,
        "registry": BatchJobRegistry(),
    }


@pytest.fixture
def client(engine, test_settings, services):
    app.dependency_overrides = {
        get_db_engine_dep: lambda: engine,
        get_settings: lambda: test_settings,
        get_completion_client: lambda: services["completer"],
        get_image_search_client: lambda: services["search"],
        get_image_storage: lambda: services["storage"],
        get_auth_client: lambda: FakeAuth(),
        get_proxy_session: lambda: services["proxy"],
        get_batch_registry: lambda: services["registry"],
    }
    yield TestClient(app)
    app.dependency_overrides = {}


def upstream(status=200, content=b"", headers=None):
    response = MagicMock()
    response.content = content
    response.headers = headers or {}
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Not Found")
    return response


class TestSystemEndpoints:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_vocabulary(self, client):
        data = client.get("/metadata/vocabulary").json()

        assert data["seasons"] == ["Winter", "Spring", "Summer", "Fall"]
        assert "Heavy Rain" in data["weather_conditions"]


class TestImageProxy:
    """Test the CORS image proxy."""

    def test_missing_url(self, client):
        response = client.get("/image-proxy")

        assert response.status_code == 400
        assert response.text == "Missing image URL"

    def test_upstream_failure(self, client, services):
        services["proxy"].get.return_value = upstream(status=404)

        response = client.get("/image-proxy", params={"url": "https://img.example.com/gone.jpg"})

        assert response.status_code == 500
        assert response.text.startswith("Failed to fetch image:")

    def test_passes_bytes_with_cors(self, client, services):
        services["proxy"].get.return_value = upstream(content=b"GIF89a", headers={"Content-Type": "image/gif"})

        response = client.get("/image-proxy", params={"url": "https://img.example.com/fly.gif"})

        assert response.status_code == 200
        assert response.content == b"GIF89a"
        assert response.headers["content-type"] == "image/gif"
        assert response.headers["access-control-allow-origin"] == "*"

    def test_default_content_type(self, client, services):
        services["proxy"].get.return_value = upstream(content=b"x")

        response = client.get("/image-proxy", params={"url": "https://img.example.com/fly"})

        assert response.headers["content-type"] == "image/jpeg"


class TestPublicForms:

    def test_join_waitlist(self, client):
        response = client.post("/waitlist", json={"email": "angler@example.com", "name": "Sam"})

        assert response.status_code == 201
        assert response.json()["message"] == "Successfully joined the waitlist!"

    def test_waitlist_rejects_bad_email(self, client):
        assert client.post("/waitlist", json={"email": "nope"}).status_code == 422

    def test_data_deletion_request(self, client):
        response = client.post("/data-deletion-requests", json={"email": "angler@example.com"})

        assert response.status_code == 201
        assert "within 30 days" in response.json()["message"]


class TestAdminAuth:
    """Admin endpoints need a valid session."""

    def test_missing_token(self, client):
        response = client.get("/admin/flies")

        assert response.status_code == 401
        assert response.json()["detail"].startswith("Error")

    def test_invalid_token(self, client):
        response = client.get("/admin/flies", headers={"Authorization": "Bearer wrong"})
        assert response.status_code == 401

    def test_session(self, client):
        data = client.get("/admin/session", headers=AUTH).json()
        assert data["email"] == "admin@example.com"

    def test_logout(self, client):
        assert client.post("/admin/logout", headers=AUTH).json()["message"] == "Signed out"


class TestFlyCatalog:
    """Test listing, creating, editing and importing flies."""

    def test_list_defaults_to_incomplete(self, client, repository):
        repository.create(Fly(name="Zug Bug"))
        repository.create(Fly(name="Adams", description="d", categories=["Dry Fly"], season=["Summer"]))

        incomplete = client.get("/admin/flies", headers=AUTH).json()
        everything = client.get("/admin/flies", params={"show_all": True}, headers=AUTH).json()

        assert [f["name"] for f in incomplete["flies"]] == ["Zug Bug"]
        assert incomplete["flies"][0]["incomplete"] is True
        assert everything["count"] == 2

    def test_create_fly_with_patterns(self, client):
        response = client.post("/admin/flies", headers=AUTH, json={
            "name": "Copper John",
            "temp_min": 6,
            "temp_max": 16,
            "depth": "Deep",
            "patterns": [{"month": "May", "water_clarity": "Clear"}],
        })

        assert response.status_code == 201
        assert response.json()["message"] == "Fly data saved successfully!"
        assert response.json()["fly"]["depth"] == "Deep"

    def test_create_rejects_reversed_temperatures(self, client, repository):
        """Nothing is written when min > max."""
        response = client.post("/admin/flies", headers=AUTH, json={
            "name": "Copper John", "temp_min": 20, "temp_max": 10,
        })

        assert response.status_code == 422
        assert response.json()["detail"].startswith("Error")
        assert repository.get_by_name("Copper John") is None

    def test_create_rejects_unknown_season(self, client, repository):
        response = client.post("/admin/flies", headers=AUTH, json={"name": "Copper John", "season": ["Autumnal"]})

        assert response.status_code == 422
        assert response.json()["detail"].startswith("Error")
        assert repository.get_by_name("Copper John") is None

    def test_create_duplicate(self, client, adams):
        response = client.post("/admin/flies", headers=AUTH, json={"name": "Adams"})
        assert response.status_code == 409

    def test_update_fields(self, client, adams):
        response = client.patch(f"/admin/flies/{adams.id}", headers=AUTH, json={
            "description": "Classic dry",
            "weather_conditions": ["Cloudy"],
            "season_start": 11,
            "season_end": 2,
        })

        assert response.status_code == 200
        fly = response.json()["fly"]
        assert fly["description"] == "Classic dry"
        assert (fly["season_start"], fly["season_end"]) == (11, 2)

    def test_update_invalid_temperature_not_persisted(self, client, repository, adams):
        repository.update(adams.id, {"temp_min": 8.0, "temp_max": 18.0})

        response = client.patch(f"/admin/flies/{adams.id}", headers=AUTH, json={"temp_min": 25})

        assert response.status_code == 422
        assert repository.get(adams.id).temp_min == 8.0

    def test_update_rejects_unknown_tags(self, client, repository, adams):
        """Values outside the season, water and weather vocabularies are not stored."""
        response = client.patch(f"/admin/flies/{adams.id}", headers=AUTH, json={
            "season": ["Summertime"],
            "water_type": ["Ocean"],
            "weather_conditions": ["sunny-ish"],
        })

        assert response.status_code == 422
        fly = repository.get(adams.id)
        assert (fly.season, fly.water_type, fly.weather_conditions) == (None, None, None)

    def test_update_accepts_canonical_tags(self, client, adams):
        response = client.patch(f"/admin/flies/{adams.id}", headers=AUTH, json={
            "season": ["Spring", "Fall"],
            "water_type": ["Streams"],
            "weather_conditions": ["Clear, Sunny"],
        })

        assert response.status_code == 200
        assert response.json()["fly"]["season"] == ["Spring", "Fall"]

    def test_update_missing_fly(self, client):
        response = client.patch("/admin/flies/missing", headers=AUTH, json={"description": "x"})
        assert response.status_code == 404

    def test_bulk_import(self, client, adams):
        response = client.post("/admin/flies/import", headers=AUTH, json={
            "names_text": "Adams\nZug Bug\n\nCopper John\n"
        })

        data = response.json()
        assert data["added"] == ["Zug Bug", "Copper John"]
        assert data["skipped"] == ["Adams"]
        assert data["message"] == "Successfully added 2 new flies. 1 were already in the database."

    def test_bulk_import_empty(self, client):
        response = client.post("/admin/flies/import", headers=AUTH, json={"names_text": "\n  \n"})
        assert response.status_code == 422


class TestFlyImages:
    """Test upload, search and selection."""

    def test_upload_creates_new_fly(self, client, services):
        response = client.post(
            "/admin/flies/upload",
            headers=AUTH,
            data={"name": "Royal Wulff"},
            files={"file": ("wulff.png", b"PNG", "image/png")},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "New fly added successfully!"
        assert response.json()["fly"]["image_url"].endswith(".png")
        assert services["storage"].uploads[0][2] == "image/png"

    def test_upload_updates_existing(self, client, adams):
        response = client.post(
            "/admin/flies/upload",
            headers=AUTH,
            data={"name": "Adams"},
            files={"file": ("adams.jpg", b"JPG", "image/jpeg")},
        )

        assert response.json()["message"] == "Fly image updated successfully!"
        assert response.json()["fly"]["id"] == adams.id

    def test_search_no_matching_fly(self, client):
        data = client.get("/admin/image-search", params={"q": "unicorn"}, headers=AUTH).json()

        assert data["message"] == "No flies found with that name"
        assert data["results"] == []

    def test_search_uses_first_match(self, client, repository, services):
        repository.create(Fly(name="Parachute Adams"))
        repository.create(Fly(name="Adams"))

        data = client.get("/admin/image-search", params={"q": "adams"}, headers=AUTH).json()

        assert data["fly_name"] == "Adams"
        assert services["search"].queries == ["Adams"]
        assert len(data["results"]) == 1

    def test_search_no_images(self, client, adams, services):
        services["search"].results = []

        data = client.get("/admin/image-search", params={"q": "Adams"}, headers=AUTH).json()

        assert data["message"] == "No images found"

    def test_search_failure(self, client, adams, services):
        services["search"].fail = True

        response = client.get("/admin/image-search", params={"q": "Adams"}, headers=AUTH)

        assert response.status_code == 502
        assert response.json()["detail"].startswith("Error")

    def test_select_image(self, client, adams, services):
        response = client.post(
            f"/admin/flies/{adams.id}/image",
            headers=AUTH,
            json={"image_url": "https://img.example.com/adams.png"},
        )

        assert response.json()["message"] == "Image updated successfully!"
        assert services["storage"].uploads[0][0].endswith(".png")


class TestClassification:
    """Test single-fly and batch classification."""

    def test_suggestions_not_saved(self, client, repository, adams):
        response = client.post(f"/admin/flies/{adams.id}/suggestions", headers=AUTH)

        data = response.json()
        assert data["saved"] is False
        assert data["depth"] == "Surface"
        assert repository.get(adams.id).description is None

    def test_suggestions_by_name_for_unsaved_fly(self, client, repository, services):
        """The create form can ask about a fly that is not in the catalog yet."""
        response = client.post("/admin/suggestions", headers=AUTH, json={"name": "Royal Wulff"})

        data = response.json()
        assert response.status_code == 200
        assert data["fly_id"] is None
        assert data["saved"] is False
        assert data["categories"] == ["Dry Fly", "Terrestrial"]
        assert '"Royal Wulff"' in services["completer"].prompts[0]
        assert repository.get_by_name("Royal Wulff") is None

    def test_suggestions_by_name_completion_failure(self, client, services):
        services["completer"].fail_for = {"Royal Wulff"}

        response = client.post("/admin/suggestions", headers=AUTH, json={"name": "Royal Wulff"})

        assert response.status_code == 502
        assert response.json()["detail"].startswith("Error")

    def test_suggestions_by_name_blank(self, client):
        response = client.post("/admin/suggestions", headers=AUTH, json={"name": "   "})
        assert response.status_code == 422

    def test_classify_saves(self, client, repository, adams):
        response = client.post(f"/admin/flies/{adams.id}/classify", headers=AUTH)

        assert response.json()["saved"] is True
        fly = repository.get(adams.id)
        assert fly.description == "A classic dry fly."
        assert fly.water_type == ["Rivers", "Streams", "Lakes"]
        assert (fly.season_start, fly.season_end) == (3, 9)

    def test_classify_completion_failure(self, client, adams, services):
        services["completer"].fail_for = {"Adams"}

        response = client.post(f"/admin/flies/{adams.id}/classify", headers=AUTH)

        assert response.status_code == 502
        assert response.json()["detail"].startswith("Error")

    def test_batch_isolates_failures(self, client, repository, services):
        ids = [repository.create(Fly(name=name)).id for name in ("Adams", "Zug Bug", "Copper John")]
        services["completer"].fail_for = {"Zug Bug"}

        started = client.post("/admin/batches", headers=AUTH, json={"fly_ids": ids})
        assert started.status_code == 202

        status = client.get(f"/admin/batches/{started.json()['job_id']}", headers=AUTH).json()

        assert status["finished"] is True
        assert status["processed"] == 3
        assert status["failed"] == 1
        assert status["succeeded"] == 2
        assert status["message"].startswith("Error")
        assert repository.get_by_name("Adams").description == "A classic dry fly."
        assert repository.get_by_name("Zug Bug").description is None

    def test_batch_unknown_ids(self, client):
        response = client.post("/admin/batches", headers=AUTH, json={"fly_ids": ["missing"]})
        assert response.status_code == 404

    def test_batch_status_unknown(self, client):
        assert client.get("/admin/batches/nope", headers=AUTH).status_code == 404
