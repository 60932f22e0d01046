"""Tests for the admin back office API (FastAPI TestClient, in-memory services)"""

import inspect
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from admin import main as admin_main
from admin.main import app
from services.controller import AppController
from tests.conftest import FakeConfig


class DriveConfig(FakeConfig):
    GOOGLE_API_KEY = "drive-api-key"
    GOOGLE_CLIENT_ID = "client-123.apps.googleusercontent.com"


@pytest.fixture
def controller(sync, tracker):
    """Long debounce delay: writes stay pending until flushed"""
    ctrl = AppController(sync, tracker, sync_delay=5.0, pages_delay=5.0)
    ctrl.load()
    yield ctrl
    ctrl.flush()


@pytest.fixture
def client(app_services):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def headers(client):
    response = client.post("/admin/api/auth/login", json={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


class TestAuthentication:

    def test_login_wrong_password(self, client):
        response = client.post("/admin/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_login_runs_off_the_event_loop(self):
        assert not inspect.iscoroutinefunction(admin_main.login)

    def test_non_admin_cannot_log_in(self, client):
        response = client.post("/admin/api/auth/login", json={"username": "user1", "password": "x"})
        assert response.status_code == 401

    def test_missing_token(self, client):
        assert client.get("/admin/api/users").status_code == 401

    def test_user_token_is_forbidden(self, client, app_services):
        token, _ = app_services.auth.login("user1")
        response = client.get("/admin/api/users", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_logout_revokes_token(self, client, headers):
        assert client.post("/admin/api/auth/logout", headers=headers).status_code == 204
        assert client.get("/admin/api/users", headers=headers).status_code == 401

    def test_users_and_data(self, client, headers):
        users = client.get("/admin/api/users", headers=headers).json()
        assert {u["username"] for u in users} >= {"admin", "user1", "user2"}

        data = client.get("/admin/api/data", headers=headers).json()
        assert set(data) >= {"heroImages", "menuItems", "products", "videos", "posts", "pageContents", "popup"}


class TestProducts:

    def test_crud(self, client, headers, app_services):
        response = client.post("/admin/api/products", json={"title": "푸꾸옥 풀빌라", "type": "hotel"},
                               headers=headers)
        assert response.status_code == 201
        product_id = response.json()["id"]

        response = client.put(f"/admin/api/products/{product_id}", json={"price": 350000}, headers=headers)
        assert response.json()["price"] == 350000
        assert response.json()["title"] == "푸꾸옥 풀빌라"

        assert client.delete(f"/admin/api/products/{product_id}", headers=headers).status_code == 204
        assert client.get(f"/admin/api/products/{product_id}", headers=headers).status_code == 404

        app_services.controller.flush()
        assert product_id not in app_services.sync.store.list_documents("products")

    def test_invalid_type(self, client, headers):
        response = client.post("/admin/api/products", json={"type": "cruise"}, headers=headers)
        assert response.status_code == 422

    def test_itinerary(self, client, headers):
        response = client.delete("/admin/api/products/p1/itinerary/0", headers=headers)
        assert [d["day"] for d in response.json()["itinerary"]] == [1, 2]

        response = client.post("/admin/api/products/p1/itinerary/0/activities", json={}, headers=headers)
        assert response.status_code == 201
        assert response.json()["itinerary"][0]["activities"][-1] == "활동 추가"

        response = client.put("/admin/api/products/p1/itinerary/0/activities/0", json={"text": "티오프"},
                              headers=headers)
        assert response.json()["itinerary"][0]["activities"][0] == "티오프"

        assert client.delete("/admin/api/products/p1/itinerary/9", headers=headers).status_code == 404


class TestVideosAndPosts:

    def test_classify_and_create(self, client, headers):
        response = client.post("/admin/api/videos/classify", json={"title": "호치민 쌀국수 맛집"}, headers=headers)
        assert response.json() == {"category": "먹거리"}

        response = client.post("/admin/api/videos", json={"title": "골프 레슨", "url": "https://youtu.be/a"},
                               headers=headers)
        assert response.status_code == 201
        assert response.json()["category"] == "골프"

        videos = client.get("/admin/api/videos", headers=headers).json()
        assert videos[0]["id"] == response.json()["id"]

    def test_posts_include_private_content(self, client, headers):
        posts = {p["id"]: p for p in client.get("/admin/api/posts", headers=headers).json()}
        assert posts["post2"]["content"]

        response = client.put("/admin/api/posts/post2/reply", json={"reply": "견적 드렸습니다"}, headers=headers)
        assert response.json()["adminReply"] == "견적 드렸습니다"

        assert client.delete("/admin/api/posts/post2", headers=headers).status_code == 204


class TestPagesAndSettings:

    def test_page_update_and_sections(self, client, headers):
        response = client.put("/admin/api/pages/golf", json={"heroTitle": "골프 천국"}, headers=headers)
        assert response.json()["heroTitle"] == "골프 천국"

        response = client.post("/admin/api/pages/golf/sections", json={"title": "신규 코스"}, headers=headers)
        assert response.status_code == 201
        assert response.json()["sections"][-1]["title"] == "신규 코스"

        assert client.get("/admin/api/pages/casino", headers=headers).status_code == 404

    def test_hero_images_validation(self, client, headers):
        assert client.put("/admin/api/settings/hero-images", json={"images": []}, headers=headers).status_code == 422
        response = client.put("/admin/api/settings/hero-images", json={"images": ["https://img/1.jpg"]},
                              headers=headers)
        assert response.json() == {"heroImages": ["https://img/1.jpg"]}

    def test_popup(self, client, headers):
        response = client.put("/admin/api/popup", json={"isActive": False, "title": "공지"}, headers=headers)
        assert response.json()["isActive"] is False
        assert client.get("/admin/api/popup", headers=headers).json()["title"] == "공지"


class TestUploads:

    def test_upload(self, client, headers, upload_strategy):
        response = client.post(
            "/admin/api/uploads",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            data={"folder": "products"},
            headers=headers,
        )
        assert response.status_code == 201
        assert response.json()["url"] == upload_strategy.url
        assert upload_strategy.received[0][1] == "products"

    def test_empty_file(self, client, headers):
        response = client.post("/admin/api/uploads", files={"file": ("empty.txt", b"", "text/plain")},
                               headers=headers)
        assert response.status_code == 400


class TestSync:

    def test_status_and_flush(self, client, headers):
        client.delete("/admin/api/videos/v1", headers=headers)

        status = client.get("/admin/api/sync/status", headers=headers).json()
        assert status["badge"] == "CLOUD SYNC"
        assert "videos" in status["pending"]

        assert client.post("/admin/api/sync/flush", headers=headers).json()["flushed"] == ["videos"]
        assert client.get("/admin/api/sync/status", headers=headers).json()["keys"]["videos"]["state"] == "synced"

    def test_resync(self, client, headers):
        results = client.post("/admin/api/sync/resync", headers=headers).json()["results"]
        assert all(results.values())

    def test_notifications_are_drained(self, client, headers, tracker):
        tracker.mark_failed("posts", "Saving 'posts' failed")

        assert len(client.get("/admin/api/notifications", headers=headers).json()) == 1
        assert client.get("/admin/api/notifications", headers=headers).json() == []

    def test_health_needs_no_token(self, client):
        assert client.get("/admin/api/health").json()["status"] == "healthy"


class TestDrive:

    def test_connect_without_api_key(self, client, headers):
        response = client.post("/admin/api/drive/connect", headers=headers)
        assert response.status_code == 503

    def test_unknown_state_rejected(self, client):
        response = client.post("/admin/api/drive/token", json={"state": "bogus", "access_token": "t"})
        assert response.status_code == 403

    def test_callback_page(self, client):
        response = client.get("/admin/drive/callback")
        assert "/admin/api/drive/token" in response.text

    def test_connect_backup_restore(self, client, headers, app_services):
        app_services.config = DriveConfig

        response = client.post("/admin/api/drive/connect", headers=headers)
        assert response.status_code == 200
        assert "client-123" in response.json()["consent_url"]

        state = response.json()["state"]
        assert client.post("/admin/api/drive/token", json={"state": state, "access_token": "ya29"}).status_code == 204
        assert client.get("/admin/api/drive/status", headers=headers).json()["authorized"] is True

        with patch.object(app_services.drive, "save_data", AsyncMock(return_value="file-1")) as save:
            response = client.post("/admin/api/drive/backup", headers=headers)
        assert response.json()["fileId"] == "file-1"
        assert set(save.call_args.args[0]) == {"heroImages", "menuItems", "products", "videos", "posts", "pageContents"}

        backup = {"products": [{"id": "b1", "title": "백업 상품", "type": "golf"}]}
        with patch.object(app_services.drive, "load_data", AsyncMock(return_value=backup)):
            response = client.post("/admin/api/drive/restore", headers=headers)
        assert response.json() == {"restored": ["products"]}
        assert [p.id for p in app_services.controller.list_products()] == ["b1"]

    def test_restore_without_backup(self, client, headers, app_services):
        with patch.object(app_services.drive, "load_data", AsyncMock(return_value=None)):
            response = client.post("/admin/api/drive/restore", headers=headers)
        assert response.status_code == 404
