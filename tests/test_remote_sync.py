"""
Tests for the remote sync service.

Covers the startup load (seed once, fallback on failure or timeout) and the
write side (collection diff, settings, failures reported on the tracker).
"""

import time

import pytest

from services.document_store import InMemoryDocumentStore
from services.remote_sync import RemoteSyncService
from utils import defaults
from utils.errors import ValidationError
from utils.models import PopupNotification, Product
from utils.sync_status import LOCAL_ONLY, SYNC_FAILED, SYNCED

from tests.conftest import FailingStore, SlowStore


class TestLoadGlobalData:

    def test_no_store_returns_defaults_in_local_mode(self, tracker):
        sync = RemoteSyncService(None, tracker)
        data = sync.load_global_data()

        assert data.is_using_local_fallback is True
        assert [p.id for p in data.products] == [p["id"] for p in defaults.INITIAL_PRODUCTS]
        assert tracker.get_state("products") == LOCAL_ONLY
        sync.close()

    def test_empty_store_is_seeded_once(self, sync, store, tracker):
        first = sync.load_global_data()
        commits_after_first = store.commits

        assert first.is_using_local_fallback is False
        assert set(store.list_documents("products")) == {"p1", "p2", "p3"}
        assert store.get_document("settings", "global")["heroImages"] == defaults.HERO_IMAGES
        assert store.get_document("popup", "main")["title"] == defaults.INITIAL_POPUP["title"]
        assert set(store.list_documents("pages")) == set(defaults.INITIAL_PAGE_CONTENTS)
        assert tracker.get_state("products") == SYNCED

        second = sync.load_global_data()
        assert store.commits == commits_after_first
        assert second.to_document() == first.to_document()

    def test_remote_documents_win_over_defaults(self, sync, store):
        store.set_document("products", "x1", {"id": "x1", "title": "원격 상품", "type": "golf"})
        store.set_document("settings", "global", {"heroImages": ["remote.jpg"]})
        store.set_document("pages", "golf", {"id": "golf", "title": "원격 골프"})

        data = sync.load_global_data()

        assert [p.id for p in data.products] == ["x1"]
        assert data.hero_images == ["remote.jpg"]
        # missing settings keys fall back to defaults
        assert len(data.menu_items) == len(defaults.SUB_MENU_ITEMS)
        assert data.page_contents["golf"].title == "원격 골프"
        assert data.page_contents["food"].title == defaults.INITIAL_PAGE_CONTENTS["food"]["title"]

    def test_unreachable_store_falls_back(self, tracker):
        sync = RemoteSyncService(FailingStore(), tracker, timeout=1.0)
        data = sync.load_global_data()

        assert data.is_using_local_fallback is True
        assert len(data.posts) == len(defaults.INITIAL_POSTS)
        assert tracker.get_state("posts") == LOCAL_ONLY
        sync.close()

    def test_slow_store_falls_back_within_timeout(self, tracker):
        sync = RemoteSyncService(SlowStore(delay=2.0), tracker, timeout=0.2)

        started = time.monotonic()
        data = sync.load_global_data()
        elapsed = time.monotonic() - started

        assert data.is_using_local_fallback is True
        assert elapsed < 1.0
        sync.close()

    def test_timeout_applies_per_call(self, tracker):
        sync = RemoteSyncService(SlowStore(delay=0.1), tracker, timeout=0.5)

        data = sync.load_global_data()

        assert data.is_using_local_fallback is False
        assert tracker.get_state("products") == SYNCED
        sync.close()

    def test_malformed_remote_data_falls_back(self, sync, store):
        store.set_document("products", "bad", {"id": "bad", "type": "spaceship"})

        data = sync.load_global_data()
        assert data.is_using_local_fallback is True


class TestSyncCollection:

    def _seed(self, store, ids):
        for doc_id in ids:
            store.set_document("products", doc_id, {"id": doc_id, "title": doc_id})

    def test_remote_matches_local_after_sync(self, sync, store, tracker):
        self._seed(store, ["a", "b", "c"])
        items = [Product(id="a", title="updated"), Product(id="d", title="new")]

        assert sync.sync_collection("products", items) is True

        docs = store.list_documents("products")
        assert set(docs) == {"a", "d"}
        assert docs["a"]["title"] == "updated"
        assert tracker.get_state("products") == SYNCED

    def test_cleared_field_is_removed_remotely(self, sync, store):
        sync.sync_collection("products", [Product(id="a", detail_content="old text", detail_images=["1.jpg"])])
        sync.sync_collection("products", [Product(id="a")])

        doc = store.get_document("products", "a")
        assert "detailContent" not in doc
        assert "detailImages" not in doc
        assert sync.load_global_data().products[0].detail_content is None

    def test_sync_is_idempotent(self, sync, store):
        items = [Product(id="a", title="A"), Product(id="b", title="B")]

        sync.sync_collection("products", items)
        first = store.list_documents("products")
        sync.sync_collection("products", items)

        assert store.list_documents("products") == first

    def test_single_batch_per_sync(self, sync, store):
        self._seed(store, ["old"])
        sync.sync_collection("products", [Product(id="a"), Product(id="b")])
        assert store.commits == 1

    def test_items_without_id_are_skipped(self, sync, store):
        sync.sync_collection("videos", [{"title": "no id"}, {"id": "v9", "title": "ok"}])
        assert set(store.list_documents("videos")) == {"v9"}

    def test_empty_list_deletes_everything(self, sync, store):
        self._seed(store, ["a", "b"])
        sync.sync_collection("products", [])
        assert store.list_documents("products") == {}

    def test_oversized_document_reports_size_failure(self, tracker):
        store = InMemoryDocumentStore(max_document_bytes=200)
        sync = RemoteSyncService(store, tracker)

        ok = sync.sync_collection("posts", [{"id": "p", "image": "data:image/jpeg;base64," + "A" * 1000}])

        assert ok is False
        assert tracker.get_state("posts") == SYNC_FAILED
        message = tracker.drain_notifications()[0]["message"]
        assert "1MB" in message
        sync.close()

    def test_unreachable_store_reports_failure(self, tracker):
        sync = RemoteSyncService(FailingStore(), tracker)

        assert sync.sync_collection("videos", [{"id": "v1"}]) is False
        assert tracker.get_state("videos") == SYNC_FAILED
        sync.close()

    def test_without_store_write_is_local_only(self, tracker):
        sync = RemoteSyncService(None, tracker)

        assert sync.sync_collection("products", [Product(id="a")]) is False
        assert tracker.get_state("products") == LOCAL_ONLY
        sync.close()


class TestSingletonWrites:

    def test_save_settings_merges_into_global_doc(self, sync, store):
        sync.save_settings("heroImages", ["1.jpg", "2.jpg"])
        sync.save_settings("menuItems", [{"label": "골프", "icon": "⛳"}])

        doc = store.get_document("settings", "global")
        assert doc["heroImages"] == ["1.jpg", "2.jpg"]
        assert doc["menuItems"] == [{"label": "골프", "icon": "⛳"}]

    def test_save_settings_rejects_unknown_key(self, sync):
        with pytest.raises(ValidationError):
            sync.save_settings("footer", "x")

    def test_save_popup(self, sync, store, tracker):
        popup = PopupNotification(title="공지", content="내용", is_active=True)

        assert sync.save_popup(popup) is True
        assert store.get_document("popup", "main")["isActive"] is True
        assert tracker.get_state("popup") == SYNCED

    def test_sync_all_pages_uses_camel_case(self, sync, store):
        data = sync.load_global_data()
        page = data.page_contents["golf"].model_copy(update={"hero_title": "새 제목"})

        assert sync.sync_all_pages({"golf": page}) is True
        assert store.get_document("pages", "golf")["heroTitle"] == "새 제목"

    def test_save_page_content(self, sync, store):
        sync.save_page_content("event", {"id": "event", "title": "이벤트"})
        assert store.get_document("pages", "event")["title"] == "이벤트"

    def test_popup_replaces_previous_document(self, sync, store):
        store.set_document("popup", "main", {"id": "main", "title": "old", "image": "https://x/old.jpg"})

        sync.save_popup(PopupNotification(title="new"))

        assert "image" not in store.get_document("popup", "main")
