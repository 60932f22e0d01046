"""Tests for the in-memory document store and store selection"""

import pytest

from services.document_store import InMemoryDocumentStore, build_document_store
from utils.errors import SIZE_LIMIT_MARKER


class TestInMemoryDocumentStore:

    def test_set_with_merge_keeps_other_fields(self, store):
        store.set_document("settings", "global", {"heroImages": ["a.jpg"]})
        store.set_document("settings", "global", {"menuItems": [{"label": "골프"}]}, merge=True)

        doc = store.get_document("settings", "global")
        assert doc == {"heroImages": ["a.jpg"], "menuItems": [{"label": "골프"}]}

    def test_set_without_merge_replaces(self, store):
        store.set_document("popup", "main", {"title": "a", "content": "b"})
        store.set_document("popup", "main", {"title": "c"}, merge=False)

        assert store.get_document("popup", "main") == {"title": "c"}

    def test_reads_are_copies(self, store):
        store.set_document("products", "p1", {"id": "p1", "itinerary": []})
        doc = store.get_document("products", "p1")
        doc["itinerary"].append("mutated")

        assert store.get_document("products", "p1")["itinerary"] == []

    def test_missing_document_is_none(self, store):
        assert store.get_document("popup", "main") is None
        assert store.list_documents("videos") == {}

    def test_oversized_document_rejected(self):
        store = InMemoryDocumentStore(max_document_bytes=100)

        with pytest.raises(ValueError) as exc_info:
            store.set_document("posts", "big", {"image": "x" * 500})

        assert SIZE_LIMIT_MARKER in str(exc_info.value)
        assert store.get_document("posts", "big") is None

    def test_batch_is_all_or_nothing(self):
        store = InMemoryDocumentStore(max_document_bytes=100)
        store.set_document("posts", "keep", {"id": "keep"})

        batch = store.batch()
        batch.set("posts", "small", {"id": "small"})
        batch.delete("posts", "keep")
        batch.set("posts", "big", {"image": "x" * 500})

        with pytest.raises(ValueError):
            batch.commit()

        assert set(store.list_documents("posts")) == {"keep"}
        assert store.commits == 0

    def test_batch_commit(self, store):
        batch = store.batch()
        batch.set("videos", "v1", {"id": "v1"})
        batch.set("videos", "v2", {"id": "v2"})
        assert len(batch) == 2

        batch.commit()
        assert set(store.list_documents("videos")) == {"v1", "v2"}
        assert store.commits == 1


class TestBuildDocumentStore:

    def test_memory_backend(self):
        assert isinstance(build_document_store("memory"), InMemoryDocumentStore)

    def test_firestore_without_project_is_local_mode(self):
        assert build_document_store("firestore", None) is None
