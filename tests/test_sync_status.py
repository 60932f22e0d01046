"""Tests for the per-key sync status tracker"""

import pytest

from utils.sync_status import (
    DEBOUNCED,
    LOCAL_ONLY,
    SYNC_FAILED,
    SYNCED,
    SyncStatusTracker,
    get_sync_status_tracker,
)


class TestSyncStatusTracker:

    def test_unknown_state_rejected(self, tracker):
        with pytest.raises(ValueError):
            tracker.set_state("products", "exploded")

    def test_state_transitions(self, tracker):
        assert tracker.get_state("products") is None

        tracker.mark_debounced("products")
        assert tracker.get_state("products") == DEBOUNCED

        tracker.mark_synced("products")
        assert tracker.get_state("products") == SYNCED
        assert tracker.get_all_status()["products"]["error"] is None

    def test_failure_records_notification_once(self, tracker):
        tracker.mark_failed("posts", "Saving 'posts' failed")

        assert tracker.get_state("posts") == SYNC_FAILED
        assert tracker.has_failures()

        notes = tracker.drain_notifications()
        assert [n["key"] for n in notes] == ["posts"]
        assert tracker.drain_notifications() == []

    def test_notification_buffer_is_bounded(self):
        tracker = SyncStatusTracker(max_notifications=3)
        for i in range(5):
            tracker.mark_failed(f"key{i}", "failed")

        keys = [n["key"] for n in tracker.drain_notifications()]
        assert keys == ["key2", "key3", "key4"]

    def test_local_only_is_not_a_failure(self, tracker):
        tracker.mark_local("popup")
        assert tracker.get_state("popup") == LOCAL_ONLY
        assert not tracker.has_failures()

    def test_singleton(self):
        assert get_sync_status_tracker() is get_sync_status_tracker()
