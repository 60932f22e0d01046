"""
Shared Sync Status Tracker
Central source of truth for the per-collection sync state and the recent
failure notifications, read by both the public site API and the admin API.
"""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Optional

logger = logging.getLogger("SyncStatus")

UNSYNCED = "unsynced"
DEBOUNCED = "debounced"
SYNCING = "syncing"
SYNCED = "synced"
SYNC_FAILED = "sync_failed"
LOCAL_ONLY = "local_only"

STATES = (UNSYNCED, DEBOUNCED, SYNCING, SYNCED, SYNC_FAILED, LOCAL_ONLY)


class SyncStatusTracker:
    """
    Tracks, per logical key (products, posts, heroImages, ...), where the last
    local edit is in the Unsynced -> Debounced -> Syncing -> Synced | SyncFailed
    cycle, plus a short ring buffer of user-facing failure notifications.
    """

    def __init__(self, max_notifications: int = 50):
        self._status = {}  # key -> {"state", "updated_at", "error"}
        self._notifications = deque(maxlen=max_notifications)
        self._lock = threading.Lock()

    def set_state(self, key: str, state: str, error: Optional[str] = None):
        """
        Update the sync state for a key.

        Args:
            key: Logical collection/document key (e.g., "products")
            state: One of STATES
            error: User-facing message, only for SYNC_FAILED
        """
        if state not in STATES:
            raise ValueError(f"Unknown sync state: {state}")

        with self._lock:
            self._status[key] = {
                "state": state,
                "updated_at": datetime.now().isoformat(),
                "error": error,
            }
            if state == SYNC_FAILED and error:
                self._notifications.append({
                    "key": key,
                    "message": error,
                    "timestamp": datetime.now().isoformat(),
                })
        logger.debug(f"Sync state updated: {key} -> {state}")

    def mark_unsynced(self, key: str):
        self.set_state(key, UNSYNCED)

    def mark_debounced(self, key: str):
        self.set_state(key, DEBOUNCED)

    def mark_syncing(self, key: str):
        self.set_state(key, SYNCING)

    def mark_synced(self, key: str):
        self.set_state(key, SYNCED)

    def mark_failed(self, key: str, message: str):
        self.set_state(key, SYNC_FAILED, error=message)

    def mark_local(self, key: str):
        self.set_state(key, LOCAL_ONLY)

    def get_state(self, key: str) -> Optional[str]:
        """
        Get the sync state for a key.

        Returns:
            The state string, or None if the key was never touched
        """
        with self._lock:
            entry = self._status.get(key)
            return entry["state"] if entry else None

    def get_all_status(self) -> dict:
        """
        Get all sync statuses.

        Returns:
            Dictionary mapping keys to {"state", "updated_at", "error"}
        """
        with self._lock:
            return {k: dict(v) for k, v in self._status.items()}

    def has_failures(self) -> bool:
        with self._lock:
            return any(v["state"] == SYNC_FAILED for v in self._status.values())

    def drain_notifications(self) -> list:
        """Return and clear pending failure notifications (they are ephemeral)"""
        with self._lock:
            items = list(self._notifications)
            self._notifications.clear()
            return items


# Global singleton instance
_sync_status_tracker = SyncStatusTracker()


def get_sync_status_tracker() -> SyncStatusTracker:
    """Get the global sync status tracker instance"""
    return _sync_status_tracker
