"""
Remote Sync Service
Loads the site snapshot from the document store (seeding empty collections
with the bundled defaults) and mirrors local edits back to it.
Never raises to callers: load falls back to defaults, writes report failures
through the sync status tracker.
"""

import logging
import concurrent.futures
from typing import Callable, Dict, Iterable, Optional

from utils import defaults
from utils.errors import DocumentTooLargeError, ValidationError, normalize_error
from utils.models import CamelModel, GlobalData, PageContent, PopupNotification
from utils.sync_status import SyncStatusTracker, get_sync_status_tracker

logger = logging.getLogger("RemoteSync")

PRODUCTS = "products"
VIDEOS = "videos"
POSTS = "posts"
PAGES = "pages"
SETTINGS = "settings"
POPUP = "popup"

SETTINGS_DOC = "global"
POPUP_DOC = "main"
SETTINGS_KEYS = ("heroImages", "menuItems")


def _to_document(value):
    """Models -> camelCase dicts, recursively through lists and dicts"""
    if isinstance(value, CamelModel):
        return value.to_document()
    if isinstance(value, list):
        return [_to_document(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_document(v) for k, v in value.items()}
    return value


class RemoteSyncService:
    """
    Mirror of the application state in the remote document store.

    Args:
        store: A DocumentStore, or None when no remote credentials are configured
        tracker: Sync status tracker (defaults to the shared singleton)
        timeout: Upper bound in seconds for each store call during load_global_data
    """

    def __init__(self, store=None, tracker: Optional[SyncStatusTracker] = None, timeout: float = 3.0):
        self.store = store
        self.tracker = tracker or get_sync_status_tracker()
        self.timeout = timeout
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=4, thread_name_prefix="remote-sync")

    @property
    def provider(self) -> str:
        return getattr(self.store, "name", "document store")

    @property
    def is_configured(self) -> bool:
        return self.store is not None

    def close(self):
        self._executor.shutdown(wait=False)

    # ========================================================================
    # LOAD
    # ========================================================================

    def _call(self, func: Callable, *args):
        """Run a store call on the worker pool, bounded by the per-call timeout"""
        future = self._executor.submit(func, *args)
        return future.result(timeout=self.timeout)

    def _best_effort(self, label: str, func: Callable, *args):
        try:
            self._call(func, *args)
            logger.info(f"[SEED] Seeded {label}")
        except Exception as e:
            logger.warning(f"[SEED] Failed to seed {label}: {normalize_error(e, self.provider).detail or e}")

    def _fetch_or_seed(self, collection: str, initial: list) -> list:
        docs = self._call(self.store.list_documents, collection)
        if not docs and initial:
            logger.info(f"[SEED] Seeding {collection} with {len(initial)} documents...")
            batch = self.store.batch()
            for item in initial:
                batch.set(collection, item["id"], item, merge=False)
            self._call(batch.commit)
            return list(initial)
        return list(docs.values())

    def _fetch_or_seed_doc(self, collection: str, doc_id: str, initial: dict) -> dict:
        doc = self._call(self.store.get_document, collection, doc_id)
        if doc is not None:
            return doc
        self._best_effort(f"{collection}/{doc_id}", self.store.set_document, collection, doc_id, initial, False)
        return initial

    def _fetch_pages(self, initial: Dict[str, dict]) -> Dict[str, dict]:
        docs = self._call(self.store.list_documents, PAGES)
        pages = dict(initial)
        if not docs:
            batch = self.store.batch()
            for page in initial.values():
                batch.set(PAGES, page["id"], page, merge=False)
            self._best_effort(f"{len(initial)} pages", batch.commit)
            return pages
        for doc_id, doc in docs.items():
            pages[doc.get("id") or doc_id] = doc
        return pages

    def _fallback(self) -> GlobalData:
        snapshot = defaults.default_snapshot()
        for key in (PRODUCTS, VIDEOS, POSTS, PAGES, POPUP) + SETTINGS_KEYS:
            self.tracker.mark_local(key)
        return GlobalData.model_validate({**snapshot, "isUsingLocalFallback": True})

    def load_global_data(self) -> GlobalData:
        """
        Build the startup snapshot.

        Reads every collection and singleton from the store, seeding whatever
        is empty. Any failure, including a timeout or a malformed document,
        yields the bundled defaults with is_using_local_fallback set.
        """
        if self.store is None:
            logger.warning("[LOAD] Remote store not configured. Using local data.")
            return self._fallback()

        initial = defaults.default_snapshot()

        try:
            logger.info(f"[LOAD] Fetching data from {self.provider}...")
            settings = self._fetch_or_seed_doc(
                SETTINGS, SETTINGS_DOC,
                {"heroImages": initial["heroImages"], "menuItems": initial["menuItems"]},
            )
            products = self._fetch_or_seed(PRODUCTS, initial["products"])
            videos = self._fetch_or_seed(VIDEOS, initial["videos"])
            posts = self._fetch_or_seed(POSTS, initial["posts"])
            pages = self._fetch_pages(initial["pageContents"])
            popup = self._fetch_or_seed_doc(POPUP, POPUP_DOC, initial["popup"])

            data = GlobalData.model_validate({
                "heroImages": settings.get("heroImages") or initial["heroImages"],
                "menuItems": settings.get("menuItems") or initial["menuItems"],
                "products": products,
                "videos": videos,
                "posts": posts,
                "pageContents": pages,
                "popup": popup,
                "isUsingLocalFallback": False,
            })
        except Exception as e:
            err = normalize_error(e, self.provider)
            logger.warning(f"[LOAD] {self.provider} offline, unreachable or returned bad data. "
                           f"Falling back to local data. ({err.kind}: {err.detail or err.user_message})")
            return self._fallback()

        for key in (PRODUCTS, VIDEOS, POSTS, PAGES, POPUP) + SETTINGS_KEYS:
            self.tracker.mark_synced(key)
        logger.info(
            f"[LOAD] Loaded {len(data.products)} products, {len(data.videos)} videos, "
            f"{len(data.posts)} posts, {len(data.page_contents)} pages"
        )
        return data

    # ========================================================================
    # WRITES
    # ========================================================================

    def _fail(self, key: str, exc: BaseException) -> bool:
        err = normalize_error(exc, self.provider)
        if isinstance(err, DocumentTooLargeError):
            message = (
                f"Save failed: '{key}' is larger than the 1MB document limit. "
                f"Large images were probably embedded as text because the image upload failed. "
                f"Remove recently added large images or use smaller ones and try again."
            )
        else:
            message = f"Saving '{key}' failed: {err.user_message}"
        logger.error(f"[SYNC] Error syncing {key}: {err.kind} {err.detail or ''}")
        self.tracker.mark_failed(key, message)
        return False

    def _write(self, key: str, func: Callable[[], None]) -> bool:
        if self.store is None:
            self.tracker.mark_local(key)
            return False
        self.tracker.mark_syncing(key)
        try:
            func()
        except Exception as e:
            return self._fail(key, e)
        self.tracker.mark_synced(key)
        return True

    def sync_collection(self, name: str, items: Iterable) -> bool:
        """
        Make a remote collection equal to ``items``.

        Replaces every item's document by id, deletes remote ids missing from
        ``items``, commits as one batch. Items without an id are skipped.

        Returns:
            True when the remote collection was updated
        """
        def run():
            remote_ids = set(self.store.list_documents(name).keys())
            batch = self.store.batch()
            local_ids = set()
            for item in items:
                doc = _to_document(item)
                doc_id = doc.get("id") if isinstance(doc, dict) else None
                if not doc_id:
                    logger.warning(f"[SYNC] Skipping {name} item without id")
                    continue
                local_ids.add(doc_id)
                batch.set(name, doc_id, doc, merge=False)
            for doc_id in remote_ids - local_ids:
                batch.delete(name, doc_id)
            batch.commit()
            logger.info(f"[SYNC] Synced {name} ({len(local_ids)} upserted, {len(remote_ids - local_ids)} deleted)")

        return self._write(name, run)

    def save_settings(self, key: str, value) -> bool:
        if key not in SETTINGS_KEYS:
            raise ValidationError(f"Unknown settings key '{key}'")
        doc = {key: _to_document(value)}
        return self._write(key, lambda: self.store.set_document(SETTINGS, SETTINGS_DOC, doc, merge=True))

    def save_page_content(self, page_id: str, content) -> bool:
        doc = _to_document(content)
        return self._write(PAGES, lambda: self.store.set_document(PAGES, page_id, doc, merge=False))

    def sync_all_pages(self, pages: Dict[str, PageContent]) -> bool:
        def run():
            batch = self.store.batch()
            for page_id, page in pages.items():
                batch.set(PAGES, page_id, _to_document(page), merge=False)
            batch.commit()
            logger.info(f"[SYNC] Synced {len(pages)} pages")

        return self._write(PAGES, run)

    def save_popup(self, popup: PopupNotification) -> bool:
        doc = _to_document(popup)
        return self._write(POPUP, lambda: self.store.set_document(POPUP, POPUP_DOC, doc, merge=False))
