"""
Application Controller
Owns the site state for the lifetime of the process. Every mutation updates
the in-memory copy first and then schedules a debounced write for its key.
Shared by the public site API and the admin API.
"""

import logging
import threading
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from services import ai_planner, catalog, community
from services.remote_sync import RemoteSyncService
from utils import defaults
from utils.debounce import Debouncer
from utils.errors import NotFoundError, ValidationError
from utils.helpers import new_id
from utils.models import (
    PAGE_IDS,
    VIDEO_CATEGORIES,
    CommunityPost,
    GlobalData,
    MenuItem,
    PageContent,
    PopupNotification,
    Product,
    TripPlanRequest,
    TripPlanResult,
    User,
    VideoItem,
)
from utils.sync_status import SyncStatusTracker

logger = logging.getLogger("AppController")

SYNC_KEYS = ("products", "videos", "posts", "pages", "heroImages", "menuItems", "popup")
BACKUP_KEYS = ("heroImages", "menuItems", "products", "videos", "posts", "pageContents")

LOCAL_MODE = "LOCAL MODE"
CLOUD_SYNC = "CLOUD SYNC"


class AppController:
    """
    Args:
        sync: Remote mirror of the state
        tracker: Sync status tracker (defaults to the one the sync service uses)
        sync_delay: Debounce delay for collections, settings and popup
        pages_delay: Debounce delay for page contents
        gemini_api_key / gemini_model: Used for video classification and trip quotes
    """

    def __init__(self, sync: RemoteSyncService, tracker: Optional[SyncStatusTracker] = None,
                 sync_delay: float = 1.0, pages_delay: float = 1.5,
                 gemini_api_key: Optional[str] = None, gemini_model: str = ai_planner.DEFAULT_MODEL):
        self.sync = sync
        self.tracker = tracker or sync.tracker
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.is_loaded = False

        self._lock = threading.RLock()
        self._data = GlobalData.model_validate({**defaults.default_snapshot(), "isUsingLocalFallback": True})

        self._debouncers: Dict[str, Debouncer] = {
            "products": Debouncer(lambda items: self.sync.sync_collection("products", items), sync_delay, "products"),
            "videos": Debouncer(lambda items: self.sync.sync_collection("videos", items), sync_delay, "videos"),
            "posts": Debouncer(lambda items: self.sync.sync_collection("posts", items), sync_delay, "posts"),
            "pages": Debouncer(self.sync.sync_all_pages, pages_delay, "pages"),
            "heroImages": Debouncer(lambda v: self.sync.save_settings("heroImages", v), sync_delay, "heroImages"),
            "menuItems": Debouncer(lambda v: self.sync.save_settings("menuItems", v), sync_delay, "menuItems"),
            "popup": Debouncer(self.sync.save_popup, sync_delay, "popup"),
        }

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def load(self) -> GlobalData:
        """Fetch (or seed) everything from the remote store. Never raises."""
        data = self.sync.load_global_data()
        with self._lock:
            self._data = data
            self.is_loaded = True
        mode = LOCAL_MODE if self.is_local_mode else CLOUD_SYNC
        logger.info(f"[CONTROLLER] Data loaded ({mode})")
        return data

    @property
    def is_local_mode(self) -> bool:
        return self._data.is_using_local_fallback or not self.sync.is_configured

    def status_badge(self) -> str:
        return LOCAL_MODE if self.is_local_mode else CLOUD_SYNC

    def snapshot(self) -> GlobalData:
        with self._lock:
            return self._data.model_copy(deep=True)

    def _schedule(self, key: str, value):
        self.tracker.mark_debounced(key)
        self._debouncers[key](value)

    def pending_keys(self) -> List[str]:
        return [key for key, d in self._debouncers.items() if d.pending]

    def flush(self) -> List[str]:
        """Run every pending debounced write now. Returns the keys written."""
        flushed = [key for key, d in self._debouncers.items() if d.flush()]
        if flushed:
            logger.info(f"[CONTROLLER] Flushed pending writes: {', '.join(flushed)}")
        return flushed

    def resync_all(self) -> Dict[str, bool]:
        """Drop pending writes and push the whole state now"""
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        data = self.snapshot()
        results = {
            "products": self.sync.sync_collection("products", data.products),
            "videos": self.sync.sync_collection("videos", data.videos),
            "posts": self.sync.sync_collection("posts", data.posts),
            "pages": self.sync.sync_all_pages(data.page_contents),
            "heroImages": self.sync.save_settings("heroImages", data.hero_images),
            "menuItems": self.sync.save_settings("menuItems", data.menu_items),
            "popup": self.sync.save_popup(data.popup),
        }
        logger.info(f"[CONTROLLER] Manual resync: {results}")
        return results

    def close(self):
        self.flush()
        self.sync.close()

    # ========================================================================
    # SETTINGS
    # ========================================================================

    def update_hero_images(self, images: List[str]) -> List[str]:
        images = [i for i in images if i]
        if not images:
            raise ValidationError("At least one hero image is required.")
        with self._lock:
            self._data.hero_images = list(images)
            self._schedule("heroImages", list(images))
        return images

    def update_menu_items(self, items: List[MenuItem]) -> List[MenuItem]:
        items = [MenuItem.model_validate(i) for i in items]
        with self._lock:
            self._data.menu_items = list(items)
            self._schedule("menuItems", list(items))
        return items

    def resolve_menu(self, label: str) -> dict:
        route = catalog.resolve_menu_route(label)
        if route["kind"] == "products":
            route["products"] = self.list_products(route["label"])
        elif route["kind"] == "page":
            route["page"] = self.get_page(route["pageId"])
        return route

    # ========================================================================
    # PRODUCTS
    # ========================================================================

    def list_products(self, category_label: Optional[str] = None) -> List[Product]:
        with self._lock:
            return catalog.filter_products(self._data.products, category_label)

    def get_product(self, product_id: str) -> Product:
        with self._lock:
            return catalog.find_product(self._data.products, product_id)

    def _set_products(self, products: List[Product]):
        with self._lock:
            self._data.products = products
            self._schedule("products", list(products))

    def add_product(self, **fields) -> Product:
        product = catalog.new_product(**fields)
        with self._lock:
            if any(p.id == product.id for p in self._data.products):
                raise ValidationError(f"Product id '{product.id}' already exists.")
            products = list(self._data.products) + [product]
            self._set_products(products)
        return product

    def replace_product(self, product: Product) -> Product:
        with self._lock:
            catalog.find_product(self._data.products, product.id)
            products = catalog.replace_product(self._data.products, product)
            self._set_products(products)
        return product

    def update_product_fields(self, product_id: str, **fields) -> Product:
        with self._lock:
            current = catalog.find_product(self._data.products, product_id)
            data = current.model_dump()
            data.update({k: v for k, v in fields.items() if v is not None})
            data["id"] = product_id
            try:
                updated = Product.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError("Invalid product fields.", detail=str(e)) from e
            products = catalog.replace_product(self._data.products, updated)
            self._set_products(products)
        return updated

    def delete_product(self, product_id: str):
        with self._lock:
            catalog.find_product(self._data.products, product_id)
            products = [p for p in self._data.products if p.id != product_id]
            self._set_products(products)

    def _edit_itinerary(self, product_id: str, edit) -> Product:
        with self._lock:
            updated = edit(catalog.find_product(self._data.products, product_id))
            products = catalog.replace_product(self._data.products, updated)
            self._set_products(products)
        return updated

    def add_itinerary_day(self, product_id: str) -> Product:
        return self._edit_itinerary(product_id, catalog.add_itinerary_day)

    def remove_itinerary_day(self, product_id: str, day_index: int) -> Product:
        return self._edit_itinerary(product_id, lambda p: catalog.remove_itinerary_day(p, day_index))

    def add_activity(self, product_id: str, day_index: int, text: Optional[str] = None) -> Product:
        return self._edit_itinerary(
            product_id, lambda p: catalog.add_activity(p, day_index, text or catalog.ADDED_ACTIVITY_TEXT)
        )

    def update_activity(self, product_id: str, day_index: int, activity_index: int, text: str) -> Product:
        return self._edit_itinerary(
            product_id, lambda p: catalog.update_activity(p, day_index, activity_index, text)
        )

    def remove_activity(self, product_id: str, day_index: int, activity_index: int) -> Product:
        return self._edit_itinerary(
            product_id, lambda p: catalog.remove_activity(p, day_index, activity_index)
        )

    # ========================================================================
    # VIDEOS
    # ========================================================================

    def list_videos(self, category: Optional[str] = None) -> List[VideoItem]:
        with self._lock:
            videos = list(self._data.videos)
        if not category or category == "전체":
            return videos
        return [v for v in videos if v.category == category]

    def _set_videos(self, videos: List[VideoItem]):
        with self._lock:
            self._data.videos = videos
            self._schedule("videos", list(videos))

    async def classify_video(self, title: str, description: Optional[str] = None) -> str:
        return await ai_planner.classify_video_category(
            title, description, api_key=self.gemini_api_key, model_name=self.gemini_model
        )

    async def add_video(self, title: str, url: str, category: Optional[str] = None,
                        description: Optional[str] = None) -> VideoItem:
        """Add a video; without an explicit category one is picked from the title"""
        if not (title or "").strip() or not (url or "").strip():
            raise ValidationError("Title and URL are required.")
        if category and category not in VIDEO_CATEGORIES:
            raise ValidationError(f"Category must be one of {', '.join(VIDEO_CATEGORIES)}.")
        if not category:
            category = await self.classify_video(title, description)

        video = VideoItem(id=new_id(), title=title.strip(), url=url.strip(), category=category)
        with self._lock:
            videos = [video] + list(self._data.videos)
            self._set_videos(videos)
        return video

    def update_video(self, video_id: str, **fields) -> VideoItem:
        if fields.get("category") and fields["category"] not in VIDEO_CATEGORIES:
            raise ValidationError(f"Category must be one of {', '.join(VIDEO_CATEGORIES)}.")
        with self._lock:
            current = next((v for v in self._data.videos if v.id == video_id), None)
            if current is None:
                raise NotFoundError(f"Video '{video_id}' does not exist.")
            updated = current.model_copy(update={k: v for k, v in fields.items() if v is not None})
            videos = [updated if v.id == video_id else v for v in self._data.videos]
            self._set_videos(videos)
        return updated

    def delete_video(self, video_id: str):
        with self._lock:
            if not any(v.id == video_id for v in self._data.videos):
                raise NotFoundError(f"Video '{video_id}' does not exist.")
            videos = [v for v in self._data.videos if v.id != video_id]
            self._set_videos(videos)

    # ========================================================================
    # POSTS
    # ========================================================================

    def list_posts(self) -> List[CommunityPost]:
        with self._lock:
            return list(self._data.posts)

    def _apply_posts(self, operation, *args, **kwargs):
        with self._lock:
            result = operation(self._data.posts, *args, **kwargs)
            posts = result[0] if isinstance(result, tuple) else result
            self._data.posts = posts
            self._schedule("posts", list(posts))
        return result

    def create_post(self, user: Optional[User], title: str, content: str, image: Optional[str] = None,
                    is_private: bool = False, password: Optional[str] = None) -> CommunityPost:
        _, post = self._apply_posts(community.create_post, user, title, content,
                                    image=image, is_private=is_private, password=password)
        return post

    def open_post(self, post_id: str, user: Optional[User], password: Optional[str] = None) -> CommunityPost:
        _, post = self._apply_posts(community.open_post, post_id, user, password=password)
        return post

    def edit_post(self, post_id: str, user: Optional[User], title: str, content: str,
                  image: Optional[str] = None, is_private: Optional[bool] = None,
                  password: Optional[str] = None) -> CommunityPost:
        _, post = self._apply_posts(community.edit_post, post_id, user, title, content,
                                    image=image, is_private=is_private, password=password)
        return post

    def delete_post(self, post_id: str, user: Optional[User]):
        self._apply_posts(community.delete_post, post_id, user)

    def add_comment(self, post_id: str, user: Optional[User], content: str) -> CommunityPost:
        _, post = self._apply_posts(community.add_comment, post_id, user, content)
        return post

    def save_admin_reply(self, post_id: str, user: Optional[User], reply: str) -> CommunityPost:
        _, post = self._apply_posts(community.save_admin_reply, post_id, user, reply)
        return post

    # ========================================================================
    # PAGES
    # ========================================================================

    def get_page(self, page_id: str) -> PageContent:
        with self._lock:
            page = self._data.page_contents.get(page_id)
        if page is None:
            raise NotFoundError(f"Page '{page_id}' does not exist.")
        return page

    def _set_page(self, page: PageContent) -> PageContent:
        with self._lock:
            pages = dict(self._data.page_contents)
            pages[page.id] = page
            self._data.page_contents = pages
            self._schedule("pages", dict(pages))
        return page

    def _edit_page(self, page_id: str, edit) -> PageContent:
        with self._lock:
            return self._set_page(edit(self.get_page(page_id)))

    def update_page(self, page_id: str, **fields) -> PageContent:
        def edit(current: PageContent) -> PageContent:
            data = current.model_dump()
            data.update({k: v for k, v in fields.items() if v is not None})
            data["id"] = page_id
            try:
                return PageContent.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError("Invalid page fields.", detail=str(e)) from e

        return self._edit_page(page_id, edit)

    def add_section(self, page_id: str, title: str = "새 섹션", content: str = "") -> PageContent:
        return self._edit_page(page_id, lambda p: catalog.add_section(p, title, content))

    def update_section(self, page_id: str, index: int, **fields) -> PageContent:
        return self._edit_page(page_id, lambda p: catalog.update_section(p, index, **fields))

    def remove_section(self, page_id: str, index: int) -> PageContent:
        return self._edit_page(page_id, lambda p: catalog.remove_section(p, index))

    def update_page_contents(self, pages: Dict[str, PageContent]) -> Dict[str, PageContent]:
        unknown = set(pages) - set(PAGE_IDS)
        if unknown:
            raise ValidationError(f"Unknown page ids: {', '.join(sorted(unknown))}")
        with self._lock:
            merged = dict(self._data.page_contents)
            merged.update(pages)
            self._data.page_contents = merged
            self._schedule("pages", dict(merged))
        return merged

    # ========================================================================
    # POPUP
    # ========================================================================

    def get_popup(self) -> PopupNotification:
        with self._lock:
            return self._data.popup

    def update_popup(self, **fields) -> PopupNotification:
        with self._lock:
            popup = self._data.popup.model_copy(update={k: v for k, v in fields.items() if v is not None})
            popup.id = "main"
            self._data.popup = popup
            self._schedule("popup", popup)
        return popup

    # ========================================================================
    # TRIP QUOTES
    # ========================================================================

    async def generate_trip_plan(self, request: TripPlanRequest) -> TripPlanResult:
        return await ai_planner.generate_trip_plan(request, self.gemini_api_key, self.gemini_model)

    # ========================================================================
    # BACKUP
    # ========================================================================

    def backup_snapshot(self) -> dict:
        """Content that goes into the Drive backup file"""
        doc = self.snapshot().to_document()
        return {key: doc[key] for key in BACKUP_KEYS}

    def restore_snapshot(self, data: dict) -> List[str]:
        """
        Replace state from a backup; keys absent from ``data`` are kept.

        Returns:
            The restored keys
        """
        if not isinstance(data, dict):
            raise ValidationError("The backup is not a JSON object.")
        restored = [key for key in BACKUP_KEYS if data.get(key)]
        with self._lock:
            merged = {**self._data.to_document(), **{key: data[key] for key in restored}}
            try:
                new_data = GlobalData.model_validate(merged)
            except PydanticValidationError as e:
                raise ValidationError("The backup file has an unexpected format.", detail=str(e)) from e
            new_data.is_using_local_fallback = self._data.is_using_local_fallback
            self._data = new_data
            self._schedule_restored(new_data, restored)
        logger.info(f"[CONTROLLER] Restored from backup: {', '.join(restored) or 'nothing'}")
        return restored

    def _schedule_restored(self, new_data: GlobalData, restored: List[str]):
        schedule = {
            "heroImages": ("heroImages", lambda: list(new_data.hero_images)),
            "menuItems": ("menuItems", lambda: list(new_data.menu_items)),
            "products": ("products", lambda: list(new_data.products)),
            "videos": ("videos", lambda: list(new_data.videos)),
            "posts": ("posts", lambda: list(new_data.posts)),
            "pageContents": ("pages", lambda: dict(new_data.page_contents)),
        }
        for key in restored:
            sync_key, value = schedule[key]
            self._schedule(sync_key, value())
