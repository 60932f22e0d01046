"""
Domain models
Pydantic records for everything the site stores. Python attributes are
snake_case; documents in the remote store and JSON payloads use camelCase.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

ProductType = Literal["golf", "tour", "hotel"]
VideoCategory = Literal["골프", "여행", "먹거리", "기타"]
UserRole = Literal["admin", "user"]

PRODUCT_TYPES = ("golf", "tour", "hotel")
VIDEO_CATEGORIES = ("골프", "여행", "먹거리", "기타")
PAGE_IDS = ("business", "golf", "hotel", "food", "culture", "men", "tour", "event")


class CamelModel(BaseModel):
    """Base model: camelCase aliases, accepts either spelling on input"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    def to_document(self) -> dict:
        """Serialize for the remote store / JSON responses"""
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# CATALOG
# ============================================================================

class ItineraryDay(CamelModel):
    day: int
    activities: List[str] = Field(default_factory=list)


class Product(CamelModel):
    id: str
    title: str = ""
    description: str = ""
    image: str = ""
    price: float = 0
    location: str = ""
    duration: str = ""
    type: ProductType = "tour"
    itinerary: Optional[List[ItineraryDay]] = None
    detail_images: Optional[List[str]] = None
    detail_content: Optional[str] = None


class MenuItem(CamelModel):
    label: str
    icon: str = ""


# ============================================================================
# VIDEOS
# ============================================================================

class VideoItem(CamelModel):
    id: str
    title: str = ""
    url: str = ""
    category: Optional[VideoCategory] = None


# ============================================================================
# COMMUNITY
# ============================================================================

class Comment(CamelModel):
    id: str
    author: str
    content: str
    date: str
    is_admin: bool = False


class CommunityPost(CamelModel):
    id: str
    title: str = ""
    content: str = ""
    author: str = ""
    date: str = ""
    image: Optional[str] = None
    comments: List[Comment] = Field(default_factory=list)
    views: int = 0
    is_private: bool = False
    password: Optional[str] = None
    admin_reply: Optional[str] = None

    def public_view(self) -> dict:
        """Listing representation: never exposes the password, masks private bodies"""
        doc = self.to_document()
        doc.pop("password", None)
        if self.is_private:
            doc["content"] = ""
            doc.pop("image", None)
            doc.pop("adminReply", None)
            doc["comments"] = []
        return doc


# ============================================================================
# PAGES
# ============================================================================

class PageSection(CamelModel):
    title: str = ""
    content: str = ""
    detail_images: Optional[List[str]] = None
    detail_content: Optional[str] = None


class PageSlide(CamelModel):
    image: str
    description: str = ""


class PageContent(CamelModel):
    id: str
    title: str = ""
    hero_image: str = ""
    hero_title: str = ""
    hero_subtitle: str = ""
    intro_title: str = ""
    intro_text: str = ""
    intro_image: str = ""
    gallery_images: List[str] = Field(default_factory=list)
    sections: List[PageSection] = Field(default_factory=list)
    slides: Optional[List[PageSlide]] = None


class PopupNotification(CamelModel):
    id: str = "main"
    title: str = ""
    content: str = ""
    image: Optional[str] = None
    is_active: bool = False
    link: Optional[str] = None


# ============================================================================
# USERS
# ============================================================================

class User(CamelModel):
    id: str
    username: str
    role: UserRole = "user"
    nickname: Optional[str] = None
    password: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def display_name(self) -> str:
        return self.nickname or self.username

    def public_view(self) -> dict:
        doc = self.to_document()
        doc.pop("password", None)
        return doc


# ============================================================================
# TRIP QUOTES
# ============================================================================

class TripPlanRequest(CamelModel):
    destination: str
    theme: str
    accommodation: str
    duration: str
    pax: int = Field(default=2, ge=1)
    guide: str = "예"
    vehicle: str = "7인승"
    remarks: Optional[str] = None


class CostLine(CamelModel):
    item: str
    cost: str


class TripPlanOptions(CamelModel):
    guide: str
    vehicle: str


class TripPlanResult(CamelModel):
    itinerary: List[ItineraryDay]
    cost_breakdown: List[CostLine]
    total_cost: str
    summary: str
    remarks: Optional[str] = None
    options: Optional[TripPlanOptions] = None
    source: Literal["ai", "mock"] = "ai"


# ============================================================================
# SNAPSHOT
# ============================================================================

class GlobalData(CamelModel):
    """Everything the site needs at startup, as returned by the sync layer"""

    hero_images: List[str]
    menu_items: List[MenuItem]
    products: List[Product]
    videos: List[VideoItem]
    posts: List[CommunityPost]
    page_contents: Dict[str, PageContent]
    popup: PopupNotification
    is_using_local_fallback: bool = False
