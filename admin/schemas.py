"""
Pydantic schemas for the admin back office
Request bodies; responses reuse the domain models in utils/models.py
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from utils.models import (
    CamelModel,
    ItineraryDay,
    MenuItem,
    PageContent,
    PageSection,
    PageSlide,
    ProductType,
    VideoCategory,
)


class Token(BaseModel):
    """Bearer token response"""
    access_token: str
    token_type: str
    expires_in_minutes: int


class LoginRequest(BaseModel):
    """Login request payload"""
    username: str
    password: str


# ============================================================================
# PRODUCTS
# ============================================================================

class ProductCreate(CamelModel):
    """All fields optional: missing ones get placeholder values"""
    id: Optional[str] = Field(None, min_length=1, max_length=64)
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    location: Optional[str] = None
    duration: Optional[str] = None
    type: Optional[ProductType] = None
    itinerary: Optional[List[ItineraryDay]] = None
    detail_images: Optional[List[str]] = None
    detail_content: Optional[str] = None


class ProductUpdate(ProductCreate):
    """Partial update; ``id`` is ignored"""
    pass


class ActivityPayload(BaseModel):
    text: Optional[str] = None


# ============================================================================
# VIDEOS
# ============================================================================

class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    category: Optional[VideoCategory] = None
    description: Optional[str] = None


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    url: Optional[str] = None
    category: Optional[VideoCategory] = None


class ClassifyRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None


# ============================================================================
# COMMUNITY
# ============================================================================

class ReplyPayload(BaseModel):
    reply: str = ""


# ============================================================================
# PAGES / SETTINGS
# ============================================================================

class PageUpdate(CamelModel):
    title: Optional[str] = None
    hero_image: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    intro_title: Optional[str] = None
    intro_text: Optional[str] = None
    intro_image: Optional[str] = None
    gallery_images: Optional[List[str]] = None
    sections: Optional[List[PageSection]] = None
    slides: Optional[List[PageSlide]] = None


class SectionCreate(BaseModel):
    title: str = "새 섹션"
    content: str = ""


class SectionUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    detail_images: Optional[List[str]] = None
    detail_content: Optional[str] = None


class PageContentsPayload(BaseModel):
    pages: Dict[str, PageContent]


class HeroImagesPayload(BaseModel):
    images: List[str] = Field(..., min_length=1)


class MenuItemsPayload(BaseModel):
    items: List[MenuItem]


class PopupUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None
    link: Optional[str] = None


# ============================================================================
# DRIVE BACKUP
# ============================================================================

class DriveConnectResponse(BaseModel):
    consent_url: str
    state: str


class DriveTokenPayload(BaseModel):
    state: str
    access_token: Optional[str] = None
    error: Optional[str] = None
