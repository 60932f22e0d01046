"""
Catalog Helpers
Product filtering and itinerary editing, page section editing and menu
routing. Pure functions: inputs are never mutated.
"""

from typing import List, Optional

from utils.errors import NotFoundError, ValidationError
from utils.helpers import best_label_match, new_id
from utils.models import ItineraryDay, PageContent, PageSection, Product

NEW_ACTIVITY_TEXT = "새로운 활동을 입력하세요"
ADDED_ACTIVITY_TEXT = "활동 추가"

# ============================================================================
# MENU ROUTING
# ============================================================================

# menu label -> product type ("추천 상품" shows everything)
PRODUCT_FILTERS = {
    "추천 상품": None,
    "골프": "golf",
    "호텔&빌라": "hotel",
    "관광": "tour",
}

# menu label -> dedicated content page
PAGE_ROUTES = {
    "비지니스": "business",
    "호텔&빌라": "hotel",
    "골프": "golf",
    "먹거리": "food",
    "베트남 문화": "culture",
    "FOR MEN": "men",
    "관광": "tour",
    "이벤트": "event",
}

SPECIAL_ROUTES = {
    "동영상": "videos",
    "커뮤니티": "community",
    "여행 만들기": "planner",
}


def resolve_menu_route(label: str) -> dict:
    """
    Where a menu label leads.

    Returns:
        {"kind": "page", "pageId": ...}, {"kind": "videos" | "community" | "planner"}
        or {"kind": "products", "productType": ... | None}
    """
    label = best_label_match(label, list(SPECIAL_ROUTES) + list(PAGE_ROUTES) + list(PRODUCT_FILTERS)) or label
    if label in SPECIAL_ROUTES:
        return {"kind": SPECIAL_ROUTES[label], "label": label}
    if label in PAGE_ROUTES:
        return {"kind": "page", "label": label, "pageId": PAGE_ROUTES[label]}
    return {"kind": "products", "label": label, "productType": PRODUCT_FILTERS.get(label)}


def filter_products(products: List[Product], label: Optional[str]) -> List[Product]:
    """Products listed under a category label; unknown labels show everything"""
    product_type = PRODUCT_FILTERS.get(label or "")
    if product_type is None:
        return list(products)
    return [p for p in products if p.type == product_type]


# ============================================================================
# PRODUCTS
# ============================================================================

def new_product(**fields) -> Product:
    """A placeholder product the admin edits afterwards"""
    data = {
        "id": new_id(),
        "title": "새 여행 상품",
        "description": "상품 설명을 입력하세요.",
        "image": "https://via.placeholder.com/800x600",
        "price": 0,
        "location": "지역",
        "duration": "3박 5일",
        "type": "tour",
        "itinerary": [],
    }
    data.update({k: v for k, v in fields.items() if v is not None})
    return Product.model_validate(data)


def find_product(products: List[Product], product_id: str) -> Product:
    for product in products:
        if product.id == product_id:
            return product
    raise NotFoundError(f"Product '{product_id}' does not exist.")


def replace_product(products: List[Product], updated: Product) -> List[Product]:
    return [updated if p.id == updated.id else p for p in products]


def _days(product: Product) -> List[ItineraryDay]:
    return [d.model_copy(deep=True) for d in (product.itinerary or [])]


def _day_at(days: List[ItineraryDay], day_index: int) -> ItineraryDay:
    if not 0 <= day_index < len(days):
        raise NotFoundError(f"Day {day_index + 1} does not exist in this itinerary.")
    return days[day_index]


def add_itinerary_day(product: Product, activities: Optional[List[str]] = None) -> Product:
    days = _days(product)
    days.append(ItineraryDay(day=len(days) + 1, activities=activities or [NEW_ACTIVITY_TEXT]))
    return product.model_copy(update={"itinerary": days})


def remove_itinerary_day(product: Product, day_index: int) -> Product:
    """Drop one day; remaining days are renumbered 1..n"""
    days = _days(product)
    _day_at(days, day_index)
    kept = [d for i, d in enumerate(days) if i != day_index]
    renumbered = [d.model_copy(update={"day": i + 1}) for i, d in enumerate(kept)]
    return product.model_copy(update={"itinerary": renumbered})


def add_activity(product: Product, day_index: int, text: str = ADDED_ACTIVITY_TEXT) -> Product:
    days = _days(product)
    day = _day_at(days, day_index)
    day.activities = list(day.activities) + [text]
    return product.model_copy(update={"itinerary": days})


def update_activity(product: Product, day_index: int, activity_index: int, text: str) -> Product:
    days = _days(product)
    day = _day_at(days, day_index)
    if not 0 <= activity_index < len(day.activities):
        raise NotFoundError(f"Activity {activity_index + 1} does not exist on day {day.day}.")
    day.activities = [text if i == activity_index else a for i, a in enumerate(day.activities)]
    return product.model_copy(update={"itinerary": days})


def remove_activity(product: Product, day_index: int, activity_index: int) -> Product:
    days = _days(product)
    day = _day_at(days, day_index)
    if not 0 <= activity_index < len(day.activities):
        raise NotFoundError(f"Activity {activity_index + 1} does not exist on day {day.day}.")
    day.activities = [a for i, a in enumerate(day.activities) if i != activity_index]
    return product.model_copy(update={"itinerary": days})


# ============================================================================
# PAGES
# ============================================================================

def _sections(page: PageContent) -> List[PageSection]:
    return [s.model_copy(deep=True) for s in page.sections]


def _check_section_index(sections: List[PageSection], index: int):
    if not 0 <= index < len(sections):
        raise NotFoundError(f"Section {index + 1} does not exist on this page.")


def add_section(page: PageContent, title: str = "새 섹션", content: str = "") -> PageContent:
    sections = _sections(page) + [PageSection(title=title, content=content)]
    return page.model_copy(update={"sections": sections})


def update_section(page: PageContent, index: int, **fields) -> PageContent:
    """Change title/content/detail fields of one section"""
    allowed = {"title", "content", "detail_images", "detail_content"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Unknown section fields: {', '.join(sorted(unknown))}")
    sections = _sections(page)
    _check_section_index(sections, index)
    sections[index] = sections[index].model_copy(update={k: v for k, v in fields.items() if v is not None})
    return page.model_copy(update={"sections": sections})


def remove_section(page: PageContent, index: int) -> PageContent:
    sections = _sections(page)
    _check_section_index(sections, index)
    return page.model_copy(update={"sections": [s for i, s in enumerate(sections) if i != index]})
