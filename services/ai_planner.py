"""
AI Planner Module
Trip quotes and video categorization.
Uses Google Gemini when a GEMINI_API_KEY is configured; falls back to a
locally computed quote and keyword classification otherwise.
"""

import asyncio
import json
import logging
import math
import re
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from utils.helpers import best_label_match, format_vnd, normalize_text
from utils.models import (
    VIDEO_CATEGORIES,
    CostLine,
    ItineraryDay,
    TripPlanOptions,
    TripPlanRequest,
    TripPlanResult,
)

logger = logging.getLogger("AIPlanner")

DEFAULT_MODEL = "gemini-1.5-flash"

# ---------------------------------------------------------------------------
# Pricing rules (VND)
# ---------------------------------------------------------------------------
VEHICLE_DAILY_COST = {
    "7인승": 2_500_000,
    "16인승": 3_000_000,
    "26인승": 4_500_000,
    "선택안함": 0,
}
GUIDE_DAILY_COST = 2_000_000

# per room per night, first matching keyword wins
ACCOMMODATION_NIGHTLY_COST = [
    ("풀빌라", 4_000_000),
    ("빌라", 4_000_000),
    ("5성", 3_000_000),
    ("4성", 1_500_000),
    ("3성", 900_000),
]
DEFAULT_NIGHTLY_COST = 1_500_000

GOLF_GREEN_FEE = 2_000_000       # per person per round, caddie and lunch included
ACTIVITY_DAILY_COST = 500_000    # per person per day
MEAL_DAILY_COST = 300_000        # per person per day, breakfast and lunch

MOCK_ACTIVITIES = [
    ["공항 픽업 및 호텔 체크인", "시내 중심가 산책 및 환전", "현지 맛집에서 쌀국수 식사"],
    ["오전 골프 라운딩 (또는 시티 투어)", "유명 카페 방문 및 휴식", "야시장 투어 및 길거리 음식 체험"],
    ["근교 명소 (바나힐 등) 관광", "전통 마사지 체험", "해산물 레스토랑 방문"],
    ["호텔 체크아웃 및 자유 시간", "기념품 쇼핑", "공항 샌딩"],
]
MOCK_GOLF_ACTIVITIES = ["오전 골프 라운딩", "클럽하우스 중식 후 휴식", "마사지 및 자유 시간"]

# ---------------------------------------------------------------------------
# Keyword fallback for video categories
# ---------------------------------------------------------------------------
CATEGORY_KEYWORDS = [
    ("골프", ["골프", "golf", "라운딩", "티샷", "드라이버", "그린"]),
    ("먹거리", ["먹방", "맛집", "음식", "쌀국수", "반미", "요리", "food", "먹거리", "카페", "해산물"]),
    ("여행", ["여행", "투어", "관광", "브이로그", "vlog", "travel", "trip", "호텔", "리조트", "풀빌라", "야경"]),
]


def parse_trip_days(duration: str) -> int:
    """
    Number of itinerary days in a duration string.

    "3박 5일" -> 5, "4일" -> 4, "2박" -> 3, anything else -> 3
    """
    text = duration or ""
    days = re.search(r"(\d+)\s*일", text)
    if days:
        return max(1, int(days.group(1)))
    nights = re.search(r"(\d+)\s*박", text)
    if nights:
        return int(nights.group(1)) + 1
    return 3


def _nightly_cost(accommodation: str) -> int:
    for keyword, cost in ACCOMMODATION_NIGHTLY_COST:
        if keyword in (accommodation or ""):
            return cost
    return DEFAULT_NIGHTLY_COST


def _options(request: TripPlanRequest) -> TripPlanOptions:
    return TripPlanOptions(guide=request.guide, vehicle=request.vehicle)


def build_mock_trip_plan(request: TripPlanRequest) -> TripPlanResult:
    """Locally computed quote following the same pricing rules as the AI prompt"""
    days = parse_trip_days(request.duration)
    nights = max(days - 1, 1)
    rooms = math.ceil(request.pax / 2)
    is_golf = "골프" in (request.theme or "") or "golf" in (request.theme or "").lower()

    itinerary = []
    for day in range(1, days + 1):
        if day == 1:
            activities = MOCK_ACTIVITIES[0]
        elif day == days and days > 1:
            activities = MOCK_ACTIVITIES[-1]
        elif is_golf:
            activities = MOCK_GOLF_ACTIVITIES
        else:
            activities = MOCK_ACTIVITIES[1 + (day % 2)]
        itinerary.append(ItineraryDay(day=day, activities=list(activities)))

    lines = []
    accommodation = _nightly_cost(request.accommodation) * nights * rooms
    lines.append((f"숙박비 ({nights}박, {request.accommodation}, 객실 {rooms}개, 조식 포함)", accommodation))

    if is_golf:
        rounds = max(days - 2, 1)
        lines.append((f"골프 그린피 ({rounds}회, {request.pax}인, 중식 포함)", GOLF_GREEN_FEE * rounds * request.pax))
    else:
        lines.append((f"입장료 및 체험비 ({request.pax}인)", ACTIVITY_DAILY_COST * days * request.pax))

    lines.append((f"식비 (조식/중식, 석식 제외, {request.pax}인)", MEAL_DAILY_COST * days * request.pax))

    vehicle_daily = VEHICLE_DAILY_COST.get(request.vehicle, 0)
    if vehicle_daily:
        lines.append((f"차량 ({request.vehicle}, {days}일, 기사 포함)", vehicle_daily * days))
    if request.guide == "예":
        lines.append((f"가이드 ({days}일)", GUIDE_DAILY_COST * days))

    total = sum(cost for _, cost in lines)
    return TripPlanResult(
        itinerary=itinerary,
        cost_breakdown=[CostLine(item=item, cost=format_vnd(cost)) for item, cost in lines],
        total_cost=format_vnd(total),
        summary=(
            f"[예시 견적] {request.destination} {request.duration} 여행입니다. "
            f"{request.theme} 테마에 맞춰 구성되었으며, {request.pax}인 기준 견적입니다. (항공권 제외)"
        ),
        remarks=request.remarks,
        options=_options(request),
        source="mock",
    )


# ---------------------------------------------------------------------------
# Gemini-powered quote
# ---------------------------------------------------------------------------
TRIP_PLAN_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "itinerary": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "day": {"type": "NUMBER"},
                    "activities": {"type": "ARRAY", "items": {"type": "STRING"}},
                },
            },
        },
        "costBreakdown": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "item": {"type": "STRING"},
                    "cost": {"type": "STRING"},
                },
            },
        },
        "totalCost": {"type": "STRING"},
        "summary": {"type": "STRING"},
    },
}


def build_trip_prompt(request: TripPlanRequest) -> str:
    remarks = f"\nAdditional requests from the customer: {request.remarks}" if request.remarks else ""
    return (
        "Create a detailed travel itinerary and cost breakdown for a trip to Vietnam.\n\n"
        f"Destination: {request.destination}\n"
        f"Theme: {request.theme}\n"
        f"Accommodation Level: {request.accommodation}\n"
        f"Duration: {request.duration}\n"
        f"Number of People: {request.pax}\n"
        f"Guide Included: {request.guide}\n"
        f"Vehicle: {request.vehicle}{remarks}\n\n"
        "Please provide:\n"
        "1. A daily itinerary with exactly 3 activities per day: morning (오전), afternoon (오후), evening (저녁).\n"
        "2. A cost breakdown (estimated, in VND) for accommodation, golf/activities, food and transport.\n"
        "3. A total estimated cost in VND.\n"
        "4. A brief summary of the trip concept.\n\n"
        "PRICING RULES (calculate strictly in VND):\n"
        "- Vehicle per day: '7인승' 2,500,000; '16인승' 3,000,000; '26인승' 4,500,000; '선택안함' 0.\n"
        "- Guide: '예' adds 2,000,000 per day; '아니오' adds nothing.\n"
        "- Include hotel breakfast and golf course lunch. EXCLUDE dinner.\n"
        "- EXCLUDE airfare completely and state \"항공권 제외\" in the summary or breakdown.\n"
        "- List vehicle and guide costs as separate breakdown lines.\n"
        "- Format numbers with commas (e.g. 10,000,000 VND).\n\n"
        "Respond in KOREAN (Hangul). Keep the itinerary descriptions concise."
    )


def parse_trip_plan(text: str, request: TripPlanRequest) -> TripPlanResult:
    """
    Validate the model's JSON output.

    Raises:
        ValueError: invalid JSON, empty itinerary or a day without exactly 3 activities
    """
    if not text or not text.strip():
        raise ValueError("No response text generated")
    try:
        payload = json.loads(text)
        result = TripPlanResult.model_validate(payload)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ValueError(f"Malformed trip plan: {e}") from e

    if not result.itinerary:
        raise ValueError("Trip plan has no itinerary")
    for day in result.itinerary:
        if len(day.activities) != 3:
            raise ValueError(f"Day {day.day} has {len(day.activities)} activities, expected 3")

    result.remarks = request.remarks
    result.options = _options(request)
    result.source = "ai"
    return result


async def generate_trip_plan(request: TripPlanRequest, api_key: Optional[str] = None,
                             model_name: str = DEFAULT_MODEL) -> TripPlanResult:
    """
    Produce a trip quote.

    Any Gemini failure (no key, quota, network, malformed output) degrades to
    build_mock_trip_plan; the result's ``source`` tells the two apart.
    """
    if api_key:
        try:
            return await _gemini_trip_plan(request, api_key, model_name)
        except Exception as e:
            logger.warning(f"[AIPlanner] Gemini trip plan failed ({e}), using mock quote.")
    else:
        logger.info("[AIPlanner] No Gemini key configured, using mock quote.")
    return build_mock_trip_plan(request)


async def _gemini_trip_plan(request: TripPlanRequest, api_key: str, model_name: str) -> TripPlanResult:
    import google.generativeai as genai  # lazy import

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(model_name)
    config = genai.GenerationConfig(
        response_mime_type="application/json",
        response_schema=TRIP_PLAN_SCHEMA,
        max_output_tokens=8192,
    )
    prompt = build_trip_prompt(request)

    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(
        None, lambda: model.generate_content(prompt, generation_config=config)
    )
    return parse_trip_plan(response.text, request)


# ---------------------------------------------------------------------------
# Video categories
# ---------------------------------------------------------------------------
def resolve_category(raw: Optional[str]) -> str:
    """Map free-form model output ("골프입니다", "Golf") onto a category label"""
    return best_label_match(raw or "", list(VIDEO_CATEGORIES)) or "기타"


def keyword_category(title: str, description: Optional[str] = None) -> str:
    text = normalize_text(f"{title or ''} {description or ''}")
    for category, keywords in CATEGORY_KEYWORDS:
        if any(kw in text for kw in keywords):
            return category
    return "기타"


async def classify_video_category(title: str, description: Optional[str] = None,
                                  api_key: Optional[str] = None,
                                  model_name: str = DEFAULT_MODEL) -> str:
    """Pick one of 골프/여행/먹거리/기타 for a video"""
    if api_key:
        try:
            raw = await _gemini_category(title, description, api_key, model_name)
            category = resolve_category(raw)
            logger.info(f"[AIPlanner] Classified '{title}' as {category} (raw: {raw!r})")
            return category
        except Exception as e:
            logger.warning(f"[AIPlanner] Gemini classification failed ({e}), using keywords.")
    return keyword_category(title, description)


async def _gemini_category(title: str, description: Optional[str], api_key: str, model_name: str) -> str:
    import google.generativeai as genai  # lazy import

    genai.configure(api_key=api_key)
    model = genai.GenerativeModel(model_name)
    config = genai.GenerationConfig(max_output_tokens=20, temperature=0.1)
    prompt = (
        "다음 동영상의 제목과 설명을 분석하여 가장 적합한 카테고리 하나를 선택하세요.\n"
        f"카테고리 옵션: {list(VIDEO_CATEGORIES)}\n\n"
        f"동영상 제목: {title}\n"
        f"동영상 설명: {description or '설명 없음'}\n\n"
        "반드시 위 4가지 옵션 중 하나만 정확하게 텍스트로 반환하세요. 다른 설명은 생략하세요."
    )

    loop = asyncio.get_running_loop()
    response = await loop.run_in_executor(
        None, lambda: model.generate_content(prompt, generation_config=config)
    )
    return (response.text or "").strip()
