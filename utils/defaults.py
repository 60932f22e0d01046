"""
Bundled default content
Served when the remote store is unconfigured or unreachable, and used to seed
empty remote collections.
"""

import copy

HERO_IMAGES = [
    "https://picsum.photos/seed/mango_hero1/1920/800",
    "https://picsum.photos/seed/mango_hero2/1920/800",
    "https://picsum.photos/seed/mango_hero3/1920/800",
]

SUB_MENU_ITEMS = [
    {"label": "추천 상품", "icon": "⭐"},
    {"label": "골프", "icon": "⛳"},
    {"label": "호텔&빌라", "icon": "🏨"},
    {"label": "관광", "icon": "🗺️"},
    {"label": "비지니스", "icon": "💼"},
    {"label": "먹거리", "icon": "🍜"},
    {"label": "베트남 문화", "icon": "🏮"},
    {"label": "FOR MEN", "icon": "🍸"},
    {"label": "이벤트", "icon": "🎁"},
    {"label": "동영상", "icon": "🎬"},
    {"label": "커뮤니티", "icon": "💬"},
    {"label": "여행 만들기", "icon": "✈️"},
]

INITIAL_PRODUCTS = [
    {
        "id": "p1",
        "title": "다낭 명문 골프 3박 5일",
        "description": "바나힐스, 몽고메리 링크스 등 다낭 대표 명문 코스 3회 라운딩.",
        "image": "https://picsum.photos/seed/mango_golf/800/600",
        "price": 1290000,
        "location": "다낭",
        "duration": "3박 5일",
        "type": "golf",
        "itinerary": [
            {"day": 1, "activities": ["다낭 공항 도착 및 픽업", "호텔 체크인", "자유 시간"]},
            {"day": 2, "activities": ["바나힐스 골프 라운딩", "골프장 중식", "마사지"]},
            {"day": 3, "activities": ["몽고메리 링크스 라운딩", "미케 비치 산책", "야시장 투어"]},
        ],
    },
    {
        "id": "p2",
        "title": "호이안 올드타운 & 바나힐 투어",
        "description": "유네스코 세계문화유산 호이안과 골든 브릿지를 하루에.",
        "image": "https://picsum.photos/seed/mango_tour/800/600",
        "price": 89000,
        "location": "호이안",
        "duration": "1일",
        "type": "tour",
    },
    {
        "id": "p3",
        "title": "미케 비치 오션뷰 풀빌라",
        "description": "전용 수영장과 조식이 포함된 프라이빗 풀빌라.",
        "image": "https://picsum.photos/seed/mango_villa/800/600",
        "price": 350000,
        "location": "다낭",
        "duration": "1박",
        "type": "hotel",
    },
]

INITIAL_VIDEOS = [
    {
        "id": "v1",
        "title": "다낭 바나힐스 골프 라운딩",
        "url": "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "category": "골프",
    },
    {
        "id": "v2",
        "title": "호이안 야경 산책",
        "url": "https://www.youtube.com/embed/oHg5SJYRHA0",
        "category": "여행",
    },
]

INITIAL_POSTS = [
    {
        "id": "post1",
        "title": "다낭 골프 여행 후기",
        "content": "가이드님 덕분에 편하게 라운딩했습니다. 다음에도 이용할게요!",
        "author": "골프왕",
        "date": "2024-05-01",
        "comments": [
            {
                "id": "c1",
                "author": "관리자",
                "content": "소중한 후기 감사합니다!",
                "date": "2024-05-02",
                "isAdmin": True,
            }
        ],
        "views": 42,
    },
    {
        "id": "post2",
        "title": "가족 여행 견적 문의",
        "content": "8월에 4인 가족 여행 견적 부탁드립니다.",
        "author": "여행좋아",
        "date": "2024-05-03",
        "comments": [],
        "views": 3,
        "isPrivate": True,
        "password": "1234",
    },
]


def _page(page_id, title, hero_title, hero_subtitle, intro_title, intro_text, sections):
    return {
        "id": page_id,
        "title": title,
        "heroImage": f"https://picsum.photos/seed/mango_{page_id}_hero/1920/800",
        "heroTitle": hero_title,
        "heroSubtitle": hero_subtitle,
        "introTitle": intro_title,
        "introText": intro_text,
        "introImage": f"https://picsum.photos/seed/mango_{page_id}_intro/800/600",
        "galleryImages": [f"https://picsum.photos/seed/mango_{page_id}_{i}/800/600" for i in range(1, 4)],
        "sections": [{"title": t, "content": c} for t, c in sections],
    }


INITIAL_PAGE_CONTENTS = {
    "business": _page(
        "business", "비지니스", "베트남 비지니스 지원", "출장부터 법인 설립까지",
        "현지 전문가의 비지니스 케어", "통역, 차량, 미팅 장소까지 한 번에 준비해 드립니다.",
        [("통역 서비스", "한-베 전문 통역사 동행"), ("차량 지원", "공항 픽업 및 전용 차량")],
    ),
    "golf": _page(
        "golf", "골프", "다낭 골프 천국", "사계절 라운딩이 가능한 명문 코스",
        "망고투어 골프", "티타임 예약부터 캐디, 이동까지 모두 책임집니다.",
        [("바나힐스 골프", "산악 지형의 도전적인 코스"), ("몽고메리 링크스", "바다를 낀 링크스 코스")],
    ),
    "hotel": _page(
        "hotel", "호텔&빌라", "호텔 & 풀빌라", "여행의 품격을 높이는 숙소",
        "엄선된 숙소", "직접 검증한 호텔과 풀빌라만 소개합니다.",
        [("오션뷰 호텔", "미케 비치 전망"), ("프라이빗 풀빌라", "가족 단위 여행에 추천")],
    ),
    "food": _page(
        "food", "먹거리", "베트남 미식 여행", "쌀국수부터 해산물까지",
        "현지인 맛집", "가이드가 추천하는 진짜 로컬 맛집.",
        [("쌀국수", "현지인이 줄 서는 국수집"), ("해산물", "미케 비치 해산물 거리")],
    ),
    "culture": _page(
        "culture", "베트남 문화", "베트남 문화 산책", "역사와 전통을 만나는 시간",
        "문화 체험", "아오자이, 등불 만들기 등 다양한 체험.",
        [("호이안 등불", "등불 만들기 체험"), ("전통 공연", "저녁 전통 공연 관람")],
    ),
    "men": _page(
        "men", "FOR MEN", "FOR MEN", "남자들의 여행",
        "프리미엄 나이트 라이프", "안전하고 즐거운 밤 문화를 안내합니다.",
        [("라운지 바", "루프탑 라운지"), ("스파 & 마사지", "프리미엄 스파")],
    ),
    "tour": _page(
        "tour", "관광", "다낭 & 호이안 관광", "꼭 가봐야 할 명소",
        "추천 관광 코스", "바나힐, 호이안, 오행산 등 대표 명소.",
        [("바나힐", "골든 브릿지와 테마파크"), ("오행산", "대리석 산과 동굴 사원")],
    ),
    "event": _page(
        "event", "이벤트", "진행 중인 이벤트", "망고투어만의 특별 혜택",
        "이달의 이벤트", "후기 작성 시 마사지 쿠폰 증정!",
        [("후기 이벤트", "커뮤니티 후기 작성 시 쿠폰 증정")],
    ),
}

INITIAL_POPUP = {
    "id": "main",
    "title": "망고투어 오픈 이벤트",
    "content": "지금 예약하시면 공항 픽업 무료!",
    "isActive": True,
}

DEFAULT_USERS = [
    {"id": "admin", "username": "admin", "role": "admin", "nickname": "관리자"},
    {"id": "u1", "username": "user1", "role": "user", "nickname": "골프왕"},
    {"id": "u2", "username": "user2", "role": "user", "nickname": "여행좋아"},
]


def default_snapshot() -> dict:
    """Deep copy of every bundled default, keyed like the remote store"""
    return copy.deepcopy({
        "heroImages": HERO_IMAGES,
        "menuItems": SUB_MENU_ITEMS,
        "products": INITIAL_PRODUCTS,
        "videos": INITIAL_VIDEOS,
        "posts": INITIAL_POSTS,
        "pageContents": INITIAL_PAGE_CONTENTS,
        "popup": INITIAL_POPUP,
    })
