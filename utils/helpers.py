"""
Helper Functions Module
Text normalization, fuzzy label matching and money formatting
"""

import re
import unicodedata
import uuid
from datetime import datetime
from typing import List, Optional, Set

from thefuzz import process, fuzz


# ============================================================================
# TEXT NORMALIZATION
# ============================================================================


def normalize_text(s: str) -> str:
    """Normalize text for matching (NFC so composed and decomposed Hangul compare equal)"""
    s = unicodedata.normalize("NFC", s or "").lower().strip()
    s = re.sub(r"[^\w\s&]", " ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def tokenize(s: str) -> Set[str]:
    """Tokenize text for matching"""
    s = normalize_text(s)
    return set(t for t in s.split(" ") if t)


def smart_threshold(query: str) -> int:
    """Determine fuzzy matching threshold based on query length"""
    # Hangul syllables carry more information per character than Latin letters
    qlen = len(normalize_text(query))
    if qlen <= 2:
        return 90
    if qlen <= 5:
        return 75
    return 70


def best_label_match(query: str, labels: List[str]) -> Optional[str]:
    """
    Find the label a free-form string refers to.

    Tries, in order: exact match, a label contained in the query, the query
    contained in a label, then a fuzzy match above a length-based threshold.

    Returns:
        The matching label, or None
    """
    qn = normalize_text(query)
    if not qn or not labels:
        return None

    normalized = {normalize_text(label): label for label in labels}

    # 1) Easy wins
    if qn in normalized:
        return normalized[qn]

    for key, label in normalized.items():
        if key and key in qn:
            return label

    for key, label in normalized.items():
        if qn in key:
            return label

    # 2) Fuzzy match
    match = process.extractOne(qn, list(normalized.keys()), scorer=fuzz.ratio)
    if match and match[1] >= smart_threshold(qn):
        return normalized[match[0]]
    return None


# ============================================================================
# FORMATTING
# ============================================================================


def format_vnd(amount: int) -> str:
    """10000000 -> '10,000,000 VND'"""
    return f"{int(amount):,} VND"


def today_str() -> str:
    """Date string used on posts and comments"""
    return datetime.now().strftime("%Y-%m-%d")


def new_id(prefix: str = "") -> str:
    """Time-based id with a random suffix"""
    return f"{prefix}{int(datetime.now().timestamp() * 1000)}{uuid.uuid4().hex[:4]}"
