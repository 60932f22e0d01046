"""Utils package initialization"""

from .config import Config
from .helpers import (
    normalize_text,
    tokenize,
    smart_threshold,
    best_label_match,
    format_vnd,
)
from .sync_status import get_sync_status_tracker, SyncStatusTracker

__all__ = [
    'Config',
    'normalize_text',
    'tokenize',
    'smart_threshold',
    'best_label_match',
    'format_vnd',
    'get_sync_status_tracker',
    'SyncStatusTracker'
]
