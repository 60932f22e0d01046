"""
Configuration Module
Loads and validates all environment variables
"""

import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("Config")

# Values shipped in sample configs that must be treated as "not configured"
PLACEHOLDER_VALUES = {
    "",
    "your-project",
    "your_project_id",
    "YOUR_API_KEY_HERE",
    "YOUR_PROJECT_ID",
    "YOUR_PROJECT_ID.appspot.com",
    "Cloud Name",
    "undefined",
    "changeme",
}


def is_configured(value) -> bool:
    """True when a credential value is present and not a sample placeholder"""
    if value is None:
        return False
    value = str(value).strip()
    return bool(value) and value not in PLACEHOLDER_VALUES


class Config:
    """Application configuration"""

    @staticmethod
    def _get_int(key, default=None):
        """Helper to safely fetch and convert env vars to int"""
        val = os.getenv(key)
        if val and val.strip().isdigit():
            return int(val)
        return default

    @staticmethod
    def _get_float(key, default=None):
        """Helper to safely fetch and convert env vars to float"""
        val = os.getenv(key)
        try:
            return float(val) if val is not None and val.strip() else default
        except ValueError:
            return default

    @staticmethod
    def _get_bool(key, default=False):
        val = os.getenv(key)
        if val is None:
            return default
        return val.strip().lower() in ("1", "true", "yes", "on")

    # General Config
    IS_PRODUCTION = _get_bool('IS_PRODUCTION', False)
    SITE_NAME = os.getenv('SITE_NAME', 'MANGO TOUR')

    # Servers
    SITE_HOST = os.getenv('SITE_HOST', '0.0.0.0')
    SITE_PORT = _get_int('SITE_PORT', 8100)
    ADMIN_HOST = os.getenv('ADMIN_HOST', '0.0.0.0')
    ADMIN_PORT = _get_int('ADMIN_PORT', 8200)

    # Remote document store (Firestore)
    DOCUMENT_STORE = os.getenv('DOCUMENT_STORE', 'firestore').lower()
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    FIREBASE_API_KEY = os.getenv('FIREBASE_API_KEY')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    REMOTE_TIMEOUT_SECONDS = _get_float('REMOTE_TIMEOUT_SECONDS', 3.0)

    # Debounced sync
    SYNC_DEBOUNCE_SECONDS = _get_float('SYNC_DEBOUNCE_SECONDS', 1.0)
    PAGES_DEBOUNCE_SECONDS = _get_float('PAGES_DEBOUNCE_SECONDS', 1.5)

    # Uploads
    CLOUDINARY_CLOUD_NAME = os.getenv('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_UPLOAD_PRESET = os.getenv('CLOUDINARY_UPLOAD_PRESET')
    ALLOW_DATA_URL_UPLOADS = _get_bool('ALLOW_DATA_URL_UPLOADS', False)
    UPLOAD_CHUNK_SIZE = _get_int('UPLOAD_CHUNK_SIZE', 64 * 1024)
    IMAGE_MAX_WIDTH = _get_int('IMAGE_MAX_WIDTH', 1200)
    IMAGE_MAX_HEIGHT = _get_int('IMAGE_MAX_HEIGHT', 1200)
    IMAGE_QUALITY = _get_float('IMAGE_QUALITY', 0.7)

    # Gemini
    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY')
    GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-1.5-flash')

    # Google Drive backup
    GOOGLE_API_KEY = os.getenv('GOOGLE_API_KEY')
    GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID')
    DRIVE_REDIRECT_URI = os.getenv('DRIVE_REDIRECT_URI', 'http://localhost:8200/admin/drive/callback')
    DRIVE_BACKUP_FILENAME = os.getenv('DRIVE_BACKUP_FILENAME', 'mango_tour_data.json')
    OAUTH_TIMEOUT_SECONDS = _get_float('OAUTH_TIMEOUT_SECONDS', 120.0)

    # Auth / sessions
    ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD')
    SESSION_BACKEND = os.getenv('SESSION_BACKEND', 'sql').lower()
    SESSION_DATABASE_URL = os.getenv('SESSION_DATABASE_URL', 'sqlite:///./admin/sessions.db')
    SESSION_TTL_MINUTES = _get_int('SESSION_TTL_MINUTES', 60 * 24)

    @classmethod
    def has_firestore_credentials(cls) -> bool:
        """Remote store is usable only when both project id and API key are real values"""
        return is_configured(cls.FIREBASE_PROJECT_ID) and is_configured(cls.FIREBASE_API_KEY)

    @classmethod
    def has_cloudinary_credentials(cls) -> bool:
        """CDN upload needs both a cloud name and an unsigned upload preset"""
        return is_configured(cls.CLOUDINARY_CLOUD_NAME) and is_configured(cls.CLOUDINARY_UPLOAD_PRESET)

    @classmethod
    def has_storage_bucket(cls) -> bool:
        return is_configured(cls.FIREBASE_STORAGE_BUCKET)

    @classmethod
    def validate(cls):
        """Validate required environment variables exist and are not empty"""
        required_vars = ['ADMIN_USERNAME', 'ADMIN_PASSWORD']

        missing = []
        for var in required_vars:
            val = getattr(cls, var, None)

            # Check for None (Missing)
            if val is None:
                missing.append(var)
            # Check for Empty Strings (if it's a string)
            elif isinstance(val, str) and not val.strip():
                missing.append(var)

        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")

        if cls.DOCUMENT_STORE not in ("firestore", "memory"):
            raise ValueError(f"DOCUMENT_STORE must be 'firestore' or 'memory', got '{cls.DOCUMENT_STORE}'")
        if cls.SESSION_BACKEND not in ("sql", "memory"):
            raise ValueError(f"SESSION_BACKEND must be 'sql' or 'memory', got '{cls.SESSION_BACKEND}'")

        if not cls.has_firestore_credentials():
            logger.warning("[CONFIG] Firebase credentials missing. The site will run in LOCAL MODE.")
        if not (cls.has_cloudinary_credentials() or cls.has_storage_bucket() or cls.ALLOW_DATA_URL_UPLOADS):
            logger.warning("[CONFIG] No upload backend configured. File uploads will be rejected.")

        return True
