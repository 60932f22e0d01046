"""
Service Registry
Builds the shared service graph once at startup. Both web layers fetch it
through get_services().
"""

import logging
from dataclasses import dataclass
from typing import Optional

from utils.config import Config
from utils.sync_status import SyncStatusTracker, get_sync_status_tracker

from services.auth import AuthService
from services.controller import AppController
from services.document_store import build_document_store
from services.drive_backup import DriveBackupService
from services.remote_sync import RemoteSyncService
from services.session_store import build_session_repository
from services.upload_service import UploadPipeline, build_upload_pipeline

logger = logging.getLogger("Registry")


@dataclass
class AppServices:
    config: type
    tracker: SyncStatusTracker
    sync: RemoteSyncService
    controller: AppController
    auth: AuthService
    uploads: UploadPipeline
    drive: DriveBackupService


def build_services(config=Config) -> AppServices:
    """Create every service from configuration. Nothing is fetched yet."""
    tracker = get_sync_status_tracker()

    store = None
    if config.DOCUMENT_STORE == "memory" or config.has_firestore_credentials():
        store = build_document_store(config.DOCUMENT_STORE, config.FIREBASE_PROJECT_ID)
    if store is None:
        logger.warning("[REGISTRY] No remote store configured, running in LOCAL MODE")

    sync = RemoteSyncService(store, tracker, timeout=config.REMOTE_TIMEOUT_SECONDS)
    controller = AppController(
        sync,
        tracker,
        sync_delay=config.SYNC_DEBOUNCE_SECONDS,
        pages_delay=config.PAGES_DEBOUNCE_SECONDS,
        gemini_api_key=config.GEMINI_API_KEY,
        gemini_model=config.GEMINI_MODEL,
    )
    auth = AuthService(
        build_session_repository(config.SESSION_BACKEND, config.SESSION_DATABASE_URL),
        admin_username=config.ADMIN_USERNAME,
        admin_password=config.ADMIN_PASSWORD,
        ttl_minutes=config.SESSION_TTL_MINUTES,
    )
    drive = DriveBackupService(config.DRIVE_BACKUP_FILENAME, config.DRIVE_REDIRECT_URI)

    return AppServices(
        config=config,
        tracker=tracker,
        sync=sync,
        controller=controller,
        auth=auth,
        uploads=build_upload_pipeline(config),
        drive=drive,
    )


_services: Optional[AppServices] = None


def set_services(services: AppServices):
    global _services
    _services = services


def get_services() -> AppServices:
    """The registered services, built from Config on first use"""
    global _services
    if _services is None:
        _services = build_services()
    return _services
