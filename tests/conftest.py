"""
Shared fixtures and fakes.

Nothing here touches the network: remote stores are in-memory or scripted
to fail, upload backends are fakes.
"""

import time

import pytest

from services.auth import AuthService
from services.controller import AppController
from services.document_store import DocumentStore, InMemoryDocumentStore
from services.drive_backup import DriveBackupService
from services.registry import AppServices, set_services
from services.remote_sync import RemoteSyncService
from services.session_store import InMemorySessionRepository
from services.upload_service import UploadPipeline, UploadStrategy
from utils.config import Config
from utils.models import User
from utils.sync_status import SyncStatusTracker


# ============================================================================
# FAKES
# ============================================================================

class FailingStore(DocumentStore):
    """Every call fails as if the network were down"""

    name = "failing store"

    def __init__(self, exc=None):
        self.exc = exc or ConnectionError("network unreachable")
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise self.exc

    list_documents = _fail
    get_document = _fail
    set_document = _fail
    delete_document = _fail
    commit_batch = _fail


class SlowStore(InMemoryDocumentStore):
    """Reads hang for ``delay`` seconds"""

    name = "slow store"

    def __init__(self, delay=1.0):
        super().__init__()
        self.delay = delay

    def list_documents(self, collection):
        time.sleep(self.delay)
        return super().list_documents(collection)

    def get_document(self, collection, doc_id):
        time.sleep(self.delay)
        return super().get_document(collection, doc_id)


class FakeUploadStrategy(UploadStrategy):
    """Reports scripted progress values, then returns ``url`` or raises ``error``"""

    def __init__(self, name="fake", url="https://cdn.example.com/file.jpg", error=None, progress=(25, 50, 75)):
        self.name = name
        self.url = url
        self.error = error
        self.progress = progress
        self.received = []

    async def try_upload(self, file, folder, report):
        self.received.append((file, folder))
        for value in self.progress:
            report(value)
        if self.error is not None:
            raise self.error
        return self.url


class FakeConfig(Config):
    SITE_NAME = "MANGO TOUR"
    GOOGLE_API_KEY = None
    GOOGLE_CLIENT_ID = None
    GEMINI_API_KEY = None
    OAUTH_TIMEOUT_SECONDS = 0.1


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def tracker():
    return SyncStatusTracker()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sync(store, tracker):
    service = RemoteSyncService(store, tracker, timeout=2.0)
    yield service
    service.close()


@pytest.fixture
def controller(sync, tracker):
    ctrl = AppController(sync, tracker, sync_delay=0.05, pages_delay=0.05)
    ctrl.load()
    yield ctrl
    ctrl.flush()


@pytest.fixture
def auth():
    service = AuthService(InMemorySessionRepository(), admin_username="admin", admin_password="secret")
    service.seed_users()
    return service


@pytest.fixture
def admin_user():
    return User(id="admin", username="admin", role="admin", nickname="관리자")


@pytest.fixture
def golf_user():
    return User(id="u1", username="user1", role="user", nickname="골프왕")


@pytest.fixture
def travel_user():
    return User(id="u2", username="user2", role="user", nickname="여행좋아")


@pytest.fixture
def upload_strategy():
    return FakeUploadStrategy()


@pytest.fixture
def app_services(controller, sync, tracker, auth, upload_strategy):
    """Full service graph registered for both web layers"""
    from api import flask_api

    services = AppServices(
        config=FakeConfig,
        tracker=tracker,
        sync=sync,
        controller=controller,
        auth=auth,
        uploads=UploadPipeline([upload_strategy]),
        drive=DriveBackupService("mango_tour_data.json", "http://localhost:8200/admin/drive/callback"),
    )
    set_services(services)
    flask_api.set_services(services)
    yield services
    set_services(None)
    flask_api.set_services(None)
