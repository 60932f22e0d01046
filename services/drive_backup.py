"""
Google Drive Backup Module
Saves and restores the whole site snapshot as one JSON file in the admin's
Google Drive, authorized through an OAuth consent handshake.
"""

import asyncio
import json
import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

import aiohttp

from utils.config import is_configured
from utils.errors import (
    AuthorizationError,
    ConfigurationError,
    MangoTourError,
    RemoteTimeoutError,
    ValidationError,
    error_from_status,
    normalize_error,
)

logger = logging.getLogger("DriveBackup")

SCOPES = "https://www.googleapis.com/auth/drive.file"
AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_TIMEOUT = aiohttp.ClientTimeout(total=30)

AWAITING_CONSENT = "awaiting_consent"
TOKEN_ACQUIRED = "token_acquired"
FAILED = "failed"


class OAuthHandshake:
    """
    One consent round trip: awaiting_consent -> token_acquired | failed.

    The admin opens ``consent_url``; the redirect page posts the token back,
    which resolves the handshake through DriveBackupService.receive_token.
    """

    def __init__(self, client_id: str, redirect_uri: str):
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self.state_token = secrets.token_urlsafe(16)
        self.status = AWAITING_CONSENT
        self.access_token: Optional[str] = None
        self.error: Optional[str] = None
        self._done = asyncio.Event()

    @property
    def consent_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "token",
            "scope": SCOPES,
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": self.state_token,
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    @property
    def is_done(self) -> bool:
        return self.status != AWAITING_CONSENT

    def resolve(self, access_token: str):
        self.access_token = access_token
        self.status = TOKEN_ACQUIRED
        self._done.set()

    def fail(self, error: str):
        self.error = error
        self.status = FAILED
        self._done.set()

    async def wait(self, timeout: float) -> str:
        """
        Wait for the consent outcome.

        Returns:
            The access token

        Raises:
            RemoteTimeoutError: nobody completed the consent in time
            AuthorizationError: consent was refused or failed
        """
        try:
            await asyncio.wait_for(self._done.wait(), timeout)
        except asyncio.TimeoutError:
            self.fail("timeout")
            raise RemoteTimeoutError("Google sign-in was not completed in time. Try again.")
        if self.status == FAILED:
            raise AuthorizationError(f"Google sign-in failed: {self.error}")
        return self.access_token


class DriveBackupService:
    """Drive client: handshake state, access token and the file operations"""

    def __init__(self, filename: str = "mango_tour_data.json", redirect_uri: str = ""):
        self.filename = filename
        self.redirect_uri = redirect_uri
        self.api_key: Optional[str] = None
        self.client_id: Optional[str] = None
        self.handshake: Optional[OAuthHandshake] = None
        self.access_token: Optional[str] = None

    # ========================================================================
    # HANDSHAKE
    # ========================================================================

    @property
    def is_initialized(self) -> bool:
        return self.api_key is not None

    @property
    def is_authorized(self) -> bool:
        return self.access_token is not None

    def init_client(self, api_key: Optional[str]):
        if not is_configured(api_key):
            raise ConfigurationError("Google API key is not configured.")
        self.api_key = api_key
        logger.info("[DRIVE] API client initialized")

    def init_token_client(self, client_id: Optional[str]) -> OAuthHandshake:
        if not self.is_initialized:
            raise ConfigurationError("Initialize the Drive client with an API key first.")
        if not is_configured(client_id):
            raise ConfigurationError("Google OAuth client id is not configured.")
        self.client_id = client_id
        self.handshake = OAuthHandshake(client_id, self.redirect_uri)
        return self.handshake

    def request_access_token(self) -> str:
        """Return the consent URL the admin must open"""
        if self.handshake is None or self.handshake.is_done:
            if not self.client_id:
                raise ConfigurationError("The sign-in client is not initialized yet. Try again shortly.")
            self.handshake = OAuthHandshake(self.client_id, self.redirect_uri)
        return self.handshake.consent_url

    def receive_token(self, state: str, access_token: Optional[str] = None, error: Optional[str] = None):
        """Complete the pending handshake with the redirect's token or error"""
        handshake = self.handshake
        if handshake is None or handshake.state_token != state:
            raise AuthorizationError("Unknown or expired sign-in request.")
        if handshake.is_done:
            raise AuthorizationError("This sign-in request was already completed.")
        if error or not access_token:
            handshake.fail(error or "no access token returned")
            logger.warning(f"[DRIVE] Consent failed: {handshake.error}")
            raise AuthorizationError(f"Google sign-in failed: {handshake.error}")
        handshake.resolve(access_token)
        self.access_token = access_token
        logger.info("[DRIVE] Access token acquired")

    def disconnect(self):
        self.access_token = None
        self.handshake = None

    # ========================================================================
    # FILE OPERATIONS
    # ========================================================================

    def _headers(self, content_type: Optional[str] = None) -> dict:
        if not self.access_token:
            raise AuthorizationError("No Google Drive access. Connect your Google account first.")
        headers = {"Authorization": f"Bearer {self.access_token}"}
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def _request(self, method: str, url: str, *, params=None, data=None, json_body=None,
                       content_type: Optional[str] = None, parse: str = "json"):
        """Perform one Drive call; non-2xx responses become taxonomy errors"""
        headers = self._headers(content_type)
        params = dict(params or {})
        if self.api_key:
            params.setdefault("key", self.api_key)
        try:
            async with aiohttp.ClientSession(timeout=DRIVE_TIMEOUT) as session:
                async with session.request(method, url, headers=headers, params=params,
                                           data=data, json=json_body) as resp:
                    body = await resp.text()
                    if resp.status == 401:
                        self.access_token = None
                    if resp.status >= 400:
                        raise error_from_status(resp.status, body, "Google Drive")
        except MangoTourError:
            raise
        except Exception as e:
            raise normalize_error(e, "Google Drive") from e

        if parse == "json":
            return json.loads(body) if body else {}
        return body

    async def find_file(self) -> Optional[dict]:
        escaped = self.filename.replace("'", "\\'")
        data = await self._request("GET", FILES_URL, params={
            "q": f"name = '{escaped}' and trashed = false",
            "fields": "files(id, name)",
        })
        files = data.get("files") or []
        return files[0] if files else None

    async def save_data(self, snapshot: dict) -> str:
        """
        Write the snapshot, creating the backup file when absent.

        Returns:
            The Drive file id
        """
        existing = await self.find_file()
        if existing:
            file_id = existing["id"]
        else:
            created = await self._request("POST", FILES_URL, json_body={
                "name": self.filename,
                "mimeType": "application/json",
            })
            file_id = created["id"]
            logger.info(f"[DRIVE] Created backup file {file_id}")

        content = json.dumps(snapshot, ensure_ascii=False, indent=2)
        await self._request(
            "PATCH", f"{UPLOAD_URL}/{file_id}",
            params={"uploadType": "media"},
            data=content.encode("utf-8"),
            content_type="application/json",
        )
        logger.info(f"[DRIVE] Backup saved ({len(content)} chars)")
        return file_id

    async def load_data(self) -> Optional[dict]:
        """Return the backed-up snapshot, or None when no backup exists"""
        existing = await self.find_file()
        if not existing:
            return None
        body = await self._request("GET", f"{FILES_URL}/{existing['id']}", params={"alt": "media"}, parse="text")
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ValidationError("The Drive backup file is not valid JSON.", detail=str(e)) from e
