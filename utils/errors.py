"""
Errors Module
Closed error taxonomy shared by the sync layer, the upload pipeline and both APIs.
Vendor exceptions are normalized here before they reach application code.
"""

import asyncio
import concurrent.futures
import logging
from typing import Optional

import aiohttp
from google.api_core import exceptions as google_exceptions

logger = logging.getLogger("Errors")

SIZE_LIMIT_MARKER = "exceeds the maximum allowed size"
DRIVE_DISABLED_MARKERS = ("accessNotConfigured", "has not been used", "is disabled", "SERVICE_DISABLED")


class MangoTourError(Exception):
    """Base class for every error the application surfaces to a user"""

    status_code = 500
    default_message = "An unexpected error occurred."

    def __init__(self, user_message: Optional[str] = None, *, detail: Optional[str] = None):
        self.user_message = user_message or self.default_message
        self.detail = detail
        super().__init__(self.user_message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.user_message}
        if self.detail:
            payload["detail"] = self.detail
        return payload


# ============================================================================
# CONFIGURATION / CONNECTIVITY
# ============================================================================

class ConfigurationError(MangoTourError):
    status_code = 503
    default_message = "No backend is configured for this operation."


class NetworkError(MangoTourError):
    status_code = 502
    default_message = "Network error. Check your connection and try again."


class RemoteTimeoutError(NetworkError):
    status_code = 504
    default_message = "The remote service did not respond in time."


class UnknownProviderError(MangoTourError):
    status_code = 502
    default_message = "The storage provider returned an unexpected error."


# ============================================================================
# AUTHORIZATION
# ============================================================================

class AuthorizationError(MangoTourError):
    status_code = 403
    default_message = "Access denied. Check your credentials or permissions."


class LoginRequiredError(AuthorizationError):
    status_code = 401
    default_message = "Login is required for this action."


class PermissionDeniedError(AuthorizationError):
    status_code = 403
    default_message = "You do not have permission to do that."


class PostLockedError(AuthorizationError):
    status_code = 403
    default_message = "This post is private. The password does not match."


# ============================================================================
# QUOTA / SIZE
# ============================================================================

class QuotaExceededError(MangoTourError):
    status_code = 413
    default_message = "The remote service quota was exceeded."


class DocumentTooLargeError(QuotaExceededError):
    default_message = (
        "Save failed: the data is larger than the 1MB document limit. "
        "This usually means large images were embedded as text instead of uploaded. "
        "Remove recently added large images or upload smaller ones and try again."
    )


# ============================================================================
# LOCAL
# ============================================================================

class ValidationError(MangoTourError):
    status_code = 400
    default_message = "Required fields are missing."


class NotFoundError(MangoTourError):
    status_code = 404
    default_message = "The requested item does not exist."


class ImageCompressionError(MangoTourError):
    status_code = 422
    default_message = "The image could not be compressed."


# ============================================================================
# NORMALIZATION
# ============================================================================

def error_from_status(status: int, body: str = "", provider: str = "remote") -> MangoTourError:
    """Map an HTTP status returned by a provider to the taxonomy"""
    body = body or ""
    detail = f"{provider} responded {status}: {body[:300]}"

    if status == 401:
        return AuthorizationError(
            f"{provider} rejected the credentials (expired or missing token). Sign in again.",
            detail=detail,
        )
    if status == 403:
        if any(marker in body for marker in DRIVE_DISABLED_MARKERS):
            return AuthorizationError(
                f"The {provider} API is not enabled for this project. "
                f"Open the Google Cloud Console, enable the API, wait a minute and retry.",
                detail=detail,
            )
        return AuthorizationError(f"{provider} denied access. Check the upload preset or permissions.", detail=detail)
    if status == 413 or SIZE_LIMIT_MARKER in body:
        return DocumentTooLargeError(detail=detail)
    if status == 429:
        return QuotaExceededError(f"{provider} quota exceeded. Try again later.", detail=detail)
    if status >= 500:
        return NetworkError(f"{provider} is temporarily unavailable. Try again later.", detail=detail)
    return UnknownProviderError(f"{provider} upload failed with status {status}.", detail=detail)


def normalize_error(exc: BaseException, provider: str = "remote") -> MangoTourError:
    """
    Convert any exception raised by a vendor SDK or transport into the taxonomy.

    Args:
        exc: The exception to convert
        provider: Human-readable name of the collaborator, used in messages

    Returns:
        A MangoTourError subclass instance (exc itself if already normalized)
    """
    if isinstance(exc, MangoTourError):
        return exc

    message = str(exc)
    detail = f"{type(exc).__name__}: {message}"[:500]

    if SIZE_LIMIT_MARKER in message:
        return DocumentTooLargeError(detail=detail)

    if isinstance(exc, (asyncio.TimeoutError, concurrent.futures.TimeoutError, TimeoutError)):
        return RemoteTimeoutError(f"{provider} did not respond in time.", detail=detail)

    # google.api_core (Firestore)
    gexc = google_exceptions
    if isinstance(exc, gexc.GoogleAPIError):
        if isinstance(exc, (gexc.PermissionDenied, gexc.Unauthenticated, gexc.Forbidden, gexc.Unauthorized)):
            return AuthorizationError(f"{provider} denied access. Check the security rules and credentials.", detail=detail)
        if isinstance(exc, gexc.ResourceExhausted):
            return QuotaExceededError(f"{provider} quota exceeded. Try again later.", detail=detail)
        if isinstance(exc, (gexc.DeadlineExceeded, gexc.ServiceUnavailable, gexc.RetryError)):
            return NetworkError(f"{provider} is unreachable. Check the network and try again.", detail=detail)
        return UnknownProviderError(f"{provider} returned an unexpected error.", detail=detail)

    # aiohttp (uploads, Drive)
    if isinstance(exc, aiohttp.ClientResponseError):
        return error_from_status(exc.status, exc.message or "", provider)
    if isinstance(exc, (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError)):
        return NetworkError(f"Could not reach {provider}. Check the network and try again.", detail=detail)

    if isinstance(exc, (ConnectionError, OSError)):
        return NetworkError(f"Could not reach {provider}. Check the network and try again.", detail=detail)

    logger.debug(f"Unclassified {provider} error: {detail}")
    return UnknownProviderError(f"{provider} failed unexpectedly.", detail=detail)
