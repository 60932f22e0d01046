"""
Upload Service
Compresses images and pushes files to the first object-storage backend that
accepts them, reporting integer progress along the way.
"""

import asyncio
import base64
import logging
import re
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import quote

import aiohttp

from utils.config import Config
from utils.errors import (
    ConfigurationError,
    ImageCompressionError,
    UnknownProviderError,
    ValidationError,
    error_from_status,
    normalize_error,
)
from utils.image_utils import compress_image, is_image, jpeg_filename

logger = logging.getLogger("UploadService")

ProgressCallback = Callable[[int], None]

CLOUDINARY_URL = "https://api.cloudinary.com/v1_1/{cloud}/auto/upload"
FIREBASE_STORAGE_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o"
UPLOAD_TIMEOUT = aiohttp.ClientTimeout(total=300)


@dataclass
class UploadFile:
    """An in-memory file handed to the pipeline"""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


def safe_filename(filename: str) -> str:
    """Replace anything but ASCII letters, digits and dots with underscores"""
    return re.sub(r"[^a-zA-Z0-9.]", "_", filename or "file")


async def iter_chunks(content: bytes, chunk_size: int, report: ProgressCallback):
    """Yield ``content`` in chunks, reporting percent sent after each one"""
    total = len(content) or 1
    sent = 0
    for start in range(0, len(content), chunk_size):
        chunk = content[start:start + chunk_size]
        yield chunk
        sent += len(chunk)
        report(sent * 100 // total)


# ============================================================================
# STRATEGIES
# ============================================================================

class UploadStrategy(ABC):
    """One storage backend. Returns the public URL or raises."""

    name = "storage"

    @abstractmethod
    async def try_upload(self, file: UploadFile, folder: str, report: ProgressCallback) -> str:
        ...


class CloudinaryUploadStrategy(UploadStrategy):
    """Unsigned upload to the Cloudinary CDN"""

    name = "Cloudinary"

    def __init__(self, cloud_name: str, upload_preset: str, chunk_size: int = 64 * 1024):
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.chunk_size = chunk_size

    async def try_upload(self, file, folder, report):
        form = aiohttp.FormData()
        form.add_field(
            "file",
            iter_chunks(file.content, self.chunk_size, report),
            filename=file.filename,
            content_type=file.content_type,
        )
        form.add_field("upload_preset", self.upload_preset)
        form.add_field("folder", folder)

        url = CLOUDINARY_URL.format(cloud=self.cloud_name)
        logger.info(f"[UPLOAD] Uploading {file.filename} to Cloudinary...")
        async with aiohttp.ClientSession(timeout=UPLOAD_TIMEOUT) as session:
            async with session.post(url, data=form) as resp:
                if resp.status != 200:
                    raise error_from_status(resp.status, await resp.text(), self.name)
                data = await resp.json(content_type=None)

        secure_url = data.get("secure_url")
        if not secure_url:
            raise UnknownProviderError("Cloudinary did not return a URL.", detail=str(data)[:300])
        return secure_url


class FirebaseStorageUploadStrategy(UploadStrategy):
    """Firebase Storage REST upload; the URL is built from the download token"""

    name = "Firebase Storage"

    def __init__(self, bucket: str, api_key: Optional[str] = None, chunk_size: int = 64 * 1024):
        self.bucket = bucket
        self.api_key = api_key
        self.chunk_size = chunk_size

    def object_name(self, file: UploadFile, folder: str) -> str:
        # timestamp prefix keeps repeated names from overwriting each other
        return f"{folder}/{int(time.time() * 1000)}_{safe_filename(file.filename)}"

    async def try_upload(self, file, folder, report):
        name = self.object_name(file, folder)
        base = FIREBASE_STORAGE_URL.format(bucket=self.bucket)
        params = {"uploadType": "media", "name": name}
        if self.api_key:
            params["key"] = self.api_key
        headers = {"Content-Type": file.content_type, "Content-Length": str(file.size)}

        logger.info(f"[UPLOAD] Uploading {name} to Firebase Storage...")
        async with aiohttp.ClientSession(timeout=UPLOAD_TIMEOUT) as session:
            async with session.post(
                base,
                params=params,
                headers=headers,
                data=iter_chunks(file.content, self.chunk_size, report),
            ) as resp:
                if resp.status != 200:
                    raise error_from_status(resp.status, await resp.text(), self.name)
                data = await resp.json(content_type=None)

        token = (data.get("downloadTokens") or "").split(",")[0]
        if not token:
            token = str(uuid.uuid4())
            logger.warning(f"[UPLOAD] No download token returned for {name}")
        return f"{base}/{quote(name, safe='')}?alt=media&token={token}"


class DataUrlUploadStrategy(UploadStrategy):
    """Degraded mode: embed the bytes in the document as a data: URL"""

    name = "data URL"

    async def try_upload(self, file, folder, report):
        encoded = base64.b64encode(file.content).decode("ascii")
        report(100)
        logger.warning(f"[UPLOAD] Embedding {file.filename} as a data URL ({len(encoded)} chars)")
        return f"data:{file.content_type};base64,{encoded}"


# ============================================================================
# PIPELINE
# ============================================================================

class _MonotonicProgress:
    """Forwards progress only when it increases, clamped to 0-100"""

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.last = -1

    def __call__(self, percent: int):
        percent = max(0, min(100, int(percent)))
        if percent <= self.last:
            return
        self.last = percent
        if self.callback:
            try:
                self.callback(percent)
            except Exception as e:
                logger.warning(f"[UPLOAD] Progress callback failed: {e}")

    def finish(self):
        self(100)


class UploadPipeline:
    """
    Compress (images only) then try each strategy in order.

    Args:
        strategies: Ordered backends; the first success wins
        max_width, max_height, quality: Image compression settings
    """

    def __init__(
        self,
        strategies: List[UploadStrategy],
        max_width: int = 1200,
        max_height: int = 1200,
        quality: float = 0.7,
    ):
        self.strategies = list(strategies)
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    @property
    def is_configured(self) -> bool:
        return bool(self.strategies)

    async def prepare(self, file: UploadFile) -> UploadFile:
        """Compress images; on failure the original bytes are used"""
        if not is_image(file.filename, file.content_type):
            return file
        loop = asyncio.get_running_loop()
        try:
            content = await loop.run_in_executor(
                None, compress_image, file.content, self.max_width, self.max_height, self.quality
            )
        except ImageCompressionError as e:
            logger.warning(f"[UPLOAD] Compression failed for {file.filename}, uploading original: {e.detail}")
            return file
        return UploadFile(filename=jpeg_filename(file.filename), content=content, content_type="image/jpeg")

    async def upload(self, file: UploadFile, folder: str = "uploads",
                     on_progress: Optional[ProgressCallback] = None) -> str:
        """
        Upload a file and return its public URL.

        Raises:
            ValidationError: empty file
            ConfigurationError: no backend configured
            NetworkError / AuthorizationError / UnknownProviderError: the last
                backend's failure when every backend failed
        """
        if not file.content:
            raise ValidationError("The file is empty.")
        if not self.strategies:
            raise ConfigurationError(
                "No upload backend is configured. Set the Cloudinary cloud name and upload preset."
            )

        prepared = await self.prepare(file)
        progress = _MonotonicProgress(on_progress)
        progress(0)

        last_error = None
        for strategy in self.strategies:
            try:
                url = await strategy.try_upload(prepared, folder, progress)
            except Exception as e:
                last_error = normalize_error(e, strategy.name)
                logger.warning(f"[UPLOAD] {strategy.name} failed: {last_error.kind} {last_error.detail or ''}")
                continue
            progress.finish()
            logger.info(f"[UPLOAD] {prepared.filename} uploaded via {strategy.name}")
            return url

        raise last_error


def build_upload_pipeline(config=Config) -> UploadPipeline:
    """Assemble the strategy list from configuration"""
    strategies: List[UploadStrategy] = []
    if config.has_cloudinary_credentials():
        strategies.append(CloudinaryUploadStrategy(
            config.CLOUDINARY_CLOUD_NAME, config.CLOUDINARY_UPLOAD_PRESET, config.UPLOAD_CHUNK_SIZE
        ))
    if config.has_storage_bucket():
        strategies.append(FirebaseStorageUploadStrategy(
            config.FIREBASE_STORAGE_BUCKET, config.FIREBASE_API_KEY, config.UPLOAD_CHUNK_SIZE
        ))
    if config.ALLOW_DATA_URL_UPLOADS:
        strategies.append(DataUrlUploadStrategy())

    logger.info(f"[UPLOAD] Backends: {', '.join(s.name for s in strategies) or 'none'}")
    return UploadPipeline(
        strategies,
        max_width=config.IMAGE_MAX_WIDTH,
        max_height=config.IMAGE_MAX_HEIGHT,
        quality=config.IMAGE_QUALITY,
    )
