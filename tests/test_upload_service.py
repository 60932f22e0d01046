"""
Tests for the upload pipeline.

Progress must be monotonic and end at 100; backends are tried in order and
the last failure surfaces when every backend fails.
"""

import io
import re

import pytest
from PIL import Image

from services.upload_service import (
    DataUrlUploadStrategy,
    FirebaseStorageUploadStrategy,
    UploadFile,
    UploadPipeline,
    build_upload_pipeline,
    iter_chunks,
    safe_filename,
)
from utils.config import Config
from utils.errors import AuthorizationError, ConfigurationError, NetworkError, ValidationError

from tests.conftest import FakeUploadStrategy


def _png_bytes(width=2400, height=1200):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), (200, 120, 30)).save(buf, format="PNG")
    return buf.getvalue()


class TestUploadPipeline:

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_ends_at_100(self):
        strategy = FakeUploadStrategy(progress=(10, 5, 50, 50, 120, 30))
        pipeline = UploadPipeline([strategy])
        seen = []

        url = await pipeline.upload(UploadFile("doc.pdf", b"%PDF-1.4"), on_progress=seen.append)

        assert url == strategy.url
        assert seen == sorted(set(seen))
        assert seen[0] == 0
        assert seen[-1] == 100

    @pytest.mark.asyncio
    async def test_falls_through_to_next_backend(self):
        broken = FakeUploadStrategy(name="cdn", error=ConnectionError("refused"))
        working = FakeUploadStrategy(name="bucket", url="https://bucket.example.com/a.txt")
        pipeline = UploadPipeline([broken, working])

        url = await pipeline.upload(UploadFile("a.txt", b"hello"), folder="community")

        assert url == "https://bucket.example.com/a.txt"
        assert working.received[0][1] == "community"

    @pytest.mark.asyncio
    async def test_last_error_is_raised_normalized(self):
        pipeline = UploadPipeline([
            FakeUploadStrategy(name="cdn", error=AuthorizationError("preset rejected")),
            FakeUploadStrategy(name="bucket", error=ConnectionError("refused")),
        ])

        with pytest.raises(NetworkError):
            await pipeline.upload(UploadFile("a.txt", b"hello"))

    @pytest.mark.asyncio
    async def test_empty_file_rejected_before_any_backend(self):
        strategy = FakeUploadStrategy()
        pipeline = UploadPipeline([strategy])

        with pytest.raises(ValidationError):
            await pipeline.upload(UploadFile("empty.jpg", b""))
        assert strategy.received == []

    @pytest.mark.asyncio
    async def test_no_backend_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            await UploadPipeline([]).upload(UploadFile("a.txt", b"x"))

    @pytest.mark.asyncio
    async def test_images_are_compressed_before_upload(self):
        strategy = FakeUploadStrategy()
        pipeline = UploadPipeline([strategy], max_width=1200, max_height=1200, quality=0.7)

        await pipeline.upload(UploadFile("photo.png", _png_bytes(), "image/png"))

        sent = strategy.received[0][0]
        assert sent.filename == "photo.jpg"
        assert sent.content_type == "image/jpeg"
        with Image.open(io.BytesIO(sent.content)) as img:
            assert img.size == (1200, 600)
            assert img.format == "JPEG"

    @pytest.mark.asyncio
    async def test_undecodable_image_is_uploaded_as_is(self):
        strategy = FakeUploadStrategy()
        pipeline = UploadPipeline([strategy])

        await pipeline.upload(UploadFile("broken.jpg", b"not really a jpeg", "image/jpeg"))

        assert strategy.received[0][0].content == b"not really a jpeg"

    @pytest.mark.asyncio
    async def test_oversized_image_is_uploaded_as_is(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        strategy = FakeUploadStrategy()
        pipeline = UploadPipeline([strategy])
        content = _png_bytes(200, 100)

        url = await pipeline.upload(UploadFile("huge.png", content, "image/png"))

        assert url == strategy.url
        sent = strategy.received[0][0]
        assert sent.filename == "huge.png"
        assert sent.content == content

    @pytest.mark.asyncio
    async def test_data_url_backend(self):
        pipeline = UploadPipeline([DataUrlUploadStrategy()])
        url = await pipeline.upload(UploadFile("a.txt", b"hi", "text/plain"))
        assert url == "data:text/plain;base64,aGk="


class TestHelpers:

    def test_safe_filename(self):
        assert safe_filename("my photo (1).png") == "my_photo__1_.png"
        assert safe_filename("다낭.png") == "__.png"
        assert safe_filename("ok.jpg") == "ok.jpg"

    def test_storage_object_name(self):
        strategy = FirebaseStorageUploadStrategy("bucket.appspot.com")
        name = strategy.object_name(UploadFile("my photo.jpg", b"x"), "community")
        assert re.fullmatch(r"community/\d+_my_photo\.jpg", name)

    @pytest.mark.asyncio
    async def test_iter_chunks_reports_percent(self):
        reported = []
        chunks = [c async for c in iter_chunks(b"x" * 10, 4, reported.append)]

        assert [len(c) for c in chunks] == [4, 4, 2]
        assert reported == [40, 80, 100]


class TestBuildUploadPipeline:

    def test_order_follows_configuration(self):
        class Cfg(Config):
            CLOUDINARY_CLOUD_NAME = "mango"
            CLOUDINARY_UPLOAD_PRESET = "unsigned"
            FIREBASE_STORAGE_BUCKET = "mango.appspot.com"
            ALLOW_DATA_URL_UPLOADS = True

        names = [s.name for s in build_upload_pipeline(Cfg).strategies]
        assert names == ["Cloudinary", "Firebase Storage", "data URL"]

    def test_placeholders_count_as_missing(self):
        class Cfg(Config):
            CLOUDINARY_CLOUD_NAME = "Cloud Name"
            CLOUDINARY_UPLOAD_PRESET = "preset"
            FIREBASE_STORAGE_BUCKET = "YOUR_PROJECT_ID.appspot.com"
            ALLOW_DATA_URL_UPLOADS = False

        assert build_upload_pipeline(Cfg).is_configured is False
