from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from oralscan.application.services.image_intake import ImageIntake, normalize_mime_type

ALLOWED = ["image/jpeg", "image/png", "image/gif", "image/webp"]


def make_upload(data: bytes, content_type: str = "image/jpeg", filename: str = "mouth.jpg") -> UploadFile:
    return UploadFile(file=BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", ALLOWED)
async def test_accepts_allowed_types_below_limit(content_type):
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    image = await intake.accept(make_upload(b"x" * 100, content_type))
    assert image.mime_type == content_type
    assert image.size == 100
    assert image.data == b"x" * 100
    assert image.filename == "mouth.jpg"


@pytest.mark.asyncio
async def test_accepts_file_exactly_at_limit():
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    image = await intake.accept(make_upload(b"x" * 1024))
    assert image.size == 1024


@pytest.mark.asyncio
@pytest.mark.parametrize("content_type", ["image/bmp", "application/pdf", "text/plain", ""])
async def test_rejects_other_types(content_type):
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    with pytest.raises(HTTPException) as exc:
        await intake.accept(make_upload(b"x" * 10, content_type))
    assert exc.value.status_code == 400
    assert "Invalid file type" in exc.value.detail


@pytest.mark.asyncio
async def test_rejects_oversized_file():
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    with pytest.raises(HTTPException) as exc:
        await intake.accept(make_upload(b"x" * 1025))
    assert exc.value.status_code == 400
    assert "File too large" in exc.value.detail


@pytest.mark.asyncio
async def test_rejects_missing_file():
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    with pytest.raises(HTTPException) as exc:
        await intake.accept(None)
    assert exc.value.status_code == 400
    assert exc.value.detail == "No files were uploaded"


@pytest.mark.asyncio
async def test_rejects_empty_file():
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    with pytest.raises(HTTPException) as exc:
        await intake.accept(make_upload(b""))
    assert exc.value.status_code == 400


@pytest.mark.asyncio
async def test_content_type_parameters_and_case_are_ignored():
    intake = ImageIntake(max_size=1024, allowed_types=ALLOWED)
    image = await intake.accept(make_upload(b"png", "IMAGE/PNG; charset=binary"))
    assert image.mime_type == "image/png"


def test_normalize_mime_type():
    assert normalize_mime_type(None) == ""
    assert normalize_mime_type(" image/WebP ") == "image/webp"
