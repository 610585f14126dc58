import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from fastapi import HTTPException, UploadFile

logger = logging.getLogger(__name__)


@dataclass
class IntakeImage:
    data: bytes
    mime_type: str
    filename: str
    size: int


def normalize_mime_type(content_type: Optional[str]) -> str:
    # "image/JPEG; charset=binary" -> "image/jpeg"
    return (content_type or "").split(";", 1)[0].strip().lower()


class ImageIntake:
    def __init__(self, max_size: int, allowed_types: Iterable[str]):
        self.max_size = max_size
        self.allowed_types = {normalize_mime_type(t) for t in allowed_types}

    @property
    def max_size_label(self) -> str:
        mb = self.max_size / (1024 * 1024)
        return f"{mb:g}MB"

    async def accept(self, upload: Optional[UploadFile]) -> IntakeImage:
        if upload is None or not upload.filename:
            logger.info("No files were uploaded")
            raise HTTPException(status_code=400, detail="No files were uploaded")

        mime_type = normalize_mime_type(upload.content_type)
        if mime_type not in self.allowed_types:
            logger.info(f"Invalid file type: {upload.content_type}")
            raise HTTPException(
                status_code=400,
                detail=f"Invalid file type. Allowed types: {', '.join(sorted(self.allowed_types))}",
            )

        # Never buffer more than one byte past the limit
        data = await upload.read(self.max_size + 1)
        if len(data) > self.max_size:
            logger.info(f"File too large: {upload.filename} exceeds {self.max_size} bytes")
            raise HTTPException(status_code=400, detail=f"File too large. Maximum size is {self.max_size_label}.")
        if not data:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")

        logger.info(f"Processing image: name={upload.filename} type={mime_type} size={len(data)}")
        return IntakeImage(data=data, mime_type=mime_type, filename=upload.filename, size=len(data))
