from typing import Protocol


class InferenceError(Exception):
    """Base class for failures of the external inference API."""


class InferenceRejectedError(InferenceError):
    """The upstream reported a client-side fault (bad image, blocked content)."""


class InferenceUnavailableError(InferenceError):
    """Network failure, upstream server error or an empty completion."""


class AIProvider(Protocol):
    async def generate_text(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        ...
