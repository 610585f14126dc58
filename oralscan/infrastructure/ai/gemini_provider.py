import asyncio
import logging
from typing import Any, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from ...application.ports.ai_provider import AIProvider, InferenceRejectedError, InferenceUnavailableError

logger = logging.getLogger(__name__)

# Failures worth one more attempt: the request may never have reached the model
RETRYABLE_ERRORS = (
    asyncio.TimeoutError,
    ConnectionError,
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
)


class GeminiProvider(AIProvider):
    def __init__(
        self,
        api_key: str,
        model_name: str,
        timeout_seconds: float = 30.0,
        max_attempts: int = 2,
        model: Optional[Any] = None,
    ) -> None:
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.max_attempts = max(1, max_attempts)
        if model is None:
            # genai.configure sets the key process-wide
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(
                model_name,
                generation_config={"response_mime_type": "application/json"},
            )
        self.model = model

    async def generate_text(self, prompt: str, image_bytes: bytes, mime_type: str) -> str:
        contents = [prompt, {"mime_type": mime_type, "data": image_bytes}]

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await asyncio.wait_for(
                    self.model.generate_content_async(
                        contents,
                        request_options={"timeout": self.timeout_seconds},
                    ),
                    timeout=self.timeout_seconds,
                )
                return self._completion_text(response)
            except RETRYABLE_ERRORS as e:
                if attempt < self.max_attempts:
                    logger.warning(f"Inference attempt {attempt} failed ({type(e).__name__}), retrying")
                    continue
                raise InferenceUnavailableError(
                    f"Inference API unreachable after {attempt} attempts: {type(e).__name__}"
                ) from e
            except google_exceptions.BadRequest as e:
                raise InferenceRejectedError(e.message or str(e)) from e
            except google_exceptions.GoogleAPIError as e:
                raise InferenceUnavailableError(f"Inference API error: {e}") from e

        raise InferenceUnavailableError("Inference API was not called")

    def _completion_text(self, response: Any) -> str:
        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            raise InferenceRejectedError(f"Content blocked by the inference API ({block_reason})")

        try:
            text = response.text
        except ValueError as e:
            # Raised by the SDK when the response has no text part
            raise InferenceUnavailableError("Invalid response format from API") from e

        if not text or not text.strip():
            raise InferenceUnavailableError("Empty response from inference API")
        return text
