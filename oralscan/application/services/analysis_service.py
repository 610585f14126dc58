import asyncio
import base64
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional
from fastapi import UploadFile, HTTPException

from ..ports.analysis_repo import AnalysisRepository, AnalysisRecord
from ..ports.ai_provider import AIProvider, InferenceRejectedError, InferenceUnavailableError
from .image_intake import ImageIntake, IntakeImage
from .verdict_parser import CONCERNING, Verdict, parse_verdict
from ...core.timeutil import utc_now

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = (
    "Please analyze this oral cavity image for signs of cancer. "
    "Respond ONLY with a JSON object with the following structure: "
    '{"result": "Normal" or "Concerning", "confidence": number between 0 and 1, '
    '"explanation": string with detailed findings}. '
    "Focus on identifying any suspicious lesions, abnormal growths, or discoloration "
    "that might indicate early signs of oral cancer."
)

IMAGE_PLACEHOLDER = "inline-image-omitted"

# nginx's convention for a request the client abandoned
CLIENT_CLOSED_REQUEST = 499

DisconnectCheck = Callable[[], Awaitable[bool]]


def severity_for(result: str) -> str:
    return "high" if result == CONCERNING else "low"


@dataclass
class AnalysisService:
    analysis_repo: AnalysisRepository
    ai_provider: AIProvider
    intake: ImageIntake
    inline_image_references: bool = True
    disconnect_poll_seconds: float = 0.5
    prompt: str = ANALYSIS_PROMPT

    async def analyze(self, user_id: Optional[str], upload: Optional[UploadFile], is_disconnected: Optional[DisconnectCheck] = None) -> AnalysisRecord:
        image = await self.intake.accept(upload)

        completion = await self._infer(image, is_disconnected)
        logger.debug(f"Raw analysis response: {completion}")
        verdict = parse_verdict(completion)

        image_url = self._image_reference(image)
        if user_id is None:
            return self._transient_record(image_url, verdict)

        return self.analysis_repo.create(
            user_id=user_id,
            image_url=image_url,
            result=verdict.result,
            confidence=verdict.confidence,
            explanation=verdict.explanation,
            severity=severity_for(verdict.result),
        )

    def history(self, user_id: str) -> List[AnalysisRecord]:
        return self.analysis_repo.list_for_user(user_id)

    def delete(self, user_id: str, analysis_id: str) -> None:
        if not self.analysis_repo.delete_for_user(analysis_id, user_id):
            raise HTTPException(status_code=404, detail="Analysis not found")

    async def _infer(self, image: IntakeImage, is_disconnected: Optional[DisconnectCheck]) -> str:
        try:
            return await self._await_unless_disconnected(
                self.ai_provider.generate_text(self.prompt, image.data, image.mime_type),
                is_disconnected,
            )
        except InferenceRejectedError as e:
            logger.info(f"Inference API rejected the image: {e}")
            raise HTTPException(status_code=400, detail=f"Invalid image or content: {e}")
        except InferenceUnavailableError as e:
            logger.error(f"Inference API failure: {e}", exc_info=True)
            raise HTTPException(status_code=502, detail="Analysis service is unavailable. Please try again later.")

    async def _await_unless_disconnected(self, coro: Awaitable[str], is_disconnected: Optional[DisconnectCheck]) -> str:
        task = asyncio.ensure_future(coro)
        if is_disconnected is None:
            return await task
        try:
            while True:
                done, _ = await asyncio.wait({task}, timeout=self.disconnect_poll_seconds)
                if done:
                    return task.result()
                if await is_disconnected():
                    logger.info("Client disconnected, cancelling inference call")
                    raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail="Client closed request")
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    def _image_reference(self, image: IntakeImage) -> str:
        if not self.inline_image_references:
            return IMAGE_PLACEHOLDER
        encoded = base64.b64encode(image.data).decode("ascii")
        return f"data:{image.mime_type};base64,{encoded}"

    def _transient_record(self, image_url: str, verdict: Verdict) -> AnalysisRecord:
        return AnalysisRecord(
            id=f"temp-{int(time.time() * 1000)}",
            user_id=None,
            image_url=image_url,
            result=verdict.result,
            confidence=verdict.confidence,
            explanation=verdict.explanation,
            severity=severity_for(verdict.result),
            status="pending",
            created_at=utc_now(),
        )
