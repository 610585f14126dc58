import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Request, Response, UploadFile

from ..application.services.analysis_service import AnalysisService
from ..dependencies import get_analysis_service, get_current_user, get_optional_user
from ..schemas.analysis.analysis import AnalysisResponse, AnalysisHistoryItem
from ..schemas.common.common import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analysis", tags=["Analysis"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post("", response_model=AnalysisResponse, responses=ERROR_RESPONSES)
async def create_analysis(
    request: Request,
    current_user: Optional[str] = Depends(get_optional_user),
    image: Optional[UploadFile] = File(None),
    service: AnalysisService = Depends(get_analysis_service),
):
    """Screen one oral cavity photo (uploaded or camera-captured) and store the verdict."""
    try:
        record = await service.analyze(current_user, image, is_disconnected=request.is_disconnected)
    finally:
        # Closes the spooled temporary file whatever the outcome
        if image is not None:
            await image.close()
    logger.info(f"Analysis {record.id} completed: result={record.result} confidence={record.confidence}")
    return AnalysisResponse.from_record(record)


@router.get("/history", response_model=List[AnalysisHistoryItem], responses=ERROR_RESPONSES)
def get_history(
    current_user: str = Depends(get_current_user),
    service: AnalysisService = Depends(get_analysis_service),
):
    records = service.history(current_user)
    return [AnalysisHistoryItem.from_record(r) for r in records]


@router.delete("/{analysis_id}", status_code=204, responses={404: {"model": ErrorResponse}, **ERROR_RESPONSES})
def delete_analysis(
    analysis_id: str,
    current_user: str = Depends(get_current_user),
    service: AnalysisService = Depends(get_analysis_service),
):
    service.delete(current_user, analysis_id)
    return Response(status_code=204)
