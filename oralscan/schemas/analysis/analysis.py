# oralscan/schemas/analysis/analysis.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ...application.ports.analysis_repo import AnalysisRecord


class AnalysisResponse(BaseModel):
    id: str
    userId: Optional[str] = None
    imageUrl: str
    result: str = Field(..., description="Verdict label: Normal or Concerning")
    confidence: float = Field(..., ge=0, le=1)
    explanation: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_record(cls, record: AnalysisRecord) -> "AnalysisResponse":
        return cls(
            id=record.id,
            userId=record.user_id,
            imageUrl=record.image_url,
            result=record.result,
            confidence=record.confidence,
            explanation=record.explanation,
            timestamp=record.created_at,
        )


class AnalysisHistoryItem(AnalysisResponse):
    severity: str
    status: str
    recommendations: Optional[str] = None
    patientNotes: Optional[str] = None
    followUpDate: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: AnalysisRecord) -> "AnalysisHistoryItem":
        return cls(
            id=record.id,
            userId=record.user_id,
            imageUrl=record.image_url,
            result=record.result,
            confidence=record.confidence,
            explanation=record.explanation,
            timestamp=record.created_at,
            severity=record.severity,
            status=record.status,
            recommendations=record.recommendations,
            patientNotes=record.patient_notes,
            followUpDate=record.follow_up_date,
        )
