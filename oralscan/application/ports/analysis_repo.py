from typing import List, Optional
from dataclasses import dataclass
from datetime import datetime


@dataclass
class AnalysisRecord:
    id: str
    user_id: Optional[str]
    image_url: str
    result: str
    confidence: float
    explanation: Optional[str]
    severity: str
    status: str
    created_at: datetime
    recommendations: Optional[str] = None
    patient_notes: Optional[str] = None
    follow_up_date: Optional[datetime] = None


class AnalysisRepository:
    def create(self, user_id: str, image_url: str, result: str, confidence: float, explanation: Optional[str], severity: str) -> AnalysisRecord:
        ...

    def list_for_user(self, user_id: str) -> List[AnalysisRecord]:
        ...

    def delete_for_user(self, analysis_id: str, user_id: str) -> bool:
        ...
