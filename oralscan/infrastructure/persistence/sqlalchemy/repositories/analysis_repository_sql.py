import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .....db.models import Analysis
from .....application.ports.analysis_repo import AnalysisRepository, AnalysisRecord

logger = logging.getLogger(__name__)

CONFIDENCE_QUANTUM = Decimal("0.001")


def quantize_confidence(confidence: float) -> Decimal:
    return Decimal(str(confidence)).quantize(CONFIDENCE_QUANTUM, rounding=ROUND_HALF_UP)


class SqlAnalysisRepository(AnalysisRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_record(self, a: Analysis) -> AnalysisRecord:
        return AnalysisRecord(
            id=str(a.id),
            user_id=a.user_id,
            image_url=a.image_url,
            result=a.result,
            confidence=float(a.confidence),
            explanation=a.explanation,
            severity=a.severity,
            status=a.status,
            created_at=a.timestamp,
            recommendations=a.recommendations,
            patient_notes=a.patient_notes,
            follow_up_date=a.follow_up_date,
        )

    def create(self, user_id: str, image_url: str, result: str, confidence: float, explanation: Optional[str], severity: str) -> AnalysisRecord:
        entry = Analysis(
            user_id=user_id,
            image_url=image_url,
            result=result,
            confidence=quantize_confidence(confidence),
            explanation=explanation,
            severity=severity,
        )
        try:
            self.session.add(entry)
            self.session.commit()
            self.session.refresh(entry)
        except SQLAlchemyError:
            logger.error("Error creating analysis", exc_info=True)
            self.session.rollback()
            raise
        return self._to_record(entry)

    def list_for_user(self, user_id: str) -> List[AnalysisRecord]:
        rows = self.session.exec(
            select(Analysis)
            .where(Analysis.user_id == user_id)
            .order_by(Analysis.timestamp.desc())
        ).all()
        return [self._to_record(r) for r in rows]

    def delete_for_user(self, analysis_id: str, user_id: str) -> bool:
        try:
            key = uuid.UUID(analysis_id)
        except (ValueError, TypeError):
            return False

        entry = self.session.exec(
            select(Analysis).where(Analysis.id == key, Analysis.user_id == user_id)
        ).first()
        if entry is None:
            return False
        try:
            self.session.delete(entry)
            self.session.commit()
        except SQLAlchemyError:
            logger.error(f"Error deleting analysis {analysis_id}", exc_info=True)
            self.session.rollback()
            raise
        return True
