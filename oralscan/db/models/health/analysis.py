# oralscan/db/models/health/analysis.py
import uuid
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, DateTime, Numeric
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....core.timeutil import utc_now


class Analysis(SQLModel, table=True):
    __tablename__ = "analyses"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: str = Field(foreign_key="users.firebase_id", index=True)
    image_url: str
    result: str
    confidence: Decimal = Field(sa_column=Column(Numeric(4, 3), nullable=False))
    explanation: Optional[str] = None
    recommendations: Optional[str] = None
    severity: str
    status: str = Field(default="pending")
    patient_notes: Optional[str] = None
    follow_up_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
