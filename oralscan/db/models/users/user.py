# oralscan/db/models/users/user.py
from typing import Optional
from sqlalchemy import Column, DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime

from ....core.timeutil import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    firebase_id: str = Field(unique=True, index=True, nullable=False)
    # Phone-only identities carry no email; NULLs do not collide on the unique index
    email: Optional[str] = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
