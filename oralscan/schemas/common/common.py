# oralscan/schemas/common/common.py
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str
    status: int
    timestamp: str


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str
    version: str
