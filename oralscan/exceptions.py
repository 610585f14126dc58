import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from .core.timeutil import utc_now

logger = logging.getLogger(__name__)


def create_error_response(error_message: str, status_code: int) -> dict:
    """Create the standard error envelope"""
    return {
        "error": error_message,
        "status": status_code,
        "timestamp": utc_now().isoformat(),
    }


def error_json_response(error_message: str, status_code: int, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(error_message, status_code),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return error_json_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_json_response(message, 400)


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return error_json_response("Database error", 500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
