from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from hireform.api.routes import router as api_router
from hireform.config import get_settings
from hireform.db.init import ensure_data_directories, init_database
from hireform.errors import (
    AttachmentError,
    ConfigurationError,
    DuplicateApplicationError,
    EmptyFormError,
    FormValidationError,
    HireformError,
    InvalidStatusTransition,
    NotFoundError,
    SessionExpiredError,
    SubmissionError,
)

logger = logging.getLogger(__name__)

# Most specific classes first; the first isinstance match wins.
ERROR_STATUS: list[tuple[type[HireformError], int]] = [
    (EmptyFormError, 404),
    (NotFoundError, 404),
    (FormValidationError, 422),
    (AttachmentError, 400),
    (DuplicateApplicationError, 409),
    (InvalidStatusTransition, 409),
    (SessionExpiredError, 401),
    (ConfigurationError, 400),
    (SubmissionError, 400),
]


def error_response(exc: HireformError) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    body: dict[str, object] = {"detail": str(exc)}
    if isinstance(exc, EmptyFormError):
        body["detail"] = "No form fields configured"
    elif isinstance(exc, FormValidationError):
        body["detail"] = "Validation failed"
        body["errors"] = exc.errors
    elif isinstance(exc, AttachmentError):
        body["reason"] = exc.reason
    if status_code >= 500:
        logger.error("Unhandled engine error: %s", exc)
    return JSONResponse(body, status_code=status_code)


def create_app() -> FastAPI:
    settings = get_settings()
    ensure_data_directories()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(HireformError)
    async def _engine_error(_request: Request, exc: HireformError) -> JSONResponse:
        return error_response(exc)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir)), name="uploads")
    return app
