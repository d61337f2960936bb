from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finboard.config import CORS_ORIGINS, LOG_LEVEL
from finboard.errors import ApiError, InvalidBody, error_key_for_status, flatten_validation_errors
from finboard.routers import auth, health, income, me, pages, reports, users


logger = logging.getLogger(__name__)


def _error_body(error: str, details=None) -> dict:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Map every failure onto the closed set of error kinds; raw messages stay server-side."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(_error_body(exc.error, exc.details), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            _error_body(InvalidBody.error, flatten_validation_errors(exc.errors())),
            status_code=InvalidBody.status_code,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            _error_body(error_key_for_status(exc.status_code)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(_error_body(ApiError.error), status_code=500)


def create_app() -> FastAPI:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = FastAPI(
        title="Finboard",
        description="Income/expense tracking with role-based user administration and reports.",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # JSON API
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(me.router, prefix="/api/me", tags=["me"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(income.router, prefix="/api/income", tags=["income"])
    app.include_router(reports.router, prefix="/api/reports", tags=["reports"])
    app.include_router(health.router, prefix="/api/admin", tags=["admin"])

    # Gated pages
    app.include_router(pages.router, tags=["pages"])

    return app


app = create_app()
