"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import health, plan
from .config import settings
from .data.bootstrap import FuelMasterBootstrap
from .logging_config import configure_logging
from .schemas.plan import FieldErrorModel, ValidationErrorResponse


def _field_name(location: tuple) -> str:
    parts = [str(part) for part in location if part != "body"]
    return ".".join(parts) or "body"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    body = ValidationErrorResponse(
        fields=[FieldErrorModel(field=_field_name(tuple(error["loc"])), message=error["msg"]) for error in exc.errors()]
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, root_path="")
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # One bootstrap per process; every plan request awaits the same run.
    app.state.fuel_bootstrap = FuelMasterBootstrap()

    # Root endpoint for diagnostics
    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "plan": f"{settings.api_prefix}/plan",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(plan.router, prefix=settings.api_prefix)
    return app


app = create_app()
