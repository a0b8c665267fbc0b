"""
Intervention engine FastAPI application.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.routes import health, students, workflow
from src.notify.dispatcher import NotificationDispatcher, WebhookDispatcher
from src.shared.config import settings
from src.shared.exceptions import (
    InterventionEngineError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from src.shared.logging import get_logger
from src.store.sqlite_store import InterventionStore
from src.workflow.controller import InterventionWorkflow

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("Starting intervention engine API")

    store = InterventionStore(app.state.db_path)
    dispatcher = app.state.dispatcher_override or WebhookDispatcher()
    app.state.store = store
    app.state.dispatcher = dispatcher
    app.state.workflow = InterventionWorkflow(store, dispatcher)

    if not getattr(dispatcher, "configured", True):
        logger.warning("Webhook URL not configured; reviewer notifications are disabled")

    health.set_start_time(time.time())

    logger.info("Intervention engine API ready", extra={"db_path": str(store.db_path)})
    yield

    logger.info("Shutting down intervention engine API")
    await dispatcher.aclose()
    logger.info("Intervention engine API stopped")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Map the engine's error taxonomy onto HTTP outcomes."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ())[1:]) or 'body'}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _error(400, f"Invalid request: {details}")

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, str(exc))

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error(f"Store failure on {request.url.path}: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(InterventionEngineError)
    async def handle_engine_error(request: Request, exc: InterventionEngineError):
        logger.error(f"Unhandled engine error on {request.url.path}: {exc}")
        return _error(500, str(exc))


def create_app(
    db_path: Optional[Path] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="Intervention Engine",
        description="Daily check-in gate and mentor intervention workflow",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.db_path = db_path
    app.state.dispatcher_override = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(students.router)
    app.include_router(workflow.router)

    @app.get("/")
    async def root():
        return {
            "service": "intervention-engine",
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


app = create_app()


def main():
    """CLI entry point for uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.app:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
