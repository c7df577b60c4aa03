"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from beztern.api.admin import router as admin_router
from beztern.api.auth import router as auth_router
from beztern.api.forms import router as forms_router
from beztern.app_logging import configure_logging
from beztern.containers import AppContainer
from beztern.domain.errors import FormValidationError, GuardRedirect, NotificationError

NOT_FOUND_MESSAGE = "Oops! Page not found"


def _not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"level": "error", "message": NOT_FOUND_MESSAGE, "redirect_to": "/"},
    )


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(auth_router)
    app.include_router(forms_router)
    app.include_router(admin_router)

    @app.exception_handler(FormValidationError)
    async def form_error(request: Request, exc: FormValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"errors": exc.errors})

    @app.exception_handler(NotificationError)
    async def notification_error(
        request: Request, exc: NotificationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400, content={"level": "error", "message": exc.message}
        )

    @app.exception_handler(GuardRedirect)
    async def guard_redirect(request: Request, exc: GuardRedirect) -> RedirectResponse:
        logger.info(
            "Guard redirect",
            extra={"path": request.url.path, "location": exc.location},
        )
        return RedirectResponse(exc.location, status_code=307)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:  # noqa: PLR2004
            logger.warning(
                "Route not found", extra={"path": request.url.path}
            )
            return _not_found()
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse("/login", status_code=307)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/404")
    async def not_found_page() -> JSONResponse:
        return _not_found()

    return app
