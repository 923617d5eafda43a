"""
Main API module for Shorty.

Responsibilities:
    - Expose REST endpoints for managing shortlinks (CRUD on /shortlinks)
    - Redirect /go/{short} to the stored long URL, counting each access
    - Report whether a short key is still free (/check/{short})
    - Map every store / validation outcome to one HTTP status code

Architecture:
    - App Factory pattern (create_app) for test isolation and DI.
    - The storage backend is chosen from env (mongo by default) unless one is
      injected; it is connected in the lifespan startup and closed on
      shutdown, which uvicorn also runs on SIGINT/SIGTERM.
    - ShortlinkManager validates input and performs exactly one store call.

Run:
    python main.py                      # honours HOST / PORT (default 8080)
    uvicorn main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from shorty.config import load_settings
from shorty.errors import DuplicateError, NotFoundError, ShortyError, UnexpectedError, ValidationError
from shorty.manager.shortlink_manager import ShortlinkManager
from shorty.models import Shortlink, ShortlinkCreate, ShortlinkUpdate
from shorty.storage.base import BaseStorage
from shorty.storage.storage_factory import get_storage

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"

# Error kind -> HTTP status
ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (DuplicateError, 409),
    (UnexpectedError, 500),
)


def status_for(exc: ShortyError) -> int:
    for kind, status_code in ERROR_STATUS:
        if isinstance(exc, kind):
            return status_code
    return 500


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "invalid request body"


def create_app(storage: Optional[BaseStorage] = None) -> FastAPI:
    """
    Factory function to build and configure a new FastAPI app instance.

    Args:
        storage (Optional[BaseStorage]): Backend to use. When omitted the
            backend is selected from SHORTY_STORAGE_BACKEND.

    Returns:
        FastAPI: A configured application with its own storage and manager.
    """
    settings = load_settings()
    log = logging.getLogger("shorty")

    # basic console logging unless the host process configured it already
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
            format=LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    # ----------------------------------------------------------------
    # Per-app instances (isolated for tests, swappable for production)
    # ----------------------------------------------------------------
    store = storage if storage is not None else get_storage()
    manager = ShortlinkManager(storage=store, logger=log)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # A failure here aborts startup: the service never serves without its store.
        log.info("Connecting storage backend: %s", type(store).__name__)
        await run_in_threadpool(store.connect)
        try:
            yield
        finally:
            log.info("Shutting down, releasing storage backend")
            await run_in_threadpool(store.close)

    app = FastAPI(
        title="Shorty",
        description="URL shortener: short mnemonic keys redirecting to long URLs",
        lifespan=lifespan,
    )
    app.state.storage = store
    app.state.manager = manager

    # ----------------------------------------------------------------
    # Error mapping
    # ----------------------------------------------------------------
    @app.exception_handler(ShortyError)
    async def handle_shorty_error(request: Request, exc: ShortyError) -> JSONResponse:
        status_code = status_for(exc)
        if status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _describe_validation(exc)
        log.info("Rejected request body for %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=400, content={"error": message})

    # ----------------------------------------------------------------
    # Routes
    # ----------------------------------------------------------------
    @app.get("/go/{short:path}")
    def redirect_shortlink(short: str) -> RedirectResponse:
        """307 to the stored URL; 404 {"error": "no redirect for <short>"} if unknown."""
        return RedirectResponse(url=manager.resolve_redirect(short), status_code=307)

    @app.get("/shortlinks", response_model=List[Shortlink])
    def list_shortlinks():
        return manager.list_shortlinks()

    @app.get("/shortlinks/{short:path}", response_model=Shortlink)
    def get_shortlink(short: str):
        return manager.get_shortlink(short)

    @app.post("/shortlinks", status_code=201)
    def create_shortlink(payload: ShortlinkCreate) -> Response:
        """Create the shortlink; 201 with an empty body on success."""
        manager.create_shortlink(payload)
        return Response(status_code=201)

    @app.put("/shortlinks/{short:path}", response_model=Shortlink)
    def update_shortlink(short: str, payload: ShortlinkUpdate):
        return manager.update_shortlink(short, payload)

    @app.delete("/shortlinks/{short:path}")
    def delete_shortlink(short: str) -> Dict[str, int]:
        """{"deleted": 1} if removed, {"deleted": 0} if it did not exist."""
        return {"deleted": manager.delete_shortlink(short)}

    @app.get("/check/{short:path}")
    def check_shortlink(short: str) -> Dict[str, bool]:
        return {"free": manager.is_free(short)}

    return app


def run() -> None:
    """Console entry point: serve on HOST:PORT (default 0.0.0.0:8080)."""
    settings = load_settings()
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
