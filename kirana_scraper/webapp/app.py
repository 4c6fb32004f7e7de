"""FastAPI application factory."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, UTC

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import Settings, load_settings
from ..job_queue import JobQueue
from ..orchestrator import Fetcher
from ..storage import ResultStore
from ..worker import Worker
from .routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    queue: JobQueue | None = None,
    fetcher: Fetcher | None = None,
    start_worker: bool = True,
    worker_poll_interval: float = 1.0,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()
    store = ResultStore(settings.output_dir)
    job_queue = queue or JobQueue()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run the job worker for as long as the app is up."""
        worker_task = None
        if start_worker:
            worker = Worker(
                job_queue,
                store,
                poll_interval=worker_poll_interval,
                max_concurrent_jobs=settings.max_concurrent_jobs,
                fetcher=fetcher,
            )
            app.state.worker = worker
            worker_task = asyncio.create_task(worker.start(install_signal_handlers=False))

        yield

        if worker_task is not None:
            app.state.worker.stop()
            await worker_task

    app = FastAPI(
        title="Kirana Scraper API",
        description="Product prices across Indian grocery sites",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.queue = job_queue
    app.state.worker = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        body = exc.detail if isinstance(exc.detail, dict) else {"error": exc.detail}
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"success": False, "error": str(exc), "timestamp": datetime.now(UTC).isoformat()},
            status_code=500,
        )

    app.include_router(router)

    return app


# Default app instance for uvicorn
app = create_app()
