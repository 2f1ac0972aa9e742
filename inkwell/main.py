"""
ASGI entry point: `uvicorn inkwell.main:app`.

The lifespan owns process-wide resources: tables are created, Sentry is
initialized and (when RUN_SCHEDULER is on) the publish sweeper starts. On
shutdown the sweeper stops taking new ticks and waits for a running one.
"""
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inkwell.api import auth, images, posts, versions
from inkwell.core.config import settings
from inkwell.core.errors import init_sentry, register_exception_handlers
from inkwell.core.logging_config import get_logger
from inkwell.core.scheduler import start_scheduler, stop_scheduler
from inkwell.db import create_db_and_tables
from inkwell.middleware.context import REQUEST_ID_HEADER, RequestContextMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry(
        settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )
    create_db_and_tables()

    if settings.RUN_SCHEDULER:
        start_scheduler()
    else:
        logger.info("Scheduler disabled in this process (RUN_SCHEDULER=false)")

    logger.info("Inkwell API started", environment=settings.ENVIRONMENT)
    try:
        yield
    finally:
        stop_scheduler(wait=True)
        logger.info("Inkwell API stopped")


app = FastAPI(title=settings.PROJECT_NAME, openapi_url=f"{settings.API_V1_STR}/openapi.json", lifespan=lifespan)

app.add_middleware(cast(Any, RequestContextMiddleware))
app.add_middleware(
    cast(Any, CORSMiddleware),
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)

register_exception_handlers(app)

api = settings.API_V1_STR
app.include_router(auth.router, prefix=f"{api}/auth", tags=["auth"])
app.include_router(posts.router, prefix=f"{api}/posts", tags=["posts"])
app.include_router(versions.router, prefix=api, tags=["versions"])
app.include_router(images.router, prefix=f"{api}/images", tags=["images"])


@app.get("/health")
def health() -> dict:
    return {"status": "healthy"}
