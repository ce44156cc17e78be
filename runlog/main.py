from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from runlog.api.analytics import router as analytics_router
from runlog.api.imports import router as imports_router
from runlog.api.sessions import router as sessions_router
from runlog.api.strava import router as strava_router
from runlog.config.settings import settings
from runlog.core.logger import setup_logger
from runlog.db.models import Base
from runlog.db.session import get_engine

setup_logger(level=settings.log_level, log_file=settings.log_file)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create missing tables on startup."""
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")

    yield


app = FastAPI(title="runlog", lifespan=lifespan)

app.include_router(sessions_router)
app.include_router(imports_router)
app.include_router(analytics_router)
app.include_router(strava_router)

logger.info("FastAPI application initialized")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
