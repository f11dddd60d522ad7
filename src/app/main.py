"""WireOS - map annotation server.

Main FastAPI application.
"""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.config import settings
from app.routers.annotations import get_session, router as annotations_router


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if settings.debug else settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load annotation data on startup, detach persistence on shutdown."""
    _configure_logging()
    logger.info(f"Starting {settings.app_name}")
    session = get_session()
    state = session.state
    if state.error:
        logger.error(f"Startup load failed: {state.error}")
    else:
        logger.info(
            f"Annotations ready: {len(state.data)} features, "
            f"current episode {state.current_episode}"
        )
    yield
    session.close()
    logger.info(f"{settings.app_name} stopped")


app = FastAPI(
    title=settings.app_name,
    description="Map annotation engine tied to a narrative episode timeline",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(annotations_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": "0.1.0",
        "system": settings.app_name,
    }


@app.get("/api/status")
async def status():
    """System status endpoint."""
    session = get_session()
    return {
        "name": settings.app_name,
        "version": "0.1.0",
        "data_dir": str(settings.data_dir),
        "persist_enabled": settings.persist_enabled,
        "loaded": not session.state.is_loading,
        "error": session.state.error,
    }


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
    run()
