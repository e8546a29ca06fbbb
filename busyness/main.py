"""Busyness — FastAPI Application Entry Point.

Serves live and forecasted library occupancy in display-ready form.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from busyness.api.busyness_routes import router as busyness_router
from busyness.config import settings
from busyness.core.logging import get_logger
from busyness.scheduler.jobs import DashboardController

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("Busyness starting up...")
    controller = DashboardController()
    app.state.controller = controller
    if settings.scheduler_enabled:
        controller.start()
    else:
        logger.info("Scheduler disabled via config, refreshing once")
        controller.refresh()
    yield
    await controller.stop()
    logger.info("Busyness shut down")


app = FastAPI(
    title="Library Busyness",
    description="Recent, current and forecasted occupancy for the Hill and Hunt libraries.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Routers
app.include_router(busyness_router)


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "library-busyness",
        "version": "1.0.0",
    }
