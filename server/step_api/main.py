"""Step Tracker API - FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import steps, sync, leaderboard

logger = logging.getLogger(__name__)

settings = get_settings()

TAGS_METADATA = [
    {"name": "Steps", "description": "Upsert and query daily step records and activity sessions"},
    {"name": "Sync", "description": "Replay batches captured while a device was offline"},
    {"name": "Leaderboard", "description": "Global and competition rankings"},
]

app = FastAPI(
    title="Step Tracker API",
    description=(
        "Daily step records with derived metrics, activity sessions, offline "
        "batch sync, achievement unlocks and leaderboards"
    ),
    version="1.0.0",
    openapi_tags=TAGS_METADATA,
)

# Devices post step totals, dashboards only read
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(steps.router)
app.include_router(sync.router)
app.include_router(leaderboard.router)

logger.info(f"[API] Step store at {settings.db_path}")


@app.get("/health")
async def health_check():
    """Liveness probe for the step service."""
    return {"status": "healthy", "service": "step-api"}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "server.step_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
