# meeting_metrics/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from meeting_metrics.api.routes import attendance, health, internal, meetings, members, performance, tasks
from meeting_metrics.core.config import get_settings
from meeting_metrics.db.session import init_db_for_startup
from meeting_metrics.services.aggregation_dispatcher import get_dispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup; let background recomputations finish on shutdown."""
    logger.info("Starting %s", app.title)
    await init_db_for_startup()

    yield

    dispatcher = get_dispatcher()
    if dispatcher.pending_count:
        logger.info("Waiting for %d pending recomputations", dispatcher.pending_count)
    await dispatcher.drain()
    logger.info("Shut down %s", app.title)


def create_app() -> FastAPI:
    """
    Application factory for the Meeting Metrics service.
    """
    settings = get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service that records meeting attendance, keeps each\n"
            "meeting's attendee list in sync, rolls attendance and task completion\n"
            "up into monthly participation scores, and selects the member of the\n"
            "month and member of the week."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(health.router)
    app.include_router(members.router)
    app.include_router(meetings.router)
    app.include_router(attendance.router)
    app.include_router(tasks.router)
    app.include_router(performance.router)
    app.include_router(internal.router)

    return app


app = create_app()
