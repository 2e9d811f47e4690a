import asyncio
import logging

from fastapi import FastAPI

from .api.routes_admin import router as admin_router
from .api.routes_auth import router as auth_router
from .api.routes_authors import router as authors_router
from .api.routes_entries import router as entries_router
from .api.routes_search import router as search_router
from .api.routes_tags import router as tags_router
from .config import settings
from .core.database import Base, engine, SessionLocal
from .core.definition_scheduler import definition_scheduler_loop
from .core.errors import register_error_handlers
from .core.logging_config import setup_logging
from .core.seed import seed_initial_data

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
)

register_error_handlers(app)


@app.on_event("startup")
async def startup_event():
    # Create tables
    Base.metadata.create_all(bind=engine)

    # Seed if empty
    db = SessionLocal()
    try:
        seeded = seed_initial_data(db)
        if seeded:
            logger.info("Seeded %d sample entries", seeded)
    finally:
        db.close()

    # Start weekly definition updater
    if settings.definition_schedule_enabled:
        asyncio.create_task(definition_scheduler_loop())
    else:
        logger.info("Definition scheduler disabled")


app.include_router(auth_router)
app.include_router(entries_router)
app.include_router(authors_router)
app.include_router(search_router)
app.include_router(tags_router)
app.include_router(admin_router)
