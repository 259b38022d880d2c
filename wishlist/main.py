from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from wishlist.db import filters as _filters  # noqa: F401  (register SQLAlchemy filters)
from wishlist.db.init_db import init_db
from wishlist.logging_config import configure_app_logging
from wishlist.routers import admin, health, kudos, profile
from wishlist.security.config import load_security_config
from wishlist.security.dependencies import enforce_security
from wishlist.services.media import LocalMediaStore
from wishlist.settings import get_settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        app.state.security_config = load_security_config(settings.resolved_security_config_path())
        logger.info("Loaded security config: %s", settings.resolved_security_config_path())

        app.state.media_store = LocalMediaStore(settings.resolved_media_root())

        init_db(seed=settings.seed_demo_data)
        logger.info("Database initialized (tables ensured, seeded=%s)", settings.seed_demo_data)

        yield

    # Global dependency: every route is checked against the security config.
    app = FastAPI(dependencies=[Depends(enforce_security)], lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(profile.router)
    app.include_router(kudos.router)
    app.include_router(admin.router)

    return app


app = create_app()
