import logging
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.database import Database

from schoolhub.config.settings import Settings, settings as default_settings
from schoolhub.database.mongo_collections import get_collections
from schoolhub.database.session import close_client, get_db
from schoolhub.features.messaging.router import router as messaging_router
from schoolhub.features.relay.router import router as relay_router
from schoolhub.features.relay.websocket_manager import RelayGateway
from schoolhub.features.tutor.provider import TutorProviderAdapter, build_tutor_adapter
from schoolhub.features.tutor.router import router as tutor_router
from schoolhub.utils.locks import KeyedLock

logger = logging.getLogger(__name__)


def configure_logging(config: Settings):
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("SchoolHub relay starting")
    yield
    close_client()
    logger.info("SchoolHub relay stopped")


def create_app(
    db: Optional[Database] = None,
    tutor_adapter: Optional[TutorProviderAdapter] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    ``db`` replaces the pooled MongoDB connection and ``tutor_adapter`` the
    OpenRouter backed adapter, both mainly for tests.
    """
    config = config or default_settings
    configure_logging(config)

    if config.SENTRY_DSN:
        sentry_sdk.init(dsn=config.SENTRY_DSN)
        logger.info("Sentry error reporting enabled")

    app = FastAPI(title="SchoolHub Relay API", version="1.0.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = config
    app.state.gateway = RelayGateway()
    app.state.tutor_adapter = tutor_adapter or build_tutor_adapter(config)
    app.state.tutor_locks = KeyedLock()

    if db is not None:
        get_collections(db)

        def override_get_db():
            yield db

        app.dependency_overrides[get_db] = override_get_db

    @app.get("/health")
    async def health(database_handle: Database = Depends(get_db)):
        try:
            database_handle.list_collection_names()
            database = "connected"
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            database = "disconnected"
        return {
            "status": "healthy" if database == "connected" else "degraded",
            "database": database,
            "connections": app.state.gateway.get_total_connections(),
        }

    app.include_router(tutor_router, prefix="/api/v1")
    app.include_router(messaging_router, prefix="/api/v1")
    app.include_router(relay_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=5000)
