import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings as default_settings
from .database import close_mongo_connection, connect_to_mongo
from .dependencies import Services
from .routes import (
    programs_router,
    providers_router,
    rules_router,
    storage_router,
    submissions_router,
)

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = app.state.settings
    if getattr(app.state, "services", None) is None:
        database = await connect_to_mongo(settings)
        app.state.services = Services.from_database(database, settings)
        logger.info("Connected to MongoDB")
    yield
    # Shutdown
    await close_mongo_connection()
    logger.info("Disconnected from MongoDB")


def create_app(settings: Settings = default_settings) -> FastAPI:
    """Build the API; services are wired at startup unless already set on app.state"""
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Subsidy programs, eligibility rules and client submissions",
        version=settings.app_version,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.services = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rules_router)
    app.include_router(programs_router)
    app.include_router(submissions_router)
    app.include_router(providers_router)
    app.include_router(storage_router)

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} is running", "version": settings.app_version}

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "subsidy-portal"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("subsidy_portal.main:app", host="0.0.0.0", port=8000, reload=default_settings.debug)
