from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pidea.api.dependencies import get_analysis_queue_service, get_database, get_ide_manager
from pidea.api.routes.analysis import router as analysis_router
from pidea.api.routes.chat import router as chat_router
from pidea.api.routes.events import router as events_router
from pidea.api.routes.health import router as health_router
from pidea.api.routes.ide import router as ide_router
from pidea.api.routes.projects import router as projects_router
from pidea.api.routes.steps import router as steps_router
from pidea.logging_config import configure_logging
from pidea.settings import settings


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_database().setup()
    analysis_queue_service = get_analysis_queue_service()
    analysis_queue_service.start_processing()
    logger.info("pidea backend started", version=settings.app_version)
    try:
        yield
    finally:
        await analysis_queue_service.stop_processing()
        await get_ide_manager().shutdown()
        logger.info("pidea backend stopped")


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="PIDEA backend: IDE management, chat sessions, workflow steps and project analysis",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(ide_router)
    app.include_router(projects_router)
    app.include_router(analysis_router)
    app.include_router(steps_router)
    app.include_router(events_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
