import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings
from app.core.errors import register_exception_handlers
from app.db.sessions import Database
from app.routes import auth, documents, insights
from app.services.insight_engine import LLMClient, TurnLocks
from app.services.openai_service import OpenAIService, build_client
from app.services.storage import LocalFileStorage
from app.utils.file_processor import TextExtractor

logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the pooled resources shared by all requests; close them on shutdown."""
    settings: Settings = app.state.settings

    database = Database(settings)
    database.create_all()
    http_client = httpx.AsyncClient(timeout=settings.OCR_TIMEOUT_SECONDS)

    app.state.database = database
    app.state.http_client = http_client
    app.state.storage = LocalFileStorage(settings.UPLOAD_DIR)
    app.state.extractor = TextExtractor.from_settings(settings, http_client)
    app.state.turn_locks = TurnLocks()

    openai_client = None
    if app.state.llm is None:
        openai_client = build_client(settings)
        app.state.llm = OpenAIService.from_settings(openai_client, settings)

    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)
    logger.info("OCR fallback %s", "enabled" if settings.OCR_SPACE_API_KEY else "disabled")
    try:
        yield
    finally:
        await http_client.aclose()
        if openai_client is not None:
            await openai_client.close()
            app.state.llm = None
        database.dispose()
        logger.info("Application shutdown complete")


def create_app(settings: Optional[Settings] = None, llm: Optional[LLMClient] = None) -> FastAPI:
    settings = settings or Settings()

    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Upload business documents and ask questions grounded in their text",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.llm = llm

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register routers
    app.include_router(auth.router)
    app.include_router(documents.router)
    app.include_router(insights.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
