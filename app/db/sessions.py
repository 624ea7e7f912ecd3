import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi import Request

from app.core.config import Settings
from app.db.base import Base

logger = logging.getLogger("app.db.session")


class Database:
    """Engine and session factory for one application instance."""

    def __init__(self, settings: Settings):
        database_url = settings.DATABASE_URL
        logger.info("Initializing DB session (checking configuration)")
        logger.info("DATABASE_URL configured: %s", bool(database_url))

        if not database_url:
            logger.error("DATABASE_URL is not configured. Set the DATABASE_URL env var.")
            raise RuntimeError("DATABASE_URL is not configured. Set the DATABASE_URL env var.")

        if database_url.startswith("sqlite"):
            # in-memory sqlite must share one connection across threads
            self.engine = create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            # enable pool_pre_ping to avoid stale/closed connections
            self.engine = create_engine(database_url, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # Import all models to ensure they're registered with Base
        import app.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
