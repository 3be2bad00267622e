"""Database connection and initialization."""

import logging

from sqlalchemy import event
from sqlmodel import SQLModel, Session, create_engine

from familymenu.config import settings

# Import all models so SQLModel registers them
import familymenu.models  # noqa: F401

logger = logging.getLogger(__name__)

engine = create_engine(
    f"sqlite:///{settings.db_path}",
    echo=settings.debug,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    # SQLite only enforces foreign keys per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db() -> None:
    """Create all tables and enable WAL mode."""
    SQLModel.metadata.create_all(engine)

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        conn.exec_driver_sql("PRAGMA synchronous=NORMAL")
        conn.commit()
    logger.info("Database ready at %s", settings.db_path)


def check_database_health() -> dict:
    """Run a trivial query to verify the database answers."""
    try:
        with engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return {"healthy": False, "error": str(e)}
    return {"healthy": True}


def get_session():
    """FastAPI dependency: yields a database session."""
    with Session(engine) as session:
        yield session
