from sqlmodel import create_engine, SQLModel, Session
from sqlalchemy import event
from sqlalchemy.engine import Engine

from inkwell.core.config import settings
from inkwell.core.logging_config import get_logger

logger = get_logger(__name__)

DATABASE_URL = settings.DATABASE_URL


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Requests and the sweeper thread share the same file
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,
        pool_timeout=30,
        connect_args={"connect_timeout": 10},
    )


engine = build_engine(DATABASE_URL)


@event.listens_for(Engine, "connect")
def set_connection_pragmas(dbapi_connection, connection_record):
    """Enforce foreign keys on SQLite and cap query time on PostgreSQL."""
    cursor = dbapi_connection.cursor()
    try:
        if type(dbapi_connection).__module__.startswith("sqlite3"):
            # post_version.post_id cascades only when SQLite enforces FKs
            cursor.execute("PRAGMA foreign_keys=ON")
        else:
            cursor.execute("SET statement_timeout = '30s'")
    except Exception as e:
        logger.warning("Could not set connection parameters", error=str(e))
    finally:
        cursor.close()


def get_session():
    with Session(engine) as session:
        yield session


def create_db_and_tables():
    # Import models so their tables are registered on the metadata
    import inkwell.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
