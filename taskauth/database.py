from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from taskauth.config import get_settings

settings = get_settings()

_is_sqlite = settings.database_url.startswith("sqlite")

# check_same_thread=False needed for SQLite with FastAPI
# For production Postgres, use connection pooling parameters
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=settings.debug
)

if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Session factory for database operations
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def get_db():
    """
    Dependency that provides database session to route handlers.
    Ensures session is properly closed after request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database schema.
    Creates all tables defined in models.
    Call this on application startup.
    """
    # Models must be imported so their tables are registered on Base
    from taskauth import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
