from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings
import logging
import time

logger = logging.getLogger(__name__)

logger.info("HONDANA DATABASE_URL = %s", settings.get_masked_database_url())


def build_engine(url: str, **kwargs) -> Engine:
    """Create an engine; SQLite connections get shared-thread access for the threadpool."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,  # Verify connections before using them
        echo=False,  # Keep echo off - we'll log slow queries separately
        **kwargs,
    )


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


@event.listens_for(Engine, "connect")
def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    SQLite ignores REFERENCES clauses unless the pragma is on for each connection.

    Its built-in lower() only folds ASCII; title and name matching must agree
    with Python's str.lower(), so lower() is replaced per connection.
    """
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = build_engine(settings.DATABASE_URL)

# Add slow query logging (DEBUG mode only)
if settings.DEBUG:
    SLOW_QUERY_THRESHOLD_MS = 200.0

    @event.listens_for(engine, "before_cursor_execute")
    def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Store query start time before execution."""
        context._query_start_time = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """Log slow queries after execution."""
        if hasattr(context, "_query_start_time"):
            elapsed_ms = (time.perf_counter() - context._query_start_time) * 1000
            if elapsed_ms >= SLOW_QUERY_THRESHOLD_MS:
                # Get first line of statement for brevity
                statement_first_line = statement.split("\n")[0].strip()[:100]
                logger.warning(
                    f"SLOW_QUERY: {elapsed_ms:.2f}ms - {statement_first_line}"
                )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind: Engine = None) -> None:
    """
    Dev convenience: ensure the books, recommenders and recommendations tables exist.
    In production, prefer running Alembic migrations instead.

    WARNING: create_all() will NOT add missing columns to existing tables.
    It only creates tables that don't exist. Use Alembic migrations for schema changes.

    This imports all models so that Base.metadata includes all table definitions.
    """
    if settings.ENVIRONMENT == "production":
        import warnings
        warnings.warn(
            "Skipping Base.metadata.create_all() in production. "
            "Use 'alembic upgrade head' for schema changes.",
            UserWarning
        )
        return

    # Import all models to ensure they're registered with Base.metadata
    from app import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
