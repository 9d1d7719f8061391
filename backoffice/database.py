import logging
import time

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL, DB_MAX_OVERFLOW, DB_POOL_RECYCLE, DB_POOL_SIZE, DB_SLOW_QUERY_SECONDS

logger = logging.getLogger(__name__)

Base = declarative_base()


def watch_slow_queries(engine: Engine, threshold: float) -> None:
    """Log statements that take longer than threshold seconds"""

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _log_if_slow(conn, cursor, statement, parameters, context, executemany):
        elapsed = time.perf_counter() - conn.info["query_start_time"].pop()
        if elapsed >= threshold:
            logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}")


def create_db_engine(url: str, slow_query_seconds: float = DB_SLOW_QUERY_SECONDS) -> Engine:
    if url.startswith("sqlite"):
        # Contract writes happen on request threads and in BackgroundTasks
        engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=DB_POOL_SIZE,
            max_overflow=DB_MAX_OVERFLOW,
            pool_recycle=DB_POOL_RECYCLE,
        )
    if slow_query_seconds > 0:
        watch_slow_queries(engine, slow_query_seconds)
    return engine


engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
