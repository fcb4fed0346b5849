from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .config import settings


def make_engine(url: str, busy_timeout: float | None = None) -> Engine:
    """
    Create an engine for the given URL.

    SQLite gets check_same_thread=False (FastAPI runs sync handlers in a
    threadpool) and a busy timeout, which is how long a committer waits
    for another provider transaction to release the write lock.
    """
    timeout = busy_timeout if busy_timeout is not None else settings.db_busy_timeout_seconds

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": timeout},
        )

        @event.listens_for(engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args={"options": f"-c statement_timeout={int(timeout * 1000)}"}
        if url.startswith("postgresql")
        else {},
    )


engine = make_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables."""
    from .models import Base

    Base.metadata.create_all(bind=bind or engine)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
