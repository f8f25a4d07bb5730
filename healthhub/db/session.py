import os
from collections.abc import Iterator
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from healthhub.db.models import Base

DB_PATH = os.getenv("DB_PATH", "data/healthhub.db")


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_engine(db_path: str) -> Engine:
    Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    # Sessions are handed to threadpool workers (sync routes, stats fan-out).
    sqlite_engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    event.listen(sqlite_engine, "connect", _enable_foreign_keys)
    return sqlite_engine


engine = _sqlite_engine(DB_PATH)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def configure_database(db_path: str) -> None:
    """Point the module engine and ``SessionLocal`` at another SQLite file."""
    global DB_PATH, engine
    previous = engine
    DB_PATH = db_path
    engine = _sqlite_engine(db_path)
    SessionLocal.configure(bind=engine)
    previous.dispose()


def create_tables() -> None:
    Base.metadata.create_all(bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
