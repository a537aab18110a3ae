"""
ChocoShop - Database Configuration
===================================
Engine, SessionLocal, Base, the get_db dependency and unit-of-work helpers.
All models across all modules inherit from this Base.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from config.settings import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT


def enable_sqlite_savepoints(sqlite_engine):
    """
    pysqlite opens transactions lazily and breaks SAVEPOINT semantics.
    Let SQLAlchemy emit BEGIN itself (recipe from the SQLAlchemy SQLite docs).
    Foreign keys are off by default in SQLite; turn them on per connection.
    """
    @event.listens_for(sqlite_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(sqlite_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


if DATABASE_URL.startswith("sqlite"):
    engine = enable_sqlite_savepoints(
        create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        pool_recycle=1800,  # Refresh connections every 30 minutes
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a database session, auto-closes after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Session for scripts and background jobs. Always closed on exit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    One unit of work on an open session.
    Commits when the block exits cleanly, rolls back and re-raises otherwise.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
