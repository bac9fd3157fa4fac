# bzpark/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy with PostgreSQL (SQLite in tests). All models are auto-imported
here so create_tables() creates every table in one call.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker
from bzpark.config import settings


def _engine_options(url: str) -> dict:
    """Pool and timeout options per backend. SQLite uses its own pool classes."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    options = {
        "pool_pre_ping": True,          # Auto-reconnect if DB connection drops
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS,
    }
    if url.startswith("postgresql"):
        options["connect_args"] = {
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
        }
    return options


def build_engine(url: str):
    return create_engine(url, echo=False, **_engine_options(url))


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Session for background work (pollers, scripts). Always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_connection() -> bool:
    """Run SELECT 1 against the store. Used by the startup check and /health."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from bzpark.models.arduino import Arduino                   # noqa
    from bzpark.models.sensor import Sensor                     # noqa
    from bzpark.models.service import Service                   # noqa
    from bzpark.models.parking_slot import ParkingSlot          # noqa
    from bzpark.models.user import User                         # noqa
    from bzpark.models.parking_activity import ParkingActivity  # noqa
    from bzpark.models.hold_payment import HoldPayment          # noqa
    from bzpark.models.parking_payment import ParkingPayment    # noqa
    from bzpark.models.admission_lock import AdmissionLock, ensure_admission_lock

    target = bind or engine
    Base.metadata.create_all(bind=target)
    ensure_admission_lock(target)
