# gatepass/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy (PostgreSQL in production, SQLite by default). All models are
auto-imported here so create_tables() creates every table in one call.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from gatepass.config import settings


def build_engine(url: str):
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return create_engine(
        url,
        pool_pre_ping=True,          # Auto-reconnect if DB connection drops
        pool_size=10,
        max_overflow=20,
        echo=False,                  # Set True to log all SQL queries (debug only)
    )


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from gatepass.models.gate_pass import GatePassRecord                 # noqa
    from gatepass.models.approval_request import ApprovalRequestRecord   # noqa
    from gatepass.models.approval_request import ApprovalLevelRecord     # noqa
    from gatepass.models.vehicle import Vehicle                          # noqa
    from gatepass.models.alert import Alert                              # noqa

    Base.metadata.create_all(bind=bind or engine)
