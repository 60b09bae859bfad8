"""
Database engine and sessions

Only the offer usage counters live in the local database; orders, refunds and
charges are always read from Shopify.
"""
import os
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from maldify.config import get_settings

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")

Base = declarative_base()


def resolve_database_url(url: str) -> str:
    """Make relative SQLite paths absolute so a cwd change can't move the file"""
    if url in IN_MEMORY_URLS or not url.startswith("sqlite:///") or url.startswith("sqlite:////"):
        return url
    return "sqlite:///" + os.path.abspath(url[len("sqlite:///"):])


def build_engine(url: str) -> Engine:
    url = resolve_database_url(url)

    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True, pool_size=3, max_overflow=5, pool_recycle=300)

    connect_args = {"check_same_thread": False, "timeout": 60}
    if url in IN_MEMORY_URLS:
        # An in-memory database exists per connection, so all sessions share one
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args, poolclass=NullPool)


engine = build_engine(get_settings().database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create any missing tables"""
    # Registers OfferUsage on Base.metadata
    from maldify.models import usage  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)
