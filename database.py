from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging
from google.cloud.sql.connector import Connector

from config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Pool sizing used for server databases (ignored for SQLite)
POOL_OPTIONS = {
    "pool_size": 12,
    "max_overflow": 20,
    "pool_timeout": 30,
    "pool_recycle": 1000,
}


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


def build_engine(database_url: str, instance_connection_name=None):
    """Create the SQLAlchemy engine for the configured database."""
    if instance_connection_name:
        # Google Cloud SQL Connector for production
        def getconn():
            connector = Connector()
            conn = connector.connect(
                instance_connection_name,
                "pg8000",
                user=settings.db_user,
                password=settings.db_password,
                db=settings.db_name
            )
            return conn

        logger.info(f"Connecting to Google Cloud SQL: {instance_connection_name}")
        return create_engine("postgresql+pg8000://", creator=getconn, **POOL_OPTIONS)

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if _is_memory_sqlite(database_url):
            # One shared connection so every session sees the same in-memory tables
            return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(database_url, connect_args=connect_args)

    return create_engine(database_url, **POOL_OPTIONS)


engine = build_engine(settings.database_url, settings.instance_connection_name)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
