from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from workhub.core.config import get_settings
from workhub.db.base import Base

settings = get_settings()

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables that do not exist yet."""
    # Register models on the metadata before creating tables
    import workhub.db.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
