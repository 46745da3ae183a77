"""Engine and session factory."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from lifelog.config import get_settings
from lifelog.models import CurrencyRateSnapshot, VariableRecord
from lifelog.models.base import Base

settings = get_settings()

engine = create_engine(settings.database_url, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

__all__ = ["Base", "CurrencyRateSnapshot", "VariableRecord", "engine", "SessionLocal", "init_db"]


def init_db() -> None:
    """Create tables that do not exist yet."""

    Base.metadata.create_all(bind=engine)
