"""Persisted currency rate snapshot."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from lifelog.models.base import Base, IdMixin


class CurrencyRateSnapshot(Base, IdMixin):
    """Rates relative to ``base_code`` as fetched at ``fetched_at``."""

    __tablename__ = "currency_rate_snapshots"

    base_code: Mapped[str] = mapped_column(String(8), index=True, nullable=False)
    rates_json: Mapped[dict[str, float]] = mapped_column(JSON, default=dict, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
