"""User-defined variable ORM model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifelog.models.base import Base, CreatedAtMixin, IdMixin, UpdatedAtMixin


class VariableRecord(Base, IdMixin, CreatedAtMixin, UpdatedAtMixin):
    """Named expense, income or meal quantity referenced from free text."""

    __tablename__ = "variables"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    raw_value: Mapped[str] = mapped_column(Text, nullable=False)
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)
