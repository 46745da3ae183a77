"""ORM models package exports."""

from lifelog.models.currency_rate import CurrencyRateSnapshot
from lifelog.models.variable import VariableRecord

__all__ = ["CurrencyRateSnapshot", "VariableRecord"]
