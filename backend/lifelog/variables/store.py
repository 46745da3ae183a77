"""Persistence and snapshot lookup for user-defined variables."""

from __future__ import annotations

import json
from typing import Callable, Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from lifelog.models.variable import VariableRecord
from lifelog.nlp.text import fold_text
from lifelog.types import Variable, VariableType


class VariableStoreError(ValueError):
    """Raised for invalid variable writes."""


def normalize_variable_name(name: str) -> str:
    return " ".join(fold_text(name or "").split())


def encode_meal_value(calories: float | None, grams: float | None) -> str:
    return json.dumps({"calories": calories, "grams": grams})


def to_variable(record: VariableRecord) -> Variable:
    """Build the immutable view, deriving amount/calories/grams from the raw value."""

    variable_type = VariableType(record.type)
    amount = calories = grams = None
    if variable_type is VariableType.MEAL:
        calories, grams = _decode_meal_value(record.raw_value)
    else:
        amount = _parse_float(record.raw_value)
    return Variable(
        id=record.id,
        name=record.name.strip().lower(),
        type=variable_type,
        raw_value=record.raw_value,
        currency=record.currency,
        amount=amount,
        calories=calories,
        grams=grams,
    )


def add_variable(
    db: Session,
    name: str,
    raw_value: str,
    variable_type: VariableType | str,
    currency: str | None = None,
) -> VariableRecord:
    """Create a variable, replacing any existing one with the same name (case-insensitive)."""

    trimmed_name = (name or "").strip()
    trimmed_value = (raw_value or "").strip()
    if not trimmed_name or not trimmed_value:
        raise VariableStoreError("Variable name and value are required")
    resolved_type = _coerce_type(variable_type)

    existing = _get_by_name(db, trimmed_name)
    if existing is not None:
        db.delete(existing)
        db.flush()

    record = VariableRecord(
        name=trimmed_name,
        normalized_name=normalize_variable_name(trimmed_name),
        type=resolved_type.value,
        raw_value=trimmed_value,
        currency=currency.upper() if currency else None,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_variable(
    db: Session,
    variable_id: int,
    *,
    name: str | None = None,
    raw_value: str | None = None,
    variable_type: VariableType | str | None = None,
    currency: str | None = None,
) -> VariableRecord:
    record = db.get(VariableRecord, variable_id)
    if record is None:
        raise VariableStoreError(f"Variable not found: {variable_id}")

    if name is not None:
        trimmed_name = name.strip()
        if not trimmed_name:
            raise VariableStoreError("Variable name cannot be empty")
        clash = _get_by_name(db, trimmed_name)
        if clash is not None and clash.id != record.id:
            raise VariableStoreError(f"Variable already exists: {trimmed_name}")
        record.name = trimmed_name
        record.normalized_name = normalize_variable_name(trimmed_name)
    if raw_value is not None:
        if not raw_value.strip():
            raise VariableStoreError("Variable value cannot be empty")
        record.raw_value = raw_value.strip()
    if variable_type is not None:
        record.type = _coerce_type(variable_type).value
    if currency is not None:
        record.currency = currency.upper() or None

    db.commit()
    db.refresh(record)
    return record


def delete_variable(db: Session, variable_id: int) -> bool:
    record = db.get(VariableRecord, variable_id)
    if record is None:
        return False
    db.delete(record)
    db.commit()
    return True


def list_variables(db: Session) -> list[VariableRecord]:
    """Return variables ordered by name."""

    stmt = select(VariableRecord).order_by(VariableRecord.name.asc(), VariableRecord.id.asc())
    return list(db.scalars(stmt).all())


class VariableStore:
    """Hands out immutable per-parse snapshots of the variables table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def snapshot(self) -> tuple[Variable, ...]:
        with self._session_factory() as db:
            return tuple(to_variable(record) for record in list_variables(db))


def find_variable(
    variables: Iterable[Variable],
    name: str,
    variable_type: VariableType | None = None,
) -> Variable | None:
    """Exact, case- and diacritic-insensitive name match within ``variable_type`` (any type when None)."""

    normalized = normalize_variable_name(clean_object_name(name))
    if not normalized:
        return None
    for variable in variables:
        if variable_type is not None and variable.type is not variable_type:
            continue
        if normalize_variable_name(variable.name) == normalized:
            return variable
    return None


def find_variable_by_precedence(variables: Iterable[Variable], name: str) -> Variable | None:
    """Meal variables win over expense, expense over income."""

    snapshot = tuple(variables)
    for variable_type in (VariableType.MEAL, VariableType.EXPENSE, VariableType.INCOME):
        found = find_variable(snapshot, name, variable_type)
        if found is not None:
            return found
    return None


def clean_object_name(name: str) -> str:
    """Lowercase, drop sign characters and turn underscores into spaces."""

    cleaned = (name or "").lower().replace("+", "").replace("-", "").replace("_", " ")
    return " ".join(cleaned.split())


def _get_by_name(db: Session, name: str) -> VariableRecord | None:
    stmt = select(VariableRecord).where(VariableRecord.normalized_name == normalize_variable_name(name))
    return db.scalars(stmt).first()


def _coerce_type(value: VariableType | str) -> VariableType:
    try:
        return VariableType(value)
    except ValueError as exc:
        raise VariableStoreError(f"Unknown variable type: {value}") from exc


def _decode_meal_value(raw_value: str) -> tuple[float | None, float | None]:
    try:
        decoded = json.loads(raw_value)
    except json.JSONDecodeError:
        return _parse_float(raw_value), None
    if isinstance(decoded, dict):
        return _parse_float(decoded.get("calories")), _parse_float(decoded.get("grams"))
    return _parse_float(decoded), None


def _parse_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None
