"""Tests for variable persistence and snapshot lookup."""

from __future__ import annotations

import unittest

from sqlalchemy import create_engine, delete
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lifelog.models.base import Base
from lifelog.models.variable import VariableRecord
from lifelog.types import VariableType
from lifelog.variables.store import (
    VariableStore,
    VariableStoreError,
    add_variable,
    delete_variable,
    encode_meal_value,
    find_variable,
    find_variable_by_precedence,
    list_variables,
    update_variable,
)


class VariableStoreTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autoflush=False, autocommit=False, future=True)
        Base.metadata.create_all(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        Base.metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        self.db.execute(delete(VariableRecord))
        self.db.commit()

    def tearDown(self) -> None:
        self.db.close()

    def test_add_replaces_same_name_case_insensitively(self) -> None:
        add_variable(self.db, "Rent", "1200", VariableType.EXPENSE, "usd")
        add_variable(self.db, "rent", "1300", "expense", "USD")

        records = list_variables(self.db)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].raw_value, "1300")
        self.assertEqual(records[0].currency, "USD")

    def test_add_rejects_blank_and_unknown_type(self) -> None:
        with self.assertRaises(VariableStoreError):
            add_variable(self.db, " ", "10", VariableType.EXPENSE)
        with self.assertRaises(VariableStoreError):
            add_variable(self.db, "gym", "10", "subscription")

    def test_update_rejects_name_clash(self) -> None:
        add_variable(self.db, "rent", "1200", VariableType.EXPENSE, "USD")
        salary = add_variable(self.db, "salary", "3000", VariableType.INCOME, "USD")

        with self.assertRaises(VariableStoreError):
            update_variable(self.db, salary.id, name="RENT")

        updated = update_variable(self.db, salary.id, raw_value="3500")
        self.assertEqual(updated.raw_value, "3500")

    def test_delete(self) -> None:
        record = add_variable(self.db, "coffee", "4", VariableType.EXPENSE, "USD")

        self.assertTrue(delete_variable(self.db, record.id))
        self.assertFalse(delete_variable(self.db, record.id))
        self.assertEqual(list_variables(self.db), [])

    def test_snapshot_derives_amount_and_meal_fields(self) -> None:
        add_variable(self.db, "Rent", "1200", VariableType.EXPENSE, "USD")
        add_variable(self.db, "Oatmeal", encode_meal_value(150, 40), VariableType.MEAL)
        add_variable(self.db, "Toast", "90", VariableType.MEAL)

        snapshot = VariableStore(self.SessionLocal).snapshot()
        by_name = {variable.name: variable for variable in snapshot}

        self.assertEqual(set(by_name), {"rent", "oatmeal", "toast"})
        self.assertEqual(by_name["rent"].amount, 1200.0)
        self.assertTrue(by_name["rent"].is_money)
        self.assertEqual(by_name["oatmeal"].calories, 150.0)
        self.assertEqual(by_name["oatmeal"].grams, 40.0)
        self.assertEqual(by_name["toast"].calories, 90.0)
        self.assertIsNone(by_name["toast"].grams)

    def test_lookup_precedence_and_type_filter(self) -> None:
        add_variable(self.db, "coffee", "4", VariableType.EXPENSE, "USD")
        add_variable(self.db, "coffee shop", "50", VariableType.INCOME, "USD")
        add_variable(self.db, "Çay", "2", VariableType.EXPENSE, "TRY")
        snapshot = VariableStore(self.SessionLocal).snapshot()

        self.assertEqual(find_variable(snapshot, "Coffee_Shop").type, VariableType.INCOME)
        self.assertIsNone(find_variable(snapshot, "coffee", VariableType.INCOME))
        self.assertEqual(find_variable(snapshot, "cay").currency, "TRY")
        self.assertEqual(find_variable_by_precedence(snapshot, "coffee").type, VariableType.EXPENSE)
        self.assertIsNone(find_variable_by_precedence(snapshot, "tea"))


if __name__ == "__main__":
    unittest.main()
