"""
Unit tests for the storage layer.

Tests SQLite persistence and the database-backed employee record.
"""

import os
import sqlite3
import tempfile
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from leave_allowance.core.resolver import promise_allowance
from leave_allowance.storage.models import (
    AllowanceAdjustment,
    Department,
    Employee,
    LeaveRecord,
    LeaveStatus,
)
from leave_allowance.storage.repository import (
    EmployeeRecord,
    fetch_allowance_adjustment,
    fetch_employee,
    fetch_leave_records,
    initialize_schema,
    insert_employee,
    insert_leave_record,
    load_employee_record,
    set_allowance_adjustment,
    upsert_department,
)


class StorageTestCase:
    """Temporary database with one department and employee."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        initialize_schema(self.db_path)
        upsert_department(Department("engineering", 20, False), self.db_path)
        self.employee_id = insert_employee(
            "Alice", "engineering", date(2020, 1, 1), db_path=self.db_path
        )

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def add_leave(self, start_date, days, uses_allowance=True, status=LeaveStatus.APPROVED):
        insert_leave_record(LeaveRecord(
            employee_id=self.employee_id,
            start_date=start_date,
            days=days,
            uses_allowance=uses_allowance,
            status=status
        ), self.db_path)


class TestRepository(StorageTestCase):
    """Test repository functions."""

    def test_initialize_schema_is_idempotent(self):
        initialize_schema(self.db_path)

        assert fetch_employee(self.employee_id, self.db_path) is not None

    def test_fetch_employee(self):
        employee = fetch_employee(self.employee_id, self.db_path)

        assert employee.name == "Alice"
        assert employee.start_date == date(2020, 1, 1)
        assert employee.end_date is None
        assert employee.department == Department("engineering", 20, False)

    def test_fetch_unknown_employee(self):
        assert fetch_employee(999, self.db_path) is None

    def test_employee_end_date_round_trip(self):
        employee_id = insert_employee(
            "Bob", "engineering", date(2021, 5, 1), date(2024, 3, 31), db_path=self.db_path
        )

        assert fetch_employee(employee_id, self.db_path).end_date == date(2024, 3, 31)

    def test_insert_employee_unknown_department(self):
        with pytest.raises(sqlite3.IntegrityError):
            insert_employee("Carol", "sales", date(2021, 1, 1), db_path=self.db_path)

    def test_insert_employee_end_before_start(self):
        with pytest.raises(ValueError, match="end_date cannot be before start_date"):
            insert_employee(
                "Dan", "engineering", date(2021, 1, 1), date(2020, 1, 1), db_path=self.db_path
            )

    def test_upsert_department_updates_policy(self):
        upsert_department(Department("engineering", 25, True), self.db_path)

        employee = fetch_employee(self.employee_id, self.db_path)
        assert employee.department.allowance == 25
        assert employee.department.is_accrued_allowance is True

    def test_fetch_leave_records_filters_by_year(self):
        self.add_leave(date(2022, 12, 30), 2)
        self.add_leave(date(2023, 1, 1), 1)
        self.add_leave(date(2023, 12, 31), 3, status=LeaveStatus.NEW)
        self.add_leave(date(2024, 1, 1), 4)

        leaves = fetch_leave_records(self.employee_id, 2023, self.db_path)

        assert [leave.start_date for leave in leaves] == [date(2023, 1, 1), date(2023, 12, 31)]
        assert leaves[1].status == LeaveStatus.NEW

    def test_leave_for_unknown_employee_rejected(self):
        with pytest.raises(sqlite3.IntegrityError):
            insert_leave_record(LeaveRecord(999, date(2023, 1, 1), 1), self.db_path)

    def test_missing_adjustment_defaults_to_zero(self):
        adjustment = fetch_allowance_adjustment(self.employee_id, 2023, self.db_path)

        assert adjustment.adjustment == 0
        assert adjustment.carried_over_allowance == 0

    def test_set_allowance_adjustment_replaces(self):
        set_allowance_adjustment(AllowanceAdjustment(self.employee_id, 2023, 1, 4), self.db_path)
        set_allowance_adjustment(AllowanceAdjustment(self.employee_id, 2023, -2, 5), self.db_path)

        adjustment = fetch_allowance_adjustment(self.employee_id, 2023, self.db_path)

        assert adjustment.adjustment == -2
        assert adjustment.carried_over_allowance == 5
        assert fetch_allowance_adjustment(self.employee_id, 2024, self.db_path).adjustment == 0

    def test_load_unknown_employee_record(self):
        with pytest.raises(LookupError, match="Unknown employee: 999"):
            load_employee_record(999, self.db_path)


class TestModels:
    """Test storage model validation."""

    def test_employee_end_before_start(self):
        with pytest.raises(ValueError):
            Employee(1, "Eve", Department("ops", 20), date(2024, 5, 1), date(2024, 4, 1))

    def test_negative_leave_days(self):
        with pytest.raises(ValueError, match="days cannot be negative"):
            LeaveRecord(1, date(2024, 5, 1), -1)


class TestEmployeeRecord(StorageTestCase):
    """Test the database-backed employee record."""

    def test_exposes_employee_fields(self):
        record = load_employee_record(self.employee_id, self.db_path)

        assert record.id == self.employee_id
        assert record.name == "Alice"
        assert record.start_date == date(2020, 1, 1)
        assert record.end_date is None
        assert record.department.allowance == 20
        assert record.my_leaves is None

    def test_days_taken_requires_loaded_leaves(self):
        record = load_employee_record(self.employee_id, self.db_path)

        with pytest.raises(RuntimeError, match="not loaded"):
            record.calculate_number_of_days_taken_from_allowance(year="2023")

    @pytest.mark.asyncio
    async def test_days_taken_counts_approved_allowance_leaves(self):
        self.add_leave(date(2023, 3, 1), 3)
        self.add_leave(date(2023, 4, 1), 1.5)
        self.add_leave(date(2023, 5, 1), 2, status=LeaveStatus.NEW)
        self.add_leave(date(2023, 6, 1), 1, uses_allowance=False)
        self.add_leave(date(2022, 12, 30), 5)
        record = load_employee_record(self.employee_id, self.db_path)

        await record.reload_with_leave_details(year=datetime(2023, 1, 1, tzinfo=timezone.utc))

        assert len(record.my_leaves) == 4
        assert record.calculate_number_of_days_taken_from_allowance(year="2023") == 4.5
        assert record.calculate_number_of_days_taken_from_allowance(year="2022") == 0

    @pytest.mark.asyncio
    async def test_adjustment_and_carry_over_for_year(self):
        set_allowance_adjustment(AllowanceAdjustment(self.employee_id, 2023, 1, 4), self.db_path)
        record = EmployeeRecord(fetch_employee(self.employee_id, self.db_path), self.db_path)

        result = await record.promise_adjustment_and_carry_over_for_year(
            datetime(2023, 7, 1, tzinfo=timezone.utc)
        )

        assert result == {"adjustment": 1, "carried_over_allowance": 4}

    @pytest.mark.asyncio
    async def test_resolves_allowance_end_to_end(self):
        """Past year: 20 nominal + 4 carried + 1 adjustment - 3 taken."""
        self.add_leave(date(2023, 3, 1), 3)
        self.add_leave(date(2023, 5, 1), 2, status=LeaveStatus.NEW)
        self.add_leave(date(2022, 12, 30), 5)
        set_allowance_adjustment(AllowanceAdjustment(self.employee_id, 2023, 1, 4), self.db_path)
        record = load_employee_record(self.employee_id, self.db_path)
        current = datetime(2024, 6, 15, tzinfo=timezone.utc)

        with patch("leave_allowance.core.resolver.utc_now", return_value=current):
            calculator = await promise_allowance(
                user=record, year=datetime(2023, 1, 1, tzinfo=timezone.utc)
            )

        assert calculator.now == datetime(2023, 1, 1, tzinfo=timezone.utc)
        assert calculator.total_number_of_days_in_allowance == 25
        assert calculator.number_of_days_taken_from_allowance == 3
        assert calculator.number_of_days_available_in_allowance == 22
