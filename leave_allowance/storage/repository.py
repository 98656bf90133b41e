"""
Repository pattern for data access.

Handles database operations for employees, leaves and allowance adjustments,
and exposes employees as records the allowance resolver can consume.
"""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import AllowanceAdjustment, Department, Employee, LeaveRecord, LeaveStatus

logger = logging.getLogger(__name__)


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the allowance tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS department (
                name TEXT PRIMARY KEY,
                allowance REAL NOT NULL,
                is_accrued_allowance INTEGER NOT NULL DEFAULT 0
            );
            CREATE TABLE IF NOT EXISTS employee (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                department TEXT NOT NULL REFERENCES department(name),
                start_date TEXT NOT NULL,
                end_date TEXT
            );
            CREATE TABLE IF NOT EXISTS leave_record (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                employee_id INTEGER NOT NULL REFERENCES employee(id),
                start_date TEXT NOT NULL,
                days REAL NOT NULL,
                uses_allowance INTEGER NOT NULL DEFAULT 1,
                status TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS allowance_adjustment (
                employee_id INTEGER NOT NULL REFERENCES employee(id),
                year INTEGER NOT NULL,
                adjustment REAL NOT NULL DEFAULT 0,
                carried_over_allowance REAL NOT NULL DEFAULT 0,
                PRIMARY KEY (employee_id, year)
            );
        """)
        conn.commit()
    finally:
        conn.close()


def upsert_department(department: Department, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a department or replace its allowance policy.

    Args:
        department: Department to store
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO department (name, allowance, is_accrued_allowance)
            VALUES (?, ?, ?)
            ON CONFLICT(name) DO UPDATE SET
                allowance = excluded.allowance,
                is_accrued_allowance = excluded.is_accrued_allowance
        """, (department.name, department.allowance, int(department.is_accrued_allowance)))
        conn.commit()
    finally:
        conn.close()
    logger.info("Stored department %s (allowance=%s)", department.name, department.allowance)


def insert_employee(
    name: str,
    department: str,
    start_date: date,
    end_date: Optional[date] = None,
    db_path: str = DEFAULT_DB_PATH
) -> int:
    """Insert an employee and return the new id.

    Raises:
        sqlite3.IntegrityError: If the department does not exist
    """
    if end_date is not None and end_date < start_date:
        raise ValueError("end_date cannot be before start_date")

    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            INSERT INTO employee (name, department, start_date, end_date)
            VALUES (?, ?, ?, ?)
        """, (
            name,
            department,
            start_date.isoformat(),
            end_date.isoformat() if end_date else None
        ))
        conn.commit()
        employee_id = cursor.lastrowid
    finally:
        conn.close()
    logger.info("Stored employee %s as id %s", name, employee_id)
    return employee_id


def insert_leave_record(record: LeaveRecord, db_path: str = DEFAULT_DB_PATH) -> None:
    """Insert a single leave record.

    Args:
        record: Leave to record
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO leave_record (employee_id, start_date, days, uses_allowance, status)
            VALUES (?, ?, ?, ?, ?)
        """, (
            record.employee_id,
            record.start_date.isoformat(),
            record.days,
            int(record.uses_allowance),
            record.status.value
        ))
        conn.commit()
    finally:
        conn.close()
    logger.info("Stored %s day(s) of leave for employee %s", record.days, record.employee_id)


def set_allowance_adjustment(
    adjustment: AllowanceAdjustment,
    db_path: str = DEFAULT_DB_PATH
) -> None:
    """Insert or replace the adjustment and carry over for an employee year.

    Args:
        adjustment: Values to store
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO allowance_adjustment
                (employee_id, year, adjustment, carried_over_allowance)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(employee_id, year) DO UPDATE SET
                adjustment = excluded.adjustment,
                carried_over_allowance = excluded.carried_over_allowance
        """, (
            adjustment.employee_id,
            adjustment.year,
            adjustment.adjustment,
            adjustment.carried_over_allowance
        ))
        conn.commit()
    finally:
        conn.close()
    logger.info(
        "Stored adjustment for employee %s in %s", adjustment.employee_id, adjustment.year
    )


def fetch_employee(employee_id: int, db_path: str = DEFAULT_DB_PATH) -> Optional[Employee]:
    """Fetch an employee with their department, or None if unknown."""
    conn = get_connection(db_path)
    try:
        row = conn.execute("""
            SELECT e.id, e.name, e.start_date, e.end_date,
                   d.name, d.allowance, d.is_accrued_allowance
            FROM employee e JOIN department d ON d.name = e.department
            WHERE e.id = ?
        """, (employee_id,)).fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return Employee(
        id=row[0],
        name=row[1],
        start_date=date.fromisoformat(row[2]),
        end_date=date.fromisoformat(row[3]) if row[3] else None,
        department=Department(
            name=row[4],
            allowance=row[5],
            is_accrued_allowance=bool(row[6])
        )
    )


def fetch_leave_records(
    employee_id: int,
    year: int,
    db_path: str = DEFAULT_DB_PATH
) -> List[LeaveRecord]:
    """Fetch an employee's leave records starting in the given year.

    Returns:
        Leave records ordered by start date
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            SELECT employee_id, start_date, days, uses_allowance, status
            FROM leave_record
            WHERE employee_id = ? AND start_date >= ? AND start_date < ?
            ORDER BY start_date, id
        """, (employee_id, f"{year:04d}-01-01", f"{year + 1:04d}-01-01"))
        records = []
        for row in cursor.fetchall():
            records.append(LeaveRecord(
                employee_id=row[0],
                start_date=date.fromisoformat(row[1]),
                days=row[2],
                uses_allowance=bool(row[3]),
                status=LeaveStatus(row[4])
            ))
        return records
    finally:
        conn.close()


def fetch_allowance_adjustment(
    employee_id: int,
    year: int,
    db_path: str = DEFAULT_DB_PATH
) -> AllowanceAdjustment:
    """Fetch the adjustment for an employee year, zeros when none is stored."""
    conn = get_connection(db_path)
    try:
        row = conn.execute("""
            SELECT adjustment, carried_over_allowance
            FROM allowance_adjustment
            WHERE employee_id = ? AND year = ?
        """, (employee_id, year)).fetchone()
    finally:
        conn.close()

    if row is None:
        return AllowanceAdjustment(employee_id=employee_id, year=year)
    return AllowanceAdjustment(
        employee_id=employee_id,
        year=year,
        adjustment=row[0],
        carried_over_allowance=row[1]
    )


class EmployeeRecord:
    """Employee backed by the database, as consumed by the allowance resolver.

    `my_leaves` stays None until `reload_with_leave_details` loads a year.
    """

    def __init__(self, employee: Employee, db_path: str = DEFAULT_DB_PATH):
        self.employee = employee
        self.db_path = db_path
        self.my_leaves: Optional[List[LeaveRecord]] = None

    @property
    def id(self) -> int:
        return self.employee.id

    @property
    def name(self) -> str:
        return self.employee.name

    @property
    def department(self) -> Department:
        return self.employee.department

    @property
    def start_date(self) -> date:
        return self.employee.start_date

    @property
    def end_date(self) -> Optional[date]:
        return self.employee.end_date

    async def reload_with_leave_details(self, year: datetime) -> None:
        """Load the employee's leave records for the year into `my_leaves`."""
        self.my_leaves = await asyncio.to_thread(
            fetch_leave_records, self.employee.id, year.year, self.db_path
        )

    def calculate_number_of_days_taken_from_allowance(self, year: str) -> float:
        """Sum approved leave days that use the allowance in the given year.

        Args:
            year: Four digit year, e.g. "2024"

        Raises:
            RuntimeError: If leave details were not loaded
        """
        if self.my_leaves is None:
            raise RuntimeError(
                f"Leave details for employee {self.employee.id} are not loaded"
            )
        target_year = int(year)
        return sum(
            leave.days
            for leave in self.my_leaves
            if leave.status == LeaveStatus.APPROVED
            and leave.uses_allowance
            and leave.start_date.year == target_year
        )

    async def promise_adjustment_and_carry_over_for_year(
        self,
        year: datetime
    ) -> Dict[str, Any]:
        """Fetch the stored adjustment and carry over for the year."""
        adjustment = await asyncio.to_thread(
            fetch_allowance_adjustment, self.employee.id, year.year, self.db_path
        )
        return {
            "adjustment": adjustment.adjustment,
            "carried_over_allowance": adjustment.carried_over_allowance,
        }


def load_employee_record(employee_id: int, db_path: str = DEFAULT_DB_PATH) -> EmployeeRecord:
    """Load an employee as a resolver-ready record.

    Raises:
        LookupError: If no employee has the id
    """
    employee = fetch_employee(employee_id, db_path)
    if employee is None:
        raise LookupError(f"Unknown employee: {employee_id}")
    return EmployeeRecord(employee, db_path)
