"""
Storage layer for Leave Allowance.

SQLite-backed employee, leave and adjustment records.
"""
