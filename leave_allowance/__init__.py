"""
Leave Allowance.

Computes an employee's paid-time-off balance for a calendar year.
"""

__version__ = "0.1.0"
