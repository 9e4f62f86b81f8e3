"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

PF_RATE = Decimal("0.12")
ESI_RATE = Decimal("0.0325")
ESI_WAGE_CEILING = Decimal("21000")

MONEY_QUANT = Decimal("0.01")

STORE_TIMEOUT_SECONDS = 5
DEFAULT_AUDIT_LIMIT = 200

ATTENDANCE_ROOT = "attendance"
LEAVE_ROOT = "leaveRequests"
SALARY_ROOT = "salaries"
USERS_ROOT = "users"
AUDIT_ROOT = "auditLogs"
