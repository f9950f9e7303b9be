"""HR payroll: MOHRE salary proration, approval workflows and payroll sync."""

__version__ = "1.0.0"
