"""HTTP API for approvals and payroll generation."""

from hr_payroll.api.app import create_app

__all__ = ["create_app"]
