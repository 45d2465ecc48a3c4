"""Payroll service clients."""

from payroll_review.client.base import Credential, PayrollService
from payroll_review.client.http import HttpPayrollService

__all__ = [
    "Credential",
    "PayrollService",
    "HttpPayrollService",
]
