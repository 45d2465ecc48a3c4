"""Multi-level payroll review and approval pipeline."""

__version__ = "0.1.0"
