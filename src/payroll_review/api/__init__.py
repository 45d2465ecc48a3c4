"""Dashboard API for the payroll review pipeline."""
