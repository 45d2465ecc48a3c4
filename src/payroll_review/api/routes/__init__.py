"""API routes."""

from payroll_review.api.routes.allowances import router as allowances_router
from payroll_review.api.routes.health import router as health_router
from payroll_review.api.routes.reviewers import router as reviewers_router
from payroll_review.api.routes.reviews import router as reviews_router

__all__ = ["allowances_router", "health_router", "reviewers_router", "reviews_router"]
