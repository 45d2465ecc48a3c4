"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends, Header, Path, Request

from payroll_review.client import Credential, HttpPayrollService, PayrollService
from payroll_review.config import PipelinePolicy, get_settings
from payroll_review.errors import AuthError
from payroll_review.services import PipelineOrchestrator

ServiceFactory = Callable[[str, Credential], PayrollService]


async def get_credential(
    authorization: Annotated[str | None, Header()] = None,
) -> Credential:
    """Extract the bearer credential forwarded to the payroll service."""
    if not authorization:
        raise AuthError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError("Authorization header must be a bearer token")
    return Credential(access_token=token.strip())


async def get_acting_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Acting user, used for self-removal checks and event metadata."""
    return x_user_id or None


def http_service_factory(company_id: str, credential: Credential) -> PayrollService:
    return HttpPayrollService.from_settings(get_settings(), credential, company_id=company_id)


def get_service_factory() -> ServiceFactory:
    """Backend factory; overridden in tests."""
    return http_service_factory


def get_policy() -> PipelinePolicy:
    return get_settings().policy


async def get_payroll_service(
    company_id: Annotated[str, Path()],
    credential: Annotated[Credential, Depends(get_credential)],
    factory: Annotated[ServiceFactory, Depends(get_service_factory)],
) -> AsyncGenerator[PayrollService, None]:
    """Get a company-scoped payroll service for the request."""
    service = factory(company_id, credential)
    try:
        yield service
    finally:
        aclose = getattr(service, "aclose", None)
        if aclose is not None:
            await aclose()


async def get_orchestrator(
    request: Request,
    service: Annotated[PayrollService, Depends(get_payroll_service)],
    acting_user_id: Annotated[str | None, Depends(get_acting_user_id)],
    policy: Annotated[PipelinePolicy, Depends(get_policy)],
) -> PipelineOrchestrator:
    """Per-request orchestrator; all state is rebuilt from fresh fetches."""
    return PipelineOrchestrator(
        service,
        policy=policy,
        emitter=request.app.state.emitter,
        actor_id=acting_user_id,
    )


# Type aliases for cleaner dependency injection
Service = Annotated[PayrollService, Depends(get_payroll_service)]
Orchestrator = Annotated[PipelineOrchestrator, Depends(get_orchestrator)]
ActingUserId = Annotated[str | None, Depends(get_acting_user_id)]
