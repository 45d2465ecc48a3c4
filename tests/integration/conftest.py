"""Integration test fixtures serving the API over ASGI against a fake backend."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from payroll_review.api.app import create_app
from payroll_review.api.dependencies import get_policy, get_service_factory
from payroll_review.config import PipelinePolicy
from payroll_review.events import EventEmitter

from tests.conftest import COMPANY_ID, FakePayrollService

AUTH_HEADERS = {"Authorization": "Bearer token-123", "X-User-ID": "user-r1"}
REVIEWERS_URL = f"/api/v1/companies/{COMPANY_ID}/reviewers"
RUNS_URL = f"/api/v1/companies/{COMPANY_ID}/payroll/runs"


@pytest.fixture
def policy() -> PipelinePolicy:
    return PipelinePolicy()


@pytest.fixture
def received_events() -> list:
    return []


@pytest.fixture
def app(seeded_run: FakePayrollService, policy: PipelinePolicy, received_events: list):
    """Application wired to the in-memory backend."""
    emitter = EventEmitter()
    emitter.on_all(received_events.append)
    application = create_app(emitter)
    seeded_run.credentials = []

    def factory(company_id, credential):
        seeded_run.credentials.append((company_id, credential))
        return seeded_run

    application.dependency_overrides[get_service_factory] = lambda: factory
    application.dependency_overrides[get_policy] = lambda: policy
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Get async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
