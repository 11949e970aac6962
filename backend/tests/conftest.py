"""Shared pytest fixtures for the workflow engine test suite.

Provides:
- In-memory async SQLite database (no PostgreSQL needed for tests)
- Async session factory for the SQL adapters
- An engine harness wired to in-memory collaborators that record
  every execution, step run, email, notification and entity write
"""

import os
from typing import Any, AsyncGenerator, Callable, Optional, Sequence
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")

from app.config import Settings  # noqa: E402
from core.constants import EntityKind  # noqa: E402
from db.base import Base  # noqa: E402
from db.database import create_session_factory  # noqa: E402
from workflow.cancellation import CancellationToken  # noqa: E402
from workflow.context import ExecutionContext, WorkflowContext  # noqa: E402
from workflow.engine import WorkflowEngine, build_step_registry  # noqa: E402
from workflow.interfaces import (  # noqa: E402
    EmailTransport,
    EntityStore,
    ExecutionStore,
    NotificationSender,
    WorkflowRepository,
)
from workflow.models import (  # noqa: E402
    EmailMessage,
    NotificationPayload,
    NotificationRecipient,
    StoredWorkflow,
)

TENANT_ID = "tenant-1"
USER_ID = "user-1"


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------

class FakeWorkflowRepository(WorkflowRepository):
    def __init__(self):
        self.workflows: dict[tuple[str, str], StoredWorkflow] = {}

    def add(self, workflow: StoredWorkflow) -> None:
        self.workflows[(workflow.tenant_id, workflow.id)] = workflow

    async def get(self, tenant_id: str, workflow_id: str) -> Optional[StoredWorkflow]:
        return self.workflows.get((tenant_id, workflow_id))


class RecordingExecutionStore(ExecutionStore):
    """Keeps executions and step runs as plain dicts, in creation order."""

    def __init__(self):
        self.executions: dict[str, dict[str, Any]] = {}
        self.step_runs: dict[str, dict[str, Any]] = {}
        self.updates: list[tuple[str, str, dict[str, Any]]] = []

    async def create_execution(self, fields: dict[str, Any]) -> str:
        execution_id = f"exec-{len(self.executions) + 1}"
        self.executions[execution_id] = {"id": execution_id, **fields}
        return execution_id

    async def update_execution(
        self, tenant_id: str, execution_id: str, fields: dict[str, Any]
    ) -> None:
        self.updates.append(("execution", execution_id, dict(fields)))
        record = self.executions[execution_id]
        assert record["tenant_id"] == tenant_id
        record.update(fields)

    async def create_step_run(self, fields: dict[str, Any]) -> str:
        step_run_id = f"run-{len(self.step_runs) + 1}"
        self.step_runs[step_run_id] = {"id": step_run_id, **fields}
        return step_run_id

    async def update_step_run(
        self, tenant_id: str, step_run_id: str, fields: dict[str, Any]
    ) -> None:
        self.updates.append(("step_run", step_run_id, dict(fields)))
        record = self.step_runs[step_run_id]
        assert record["tenant_id"] == tenant_id
        record.update(fields)

    def runs_for(self, execution_id: str) -> list[dict[str, Any]]:
        return [r for r in self.step_runs.values() if r["execution_id"] == execution_id]

    @property
    def only_execution(self) -> dict[str, Any]:
        assert len(self.executions) == 1
        return next(iter(self.executions.values()))


class FakeEmailTransport(EmailTransport):
    def __init__(self, error: Optional[Exception] = None):
        self.sent: list[EmailMessage] = []
        self.error = error

    async def send(self, message: EmailMessage) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(message)


class FakeNotificationSender(NotificationSender):
    def __init__(self):
        self.calls: list[tuple[list[NotificationRecipient], NotificationPayload]] = []

    async def send_notification(
        self,
        recipients: Sequence[NotificationRecipient],
        payload: NotificationPayload,
    ) -> None:
        self.calls.append((list(recipients), payload))


class FakeEntityStore(EntityStore):
    def __init__(self):
        self.inserted: list[tuple[str, dict[str, Any]]] = []
        self.updated: list[tuple[str, str, dict[str, Any]]] = []
        self.existing: set[str] = set()

    async def insert(self, tenant_id: str, record: dict[str, Any]) -> None:
        self.inserted.append((tenant_id, record))

    async def update(
        self, tenant_id: str, record_id: str, fields: dict[str, Any]
    ) -> bool:
        self.updated.append((tenant_id, record_id, fields))
        return record_id in self.existing


class EngineHarness:
    """Builds engines over the in-memory collaborators above.

    Set ``http_handler`` to an ``httpx.MockTransport`` handler before
    running workflows with webhook steps.
    """

    def __init__(self):
        self.settings = Settings(_env_file=None, ENVIRONMENT="testing")
        self.tenant_id = TENANT_ID
        self.user_id = USER_ID
        self.repository = FakeWorkflowRepository()
        self.store = RecordingExecutionStore()
        self.email = FakeEmailTransport()
        self.notifications = FakeNotificationSender()
        self.entity_stores = {kind: FakeEntityStore() for kind in EntityKind}
        self.http_handler: Optional[Callable[[httpx.Request], httpx.Response]] = None
        self.requests: list[httpx.Request] = []

    def _client_factory(self, **kwargs: Any) -> httpx.AsyncClient:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            if self.http_handler is None:
                raise AssertionError(f"Unexpected HTTP request: {request.url}")
            return self.http_handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(handler), **kwargs)

    def registry(self):
        return build_step_registry(
            self.settings,
            email_transport=self.email,
            entity_stores=self.entity_stores,
            notification_sender=self.notifications,
            http_client_factory=self._client_factory,
        )

    def engine(self, timeout: Optional[float] = None, max_iterations: int = 100) -> WorkflowEngine:
        return WorkflowEngine(
            repository=self.repository,
            store=self.store,
            registry=self.registry(),
            max_iterations=max_iterations,
            timeout=timeout,
        )

    def add_workflow(
        self,
        steps: list[dict[str, Any]],
        variables: Optional[dict[str, Any]] = None,
        tenant_id: str = TENANT_ID,
    ) -> str:
        workflow_id = f"wf-{uuid4().hex[:8]}"
        self.repository.add(
            StoredWorkflow(
                id=workflow_id,
                tenant_id=tenant_id,
                name="Test Workflow",
                steps=steps,
                variables=variables or {},
            )
        )
        return workflow_id

    async def run(
        self,
        steps: list[dict[str, Any]],
        variables: Optional[dict[str, Any]] = None,
        input_data: Optional[dict[str, Any]] = None,
        token: Optional[CancellationToken] = None,
        **engine_kwargs: Any,
    ) -> ExecutionContext:
        workflow_id = self.add_workflow(steps)
        return await self.engine(**engine_kwargs).run(
            workflow_id,
            WorkflowContext(
                tenant_id=TENANT_ID,
                user_id=USER_ID,
                input_data=input_data or {},
                variables=variables or {},
            ),
            token=token,
        )


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def harness() -> EngineHarness:
    return EngineHarness()


@pytest.fixture
def make_context() -> Callable[..., ExecutionContext]:
    """Build a standalone ExecutionContext for handler-level tests."""

    def _make(variables: Optional[dict[str, Any]] = None, **kwargs: Any) -> ExecutionContext:
        return ExecutionContext(
            execution_id=kwargs.pop("execution_id", "exec-test"),
            workflow_id=kwargs.pop("workflow_id", "wf-test"),
            tenant_id=kwargs.pop("tenant_id", TENANT_ID),
            user_id=kwargs.pop("user_id", USER_ID),
            variables=dict(variables or {}),
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """A fresh in-memory database per test, shared across its sessions."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    # Import all models so Base.metadata knows about them
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)
