"""SQL-backed workflow repository."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.models.workflow import AutomationWorkflow
from workflow.interfaces import WorkflowRepository
from workflow.models import StoredWorkflow


class SqlWorkflowRepository(WorkflowRepository):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get(self, tenant_id: str, workflow_id: str) -> Optional[StoredWorkflow]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(AutomationWorkflow).where(
                    AutomationWorkflow.id == workflow_id,
                    AutomationWorkflow.tenant_id == tenant_id,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                return None
            return StoredWorkflow(
                id=row.id,
                tenant_id=row.tenant_id,
                name=row.name,
                steps=list(row.steps or []),
                variables=dict(row.variables or {}),
            )
