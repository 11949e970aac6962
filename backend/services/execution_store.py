"""SQL execution store — durable audit trail for runs and step runs.

Every write is committed in its own session so the audit state is on disk
before the engine moves on: a raised error always has its failed record.
"""

from typing import Any, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.models.execution import WorkflowExecution, WorkflowStepRun
from workflow.interfaces import ExecutionStore


class SqlExecutionStore(ExecutionStore):
    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def create_execution(self, fields: dict[str, Any]) -> str:
        async with self.session_factory() as session:
            execution_id = str(uuid4())
            session.add(WorkflowExecution(id=execution_id, **fields))
            await session.commit()
        return execution_id

    async def update_execution(
        self, tenant_id: str, execution_id: str, fields: dict[str, Any]
    ) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(WorkflowExecution)
                .where(
                    WorkflowExecution.id == execution_id,
                    WorkflowExecution.tenant_id == tenant_id,
                )
                .values(**fields)
            )
            await session.commit()

    async def create_step_run(self, fields: dict[str, Any]) -> str:
        async with self.session_factory() as session:
            step_run_id = str(uuid4())
            session.add(WorkflowStepRun(id=step_run_id, **fields))
            await session.commit()
        return step_run_id

    async def update_step_run(
        self, tenant_id: str, step_run_id: str, fields: dict[str, Any]
    ) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(WorkflowStepRun)
                .where(
                    WorkflowStepRun.id == step_run_id,
                    WorkflowStepRun.tenant_id == tenant_id,
                )
                .values(**fields)
            )
            await session.commit()

    # ─── Read ──────────────────────────────────────────────

    async def get_execution(
        self, tenant_id: str, execution_id: str
    ) -> Optional[WorkflowExecution]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(WorkflowExecution).where(
                    WorkflowExecution.id == execution_id,
                    WorkflowExecution.tenant_id == tenant_id,
                )
            )
            return result.scalar_one_or_none()

    async def list_step_runs(
        self, tenant_id: str, execution_id: str
    ) -> Sequence[WorkflowStepRun]:
        """Step runs of an execution in the order they started."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(WorkflowStepRun)
                .where(
                    WorkflowStepRun.execution_id == execution_id,
                    WorkflowStepRun.tenant_id == tenant_id,
                )
                .order_by(WorkflowStepRun.started_at, WorkflowStepRun.created_at)
            )
            return result.scalars().all()
