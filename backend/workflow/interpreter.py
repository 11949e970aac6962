"""Step interpreter: walks a step list and records each step run.

Steps run strictly in list order. Before each dispatch a step run is
created as ``running``; afterwards it is marked ``completed`` or, on
error, ``failed`` with the message before the error is re-raised. The
first failure stops the remaining steps of the list and of every
enclosing loop.
"""

from datetime import datetime
from typing import Optional, Sequence

import structlog

from core.constants import StepRunStatus
from core.utils import utc_now
from steps.base import StepScope
from steps.registry import StepHandlerRegistry
from workflow.context import ExecutionContext, StepPath
from workflow.definitions import Step
from workflow.interfaces import ExecutionStore

logger = structlog.get_logger(__name__)


def _elapsed_ms(started_at: datetime, completed_at: datetime) -> int:
    return int((completed_at - started_at).total_seconds() * 1000)


class StepInterpreter:
    """Dispatches steps to their handlers and keeps the step-run audit trail."""

    def __init__(self, registry: StepHandlerRegistry, store: ExecutionStore):
        self.registry = registry
        self.store = store

    async def run_steps(
        self,
        steps: Sequence[Step],
        context: ExecutionContext,
        parent: Optional[StepPath] = None,
        iteration: Optional[int] = None,
    ) -> None:
        """Run ``steps`` in order.

        Args:
            steps: Steps of the workflow, or of a loop body
            context: The run's execution context
            parent: Path of the enclosing loop step, for nested bodies
            iteration: Loop iteration the body is running in
        """
        for step in steps:
            context.token.raise_if_cancelled()
            await self.run_step(step, context, StepPath(step.id, parent, iteration))

    async def run_step(self, step: Step, context: ExecutionContext, path: StepPath) -> None:
        started_at = utc_now()
        step_run_id = await self.store.create_step_run({
            "tenant_id": context.tenant_id,
            "execution_id": context.execution_id,
            "step_id": step.id,
            "step_kind": step.kind.value,
            "step_path": str(path),
            "parent_step_id": path.parent_step_id,
            "iteration": path.iteration,
            "status": StepRunStatus.RUNNING.value,
            "started_at": started_at,
        })

        try:
            handler = self.registry.resolve(step.kind)
            await handler.run(step, context, StepScope(path=path, interpreter=self))
        except BaseException as e:
            completed_at = utc_now()
            await self.store.update_step_run(context.tenant_id, step_run_id, {
                "status": StepRunStatus.FAILED.value,
                "error_message": str(e) or type(e).__name__,
                "completed_at": completed_at,
                "duration_ms": _elapsed_ms(started_at, completed_at),
            })
            logger.error("Step failed", step_path=str(path), error=str(e))
            raise

        completed_at = utc_now()
        await self.store.update_step_run(context.tenant_id, step_run_id, {
            "status": StepRunStatus.COMPLETED.value,
            "completed_at": completed_at,
            "duration_ms": _elapsed_ms(started_at, completed_at),
        })
