"""
Base step handler interface.

Every step kind (condition, action, loop, delay, webhook) is handled by a
subclass of StepHandler that implements execute(). Handlers signal failure
by raising; the interpreter records the outcome on the step run.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

import structlog

from core.constants import StepKind
from workflow.context import ExecutionContext, StepPath
from workflow.definitions import Step

if TYPE_CHECKING:
    from workflow.interpreter import StepInterpreter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepScope:
    """Where a step is running, plus a way to run nested steps beneath it."""

    path: StepPath
    interpreter: "StepInterpreter"

    async def run_body(
        self,
        steps: Sequence[Step],
        context: ExecutionContext,
        iteration: Optional[int] = None,
    ) -> None:
        await self.interpreter.run_steps(
            steps, context, parent=self.path, iteration=iteration
        )


class StepHandler(ABC):
    """
    Abstract base class for all step handlers.

    Subclasses must implement:
    - execute(step, context, scope)
    - kind (class attribute)
    - display_name (class attribute)
    """

    kind: StepKind
    display_name: str = "Base Step"
    description: str = "Abstract step handler"

    @abstractmethod
    async def execute(
        self,
        step: Step,
        context: ExecutionContext,
        scope: StepScope,
    ) -> None:
        """
        Execute the step against the run's context.

        Args:
            step: Validated step definition
            context: Execution context (variables shared by the whole run)
            scope: Step path and access to the interpreter for nested bodies
        """

    async def run(
        self,
        step: Step,
        context: ExecutionContext,
        scope: StepScope,
    ) -> None:
        """
        Run the step with timing and logging.

        This is the entry point called by the interpreter. Errors are
        logged and re-raised unchanged.
        """
        start = time.monotonic()
        logger.debug("Step starting", step_path=str(scope.path), step_kind=self.kind.value)
        try:
            await self.execute(step, context, scope)
        except Exception as e:
            logger.warning(
                "Step failed",
                step_path=str(scope.path),
                step_kind=self.kind.value,
                error=str(e),
                duration_ms=round((time.monotonic() - start) * 1000, 2),
            )
            raise
        logger.debug(
            "Step completed",
            step_path=str(scope.path),
            step_kind=self.kind.value,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
