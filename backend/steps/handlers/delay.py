"""Delay step: suspend the run for a number of milliseconds."""

from core.constants import StepKind
from steps.base import StepHandler, StepScope
from workflow.context import ExecutionContext
from workflow.definitions import DelayConfig, Step


class DelayHandler(StepHandler):
    kind = StepKind.DELAY
    display_name = "Delay"
    description = "Wait for a duration (milliseconds) before continuing"

    async def execute(self, step: Step, context: ExecutionContext, scope: StepScope) -> None:
        config: DelayConfig = step.config
        await context.token.sleep(config.duration / 1000)
