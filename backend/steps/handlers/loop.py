"""Loop step: run a body of steps once per item of a context collection."""

import structlog

from core.constants import StepKind
from core.exceptions import NotAnArrayError
from steps.base import StepHandler, StepScope
from workflow.context import ExecutionContext
from workflow.definitions import LoopConfig, Step

logger = structlog.get_logger(__name__)


class LoopHandler(StepHandler):
    """Iterate ``collection`` up to ``max_iterations`` times.

    ``current_index`` and ``current_item`` are written into the shared
    context before each pass; there is no per-iteration scope, so the
    last iteration's values remain visible after the loop.
    """

    kind = StepKind.LOOP
    display_name = "Loop"
    description = "Run nested steps for each item in a collection"

    async def execute(self, step: Step, context: ExecutionContext, scope: StepScope) -> None:
        config: LoopConfig = step.config
        items = context.resolve_path(config.collection)

        if items is None:
            logger.warning("Loop collection is empty, skipping loop", step=step.id,
                           collection=config.collection)
            return
        if not isinstance(items, (list, tuple)):
            raise NotAnArrayError(config.collection)

        iterations = min(len(items), config.max_iterations)
        if iterations < len(items):
            logger.info("Loop truncated at max_iterations", step=step.id,
                        total_items=len(items), max_iterations=config.max_iterations)

        for index in range(iterations):
            context.set_variable("current_index", index)
            context.set_variable("current_item", items[index])
            if config.steps:
                await scope.run_body(config.steps, context, iteration=index)
