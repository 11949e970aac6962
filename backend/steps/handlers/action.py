"""Action step handler."""

from core.constants import StepKind
from steps.actions import ActionRegistry
from steps.base import StepHandler, StepScope
from workflow.context import ExecutionContext
from workflow.definitions import ActionConfig, Step


class ActionHandler(StepHandler):
    kind = StepKind.ACTION
    display_name = "Action"
    description = "Send email, create or update a record, or send a notification"

    def __init__(self, actions: ActionRegistry):
        self.actions = actions

    async def execute(self, step: Step, context: ExecutionContext, scope: StepScope) -> None:
        config: ActionConfig = step.config
        action = self.actions.resolve(config.action)
        await action.perform(config.parameters, context)
