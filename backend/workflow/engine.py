"""Workflow Execution Engine — runs a stored workflow from start to finish.

A run:

1. Loads the workflow from the repository (missing → WorkflowNotFoundError,
   no execution record is written)
2. Opens an execution record with status ``running`` and snapshots of the
   input data and variables
3. Validates every step into typed configs
4. Walks the top-level steps with the StepInterpreter
5. Closes the execution record exactly once: ``completed``, or ``failed``
   with the error message, after which the error is re-raised

There is no retry and no partial success: the first failing step ends the
run. Runs can be cancelled cooperatively through their CancellationToken,
and an optional deadline bounds the whole run.
"""

from datetime import datetime
from typing import Any, Callable, Optional

import httpx
import structlog

from app.config import Settings
from core.constants import ExecutionStatus
from core.exceptions import WorkflowNotFoundError
from core.utils import safe_serialize, utc_now
from steps.actions import build_action_registry
from steps.handlers.action import ActionHandler
from steps.handlers.condition import ConditionHandler
from steps.handlers.delay import DelayHandler
from steps.handlers.loop import LoopHandler
from steps.handlers.webhook import WebhookHandler
from steps.registry import StepHandlerRegistry
from workflow.cancellation import CancellationToken
from workflow.context import ExecutionContext, WorkflowContext
from workflow.definitions import DEFAULT_MAX_ITERATIONS, load_definition
from workflow.interfaces import ExecutionStore, WorkflowRepository
from workflow.interpreter import StepInterpreter

logger = structlog.get_logger(__name__)


class WorkflowEngine:
    """Main workflow execution engine.

    Each call to ``run`` processes one execution from creation to its
    terminal status. Runs share no mutable state: every execution gets its
    own copy of the variables.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        store: ExecutionStore,
        registry: StepHandlerRegistry,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.store = store
        self.registry = registry
        self.max_iterations = max_iterations
        self.timeout = timeout
        self._interpreter = StepInterpreter(registry, store)
        self._running_executions: dict[str, ExecutionContext] = {}

    async def run(
        self,
        workflow_id: str,
        context: WorkflowContext,
        token: Optional[CancellationToken] = None,
    ) -> ExecutionContext:
        """Execute a workflow.

        Args:
            workflow_id: ID of the workflow to run
            context: Tenant, acting user, input data and initial variables
            token: Cancellation token; defaults to one bounded by the
                engine's configured timeout

        Returns:
            Final ExecutionContext with the run's variables

        Raises:
            WorkflowNotFoundError: No such workflow for the tenant
            Exception: Whatever failed the run, after it was recorded
        """
        stored = await self.repository.get(context.tenant_id, workflow_id)
        if stored is None:
            logger.error("Workflow not found", workflow_id=workflow_id,
                         tenant_id=context.tenant_id)
            raise WorkflowNotFoundError(workflow_id)

        variables = {**(stored.variables or {}), **(context.variables or {})}
        started_at = utc_now()
        execution_id = await self.store.create_execution({
            "tenant_id": context.tenant_id,
            "workflow_id": workflow_id,
            "triggered_by": context.user_id,
            "status": ExecutionStatus.RUNNING.value,
            "started_at": started_at,
            "input_data": safe_serialize(context.input_data or {}),
            "variables": safe_serialize(variables),
        })

        execution = ExecutionContext(
            execution_id=execution_id,
            workflow_id=workflow_id,
            tenant_id=context.tenant_id,
            user_id=context.user_id,
            input_data=dict(context.input_data or {}),
            variables=variables,
            token=token or CancellationToken(timeout=self.timeout),
        )
        self._running_executions[execution_id] = execution

        with structlog.contextvars.bound_contextvars(
            execution_id=execution_id,
            workflow_id=workflow_id,
            tenant_id=context.tenant_id,
        ):
            logger.info("Workflow execution started")
            try:
                definition = load_definition(stored, max_iterations=self.max_iterations)
                await self._interpreter.run_steps(definition.steps, execution)
            except BaseException as e:
                await self._finish(execution, started_at, ExecutionStatus.FAILED,
                                   error_message=str(e) or type(e).__name__)
                logger.error("Workflow execution failed", error=str(e),
                             error_type=type(e).__name__)
                raise
            else:
                await self._finish(execution, started_at, ExecutionStatus.COMPLETED)
                logger.info("Workflow executed successfully")
            finally:
                self._running_executions.pop(execution_id, None)

        return execution

    async def _finish(
        self,
        execution: ExecutionContext,
        started_at: datetime,
        status: ExecutionStatus,
        error_message: Optional[str] = None,
    ) -> None:
        completed_at = utc_now()
        fields: dict[str, Any] = {
            "status": status.value,
            "completed_at": completed_at,
            "duration_ms": int((completed_at - started_at).total_seconds() * 1000),
            "final_variables": execution.snapshot(),
        }
        if error_message is not None:
            fields["error_message"] = error_message
        await self.store.update_execution(execution.tenant_id, execution.execution_id, fields)

    async def cancel_execution(self, execution_id: str, reason: str = "Execution cancelled") -> bool:
        """Cancel a running execution.

        The run stops at its next cancellation check and is recorded as
        failed with ``reason``.

        Returns:
            True if cancelled, False if not found
        """
        execution = self._running_executions.get(execution_id)
        if execution is None:
            return False
        execution.token.cancel(reason)
        logger.info("Execution marked for cancellation", execution_id=execution_id)
        return True

    def get_running_executions(self) -> dict[str, dict]:
        """Get status of all running executions."""
        return {
            eid: {
                "workflow_id": ctx.workflow_id,
                "tenant_id": ctx.tenant_id,
                "cancelled": ctx.token.is_cancelled,
            }
            for eid, ctx in self._running_executions.items()
        }


def build_step_registry(
    settings: Settings,
    *,
    email_transport=None,
    entity_stores=None,
    notification_sender=None,
    http_client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
) -> StepHandlerRegistry:
    """Register the five built-in step handlers with their collaborators."""
    actions = build_action_registry(
        email_transport=email_transport,
        default_sender=settings.SMTP_FROM,
        entity_stores=entity_stores,
        notification_sender=notification_sender,
    )
    return StepHandlerRegistry([
        ConditionHandler(),
        ActionHandler(actions),
        LoopHandler(),
        DelayHandler(),
        WebhookHandler(
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
            block_private_networks=settings.WEBHOOK_BLOCK_PRIVATE_NETWORKS,
            client_factory=http_client_factory,
        ),
    ])


def create_workflow_engine(
    settings: Settings,
    session_factory,
    *,
    email_transport=None,
    notification_sender=None,
    address_resolver=None,
    in_app_publisher=None,
    http_client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient,
) -> WorkflowEngine:
    """Wire an engine to the SQL stores, SMTP transport and notification manager.

    Args:
        settings: Explicit configuration; nothing is read from the environment here
        session_factory: SQLAlchemy async session factory
        email_transport: Overrides the SMTP transport built from ``settings.smtp``
        notification_sender: Overrides the default NotificationManager, which
            writes every notification to the SQL inbox before channel delivery
        address_resolver: Looks up a user's email for the email notification channel
        in_app_publisher: Delivers in-app notifications
        http_client_factory: Factory for the webhook HTTP client
    """
    from notifications.channels import SmtpEmailTransport
    from notifications.manager import NotificationManager
    from services.entity_store import build_entity_stores
    from services.execution_store import SqlExecutionStore
    from services.notification_store import SqlNotificationStore
    from services.workflow_repository import SqlWorkflowRepository

    email_transport = email_transport or SmtpEmailTransport(settings.smtp)
    if notification_sender is None:
        notification_sender = NotificationManager(
            from_address=settings.SMTP_FROM,
            store=SqlNotificationStore(session_factory),
        )
        notification_sender.configure_channels(
            email_transport=email_transport,
            address_resolver=address_resolver,
            publisher=in_app_publisher,
        )

    registry = build_step_registry(
        settings,
        email_transport=email_transport,
        entity_stores=build_entity_stores(session_factory),
        notification_sender=notification_sender,
        http_client_factory=http_client_factory,
    )
    return WorkflowEngine(
        repository=SqlWorkflowRepository(session_factory),
        store=SqlExecutionStore(session_factory),
        registry=registry,
        max_iterations=settings.WORKFLOW_LOOP_MAX_ITERATIONS,
        timeout=settings.WORKFLOW_TIMEOUT_SECONDS,
    )
