"""Celery tasks for workflow execution.

These tasks bridge the Celery worker with the WorkflowEngine. A caller
dispatches ``execute_workflow`` and the worker runs the workflow to its
terminal status; progress is tracked through the execution records.
"""

import time
from typing import Any, Optional

import structlog

from worker.celery_app import celery_app
from worker.run_workflow import run_workflow_sync

logger = structlog.get_logger(__name__)


@celery_app.task(
    name="worker.tasks.workflow.execute_workflow",
    bind=True,
    acks_late=True,
    queue="workflows",
)
def execute_workflow(
    self,
    workflow_id: str,
    tenant_id: str,
    user_id: str,
    input_data: Optional[dict[str, Any]] = None,
    variables: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Execute a workflow in the background.

    Args:
        workflow_id: Workflow to execute
        tenant_id: Owning tenant
        user_id: Acting user
        input_data: Caller input, snapshotted on the execution
        variables: Initial variables, merged over the workflow's defaults

    Workflow errors are not retried: they would fail the same way again.
    """
    logger.info("Starting workflow task", workflow_id=workflow_id, task_id=self.request.id)
    start_time = time.time()

    try:
        result = run_workflow_sync(workflow_id, tenant_id, user_id, input_data, variables)
    except Exception as exc:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            "Workflow task failed",
            workflow_id=workflow_id,
            error=str(exc),
            error_type=type(exc).__name__,
            duration_ms=duration_ms,
        )
        return {"status": "failed", "error": str(exc)}

    duration_ms = int((time.time() - start_time) * 1000)
    logger.info("Workflow task completed", workflow_id=workflow_id, duration_ms=duration_ms)
    return result
