"""Shared helper to execute a workflow directly (no Celery dispatch).

This module provides a single entry point that:

1. Creates a **fresh** SQLAlchemy engine / session (safe for bg threads)
2. Wires a WorkflowEngine to it and runs the workflow
3. Disposes of the database engine

Usage from a synchronous context (thread / celery task)::

    from worker.run_workflow import run_workflow_sync
    run_workflow_sync(workflow_id, tenant_id, user_id, input_data)

Usage from an async context::

    from worker.run_workflow import run_workflow_async
    await run_workflow_async(workflow_id, tenant_id, user_id, input_data)
"""

import asyncio
from typing import Any, Optional

import structlog

from app.config import Settings, get_settings
from db.database import create_db_engine, create_session_factory
from workflow.context import WorkflowContext
from workflow.engine import create_workflow_engine

logger = structlog.get_logger(__name__)


async def run_workflow_async(
    workflow_id: str,
    tenant_id: str,
    user_id: str,
    input_data: Optional[dict[str, Any]] = None,
    variables: Optional[dict[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> dict[str, Any]:
    """Run a workflow with a fresh DB engine (safe for background threads).

    Returns:
        ``{"status": "completed", "execution_id": ..., "variables": ...}``

    Raises:
        Whatever failed the run; the execution record is already closed as failed.
    """
    settings = settings or get_settings()
    db_engine = create_db_engine(settings)
    try:
        engine = create_workflow_engine(settings, create_session_factory(db_engine))
        logger.info("Running workflow", workflow_id=workflow_id, tenant_id=tenant_id)
        execution = await engine.run(
            workflow_id,
            WorkflowContext(
                tenant_id=tenant_id,
                user_id=user_id,
                input_data=input_data or {},
                variables=variables or {},
            ),
        )
        return {
            "status": "completed",
            "execution_id": execution.execution_id,
            "variables": execution.snapshot(),
        }
    finally:
        await db_engine.dispose()


def run_workflow_sync(
    workflow_id: str,
    tenant_id: str,
    user_id: str,
    input_data: Optional[dict[str, Any]] = None,
    variables: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Run a workflow synchronously (blocks until done).

    Creates its own event loop, so it can be called from threads or Celery tasks.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(
            run_workflow_async(workflow_id, tenant_id, user_id, input_data, variables)
        )
    finally:
        loop.close()
