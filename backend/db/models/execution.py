"""Execution audit models: one row per run, one row per step run."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import ExecutionStatus, StepRunStatus
from db.base import BaseModel, TenantMixin


class WorkflowExecution(TenantMixin, BaseModel):
    """One run of a workflow.

    Attributes:
        id: Unique identifier (UUID string)
        tenant_id: Owning tenant
        workflow_id: Foreign key to AutomationWorkflow
        triggered_by: Acting user
        status: running, completed, failed
        started_at / completed_at: Run boundaries
        duration_ms: Run duration in milliseconds
        input_data: Snapshot of the caller's input
        variables: Snapshot of the variables at start
        final_variables: Variables at the terminal update
        error_message: Message of the error that failed the run
    """

    __tablename__ = "automation_workflow_executions"

    workflow_id: Mapped[str] = mapped_column(
        ForeignKey("automation_workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    triggered_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=ExecutionStatus.RUNNING.value, index=True
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(nullable=True)
    input_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    final_variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    workflow: Mapped["AutomationWorkflow"] = relationship(
        "AutomationWorkflow", back_populates="executions", lazy="noload"
    )
    step_runs: Mapped[list["WorkflowStepRun"]] = relationship(
        "WorkflowStepRun",
        back_populates="execution",
        cascade="all, delete-orphan",
        order_by="WorkflowStepRun.started_at",
        lazy="noload",
    )


class WorkflowStepRun(TenantMixin, BaseModel):
    """Audit record of one step's outcome within one execution.

    ``step_path`` identifies the run uniquely inside its execution, e.g.
    ``loop_1[2]/notify`` for the third pass of a loop body step.
    """

    __tablename__ = "automation_workflow_step_runs"

    execution_id: Mapped[str] = mapped_column(
        ForeignKey("automation_workflow_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_id: Mapped[str] = mapped_column(nullable=False, index=True)
    step_kind: Mapped[str] = mapped_column(String(20), nullable=False)
    step_path: Mapped[str] = mapped_column(nullable=False)
    parent_step_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    iteration: Mapped[Optional[int]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=StepRunStatus.RUNNING.value, index=True
    )
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    execution: Mapped["WorkflowExecution"] = relationship(
        "WorkflowExecution", back_populates="step_runs", lazy="noload"
    )
