"""Workflow definition model."""

from typing import Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel, TenantMixin


class AutomationWorkflow(TenantMixin, BaseModel):
    """A stored automation workflow.

    Attributes:
        id: Unique identifier (UUID string)
        tenant_id: Owning tenant
        name: Workflow name
        description: Workflow description
        status: DRAFT, ACTIVE, PAUSED, ARCHIVED
        steps: Ordered JSON list of step definitions
        variables: Default variables, overridden by the caller at run time
        created_by: User who created the workflow
    """

    __tablename__ = "automation_workflows"

    name: Mapped[str] = mapped_column(nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", index=True)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    executions: Mapped[list["WorkflowExecution"]] = relationship(
        "WorkflowExecution",
        back_populates="workflow",
        cascade="all, delete-orphan",
        lazy="noload",
    )
