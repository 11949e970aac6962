"""Database models for the workflow engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.workflow import AutomationWorkflow
from db.models.execution import WorkflowExecution, WorkflowStepRun
from db.models.entities import InventoryItem, Order, PurchaseOrder, Supplier
from db.models.notification import Notification

__all__ = [
    "AutomationWorkflow",
    "WorkflowExecution",
    "WorkflowStepRun",
    "Supplier",
    "InventoryItem",
    "PurchaseOrder",
    "Order",
    "Notification",
]
