"""Constants and enums for the workflow engine."""

from enum import Enum


class ExecutionStatus(str, Enum):
    """Workflow execution status."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepRunStatus(str, Enum):
    """Status of a single step run within an execution."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepKind(str, Enum):
    """Kinds of workflow steps the interpreter can dispatch."""

    CONDITION = "condition"
    ACTION = "action"
    LOOP = "loop"
    DELAY = "delay"
    WEBHOOK = "webhook"


class ConditionOperator(str, Enum):
    """Comparison operators for condition steps."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


class ActionKind(str, Enum):
    """Side-effecting actions an action step can perform."""

    SEND_EMAIL = "send_email"
    CREATE_RECORD = "create_record"
    UPDATE_RECORD = "update_record"
    SEND_NOTIFICATION = "send_notification"


class EntityKind(str, Enum):
    """Entity tables workflows are allowed to write to."""

    SUPPLIERS = "suppliers"
    INVENTORY_ITEMS = "inventory_items"
    PURCHASE_ORDERS = "purchase_orders"
    ORDERS = "orders"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class NotificationChannel(str, Enum):
    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"
