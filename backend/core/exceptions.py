"""Custom exceptions for the workflow engine."""

from typing import Iterable


class WorkflowEngineError(Exception):
    """Base exception for the workflow engine."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(WorkflowEngineError):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize NotFoundError with 404 status code."""
        super().__init__(message, 404)


class ValidationError(WorkflowEngineError):
    """Validation error exception."""

    def __init__(self, message: str = "Validation failed"):
        """Initialize ValidationError with 422 status code."""
        super().__init__(message, 422)


# ─── Definition / dispatch errors ─────────────────────────────

class WorkflowNotFoundError(NotFoundError):
    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} not found")


class InvalidWorkflowDefinitionError(ValidationError):
    """A stored step could not be turned into a typed definition."""


class UnknownStepTypeError(ValidationError):
    def __init__(self, step_type: object):
        self.step_type = step_type
        super().__init__(f"Unknown step type: {step_type}")


class UnknownOperatorError(ValidationError):
    def __init__(self, operator: object):
        self.operator = operator
        super().__init__(f"Unknown operator: {operator}")


class UnsupportedActionError(ValidationError):
    def __init__(self, action: object):
        self.action = action
        super().__init__(f"Unknown action: {action}")


class MissingParametersError(ValidationError):
    def __init__(self, purpose: str, required: Iterable[str]):
        self.required = list(required)
        super().__init__(
            f"Missing required {purpose} parameters: {', '.join(self.required)}"
        )


class UnsupportedEntityError(ValidationError):
    def __init__(self, table: object):
        self.table = table
        super().__init__(f"Unsupported table: {table}")


class NotAnArrayError(ValidationError):
    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(f"Collection {collection} is not an array")


class UnsafeWebhookUrlError(ValidationError):
    """Webhook URL targets a scheme or host that is not allowed."""


# ─── Runtime errors ───────────────────────────────────────────

class WebhookFailedError(WorkflowEngineError):
    """Webhook endpoint answered with a non-success status."""

    def __init__(self, status: int, text: str):
        self.status = status
        self.text = text
        super().__init__(f"Webhook failed: {status} {text}", 502)


class ExecutionCancelledError(WorkflowEngineError):
    def __init__(self, message: str = "Execution cancelled"):
        super().__init__(message, 409)


class ExecutionTimeoutError(WorkflowEngineError):
    def __init__(self, message: str = "Execution deadline exceeded"):
        super().__init__(message, 504)
