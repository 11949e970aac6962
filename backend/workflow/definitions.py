"""Typed workflow definitions.

Stored workflows keep their steps as loosely-typed JSON. Before a run,
``load_definition`` turns every step (including nested loop bodies) into
one of the per-kind config models below, rejecting unknown step kinds,
operators, actions and entity tables up front so no step with a side
effect runs for a workflow that cannot finish.

Stored step shape::

    {
        "id": "check_stock",
        "type": "condition",
        "config": {"path": "item.quantity", "operator": "less_than", "value": 10},
        "nextStepId": "notify_buyer"      # stored, never followed
    }
"""

from typing import Any, Callable, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from core.constants import (
    ActionKind,
    ConditionOperator,
    EntityKind,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    StepKind,
)
from core.exceptions import (
    InvalidWorkflowDefinitionError,
    MissingParametersError,
    UnknownOperatorError,
    UnknownStepTypeError,
    UnsupportedActionError,
    UnsupportedEntityError,
)
from workflow.models import DEFAULT_NOTIFICATION_CHANNELS, StoredWorkflow

DEFAULT_MAX_ITERATIONS = 100


class _Definition(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# ─── Step configs ─────────────────────────────────────────────

class ConditionConfig(_Definition):
    path: str = Field(validation_alias=AliasChoices("path", "condition"))
    operator: ConditionOperator
    value: Any = None


class SendEmailParameters(_Definition):
    to: Union[str, list[str]]
    subject: str
    body: str
    from_address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("from_address", "from")
    )


class CreateRecordParameters(_Definition):
    table: EntityKind
    data: dict[str, Any]


class UpdateRecordParameters(_Definition):
    table: EntityKind
    record_id: Union[str, int] = Field(validation_alias=AliasChoices("record_id", "id"))
    data: dict[str, Any]


class RecipientConfig(_Definition):
    """A notification recipient: a bare user id or ``{"userId", "channels"}``."""

    user_id: str = Field(min_length=1, validation_alias=AliasChoices("user_id", "userId"))
    channels: tuple[NotificationChannel, ...] = DEFAULT_NOTIFICATION_CHANNELS

    @model_validator(mode="before")
    @classmethod
    def from_user_id(cls, value: Any) -> Any:
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return {"user_id": value}
        return value

    @field_validator("user_id", mode="before")
    @classmethod
    def numeric_user_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("channels", mode="before")
    @classmethod
    def default_channels(cls, value: Any) -> Any:
        return value or DEFAULT_NOTIFICATION_CHANNELS


class SendNotificationParameters(_Definition):
    recipients: tuple[RecipientConfig, ...]
    title: str
    message: str
    type: NotificationType = NotificationType.INFO
    category: str = "workflow"
    priority: NotificationPriority = NotificationPriority.MEDIUM


ActionParameters = Union[
    SendEmailParameters,
    CreateRecordParameters,
    UpdateRecordParameters,
    SendNotificationParameters,
]


class ActionConfig(_Definition):
    action: ActionKind
    parameters: ActionParameters


class LoopConfig(_Definition):
    collection: str
    max_iterations: int = Field(
        default=DEFAULT_MAX_ITERATIONS,
        ge=0,
        validation_alias=AliasChoices("max_iterations", "maxIterations"),
    )
    steps: tuple["Step", ...] = ()


class DelayConfig(_Definition):
    duration: float = Field(default=0, ge=0, description="Milliseconds")


class WebhookConfig(_Definition):
    url: str
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @field_validator("method")
    @classmethod
    def _upper_method(cls, value: str) -> str:
        return value.upper()


StepConfig = Union[ConditionConfig, ActionConfig, LoopConfig, DelayConfig, WebhookConfig]


class Step(_Definition):
    id: str
    kind: StepKind = Field(validation_alias=AliasChoices("kind", "type"))
    config: StepConfig
    # Branch targets are kept on the definition but the interpreter walks
    # steps strictly in list order and never reads them.
    next_step_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("next_step_id", "nextStepId")
    )
    condition_step_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("condition_step_id", "conditionStepId"),
    )


LoopConfig.model_rebuild()


class WorkflowDefinition(_Definition):
    id: str
    tenant_id: str
    name: str = ""
    variables: dict[str, Any] = Field(default_factory=dict)
    steps: tuple[Step, ...] = ()


# ─── Loading ──────────────────────────────────────────────────

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _require(parameters: dict, purpose: str, *names: str) -> None:
    if any(_is_blank(parameters.get(name)) for name in names):
        raise MissingParametersError(purpose, names)


def _entity(table: Any) -> EntityKind:
    try:
        return EntityKind(table)
    except ValueError:
        raise UnsupportedEntityError(table) from None


def _build(model: type[_Definition], step_id: str, data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidWorkflowDefinitionError(
            f"Step {step_id}: invalid {location or 'config'}: {first['msg']}"
        ) from e


def _parse_condition(step_id: str, config: dict, **_: Any) -> ConditionConfig:
    operator = config.get("operator")
    if not isinstance(operator, str) or operator not in {op.value for op in ConditionOperator}:
        raise UnknownOperatorError(operator)
    return _build(ConditionConfig, step_id, config)


def _parse_action(step_id: str, config: dict, **_: Any) -> ActionConfig:
    try:
        action = ActionKind(config.get("action"))
    except ValueError:
        raise UnsupportedActionError(config.get("action")) from None

    parameters = config.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise InvalidWorkflowDefinitionError(f"Step {step_id}: parameters must be an object")

    if action == ActionKind.SEND_EMAIL:
        _require(parameters, "email", "to", "subject", "body")
        params = _build(SendEmailParameters, step_id, parameters)
    elif action == ActionKind.CREATE_RECORD:
        _require(parameters, "record creation", "table", "data")
        _entity(parameters["table"])
        params = _build(CreateRecordParameters, step_id, parameters)
    elif action == ActionKind.UPDATE_RECORD:
        _require(parameters, "record update", "table", "id", "data")
        _entity(parameters["table"])
        params = _build(UpdateRecordParameters, step_id, parameters)
    else:
        _require(parameters, "notification", "recipients", "title", "message")
        params = _build(SendNotificationParameters, step_id, parameters)

    return ActionConfig(action=action, parameters=params)


def _parse_loop(step_id: str, config: dict, *, max_iterations: int) -> LoopConfig:
    body = config.get("steps") or []
    if not isinstance(body, list):
        raise InvalidWorkflowDefinitionError(f"Step {step_id}: loop steps must be a list")
    data = {k: v for k, v in config.items() if k != "steps"}
    data.setdefault("max_iterations", data.pop("maxIterations", max_iterations))
    loop = _build(LoopConfig, step_id, data)
    return loop.model_copy(
        update={"steps": tuple(parse_step(raw, max_iterations=max_iterations) for raw in body)}
    )


def _parse_delay(step_id: str, config: dict, **_: Any) -> DelayConfig:
    return _build(DelayConfig, step_id, config)


def _parse_webhook(step_id: str, config: dict, **_: Any) -> WebhookConfig:
    return _build(WebhookConfig, step_id, config)


_CONFIG_PARSERS: dict[StepKind, Callable[..., Any]] = {
    StepKind.CONDITION: _parse_condition,
    StepKind.ACTION: _parse_action,
    StepKind.LOOP: _parse_loop,
    StepKind.DELAY: _parse_delay,
    StepKind.WEBHOOK: _parse_webhook,
}


def parse_step(raw: Any, *, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> Step:
    """Validate one stored step (and any nested loop body) into a ``Step``."""
    if not isinstance(raw, dict) or _is_blank(raw.get("id")):
        raise InvalidWorkflowDefinitionError(f"Step definition without an id: {raw!r}")

    step_id = str(raw["id"])
    raw_kind = raw.get("type", raw.get("kind"))
    try:
        kind = StepKind(raw_kind)
    except ValueError:
        raise UnknownStepTypeError(raw_kind) from None

    config = raw.get("config") or {}
    if not isinstance(config, dict):
        raise InvalidWorkflowDefinitionError(f"Step {step_id}: config must be an object")

    parsed = _CONFIG_PARSERS[kind](step_id, config, max_iterations=max_iterations)
    return Step(
        id=step_id,
        kind=kind,
        config=parsed,
        next_step_id=raw.get("nextStepId", raw.get("next_step_id")),
        condition_step_id=raw.get("conditionStepId", raw.get("condition_step_id")),
    )


def load_definition(
    stored: StoredWorkflow, *, max_iterations: int = DEFAULT_MAX_ITERATIONS
) -> WorkflowDefinition:
    """Validate a stored workflow into an immutable ``WorkflowDefinition``.

    Args:
        stored: Workflow row returned by the repository
        max_iterations: Loop cap used when a loop step does not set one

    Raises:
        UnknownStepTypeError, UnknownOperatorError, UnsupportedActionError,
        MissingParametersError, UnsupportedEntityError,
        InvalidWorkflowDefinitionError
    """
    return WorkflowDefinition(
        id=stored.id,
        tenant_id=stored.tenant_id,
        name=stored.name,
        variables=dict(stored.variables or {}),
        steps=tuple(parse_step(raw, max_iterations=max_iterations) for raw in stored.steps),
    )
