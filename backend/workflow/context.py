"""Variable store shared by the steps of one workflow run."""

from dataclasses import dataclass, field
from typing import Any, Optional

from core.utils import safe_serialize
from workflow.cancellation import CancellationToken


@dataclass
class WorkflowContext:
    """What a caller supplies to start a run."""

    tenant_id: str
    user_id: str
    input_data: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepPath:
    """Location of a step run inside an execution.

    Top-level steps have no parent. Steps inside a loop body carry the
    loop's path as ``parent`` and the iteration index they ran in, so the
    string form of a nested step reads ``loop_1[2]/notify``.
    """

    step_id: str
    parent: Optional["StepPath"] = None
    iteration: Optional[int] = None

    @property
    def parent_step_id(self) -> Optional[str]:
        return self.parent.step_id if self.parent else None

    def __str__(self) -> str:
        if self.parent is None:
            return self.step_id
        return f"{self.parent}[{self.iteration}]/{self.step_id}"


def resolve_path(variables: Any, path: str) -> Any:
    """Resolve a dot-notation path like ``order.lines.0.sku``.

    Dicts are entered by key and lists/tuples by integer index. Anything
    that cannot be entered yields None; this never raises.
    """
    if not isinstance(path, str) or not path:
        return None

    current = variables
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return None
            current = current[part]
        elif isinstance(current, (list, tuple)):
            # isdecimal, not isdigit: "²" is a digit that int() rejects
            if not part.isdecimal() or int(part) >= len(current):
                return None
            current = current[int(part)]
        else:
            return None
    return current


@dataclass
class ExecutionContext:
    """Shared context passed through the entire workflow execution.

    Holds the run's variables and identity. Condition, loop and webhook
    steps write into ``variables`` in place; the last write wins.
    """

    execution_id: str
    workflow_id: str
    tenant_id: str
    user_id: str
    input_data: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    token: CancellationToken = field(default_factory=CancellationToken)

    def set_variable(self, key: str, value: Any) -> None:
        """Set a workflow variable."""
        self.variables[key] = value

    def get_variable(self, key: str, default: Any = None) -> Any:
        """Get a workflow variable."""
        return self.variables.get(key, default)

    def resolve_path(self, path: str) -> Any:
        return resolve_path(self.variables, path)

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe deep copy of the variables, as persisted on the execution."""
        return safe_serialize(self.variables)
