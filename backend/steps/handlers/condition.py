"""Condition step — compare a context variable and record the outcome.

The result is written to ``<step_id>_result``. No branching happens here;
later steps observe the result only by reading that variable.
"""

from numbers import Number
from typing import Any, Callable

from core.constants import ConditionOperator, StepKind
from core.exceptions import UnknownOperatorError
from steps.base import StepHandler, StepScope
from workflow.context import ExecutionContext
from workflow.definitions import ConditionConfig, Step


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def strict_equals(actual: Any, expected: Any) -> bool:
    """Equality without cross-type coercion (``True`` never equals ``1``)."""
    if _is_number(actual) and _is_number(expected):
        return actual == expected
    if type(actual) is not type(expected):
        return False
    return actual == expected


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(actual: Any, expected: Any) -> bool:
        try:
            return bool(op(actual, expected))
        except TypeError:
            # Incomparable operands (None vs number, str vs int) never match
            return False

    return compare


def as_text(value: Any) -> str:
    """Text form used by ``contains``.

    Integral floats drop the fraction (``5.0`` reads ``5``) and lists join
    their items with commas (``[1, 2]`` reads ``1,2``). ``None`` is empty and
    booleans are lowercase. Dicts keep their Python ``str()`` form.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(as_text(item) for item in value)
    return str(value)


OPERATORS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: strict_equals,
    ConditionOperator.NOT_EQUALS: lambda a, b: not strict_equals(a, b),
    ConditionOperator.GREATER_THAN: _ordered(lambda a, b: a > b),
    ConditionOperator.LESS_THAN: _ordered(lambda a, b: a < b),
    ConditionOperator.CONTAINS: lambda a, b: as_text(b) in as_text(a),
}


def evaluate(operator: ConditionOperator, actual: Any, expected: Any) -> bool:
    compare = OPERATORS.get(operator)
    if compare is None:
        raise UnknownOperatorError(getattr(operator, "value", operator))
    return compare(actual, expected)


class ConditionHandler(StepHandler):
    kind = StepKind.CONDITION
    display_name = "Condition"
    description = "Compare a variable against a value and store the boolean result"

    async def execute(self, step: Step, context: ExecutionContext, scope: StepScope) -> None:
        config: ConditionConfig = step.config
        actual = context.resolve_path(config.path)
        context.set_variable(f"{step.id}_result", evaluate(config.operator, actual, config.value))
