"""
Step Handler Registry — maps each step kind to its handler.

The interpreter resolves handlers only through this registry, so a kind
without a registered handler fails with UnknownStepTypeError.
"""

from typing import Optional

from core.constants import StepKind
from core.exceptions import UnknownStepTypeError
from steps.base import StepHandler


class StepHandlerRegistry:
    """Central registry for step handler instances."""

    def __init__(self, handlers: Optional[list[StepHandler]] = None):
        self._handlers: dict[StepKind, StepHandler] = {}
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: StepHandler) -> None:
        """Register (or replace) the handler for ``handler.kind``."""
        self._handlers[handler.kind] = handler

    def get(self, kind: StepKind) -> Optional[StepHandler]:
        return self._handlers.get(kind)

    def resolve(self, kind: StepKind) -> StepHandler:
        handler = self._handlers.get(kind)
        if handler is None:
            raise UnknownStepTypeError(getattr(kind, "value", kind))
        return handler

    def list_all(self) -> list:
        """List all registered step kinds with metadata."""
        return [
            {
                "kind": kind.value,
                "display_name": handler.display_name,
                "description": handler.description,
            }
            for kind, handler in self._handlers.items()
        ]

    @property
    def available_kinds(self) -> list[StepKind]:
        return list(self._handlers.keys())
