# n8n_gateway/server/runtime/operations/catalog.py
from __future__ import annotations as _annotations

from typing import Any

from mcp.server.fastmcp.utilities.logging import get_logger

from n8n_gateway.shared.exceptions import ValidationError
from n8n_gateway.types import OperationDescriptor
from .base import Operation, OperationArgs, OperationInvoker

logger = get_logger(__name__)


class OperationCatalog:
    """Registry of the operations the gateway can dispatch.

    Built once at start-up; the surrounding protocol layer enumerates it to
    advertise tools, and the dispatch gateway looks operations up by name.
    """

    def __init__(self, warn_on_duplicate_operations: bool = True):
        self._operations: dict[str, Operation] = {}
        self.warn_on_duplicate_operations = warn_on_duplicate_operations

    def get(self, name: str) -> Operation | None:
        """Get an operation by name."""
        return self._operations.get(name)

    def resolve(self, name: str) -> Operation:
        """Get an operation by name or raise ValidationError."""
        op = self.get(name)
        if op is None:
            raise ValidationError(f"Unknown tool: {name}")
        return op

    def list(self) -> list[Operation]:
        """All registered operations, in registration order."""
        return list(self._operations.values())

    def list_descriptors(self) -> list[OperationDescriptor]:
        """List all registered operations (no pagination)."""
        return [op.descriptor() for op in self._operations.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def add_operation(
        self,
        fn: OperationInvoker | None,
        *,
        name: str,
        args_model: type[OperationArgs],
        description: str | None = None,
        requires_session: bool = True,
        mutating: bool = False,
    ) -> Operation:
        """Register an operation invoker."""
        op = Operation.from_function(
            fn,
            name=name,
            args_model=args_model,
            description=description,
            requires_session=requires_session,
            mutating=mutating,
        )

        existing = self._operations.get(op.name)
        if existing:
            if self.warn_on_duplicate_operations:
                logger.warning("Operation already exists: %s", op.name)
            return existing

        self._operations[op.name] = op
        return op

    def validate(self, name: str, arguments: Any) -> OperationArgs:
        """Validate an argument bag for `name`.

        Returns the parsed argument model. Raises ValidationError for unknown
        operations and for missing or ill-typed top-level fields.
        """
        return self.resolve(name).validate_arguments(arguments)
