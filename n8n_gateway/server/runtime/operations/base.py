# n8n_gateway/server/runtime/operations/base.py
from __future__ import annotations as _annotations

import functools
import inspect
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from mcp.server.fastmcp.utilities.logging import get_logger

from n8n_gateway.client.connector import N8nConnector
from n8n_gateway.shared.exceptions import ValidationError
from n8n_gateway.types import OperationDescriptor, OperationResult

logger = get_logger(__name__)

SESSION_ARGUMENT = "clientId"

OperationInvoker = Callable[[N8nConnector, Any], Awaitable[OperationResult]]


class OperationArgs(BaseModel):
    """Base class for operation argument models.

    Subclasses declare the operation's own fields. The session id (`clientId`)
    is not part of the model; it is added to the advertised schema and checked
    by the dispatch gateway. Unknown keys are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _is_async_callable(obj: Any) -> bool:
    """Return True if obj is an async callable (function or __call__)."""
    while isinstance(obj, functools.partial):
        obj = obj.func
    return inspect.iscoroutinefunction(obj) or (
        callable(obj) and inspect.iscoroutinefunction(getattr(obj, "__call__", None))
    )


def _format_validation_errors(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class Operation(BaseModel):
    """Internal registration for one dispatchable operation.

    Pairs the argument model (used for the advertised schema and for
    validation) with the invoker that calls the connector.
    """

    name: str = Field(description="Name of the operation, as called by clients.")
    description: str = Field(default="", description="Usage guidance shown to the model.")
    args_model: type[OperationArgs] = Field(description="Declared argument model class.")
    invoke: OperationInvoker | None = Field(
        default=None,
        exclude=True,
        description="Coroutine calling the connector. None for operations the gateway handles itself.",
    )
    requires_session: bool = Field(default=True, description="Whether a `clientId` must resolve to a session.")
    mutating: bool = Field(default=False, description="Whether the operation changes backend state.")

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def input_schema(self) -> dict[str, Any]:
        """The JSON schema of the argument bag, including `clientId` when a session is needed."""
        schema = self.args_model.model_json_schema(by_alias=True)
        if not self.requires_session:
            return schema
        properties = {SESSION_ARGUMENT: {"type": "string", "title": "Client Id"}}
        properties.update(schema.get("properties", {}))
        schema["properties"] = properties
        schema["required"] = [SESSION_ARGUMENT, *schema.get("required", [])]
        return schema

    def descriptor(self) -> OperationDescriptor:
        """Generates a public-facing descriptor for this operation."""
        return OperationDescriptor(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
            mutating=self.mutating,
        )

    def validate_arguments(self, arguments: Any) -> OperationArgs:
        """Coarse validation of the raw argument bag against the argument model."""
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValidationError("arguments must be a JSON object", operation=self.name)
        bag = {k: v for k, v in arguments.items() if k != SESSION_ARGUMENT}
        try:
            return self.args_model.model_validate(bag)
        except PydanticValidationError as e:
            raise ValidationError(_format_validation_errors(e), operation=self.name) from e

    @classmethod
    def from_function(
        cls,
        fn: OperationInvoker | None,
        *,
        name: str,
        args_model: type[OperationArgs],
        description: str | None = None,
        requires_session: bool = True,
        mutating: bool = False,
    ) -> "Operation":
        """Create an Operation registration from an invoker coroutine.

        The invoker should look like:

            async def list_workflows(connector: N8nConnector, args: NoArgs) -> OperationResult: ...
        """
        if fn is not None and not _is_async_callable(fn):
            raise ValueError(f"Operation '{name}' invoker must be an async callable")
        if fn is None and requires_session:
            raise ValueError(f"Operation '{name}' needs an invoker")
        return cls(
            name=name,
            description=description or (fn.__doc__ if fn is not None else None) or "",
            args_model=args_model,
            invoke=fn,
            requires_session=requires_session,
            mutating=mutating,
        )
