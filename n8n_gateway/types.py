# n8n_gateway/types.py
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

"""
n8n gateway bindings for Python
"""


def dump_resource(value: Any) -> Any:
    """Convert connector return values into plain JSON-ready data.

    Resource models are dumped with only the fields the backend actually sent,
    so unknown fields pass through untouched and absent ones are not invented.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_unset=True)
    if isinstance(value, list):
        return [dump_resource(v) for v in value]
    if isinstance(value, dict):
        return {k: dump_resource(v) for k, v in value.items()}
    return value


def format_json(value: Any) -> str:
    return json.dumps(dump_resource(value), indent=2, ensure_ascii=False)


class N8nResource(BaseModel):
    """Base class for pass-through n8n entities.

    The gateway does not interpret these shapes. Every field is optional and
    accepts any JSON value; unknown fields are kept as-is.
    """

    model_config = ConfigDict(extra="allow")


class N8nWorkflow(N8nResource):
    id: Any = None
    name: Any = None
    active: Any = None
    createdAt: Any = None
    updatedAt: Any = None
    tags: Any = None
    nodes: Any = None
    connections: Any = None
    settings: Any = None


class N8nUser(N8nResource):
    id: Any = None
    email: Any = None
    firstName: Any = None
    lastName: Any = None
    isPending: Any = None
    role: Any = None
    createdAt: Any = None
    updatedAt: Any = None


class N8nProject(N8nResource):
    id: Any = None
    name: Any = None
    type: Any = None


class N8nWorkflowList(N8nResource):
    data: list[N8nWorkflow] = Field(default_factory=list)
    nextCursor: Any = None
    """Opaque cursor from the backend. Passed through, never followed."""


class N8nUserList(N8nResource):
    data: list[N8nUser] = Field(default_factory=list)
    nextCursor: Any = None


class N8nProjectList(N8nResource):
    data: list[N8nProject] = Field(default_factory=list)
    nextCursor: Any = None


class OperationDescriptor(BaseModel):
    """Public description of one dispatchable operation."""

    name: str
    """The operation name, as called by the client (e.g. `list-workflows`)."""

    description: str = ""
    """Human-readable usage guidance."""

    inputSchema: dict[str, Any]
    """JSON schema of the argument bag."""

    mutating: bool = False

    model_config = ConfigDict(frozen=True)


class OperationResult(BaseModel):
    """The response envelope returned for every dispatched operation.

    Exactly one outcome per call: either a success carrying a payload and its
    summary text, or a failure carrying a single message.
    """

    text: str
    """Human-readable summary (formatted JSON for most successes, the message for failures)."""

    payload: Any | None = None
    """JSON-ready success content. Always None for failures."""

    isError: bool = False

    @classmethod
    def success(cls, payload: Any, summary: str | None = None) -> "OperationResult":
        data = dump_resource(payload)
        body = format_json(data)
        text = f"{summary}:\n{body}" if summary else body
        return cls(text=text, payload=data)

    @classmethod
    def confirmation(cls, message: str, payload: Any | None = None) -> "OperationResult":
        return cls(text=message, payload=dump_resource(payload) if payload is not None else {})

    @classmethod
    def failure(cls, message: str) -> "OperationResult":
        return cls(text=message, isError=True)
