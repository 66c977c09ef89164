# tests/unit/server/test_operation_catalog.py
import pytest

from n8n_gateway.server.runtime.operations import OperationCatalog, build_catalog
from n8n_gateway.server.runtime.operations.builtin import (
    CreateUsersArgs,
    CreateWorkflowArgs,
    NoArgs,
    UpdateProjectArgs,
    list_workflows,
)
from n8n_gateway.shared.exceptions import ValidationError

OPERATION_NAMES = [
    "init-n8n",
    "list-workflows",
    "get-workflow",
    "create-workflow",
    "update-workflow",
    "delete-workflow",
    "activate-workflow",
    "deactivate-workflow",
    "list-projects",
    "create-project",
    "delete-project",
    "update-project",
    "list-users",
    "create-users",
    "get-user",
    "delete-user",
]

# Required fields per operation, excluding clientId.
REQUIRED_FIELDS = {
    "init-n8n": ["url", "apiKey"],
    "list-workflows": [],
    "get-workflow": ["id"],
    "create-workflow": ["name"],
    "update-workflow": ["id", "workflow"],
    "delete-workflow": ["id"],
    "activate-workflow": ["id"],
    "deactivate-workflow": ["id"],
    "list-projects": [],
    "create-project": ["name"],
    "delete-project": ["projectId"],
    "update-project": ["projectId", "name"],
    "list-users": [],
    "create-users": ["users"],
    "get-user": ["idOrEmail"],
    "delete-user": ["idOrEmail"],
}

VALID_ARGUMENTS = {
    "init-n8n": {"url": "https://example.test", "apiKey": "k1"},
    "list-workflows": {},
    "get-workflow": {"id": "1"},
    "create-workflow": {"name": "W1"},
    "update-workflow": {"id": "1", "workflow": {"name": "W2"}},
    "delete-workflow": {"id": "1"},
    "activate-workflow": {"id": "1"},
    "deactivate-workflow": {"id": "1"},
    "list-projects": {},
    "create-project": {"name": "P"},
    "delete-project": {"projectId": "p1"},
    "update-project": {"projectId": "p1", "name": "Q"},
    "list-users": {},
    "create-users": {"users": [{"email": "a@example.test"}]},
    "get-user": {"idOrEmail": "a@example.test"},
    "delete-user": {"idOrEmail": "a@example.test"},
}


@pytest.fixture
def catalog() -> OperationCatalog:
    return build_catalog()


def test_catalog_lists_operations_in_order(catalog):
    assert [d.name for d in catalog.list_descriptors()] == OPERATION_NAMES
    assert len(catalog) == len(OPERATION_NAMES)


def test_every_operation_has_a_description(catalog):
    for descriptor in catalog.list_descriptors():
        assert descriptor.description, descriptor.name


def test_client_id_required_everywhere_but_connect(catalog):
    for descriptor in catalog.list_descriptors():
        schema = descriptor.inputSchema
        if descriptor.name == "init-n8n":
            assert "clientId" not in schema.get("properties", {})
            assert sorted(schema["required"]) == ["apiKey", "url"]
        else:
            assert schema["properties"]["clientId"] == {"type": "string", "title": "Client Id"}
            assert schema["required"][0] == "clientId"


@pytest.mark.parametrize("name", OPERATION_NAMES)
def test_advertised_required_fields(catalog, name):
    schema = catalog.get(name).input_schema
    required = [f for f in schema.get("required", []) if f != "clientId"]
    assert sorted(required) == sorted(REQUIRED_FIELDS[name])


@pytest.mark.parametrize("name", OPERATION_NAMES)
def test_valid_arguments_are_accepted(catalog, name):
    args = catalog.validate(name, {"clientId": "abc", **VALID_ARGUMENTS[name]})
    assert args is not None


@pytest.mark.parametrize(
    "name,field",
    [(name, field) for name, fields in REQUIRED_FIELDS.items() for field in fields],
)
def test_missing_required_field_is_rejected(catalog, name, field):
    arguments = {k: v for k, v in VALID_ARGUMENTS[name].items() if k != field}

    with pytest.raises(ValidationError) as exc_info:
        catalog.validate(name, arguments)

    text = exc_info.value.to_text()
    assert text.startswith(f"Invalid arguments for {name}:")
    assert field in text


def test_wrong_type_is_rejected(catalog):
    with pytest.raises(ValidationError):
        catalog.validate("create-workflow", {"name": "W1", "nodes": "not-a-list"})


def test_unknown_operation(catalog):
    with pytest.raises(ValidationError) as exc_info:
        catalog.validate("explode", {})

    assert exc_info.value.to_text() == "Unknown tool: explode"


def test_non_object_arguments_are_rejected(catalog):
    with pytest.raises(ValidationError) as exc_info:
        catalog.validate("get-workflow", ["1"])

    assert exc_info.value.to_text() == "Invalid arguments for get-workflow: arguments must be a JSON object"


def test_missing_arguments_treated_as_empty(catalog):
    assert isinstance(catalog.validate("list-workflows", None), NoArgs)


def test_nested_structures_pass_through(catalog):
    nodes = [{"type": "n8n-nodes-base.start", "anything": {"deep": [1, 2]}}]
    args = catalog.validate("create-workflow", {"name": "W1", "nodes": nodes, "connections": {"a": 1}})

    assert isinstance(args, CreateWorkflowArgs)
    assert args.nodes == nodes
    assert args.connections == {"a": 1}

    users = catalog.validate("create-users", {"users": [{"email": "a@example.test", "role": "global:owner"}]})
    assert isinstance(users, CreateUsersArgs)
    assert users.users[0]["role"] == "global:owner"


def test_aliases_and_unknown_keys(catalog):
    args = catalog.validate("update-project", {"projectId": "p1", "name": "Q", "extra": True})

    assert isinstance(args, UpdateProjectArgs)
    assert args.project_id == "p1"
    assert not hasattr(args, "extra")


def test_duplicate_registration_keeps_first(caplog):
    catalog = OperationCatalog()
    first = catalog.add_operation(list_workflows, name="list-workflows", args_model=NoArgs)
    second = catalog.add_operation(list_workflows, name="list-workflows", args_model=NoArgs, mutating=True)

    assert second is first
    assert len(catalog) == 1
    assert "Operation already exists: list-workflows" in caplog.text


def test_sync_invoker_is_refused():
    catalog = OperationCatalog()

    def not_async(connector, args):
        return None

    with pytest.raises(ValueError):
        catalog.add_operation(not_async, name="sync", args_model=NoArgs)
