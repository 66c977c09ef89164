# n8n_gateway/server/runtime/operations/builtin.py
"""The n8n operations advertised by the gateway.

Operation names are a fixed contract with existing clients and must not change.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from n8n_gateway.client.connector import N8nConnector
from n8n_gateway.types import OperationResult
from .base import OperationArgs
from .catalog import OperationCatalog

CONNECT_OPERATION = "init-n8n"

_COMPACT_JSON = "IMPORTANT: Arguments must be provided as compact, single-line JSON without whitespace or newlines."
_ENTERPRISE = "NOTE: Requires n8n Enterprise license with project management features enabled."


# ---------------------------
# Argument models
# ---------------------------
class ConnectArgs(OperationArgs):
    url: str
    api_key: str = Field(alias="apiKey")


class NoArgs(OperationArgs):
    pass


class WorkflowIdArgs(OperationArgs):
    id: str


class CreateWorkflowArgs(OperationArgs):
    name: str
    nodes: list[Any] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)


class UpdateWorkflowArgs(OperationArgs):
    id: str
    workflow: dict[str, Any] = Field(
        json_schema_extra={
            "properties": {
                "name": {"type": "string"},
                "active": {"type": "boolean"},
                "nodes": {"type": "array"},
                "connections": {"type": "object"},
                "settings": {"type": "object"},
            }
        }
    )


class ProjectNameArgs(OperationArgs):
    name: str


class ProjectIdArgs(OperationArgs):
    project_id: str = Field(alias="projectId")


class UpdateProjectArgs(OperationArgs):
    project_id: str = Field(alias="projectId")
    name: str


class CreateUsersArgs(OperationArgs):
    users: list[dict[str, Any]] = Field(
        json_schema_extra={
            "items": {
                "type": "object",
                "properties": {
                    "email": {"type": "string"},
                    "role": {"type": "string", "enum": ["global:admin", "global:member"]},
                },
                "required": ["email"],
            }
        }
    )


class UserArgs(OperationArgs):
    id_or_email: str = Field(alias="idOrEmail")


# ---------------------------
# Invokers
# ---------------------------
async def list_workflows(connector: N8nConnector, args: NoArgs) -> OperationResult:
    workflows = await connector.list_workflows()
    summary = [
        {
            "id": wf.id,
            "name": wf.name,
            "active": wf.active,
            "created": wf.createdAt,
            "updated": wf.updatedAt,
            "tags": wf.tags,
        }
        for wf in workflows.data
    ]
    return OperationResult.success(summary)


async def get_workflow(connector: N8nConnector, args: WorkflowIdArgs) -> OperationResult:
    return OperationResult.success(await connector.get_workflow(args.id))


async def create_workflow(connector: N8nConnector, args: CreateWorkflowArgs) -> OperationResult:
    workflow = await connector.create_workflow(args.name, args.nodes, args.connections)
    return OperationResult.success(workflow, "Successfully created workflow")


async def update_workflow(connector: N8nConnector, args: UpdateWorkflowArgs) -> OperationResult:
    workflow = await connector.update_workflow(args.id, args.workflow)
    return OperationResult.success(workflow, "Successfully updated workflow")


async def delete_workflow(connector: N8nConnector, args: WorkflowIdArgs) -> OperationResult:
    workflow = await connector.delete_workflow(args.id)
    return OperationResult.success(workflow, "Successfully deleted workflow")


async def activate_workflow(connector: N8nConnector, args: WorkflowIdArgs) -> OperationResult:
    workflow = await connector.activate_workflow(args.id)
    return OperationResult.success(workflow, "Successfully activated workflow")


async def deactivate_workflow(connector: N8nConnector, args: WorkflowIdArgs) -> OperationResult:
    workflow = await connector.deactivate_workflow(args.id)
    return OperationResult.success(workflow, "Successfully deactivated workflow")


async def list_projects(connector: N8nConnector, args: NoArgs) -> OperationResult:
    projects = await connector.list_projects()
    return OperationResult.success(projects.data)


async def create_project(connector: N8nConnector, args: ProjectNameArgs) -> OperationResult:
    project = await connector.create_project(args.name)
    return OperationResult.confirmation(f"Successfully created project: {args.name}", project)


async def delete_project(connector: N8nConnector, args: ProjectIdArgs) -> OperationResult:
    await connector.delete_project(args.project_id)
    return OperationResult.confirmation(f"Successfully deleted project with ID: {args.project_id}")


async def update_project(connector: N8nConnector, args: UpdateProjectArgs) -> OperationResult:
    await connector.update_project(args.project_id, args.name)
    return OperationResult.confirmation(
        f"Successfully updated project {args.project_id} with new name: {args.name}"
    )


async def list_users(connector: N8nConnector, args: NoArgs) -> OperationResult:
    users = await connector.list_users()
    return OperationResult.success(users.data)


async def create_users(connector: N8nConnector, args: CreateUsersArgs) -> OperationResult:
    return OperationResult.success(await connector.create_users(args.users))


async def get_user(connector: N8nConnector, args: UserArgs) -> OperationResult:
    return OperationResult.success(await connector.get_user(args.id_or_email))


async def delete_user(connector: N8nConnector, args: UserArgs) -> OperationResult:
    await connector.delete_user(args.id_or_email)
    return OperationResult.confirmation(f"Successfully deleted user: {args.id_or_email}")


def register_builtin_operations(catalog: OperationCatalog) -> OperationCatalog:
    """Register every n8n operation, in the order they are advertised."""
    catalog.add_operation(
        None,
        name=CONNECT_OPERATION,
        args_model=ConnectArgs,
        requires_session=False,
        description=(
            "Initialize connection to n8n instance. Use this tool whenever an n8n URL and API key "
            f"are shared to establish the connection. {_COMPACT_JSON}"
        ),
    )
    catalog.add_operation(
        list_workflows,
        name="list-workflows",
        args_model=NoArgs,
        description=f"List all workflows from n8n. Use after init-n8n to see available workflows. {_COMPACT_JSON}",
    )
    catalog.add_operation(
        get_workflow,
        name="get-workflow",
        args_model=WorkflowIdArgs,
        description=(
            "Retrieve a workflow by ID. Use after list-workflows to get detailed information "
            f"about a specific workflow. {_COMPACT_JSON}"
        ),
    )
    catalog.add_operation(
        create_workflow,
        name="create-workflow",
        args_model=CreateWorkflowArgs,
        mutating=True,
        description=(
            "Create a new workflow in n8n. Use to set up a new workflow with optional nodes and connections. "
            f"IMPORTANT: 1) {_COMPACT_JSON.removeprefix('IMPORTANT: ')} 2) Must provide full workflow "
            "structure including nodes and connections arrays, even if empty. The 'active' property "
            "should not be included as it is read-only."
        ),
    )
    catalog.add_operation(
        update_workflow,
        name="update-workflow",
        args_model=UpdateWorkflowArgs,
        mutating=True,
        description=(
            "Update an existing workflow in n8n. Use after get-workflow to modify a workflow's "
            f"properties, nodes, or connections. {_COMPACT_JSON}"
        ),
    )
    catalog.add_operation(
        delete_workflow,
        name="delete-workflow",
        args_model=WorkflowIdArgs,
        mutating=True,
        description=f"Delete a workflow by ID. This action cannot be undone. {_COMPACT_JSON}",
    )
    catalog.add_operation(
        activate_workflow,
        name="activate-workflow",
        args_model=WorkflowIdArgs,
        mutating=True,
        description=f"Activate a workflow by ID. This will enable the workflow to run. {_COMPACT_JSON}",
    )
    catalog.add_operation(
        deactivate_workflow,
        name="deactivate-workflow",
        args_model=WorkflowIdArgs,
        mutating=True,
        description=(
            f"Deactivate a workflow by ID. This will prevent the workflow from running. {_COMPACT_JSON}"
        ),
    )
    catalog.add_operation(
        list_projects,
        name="list-projects",
        args_model=NoArgs,
        description=f"List all projects from n8n. {_ENTERPRISE} {_COMPACT_JSON}",
    )
    catalog.add_operation(
        create_project,
        name="create-project",
        args_model=ProjectNameArgs,
        mutating=True,
        description=f"Create a new project in n8n. {_ENTERPRISE} {_COMPACT_JSON}",
    )
    catalog.add_operation(
        delete_project,
        name="delete-project",
        args_model=ProjectIdArgs,
        mutating=True,
        description=f"Delete a project by ID. {_ENTERPRISE} {_COMPACT_JSON}",
    )
    catalog.add_operation(
        update_project,
        name="update-project",
        args_model=UpdateProjectArgs,
        mutating=True,
        description=f"Update a project's name. {_ENTERPRISE} {_COMPACT_JSON}",
    )
    catalog.add_operation(
        list_users,
        name="list-users",
        args_model=NoArgs,
        description="Retrieve all users from your instance. Only available for the instance owner.",
    )
    catalog.add_operation(
        create_users,
        name="create-users",
        args_model=CreateUsersArgs,
        mutating=True,
        description="Create one or more users in your instance.",
    )
    catalog.add_operation(
        get_user,
        name="get-user",
        args_model=UserArgs,
        description="Get user by ID or email address.",
    )
    catalog.add_operation(
        delete_user,
        name="delete-user",
        args_model=UserArgs,
        mutating=True,
        description="Delete a user from your instance.",
    )
    return catalog


def build_catalog() -> OperationCatalog:
    return register_builtin_operations(OperationCatalog())
