"""MCP tool handlers for Productive.io.

All handlers follow a consistent pattern:
- Accept: arguments dict, ProductiveClient, and the WorkspaceConfig
- Validate arguments against the matching pydantic model in ``schemas``
- Build JSON:API params or payload and call the client
- Return: list[TextContent], rendered as markdown or JSON and truncated

``run_tool`` is the single entry point used by the server. It never raises:
every failure becomes an ``isError`` result with an ``Error:`` message.
"""
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from mcp.types import CallToolResult, TextContent
from pydantic import ValidationError

from . import formatters, uploads
from .client import ProductiveClient
from .config import WorkspaceConfig
from .errors import ErrorKind, ProductiveAPIError
from .jsonapi import first_resource, relationship, relationship_ids, resource_list, total_count
from .richtext import markdown_to_doc_json, markdown_to_html
from .schemas import (
    AuditProjectBudgetsArgs,
    CloseBudgetArgs,
    CopyTaskListArgs,
    CreatePageArgs,
    CreateRevenueDistributionArgs,
    CreateServiceArgs,
    CreateServiceTypeArgs,
    CreateTaskArgs,
    CreateTaskDependencyArgs,
    CreateTaskListArgs,
    CreateTasksBatchArgs,
    CreateTodoArgs,
    DeletePageArgs,
    DeleteRevenueDistributionArgs,
    DeleteTaskDependencyArgs,
    DeleteTaskListArgs,
    DeleteTodoArgs,
    ExtendRevenueDistributionArgs,
    GetBudgetArgs,
    GetPageArgs,
    GetRevenueDistributionArgs,
    GetServiceArgs,
    GetTaskArgs,
    GetTaskDependencyArgs,
    GetTaskListArgs,
    GetTodoArgs,
    ListAttachmentsArgs,
    ListBoardsArgs,
    ListBudgetsArgs,
    ListCommentsArgs,
    ListPagesArgs,
    ListPeopleArgs,
    ListProjectsArgs,
    ListRevenueDistributionsArgs,
    ListServicesArgs,
    ListServiceTypesArgs,
    ListSubtasksArgs,
    ListTaskDependenciesArgs,
    ListTaskListsArgs,
    ListTodosArgs,
    MarkAsBlockedByArgs,
    MarkAsDuplicateArgs,
    MarkBudgetDeliveredArgs,
    MoveTaskListArgs,
    RateLimitStatusArgs,
    ReportOverdueDistributionsArgs,
    RepositionTaskListArgs,
    SearchPagesArgs,
    SearchTasksArgs,
    ServiceTypeArgs,
    TaskListActionArgs,
    UpdateBudgetArgs,
    UpdatePageArgs,
    UpdateRevenueDistributionArgs,
    UpdateServiceArgs,
    UpdateServiceTypeArgs,
    UpdateTaskArgs,
    UpdateTaskDependencyArgs,
    UpdateTaskListArgs,
    UpdateTodoArgs,
    UploadAttachmentArgs,
)

logger = logging.getLogger("productive-mcp.handlers")

TASK_INCLUDE = "project,task_list,assignee,workflow_status,attachments"
BUDGET_INCLUDE = "project,company,responsible"
SERVICE_INCLUDE = "deal,service_type,person"
COMMENT_INCLUDE = "creator,task"
DEPENDENCY_INCLUDE = "task,dependent_task"
DISTRIBUTION_INCLUDE = "deal,deal.project"

# Productive lists projects 30 per page; archived filtering happens client-side
PROJECT_PAGE_SIZE = 30
TODO_PAGE_SIZE = 200
DEPENDENCY_PAGE_SIZE = 200

BLOCKED_STATUS = "Blocked"
DUPLICATE_STATUS = "Obsolete / Won't Fix"

Handler = Callable[[dict, ProductiveClient, WorkspaceConfig], Awaitable[list[TextContent]]]


def _respond(data: Any, response_format: str, markdown: Optional[Callable[[], str]] = None) -> list[TextContent]:
    text = formatters.render(data, response_format, markdown)
    return [TextContent(type="text", text=formatters.truncate_response(text, response_format))]


def _page_params(args) -> dict:
    return {"page[number]": args.page_number, "page[size]": args.limit}


# ============================================================================
# Task payload helpers
# ============================================================================

def _custom_fields(
    workspace: WorkspaceConfig,
    task_type: Optional[str],
    priority: Optional[str],
    strict_task_type: bool = True,
) -> dict:
    """Map task type and priority names to custom field option IDs.

    Raises:
        ValueError: If strict_task_type and the task type has no configured option ID
    """
    fields = {}
    field_ids = workspace.custom_field_ids

    if task_type is not None:
        option_id = workspace.task_type_options.get(task_type)
        if option_id and field_ids.task_type:
            fields[field_ids.task_type] = option_id
        elif strict_task_type:
            raise ValueError(
                f'Task type "{task_type}" does not have a configured option ID. '
                "Run productive-mcp-setup to refresh productive.config.json."
            )
        else:
            logger.warning(f'Task type "{task_type}" is not configured. Skipping task type field.')

    if priority is not None:
        option_id = workspace.priority_options.get(priority)
        if option_id and field_ids.priority:
            fields[field_ids.priority] = option_id
        else:
            logger.warning(f'Priority "{priority}" is not configured in Productive. Skipping priority field.')

    return fields


def _workflow_status(workspace: WorkspaceConfig, name: str) -> Optional[dict]:
    status_id = workspace.workflow_status_ids.get(name)
    if not status_id:
        logger.warning(f'Workflow status "{name}" is not configured. Skipping status field.')
        return None
    return relationship("workflow_statuses", status_id)


def _todo_payload(task_id: str, description: str, due_date=None, assignee_id=None, closed=None) -> dict:
    attributes: dict[str, Any] = {"description": description}
    if due_date:
        attributes["due_date"] = due_date
    if closed is not None:
        attributes["closed"] = closed

    relationships = {"task": relationship("tasks", task_id)}
    if assignee_id:
        relationships["assignee"] = relationship("people", assignee_id)

    return {"data": {"type": "todos", "attributes": attributes, "relationships": relationships}}


# ============================================================================
# Project, Task List, Board and People Handlers
# ============================================================================

async def handle_list_projects(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """List projects, filtering archived ones client-side.

    The API has no archived filter, so every page is fetched before the
    status filter and the offset/limit slice are applied.
    """
    args = ListProjectsArgs.model_validate(arguments)
    resources, included = await client.fetch_all_pages(
        "/projects", {"include": "company"}, page_size=PROJECT_PAGE_SIZE
    )
    projects = [formatters.format_project(project, included) for project in resources]

    if args.status == "archived":
        projects = [project for project in projects if project["archived"]]
    elif args.status == "active":
        projects = [project for project in projects if not project["archived"]]

    page = projects[args.offset:args.offset + args.limit]
    logger.info(f"Listed {len(page)} of {len(projects)} {args.status} projects")
    return _respond(page, args.response_format, lambda: formatters.project_list_markdown(page))


async def handle_list_task_lists(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListTaskListsArgs.model_validate(arguments)
    params = {"filter[project_id]": args.project_id, "filter[board_id]": args.board_id}
    if not args.include_inactive:
        # 1 = active, 2 = archived
        params["filter[status]"] = "1"

    response = await client.get("/task_lists", params)
    task_lists = [
        {**formatters.format_task_list(task_list), "sort_order": index + 1}
        for index, task_list in enumerate(resource_list(response))
    ]
    return _respond(task_lists, args.response_format, lambda: formatters.task_lists_markdown(task_lists))


async def handle_get_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetTaskListArgs.model_validate(arguments)
    response = await client.get(f"/task_lists/{args.task_list_id}")
    task_list = formatters.format_task_list(first_resource(response))
    return _respond(task_list, args.response_format, lambda: formatters.single_task_list_markdown(task_list))


async def _default_board_id(client: ProductiveClient, project_id: str) -> str:
    """First board of the project, used when no board_id is given."""
    response = await client.get("/boards", {"filter[project_id]": project_id})
    boards = resource_list(response)
    if not boards:
        raise ValueError("Project has no boards. Please create a board first in Productive.")
    return str(boards[0]["id"])


def _task_list_result(response: dict, response_format: str, verb: str) -> list[TextContent]:
    task_list = formatters.format_task_list(first_resource(response))
    return _respond(
        task_list, response_format,
        lambda: f"Task list {verb} successfully:\n\n{formatters.single_task_list_markdown(task_list)}",
    )


async def handle_create_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateTaskListArgs.model_validate(arguments)
    board_id = args.board_id or await _default_board_id(client, args.project_id)
    payload = {"data": {
        "type": "task_lists",
        "attributes": {"name": args.name},
        "relationships": {
            "project": relationship("projects", args.project_id),
            "board": relationship("boards", board_id),
        },
    }}
    response = await client.post("/task_lists", payload)
    logger.info(f"Created task list {args.name!r} on board {board_id}")
    return _task_list_result(response, args.response_format, "created")


async def handle_update_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateTaskListArgs.model_validate(arguments)
    payload = {"data": {"type": "task_lists", "id": args.task_list_id, "attributes": {"name": args.name}}}
    response = await client.patch(f"/task_lists/{args.task_list_id}", payload)
    return _task_list_result(response, args.response_format, "updated")


async def handle_archive_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = TaskListActionArgs.model_validate(arguments)
    response = await client.patch(f"/task_lists/{args.task_list_id}/archive", {})
    logger.info(f"Archived task list {args.task_list_id}")
    return _task_list_result(response, args.response_format, "archived")


async def handle_restore_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = TaskListActionArgs.model_validate(arguments)
    response = await client.patch(f"/task_lists/{args.task_list_id}/restore", {})
    logger.info(f"Restored task list {args.task_list_id}")
    return _task_list_result(response, args.response_format, "restored")


async def handle_delete_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Delete a task list; a 404 means the API does not allow it and archiving is suggested."""
    args = DeleteTaskListArgs.model_validate(arguments)
    try:
        await client.delete(f"/task_lists/{args.task_list_id}")
    except ProductiveAPIError as e:
        if e.status_code == 404:
            raise ProductiveAPIError(
                "Error: Delete operation not supported for task lists. "
                "Use productive_archive_task_list instead to deactivate the task list.",
                status_code=404,
                kind=e.kind,
                cause=e,
            ) from e
        raise
    logger.info(f"Deleted task list {args.task_list_id}")
    return [TextContent(type="text", text=f"Task list {args.task_list_id} deleted successfully.")]


async def handle_reposition_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = RepositionTaskListArgs.model_validate(arguments)
    payload = {"data": {"type": "task_lists", "attributes": {"move_before_id": int(args.move_before_id)}}}
    response = await client.patch(f"/task_lists/{args.task_list_id}/reposition", payload)
    return _task_list_result(response, args.response_format, "repositioned")


async def handle_move_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = MoveTaskListArgs.model_validate(arguments)
    payload = {"data": {"type": "task_lists", "relationships": {"board": relationship("boards", args.board_id)}}}
    response = await client.patch(f"/task_lists/{args.task_list_id}/move", payload)
    logger.info(f"Moved task list {args.task_list_id} to board {args.board_id}")
    return _task_list_result(response, args.response_format, "moved")


async def handle_copy_task_list(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CopyTaskListArgs.model_validate(arguments)
    board_id = args.board_id or await _default_board_id(client, args.project_id)
    payload = {"data": {
        "type": "task_lists",
        "attributes": {
            "template_id": int(args.template_id),
            "name": args.name,
            "copy_open_tasks": args.copy_open_tasks,
            "copy_assignees": args.copy_assignees,
        },
        "relationships": {
            "project": relationship("projects", args.project_id),
            "board": relationship("boards", board_id),
        },
    }}
    response = await client.post("/task_lists/copy", payload)
    logger.info(f"Copied task list {args.template_id} as {args.name!r}")
    return _task_list_result(response, args.response_format, "copied")


async def handle_list_boards(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListBoardsArgs.model_validate(arguments)
    response = await client.get("/boards", {"filter[project_id]": args.project_id})
    boards = [formatters.format_board(board) for board in resource_list(response)]
    return _respond(boards, args.response_format, lambda: formatters.boards_markdown(boards))


async def handle_list_people(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListPeopleArgs.model_validate(arguments)
    response = await client.get("/people", _page_params(args))
    people = [formatters.format_person(person) for person in resource_list(response)]
    return _respond(people, args.response_format, lambda: formatters.people_markdown(people))


# ============================================================================
# Task Handlers
# ============================================================================

async def handle_create_task(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Create a task, then any checklist todos.

    Todo failures are logged and do not fail the task creation.
    """
    args = CreateTaskArgs.model_validate(arguments)

    attributes: dict[str, Any] = {"title": args.title}
    if args.description:
        attributes["description"] = markdown_to_html(args.description)
    if args.due_date:
        attributes["due_date"] = args.due_date
    if args.start_date:
        attributes["start_date"] = args.start_date
    if args.initial_estimate is not None:
        attributes["initial_estimate"] = args.initial_estimate

    custom_fields = _custom_fields(workspace, args.task_type, args.priority)
    if custom_fields:
        attributes["custom_fields"] = custom_fields
    if args.labels:
        attributes["label_list"] = args.labels

    relationships = {
        "project": relationship("projects", args.project_id),
        "task_list": relationship("task_lists", args.task_list_id),
    }
    if args.assignee_id:
        relationships["assignee"] = relationship("people", args.assignee_id)
    if args.parent_task_id:
        relationships["parent_task"] = relationship("tasks", args.parent_task_id)
    if args.workflow_status:
        status = _workflow_status(workspace, args.workflow_status)
        if status:
            relationships["workflow_status"] = status

    payload = {"data": {"type": "tasks", "attributes": attributes, "relationships": relationships}}
    response = await client.post("/tasks", payload, {"include": TASK_INCLUDE})
    task = formatters.format_task(first_resource(response), client.org_id, response.get("included"), workspace)
    logger.info(f"Created task {task['id']}: {task['title']}")

    if args.todos:
        logger.info(f"Creating {len(args.todos)} todo items for task {task['id']}...")
        for index, todo in enumerate(args.todos, start=1):
            try:
                await client.post("/todos", _todo_payload(
                    task["id"], todo.description, todo.due_date, todo.assignee_id, todo.closed
                ))
                logger.info(f"Created todo {index}/{len(args.todos)}: {todo.description}")
            except ProductiveAPIError as e:
                logger.error(f"Failed to create todo {index}: {e.message}")

    return _respond(task, args.response_format, lambda: formatters.task_markdown(task, "Task Created"))


async def handle_search_tasks(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = SearchTasksArgs.model_validate(arguments)
    params = {
        **_page_params(args),
        "include": TASK_INCLUDE,
        "filter[title]": args.query or None,
        "filter[project_id]": args.project_id,
        "filter[assignee_id]": args.assignee_id,
    }
    if args.closed is not None:
        # 1 = open, 2 = closed
        params["filter[status]"] = 2 if args.closed else 1

    response = await client.get("/tasks", params)
    included = response.get("included")
    tasks = [formatters.format_task(task, client.org_id, included, workspace) for task in resource_list(response)]
    total = total_count(response)
    logger.info(f"Found {len(tasks)} tasks (total: {total})")

    return _respond(
        {"tasks": tasks, "total": total, "count": len(tasks)},
        args.response_format,
        lambda: formatters.task_list_markdown(tasks, total),
    )


async def handle_get_task(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetTaskArgs.model_validate(arguments)
    response = await client.get(f"/tasks/{args.task_id}", {"include": TASK_INCLUDE})
    task = formatters.format_task(first_resource(response), client.org_id, response.get("included"), workspace)
    return _respond(task, args.response_format, lambda: formatters.task_markdown(task))


async def handle_update_task(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Patch only the fields present in the arguments.

    An explicit null for description, due_date, start_date or assignee_id
    clears the value upstream.
    """
    args = UpdateTaskArgs.model_validate(arguments)
    provided = args.model_fields_set

    attributes: dict[str, Any] = {}
    if args.title is not None:
        attributes["title"] = args.title
    if "description" in provided:
        attributes["description"] = markdown_to_html(args.description) if args.description else args.description
    if "due_date" in provided:
        attributes["due_date"] = args.due_date
    if "start_date" in provided:
        attributes["start_date"] = args.start_date
    if args.closed is not None:
        attributes["closed"] = args.closed
    if args.estimate_minutes is not None:
        attributes["initial_estimate"] = args.estimate_minutes

    custom_fields = _custom_fields(workspace, args.task_type, args.priority)
    if custom_fields:
        attributes["custom_fields"] = custom_fields

    relationships = {}
    if "assignee_id" in provided:
        relationships["assignee"] = relationship("people", args.assignee_id)
    if args.workflow_status is not None:
        status = _workflow_status(workspace, args.workflow_status)
        if status:
            relationships["workflow_status"] = status

    data: dict[str, Any] = {"type": "tasks", "id": args.task_id}
    if attributes:
        data["attributes"] = attributes
    if relationships:
        data["relationships"] = relationships

    response = await client.patch(f"/tasks/{args.task_id}", {"data": data}, {"include": TASK_INCLUDE})
    task = formatters.format_task(first_resource(response), client.org_id, response.get("included"), workspace)
    logger.info(f"Updated task {args.task_id}: {sorted(provided - {'task_id', 'response_format'})}")
    return _respond(task, args.response_format, lambda: formatters.task_markdown(task, "Task Updated"))


async def handle_create_tasks_batch(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Create tasks one at a time, collecting a per-task result.

    A failed task is recorded and the batch continues.
    """
    args = CreateTasksBatchArgs.model_validate(arguments)
    results = []
    successful = 0
    failed = 0

    logger.info(f"Starting batch creation of {len(args.tasks)} tasks...")

    for index, item in enumerate(args.tasks):
        try:
            attributes: dict[str, Any] = {"title": item.title}
            if item.description:
                attributes["description"] = markdown_to_html(item.description)
            if item.due_date:
                attributes["due_date"] = item.due_date
            if item.start_date:
                attributes["start_date"] = item.start_date
            custom_fields = _custom_fields(workspace, item.task_type, item.priority, strict_task_type=False)
            if custom_fields:
                attributes["custom_fields"] = custom_fields

            relationships = {"project": relationship("projects", args.project_id)}
            task_list_id = item.task_list_id or args.default_task_list_id
            if task_list_id:
                relationships["task_list"] = relationship("task_lists", task_list_id)
            assignee_id = item.assignee_id or args.default_assignee_id
            if assignee_id:
                relationships["assignee"] = relationship("people", assignee_id)

            payload = {"data": {"type": "tasks", "attributes": attributes, "relationships": relationships}}
            response = await client.post("/tasks", payload)
            task = formatters.format_task(first_resource(response), client.org_id, response.get("included"), workspace)

            results.append({"success": True, "task": task, "index": index, "title": item.title})
            successful += 1
            logger.info(f"Created task {index + 1}/{len(args.tasks)}: {item.title}")
        except (ProductiveAPIError, ValueError) as e:
            message = e.message if isinstance(e, ProductiveAPIError) else str(e)
            results.append({"success": False, "error": message, "index": index, "title": item.title})
            failed += 1
            logger.error(f"Failed task {index + 1}/{len(args.tasks)}: {item.title} - {message}")

    summary = {"total": len(args.tasks), "successful": successful, "failed": failed, "results": results}
    logger.info(f"Batch complete: {successful} created, {failed} failed")
    return _respond(summary, args.response_format, lambda: formatters.batch_summary_markdown(summary))


async def handle_list_subtasks(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListSubtasksArgs.model_validate(arguments)
    params = {
        "filter[parent_task_id]": args.parent_task_id,
        **_page_params(args),
        "include": TASK_INCLUDE,
        "filter[closed]": args.closed,
    }

    response = await client.get("/tasks", params)
    included = response.get("included")
    subtasks = [formatters.format_task(task, client.org_id, included, workspace) for task in resource_list(response)]
    total = total_count(response)

    return _respond(
        {"subtasks": subtasks, "total": total, "count": len(subtasks), "parent_task_id": args.parent_task_id},
        args.response_format,
        lambda: formatters.subtasks_markdown(subtasks, args.parent_task_id, total),
    )


# ============================================================================
# Dependency and Workflow Handlers
# ============================================================================

async def _create_dependency(client: ProductiveClient, task_id: str, dependent_task_id: str, dependency_type: str) -> dict:
    payload = {"data": {
        "type": "task_dependencies",
        "attributes": {
            "task_id": int(task_id),
            "dependent_task_id": int(dependent_task_id),
            "type_id": formatters.DEPENDENCY_TYPE_IDS[dependency_type],
        },
    }}
    response = await client.post("/task_dependencies", payload)
    dependency = formatters.format_task_dependency(first_resource(response), response.get("included"))
    logger.info(f"Created {dependency_type} dependency {dependency['id']}: {task_id} -> {dependent_task_id}")
    return dependency


async def handle_create_task_dependency(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateTaskDependencyArgs.model_validate(arguments)
    dependency = await _create_dependency(client, args.task_id, args.dependent_task_id, args.dependency_type)
    return _respond(
        dependency, args.response_format,
        lambda: f"# Dependency Created Successfully\n\n{formatters.dependency_markdown(dependency)}",
    )


async def handle_list_task_dependencies(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListTaskDependenciesArgs.model_validate(arguments)
    response = await client.get("/task_dependencies", {
        "filter[task_id]": args.task_id,
        "include": DEPENDENCY_INCLUDE,
        "page[size]": DEPENDENCY_PAGE_SIZE,
    })
    included = response.get("included")
    dependencies = [
        formatters.format_task_dependency(dependency, included)
        for dependency in resource_list(response)
        if dependency.get("id")
    ]
    return _respond(
        {"task_id": args.task_id, "dependencies": dependencies, "count": len(dependencies)},
        args.response_format,
        lambda: formatters.dependency_list_markdown(dependencies, args.task_id),
    )


async def handle_get_task_dependency(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetTaskDependencyArgs.model_validate(arguments)
    response = await client.get(f"/task_dependencies/{args.dependency_id}", {"include": DEPENDENCY_INCLUDE})
    dependency = formatters.format_task_dependency(first_resource(response), response.get("included"))
    return _respond(dependency, args.response_format, lambda: formatters.dependency_markdown(dependency))


async def handle_update_task_dependency(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateTaskDependencyArgs.model_validate(arguments)
    payload = {"data": {
        "type": "task_dependencies",
        "id": args.dependency_id,
        "attributes": {"type_id": formatters.DEPENDENCY_TYPE_IDS[args.dependency_type]},
    }}
    response = await client.patch(
        f"/task_dependencies/{args.dependency_id}", payload, {"include": DEPENDENCY_INCLUDE}
    )
    dependency = formatters.format_task_dependency(first_resource(response), response.get("included"))
    return _respond(
        dependency, args.response_format,
        lambda: f"# Dependency Updated Successfully\n\n{formatters.dependency_markdown(dependency)}",
    )


async def handle_delete_task_dependency(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = DeleteTaskDependencyArgs.model_validate(arguments)
    await client.delete(f"/task_dependencies/{args.dependency_id}")
    logger.info(f"Deleted task dependency {args.dependency_id}")
    return [TextContent(type="text", text=f"Task dependency {args.dependency_id} deleted successfully.")]


def _workflow_failure(action: str, error: Exception) -> Exception:
    """Prefix a workflow step failure, keeping the API error's status and kind."""
    if isinstance(error, ProductiveAPIError):
        detail = error.message.removeprefix("Error: ")
        return ProductiveAPIError(
            f"Error: Failed to mark task as {action}: {detail}",
            status_code=error.status_code,
            kind=error.kind,
            cause=error,
        )
    return ValueError(f"Failed to mark task as {action}: {error}")


async def _mark_task(
    client: ProductiveClient,
    workspace: WorkspaceConfig,
    task_id: str,
    other_task_id: str,
    status: str,
    dependency_type: str,
    action: str,
) -> dict:
    """Set the task's workflow status, then link it to the other task."""
    try:
        await handle_update_task({"task_id": task_id, "workflow_status": status}, client, workspace)
        return await _create_dependency(client, task_id, other_task_id, dependency_type)
    except (ProductiveAPIError, ValueError) as e:
        raise _workflow_failure(action, e) from e


async def handle_mark_as_blocked_by(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Move the task to Blocked and record that it waits on the blocking task."""
    args = MarkAsBlockedByArgs.model_validate(arguments)
    dependency = await _mark_task(
        client, workspace, args.task_id, args.blocked_by_task_id, BLOCKED_STATUS, "waiting_on", "blocked"
    )
    return _respond(
        dependency, args.response_format,
        lambda: f"# Dependency Created Successfully\n\n{formatters.dependency_markdown(dependency)}",
    )


async def handle_mark_as_duplicate(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Close the task as obsolete and relate it to the task it duplicates."""
    args = MarkAsDuplicateArgs.model_validate(arguments)
    dependency = await _mark_task(
        client, workspace, args.task_id, args.duplicate_of_task_id, DUPLICATE_STATUS, "related", "duplicate"
    )
    return _respond(
        dependency, args.response_format,
        lambda: f"# Dependency Created Successfully\n\n{formatters.dependency_markdown(dependency)}",
    )


# ============================================================================
# Attachment Handlers
# ============================================================================

async def handle_list_attachments(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListAttachmentsArgs.model_validate(arguments)
    response = await client.get(f"/tasks/{args.task_id}", {"include": "attachments"})
    attachments = [
        formatters.format_attachment(item)
        for item in response.get("included") or []
        if isinstance(item, dict) and item.get("type") == "attachments"
    ]
    return _respond(
        {"task_id": args.task_id, "attachments": attachments, "count": len(attachments)},
        args.response_format,
        lambda: formatters.attachments_markdown(attachments),
    )


async def handle_upload_attachment(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Upload a file and attach it to a task, comment or page.

    Steps: resolve the file, create the attachment record to get a signed S3
    policy, POST the file to S3, record the S3 URL on the attachment, then
    append the attachment to the target's attachments relationship.
    """
    args = UploadAttachmentArgs.model_validate(arguments)

    async with client.external_client(timeout=uploads.UPLOAD_TIMEOUT) as http:
        file = await uploads.resolve_file(args, http)

        created = await client.post("/attachments", {"data": {
            "type": "attachments",
            "attributes": {
                "name": file.filename,
                "content_type": file.content_type,
                "size": file.size,
                "attachable_type": args.attachable_type,
            },
        }})
        attachment = first_resource(created)
        attachment_id = attachment.get("id")
        policy = (attachment.get("attributes") or {}).get("aws_policy")
        if not policy:
            raise ProductiveAPIError(
                "Error: No AWS policy returned from Productive API",
                kind=ErrorKind.INVALID_RESPONSE,
            )

        temp_url = await uploads.upload_to_storage(policy, file, http)

    await client.patch(f"/attachments/{attachment_id}", {"data": {
        "type": "attachments",
        "id": attachment_id,
        "attributes": {"temp_url": temp_url},
    }})

    resource_type = f"{args.attachable_type}s"
    resource_path = f"/{resource_type}/{args.attachable_id}"
    current = await client.get(resource_path, {"include": "attachments"})
    linked = [
        {"type": "attachments", "id": existing_id}
        for existing_id in relationship_ids(first_resource(current), "attachments")
    ]
    linked.append({"type": "attachments", "id": attachment_id})
    await client.patch(resource_path, {"data": {
        "type": resource_type,
        "id": args.attachable_id,
        "relationships": {"attachments": {"data": linked}},
    }})
    logger.info(f"Attached {file.filename} as attachment {attachment_id} to {args.attachable_type} {args.attachable_id}")

    result = {
        "id": attachment_id,
        "filename": file.filename,
        "size": file.size,
        "size_formatted": formatters.format_file_size(file.size),
        "content_type": file.content_type,
        "attachable_type": args.attachable_type,
        "attachable_id": args.attachable_id,
        "url": temp_url,
    }
    return _respond(result, args.response_format, lambda: formatters.uploaded_attachment_markdown(result, client.org_id))


# ============================================================================
# Todo Handlers
# ============================================================================

async def handle_create_todo(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateTodoArgs.model_validate(arguments)
    payload = _todo_payload(args.task_id, args.description, args.due_date, args.assignee_id, args.closed)
    response = await client.post("/todos", payload)
    todo = formatters.format_todo(first_resource(response))
    logger.info(f"Created todo {todo['id']} on task {args.task_id}")
    return _respond(
        todo, args.response_format,
        lambda: f"Todo created successfully:\n\n{formatters.todo_markdown(todo)}",
    )


async def handle_list_todos(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListTodosArgs.model_validate(arguments)
    response = await client.get("/todos", {"filter[task_id]": args.task_id, "page[size]": TODO_PAGE_SIZE})
    todos = [formatters.format_todo(todo) for todo in resource_list(response)]
    return _respond(
        {"todos": todos, "count": len(todos)},
        args.response_format,
        lambda: formatters.todo_list_markdown(todos),
    )


async def handle_get_todo(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetTodoArgs.model_validate(arguments)
    response = await client.get(f"/todos/{args.todo_id}")
    todo = formatters.format_todo(first_resource(response))
    return _respond(todo, args.response_format, lambda: formatters.todo_markdown(todo))


async def handle_update_todo(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateTodoArgs.model_validate(arguments)
    provided = args.model_fields_set

    attributes: dict[str, Any] = {}
    if args.description is not None:
        attributes["description"] = args.description
    if "due_date" in provided:
        attributes["due_date"] = args.due_date
    if args.closed is not None:
        attributes["closed"] = args.closed

    data: dict[str, Any] = {"type": "todos", "id": args.todo_id}
    if attributes:
        data["attributes"] = attributes

    response = await client.patch(f"/todos/{args.todo_id}", {"data": data})
    todo = formatters.format_todo(first_resource(response))
    return _respond(
        todo, args.response_format,
        lambda: f"Todo updated successfully:\n\n{formatters.todo_markdown(todo)}",
    )


async def handle_delete_todo(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = DeleteTodoArgs.model_validate(arguments)
    await client.delete(f"/todos/{args.todo_id}")
    logger.info(f"Deleted todo {args.todo_id}")
    return [TextContent(type="text", text=f"Todo {args.todo_id} deleted successfully.")]


# ============================================================================
# Comment and Page Handlers
# ============================================================================

async def handle_list_comments(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListCommentsArgs.model_validate(arguments)
    response = await client.get("/comments", {
        "filter[task_id]": args.task_id,
        **_page_params(args),
        "include": COMMENT_INCLUDE,
        "sort": "-created_at",
    })
    included = response.get("included")
    comments = [formatters.format_comment(comment, included) for comment in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"comments": comments, "total": total, "count": len(comments)},
        args.response_format,
        lambda: formatters.comments_markdown(comments, total),
    )


async def handle_list_pages(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListPagesArgs.model_validate(arguments)
    params = {**_page_params(args), "filter[creator_id]": args.creator_id}
    if args.project_id:
        project_ids = args.project_id if isinstance(args.project_id, list) else [args.project_id]
        params["filter[project_id]"] = ",".join(project_ids)
    if args.sort_by:
        descending = (args.sort_order or "desc") == "desc"
        params["sort"] = f"-{args.sort_by}" if descending else args.sort_by

    response = await client.get("/pages", params)
    included = response.get("included")
    pages = [formatters.format_page(page, client.org_id, included) for page in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"pages": pages, "total": total, "count": len(pages)},
        args.response_format,
        lambda: formatters.page_list_markdown(pages, total),
    )


async def handle_get_page(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetPageArgs.model_validate(arguments)
    response = await client.get(f"/pages/{args.page_id}")
    page = formatters.format_page(first_resource(response), client.org_id, response.get("included"))
    return _respond(page, args.response_format, lambda: formatters.page_markdown(page, full_content=True))


async def handle_create_page(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Create a page; the Markdown body is stored as a Productive document."""
    args = CreatePageArgs.model_validate(arguments)

    attributes: dict[str, Any] = {"title": args.title}
    if args.body is not None:
        attributes["body"] = markdown_to_doc_json(args.body)
    if args.version_number:
        attributes["version_number"] = args.version_number

    relationships = {}
    if args.project_id:
        relationships["project"] = relationship("projects", args.project_id)
    if args.parent_page_id:
        relationships["parent_page"] = relationship("pages", args.parent_page_id)

    data: dict[str, Any] = {"type": "pages", "attributes": attributes}
    if relationships:
        data["relationships"] = relationships

    response = await client.post("/pages", {"data": data})
    page = formatters.format_page(first_resource(response), client.org_id, response.get("included"))
    logger.info(f"Created page {page['id']}: {page['title']}")
    return _respond(
        page, args.response_format,
        lambda: f"Page created successfully:\n\n{formatters.page_markdown(page, full_content=True)}",
    )


async def handle_update_page(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdatePageArgs.model_validate(arguments)

    attributes: dict[str, Any] = {}
    if args.title is not None:
        attributes["title"] = args.title
    if "body" in args.model_fields_set:
        attributes["body"] = None if args.body is None else markdown_to_doc_json(args.body)

    data: dict[str, Any] = {"type": "pages", "id": args.page_id}
    if attributes:
        data["attributes"] = attributes

    response = await client.patch(f"/pages/{args.page_id}", {"data": data})
    page = formatters.format_page(first_resource(response), client.org_id, response.get("included"))
    return _respond(
        page, args.response_format,
        lambda: f"Page updated successfully:\n\n{formatters.page_markdown(page, full_content=True)}",
    )


async def handle_delete_page(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = DeletePageArgs.model_validate(arguments)
    await client.delete(f"/pages/{args.page_id}")
    logger.info(f"Deleted page {args.page_id}")
    return [TextContent(type="text", text=f"Page {args.page_id} deleted successfully.")]


async def handle_search_pages(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = SearchPagesArgs.model_validate(arguments)
    response = await client.get("/pages", {
        **_page_params(args),
        "filter[title]": args.query or None,
        "filter[project_id]": args.project_id,
    })
    included = response.get("included")
    pages = [formatters.format_page(page, client.org_id, included) for page in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"pages": pages, "total": total, "count": len(pages)},
        args.response_format,
        lambda: formatters.page_list_markdown(pages, total),
    )


# ============================================================================
# Budget Handlers
# ============================================================================

async def handle_list_budgets(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListBudgetsArgs.model_validate(arguments)
    params = {
        # deal type 2 = budget
        "filter[type]": 2,
        **_page_params(args),
        "include": BUDGET_INCLUDE,
        "filter[project_id]": args.project_id,
        "filter[company_id]": args.company_id,
        "filter[responsible_id]": args.responsible_id,
        "filter[recurring]": args.recurring,
    }
    if args.status:
        params["filter[budget_status]"] = 1 if args.status == "open" else 2

    response = await client.get("/deals", params)
    included = response.get("included")
    budgets = [formatters.format_budget(budget, client.org_id, included) for budget in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"budgets": budgets, "total": total, "count": len(budgets)},
        args.response_format,
        lambda: formatters.budget_list_markdown(budgets, total),
    )


async def handle_get_budget(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetBudgetArgs.model_validate(arguments)
    response = await client.get(f"/deals/{args.budget_id}", {"include": BUDGET_INCLUDE})
    budget = formatters.format_budget(first_resource(response), client.org_id, response.get("included"))
    return _respond(budget, args.response_format, lambda: formatters.budget_markdown(budget))


async def _patch_budget(client: ProductiveClient, budget_id: str, attributes: dict) -> dict:
    """PATCH a budget, then re-read it with its relationships."""
    await client.patch(f"/deals/{budget_id}", {"data": {"type": "deals", "id": budget_id, "attributes": attributes}})
    response = await client.get(f"/deals/{budget_id}", {"include": BUDGET_INCLUDE})
    return formatters.format_budget(first_resource(response), client.org_id, response.get("included"))


async def handle_update_budget(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateBudgetArgs.model_validate(arguments)
    provided = args.model_fields_set

    attributes: dict[str, Any] = {}
    if args.name is not None:
        attributes["name"] = args.name
    if "end_date" in provided:
        attributes["end_date"] = args.end_date
    if "delivered_on" in provided:
        attributes["delivered_on"] = args.delivered_on

    budget = await _patch_budget(client, args.budget_id, attributes)
    logger.info(f"Updated budget {args.budget_id}: {sorted(attributes)}")
    return _respond(
        budget, args.response_format,
        lambda: f"Budget updated successfully:\n\n{formatters.budget_markdown(budget)}",
    )


async def handle_mark_budget_delivered(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = MarkBudgetDeliveredArgs.model_validate(arguments)
    budget = await _patch_budget(client, args.budget_id, {"delivered_on": args.delivered_on})
    logger.info(f"Marked budget {args.budget_id} delivered on {args.delivered_on}")
    return _respond(
        budget, args.response_format,
        lambda: f"Budget marked as delivered on {args.delivered_on}:\n\n{formatters.budget_markdown(budget)}",
    )


async def handle_close_budget(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CloseBudgetArgs.model_validate(arguments)
    # budget_status 2 = closed
    budget = await _patch_budget(client, args.budget_id, {"budget_status": 2})
    logger.info(f"Closed budget {args.budget_id}")
    return _respond(
        budget, args.response_format,
        lambda: f"Budget closed successfully:\n\n{formatters.budget_markdown(budget)}",
    )


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


async def _project_name(client: ProductiveClient, project_id: str) -> str:
    try:
        response = await client.get(f"/projects/{project_id}")
    except ProductiveAPIError as e:
        logger.warning(f"Could not load project {project_id}: {e.message}")
        return "Unknown"
    return (first_resource(response).get("attributes") or {}).get("name") or "Unknown"


async def handle_audit_project_budgets(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Check every open budget for a missing or lapsed end date.

    An end date before today on a budget that has not been delivered is
    reported as expired.
    """
    args = AuditProjectBudgetsArgs.model_validate(arguments)
    resources, included = await client.fetch_all_pages("/deals", {
        "filter[type]": 2,
        "filter[budget_status]": 1,
        "filter[project_id]": args.project_id,
        "include": BUDGET_INCLUDE,
    }, page_size=PROJECT_PAGE_SIZE)

    today = date.today()
    issues = []
    for resource in resources:
        budget = formatters.format_budget(resource, client.org_id, included)
        issue = {
            "budget_id": budget["id"],
            "budget_name": budget["name"],
            "project_id": budget["project_id"],
            "project_name": budget["project_name"],
        }
        end_date = _parse_date(budget["end_date"])
        if budget["end_date"] is None:
            issues.append({**issue, "issue_type": "no_end_date", "details": "Budget has no end date set"})
        elif end_date and end_date < today and not budget["delivered_on"]:
            issues.append({
                **issue,
                "issue_type": "expired_end_date",
                "details": f"End date {budget['end_date']} is in the past and budget is not delivered",
            })

    projects_without_open_budget = []
    if args.project_id and not resources:
        projects_without_open_budget.append({
            "project_id": args.project_id,
            "project_name": await _project_name(client, args.project_id),
        })

    report = {
        "total_budgets_checked": len(resources),
        "issues_found": len(issues),
        "issues": issues,
        "projects_without_open_budget": projects_without_open_budget,
    }
    logger.info(f"Audited {len(resources)} open budgets: {len(issues)} issue(s)")
    return _respond(report, args.response_format, lambda: formatters.budget_audit_markdown(report))


# ============================================================================
# Revenue Distribution Handlers
# ============================================================================

def _percent(value: float) -> str:
    """The API takes percentages as strings: ``50.0`` -> ``"50"``."""
    return f"{value:g}"


async def _get_distribution(client: ProductiveClient, distribution_id: str) -> dict:
    response = await client.get(f"/revenue_distributions/{distribution_id}", {"include": DISTRIBUTION_INCLUDE})
    return formatters.format_revenue_distribution(first_resource(response), response.get("included"))


async def handle_list_revenue_distributions(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListRevenueDistributionsArgs.model_validate(arguments)
    response = await client.get("/revenue_distributions", {
        **_page_params(args),
        "include": DISTRIBUTION_INCLUDE,
        "filter[deal_id]": args.deal_id,
    })
    included = response.get("included")
    distributions = [formatters.format_revenue_distribution(dist, included) for dist in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"revenue_distributions": distributions, "total": total, "count": len(distributions)},
        args.response_format,
        lambda: formatters.revenue_distribution_list_markdown(distributions, total),
    )


async def handle_get_revenue_distribution(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetRevenueDistributionArgs.model_validate(arguments)
    distribution = await _get_distribution(client, args.distribution_id)
    return _respond(
        distribution, args.response_format,
        lambda: formatters.revenue_distribution_markdown(distribution),
    )


async def handle_create_revenue_distribution(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateRevenueDistributionArgs.model_validate(arguments)
    payload = {"data": {
        "type": "revenue_distributions",
        "attributes": {
            "start_on": args.start_on,
            "end_on": args.end_on,
            "amount_percent": _percent(args.amount_percent),
        },
        "relationships": {"deal": relationship("deals", args.deal_id)},
    }}
    response = await client.post("/revenue_distributions", payload)
    distribution = formatters.format_revenue_distribution(first_resource(response), response.get("included"))
    logger.info(f"Created revenue distribution {distribution['id']} on budget {args.deal_id}")
    return _respond(
        distribution, args.response_format,
        lambda: f"Revenue distribution created successfully:\n\n"
                f"{formatters.revenue_distribution_markdown(distribution)}",
    )


async def _patch_distribution(client: ProductiveClient, distribution_id: str, attributes: dict) -> dict:
    await client.patch(f"/revenue_distributions/{distribution_id}", {"data": {
        "type": "revenue_distributions",
        "id": distribution_id,
        "attributes": attributes,
    }})
    return await _get_distribution(client, distribution_id)


async def handle_update_revenue_distribution(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateRevenueDistributionArgs.model_validate(arguments)
    attributes: dict[str, Any] = {}
    if args.start_on is not None:
        attributes["start_on"] = args.start_on
    if args.end_on is not None:
        attributes["end_on"] = args.end_on
    if args.amount_percent is not None:
        attributes["amount_percent"] = _percent(args.amount_percent)

    distribution = await _patch_distribution(client, args.distribution_id, attributes)
    return _respond(
        distribution, args.response_format,
        lambda: f"Revenue distribution updated successfully:\n\n"
                f"{formatters.revenue_distribution_markdown(distribution)}",
    )


async def handle_delete_revenue_distribution(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = DeleteRevenueDistributionArgs.model_validate(arguments)
    await client.delete(f"/revenue_distributions/{args.distribution_id}")
    logger.info(f"Deleted revenue distribution {args.distribution_id}")
    return [TextContent(type="text", text=f"Revenue distribution {args.distribution_id} deleted successfully.")]


async def handle_extend_revenue_distribution(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ExtendRevenueDistributionArgs.model_validate(arguments)
    distribution = await _patch_distribution(client, args.distribution_id, {"end_on": args.new_end_on})
    logger.info(f"Extended revenue distribution {args.distribution_id} to {args.new_end_on}")
    return _respond(
        distribution, args.response_format,
        lambda: f"Revenue distribution end date extended to {args.new_end_on}:\n\n"
                f"{formatters.revenue_distribution_markdown(distribution)}",
    )


async def handle_report_overdue_distributions(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Report distributions whose end date has passed, most overdue first.

    Each overdue item notes whether its budget has been delivered; budgets
    are fetched once each and an unreadable budget counts as not delivered.
    """
    args = ReportOverdueDistributionsArgs.model_validate(arguments)
    as_of = date.fromisoformat(args.as_of_date) if args.as_of_date else date.today()

    resources, included = await client.fetch_all_pages(
        "/revenue_distributions", {"include": DISTRIBUTION_INCLUDE}, page_size=PROJECT_PAGE_SIZE
    )
    distributions = [formatters.format_revenue_distribution(dist, included) for dist in resources]
    if args.project_id:
        distributions = [dist for dist in distributions if dist["project_id"] == args.project_id]

    delivered: dict[str, bool] = {}
    overdue = []
    for dist in distributions:
        end_on = _parse_date(dist["end_on"])
        if end_on is None or end_on >= as_of:
            continue
        deal_id = dist["deal_id"]
        if deal_id and deal_id not in delivered:
            try:
                deal = await client.get(f"/deals/{deal_id}")
                delivered[deal_id] = bool((first_resource(deal).get("attributes") or {}).get("delivered_on"))
            except ProductiveAPIError as e:
                logger.warning(f"Could not load budget {deal_id}: {e.message}")
                delivered[deal_id] = False
        overdue.append({
            "distribution": dist,
            "days_overdue": (as_of - end_on).days,
            "budget_delivered": delivered.get(deal_id, False),
        })

    overdue.sort(key=lambda item: item["days_overdue"], reverse=True)
    report = {
        "total_checked": len(distributions),
        "overdue_count": len(overdue),
        "overdue_distributions": overdue,
    }
    logger.info(f"Checked {len(distributions)} revenue distributions as of {as_of}: {len(overdue)} overdue")
    return _respond(report, args.response_format, lambda: formatters.overdue_distributions_markdown(report))


# ============================================================================
# Service and Service Type Handlers
# ============================================================================

async def handle_list_services(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListServicesArgs.model_validate(arguments)
    response = await client.get("/services", {
        **_page_params(args),
        "include": SERVICE_INCLUDE,
        "filter[deal_id]": args.deal_id,
        "filter[project_id]": args.project_id,
        "filter[person_id]": args.person_id,
        "filter[billing_type]": formatters.BILLING_TYPE_IDS[args.billing_type] if args.billing_type else None,
        "filter[time_tracking_enabled]": args.time_tracking_enabled,
        "filter[expense_tracking_enabled]": args.expense_tracking_enabled,
    })
    included = response.get("included")
    services = [formatters.format_service(service, included) for service in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"services": services, "total": total, "count": len(services)},
        args.response_format,
        lambda: formatters.service_list_markdown(services, total),
    )


async def handle_get_service(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = GetServiceArgs.model_validate(arguments)
    response = await client.get(f"/services/{args.service_id}", {"include": SERVICE_INCLUDE})
    service = formatters.format_service(first_resource(response), response.get("included"))
    return _respond(service, args.response_format, lambda: formatters.service_markdown(service))


async def handle_create_service(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateServiceArgs.model_validate(arguments)

    attributes: dict[str, Any] = {
        "name": args.name,
        "billing_type_id": formatters.BILLING_TYPE_IDS[args.billing_type],
        "unit_id": formatters.UNIT_IDS[args.unit],
        "time_tracking_enabled": args.time_tracking_enabled,
        "expense_tracking_enabled": args.expense_tracking_enabled,
        "booking_tracking_enabled": args.booking_tracking_enabled,
    }
    if args.description:
        attributes["description"] = args.description
    if args.price is not None:
        attributes["price"] = args.price
    if args.quantity is not None:
        attributes["quantity"] = args.quantity

    relationships = {
        "deal": relationship("deals", args.deal_id),
        "service_type": relationship("service_types", args.service_type_id),
    }
    if args.person_id:
        relationships["person"] = relationship("people", args.person_id)

    payload = {"data": {"type": "services", "attributes": attributes, "relationships": relationships}}
    response = await client.post("/services", payload, {"include": SERVICE_INCLUDE})
    service = formatters.format_service(first_resource(response), response.get("included"))
    logger.info(f"Created service {service['id']} on budget {args.deal_id}")
    return _respond(
        service, args.response_format,
        lambda: f"Service created successfully:\n\n{formatters.service_markdown(service)}",
    )


async def handle_update_service(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateServiceArgs.model_validate(arguments)

    attributes: dict[str, Any] = {}
    if args.name is not None:
        attributes["name"] = args.name
    if "description" in args.model_fields_set:
        attributes["description"] = args.description
    if args.billing_type is not None:
        attributes["billing_type_id"] = formatters.BILLING_TYPE_IDS[args.billing_type]
    if args.unit is not None:
        attributes["unit_id"] = formatters.UNIT_IDS[args.unit]
    for name in ("price", "quantity", "time_tracking_enabled", "expense_tracking_enabled", "booking_tracking_enabled"):
        value = getattr(args, name)
        if value is not None:
            attributes[name] = value

    await client.patch(f"/services/{args.service_id}", {"data": {
        "type": "services",
        "id": args.service_id,
        "attributes": attributes,
    }})
    response = await client.get(f"/services/{args.service_id}", {"include": SERVICE_INCLUDE})
    service = formatters.format_service(first_resource(response), response.get("included"))
    return _respond(
        service, args.response_format,
        lambda: f"Service updated successfully:\n\n{formatters.service_markdown(service)}",
    )


async def _get_service_type(client: ProductiveClient, service_type_id: str) -> dict:
    response = await client.get(f"/service_types/{service_type_id}")
    return formatters.format_service_type(first_resource(response))


async def handle_list_service_types(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ListServiceTypesArgs.model_validate(arguments)
    response = await client.get("/service_types", {
        **_page_params(args),
        "filter[query]": args.query or None,
        "filter[person_id]": args.person_id,
    })
    service_types = [formatters.format_service_type(item) for item in resource_list(response)]
    total = total_count(response)
    return _respond(
        {"service_types": service_types, "total": total, "count": len(service_types)},
        args.response_format,
        lambda: formatters.service_types_markdown(service_types, total),
    )


async def handle_get_service_type(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ServiceTypeArgs.model_validate(arguments)
    service_type = await _get_service_type(client, args.service_type_id)
    return _respond(service_type, args.response_format, lambda: formatters.service_type_markdown(service_type))


async def handle_create_service_type(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = CreateServiceTypeArgs.model_validate(arguments)
    attributes: dict[str, Any] = {"name": args.name}
    if args.description:
        attributes["description"] = args.description

    response = await client.post("/service_types", {"data": {"type": "service_types", "attributes": attributes}})
    service_type = formatters.format_service_type(first_resource(response))
    logger.info(f"Created service type {service_type['id']}: {service_type['name']}")
    return _respond(
        service_type, args.response_format,
        lambda: f"Service type created successfully:\n\n{formatters.service_type_markdown(service_type)}",
    )


async def handle_update_service_type(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = UpdateServiceTypeArgs.model_validate(arguments)
    attributes: dict[str, Any] = {}
    if args.name is not None:
        attributes["name"] = args.name
    if "description" in args.model_fields_set:
        attributes["description"] = args.description

    await client.patch(f"/service_types/{args.service_type_id}", {"data": {
        "type": "service_types",
        "id": args.service_type_id,
        "attributes": attributes,
    }})
    service_type = await _get_service_type(client, args.service_type_id)
    return _respond(
        service_type, args.response_format,
        lambda: f"Service type updated successfully:\n\n{formatters.service_type_markdown(service_type)}",
    )


async def handle_archive_service_type(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    args = ServiceTypeArgs.model_validate(arguments)
    await client.patch(
        f"/service_types/{args.service_type_id}/archive",
        {"data": {"type": "service_types", "id": args.service_type_id}},
    )
    service_type = await _get_service_type(client, args.service_type_id)
    logger.info(f"Archived service type {args.service_type_id}")
    return _respond(
        service_type, args.response_format,
        lambda: f"Service type archived successfully:\n\n{formatters.service_type_markdown(service_type)}",
    )


# ============================================================================
# Rate Limit Handlers
# ============================================================================

async def handle_rate_limit_status(arguments: dict, client: ProductiveClient, workspace: WorkspaceConfig) -> list[TextContent]:
    """Report limiter usage without touching the API."""
    args = RateLimitStatusArgs.model_validate(arguments)
    status = client.get_rate_limit_status()
    return _respond(status, args.response_format, lambda: formatters.rate_limit_markdown(status))


HANDLERS: dict[str, Handler] = {
    "productive_list_projects": handle_list_projects,
    "productive_list_task_lists": handle_list_task_lists,
    "productive_get_task_list": handle_get_task_list,
    "productive_create_task_list": handle_create_task_list,
    "productive_update_task_list": handle_update_task_list,
    "productive_archive_task_list": handle_archive_task_list,
    "productive_restore_task_list": handle_restore_task_list,
    "productive_delete_task_list": handle_delete_task_list,
    "productive_reposition_task_list": handle_reposition_task_list,
    "productive_move_task_list": handle_move_task_list,
    "productive_copy_task_list": handle_copy_task_list,
    "productive_list_boards": handle_list_boards,
    "productive_list_people": handle_list_people,
    "productive_create_task": handle_create_task,
    "productive_search_tasks": handle_search_tasks,
    "productive_get_task": handle_get_task,
    "productive_update_task": handle_update_task,
    "productive_create_tasks_batch": handle_create_tasks_batch,
    "productive_list_subtasks": handle_list_subtasks,
    "productive_create_task_dependency": handle_create_task_dependency,
    "productive_list_task_dependencies": handle_list_task_dependencies,
    "productive_get_task_dependency": handle_get_task_dependency,
    "productive_update_task_dependency": handle_update_task_dependency,
    "productive_delete_task_dependency": handle_delete_task_dependency,
    "productive_mark_as_blocked_by": handle_mark_as_blocked_by,
    "productive_mark_as_duplicate": handle_mark_as_duplicate,
    "productive_list_attachments": handle_list_attachments,
    "productive_upload_attachment": handle_upload_attachment,
    "productive_create_todo": handle_create_todo,
    "productive_list_todos": handle_list_todos,
    "productive_get_todo": handle_get_todo,
    "productive_update_todo": handle_update_todo,
    "productive_delete_todo": handle_delete_todo,
    "productive_list_comments": handle_list_comments,
    "productive_list_pages": handle_list_pages,
    "productive_get_page": handle_get_page,
    "productive_create_page": handle_create_page,
    "productive_update_page": handle_update_page,
    "productive_delete_page": handle_delete_page,
    "productive_search_pages": handle_search_pages,
    "productive_list_budgets": handle_list_budgets,
    "productive_get_budget": handle_get_budget,
    "productive_update_budget": handle_update_budget,
    "productive_mark_budget_delivered": handle_mark_budget_delivered,
    "productive_close_budget": handle_close_budget,
    "productive_audit_project_budgets": handle_audit_project_budgets,
    "productive_list_revenue_distributions": handle_list_revenue_distributions,
    "productive_get_revenue_distribution": handle_get_revenue_distribution,
    "productive_create_revenue_distribution": handle_create_revenue_distribution,
    "productive_update_revenue_distribution": handle_update_revenue_distribution,
    "productive_delete_revenue_distribution": handle_delete_revenue_distribution,
    "productive_extend_revenue_distribution": handle_extend_revenue_distribution,
    "productive_report_overdue_distributions": handle_report_overdue_distributions,
    "productive_list_services": handle_list_services,
    "productive_get_service": handle_get_service,
    "productive_create_service": handle_create_service,
    "productive_update_service": handle_update_service,
    "productive_list_service_types": handle_list_service_types,
    "productive_get_service_type": handle_get_service_type,
    "productive_create_service_type": handle_create_service_type,
    "productive_update_service_type": handle_update_service_type,
    "productive_archive_service_type": handle_archive_service_type,
    "productive_rate_limit_status": handle_rate_limit_status,
}


def _error_result(message: str) -> CallToolResult:
    if not message.startswith("Error"):
        message = f"Error: {message}"
    return CallToolResult(content=[TextContent(type="text", text=message)], isError=True)


def _validation_message(name: str, error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}"
        for err in error.errors()
    )
    return f"Error: Invalid arguments for {name}: {details}"


async def run_tool(
    name: str,
    arguments: Optional[dict],
    client: ProductiveClient,
    workspace: WorkspaceConfig,
) -> CallToolResult:
    """Dispatch a tool call and convert every failure into an error result."""
    handler = HANDLERS.get(name)
    if handler is None:
        logger.warning(f"Unknown tool requested: {name}")
        return _error_result(f"Unknown tool: {name}")

    try:
        content = await handler(arguments or {}, client, workspace)
    except ValidationError as e:
        logger.warning(f"Invalid arguments for {name}: {e.error_count()} error(s)")
        return _error_result(_validation_message(name, e))
    except ProductiveAPIError as e:
        logger.error(f"{name} failed ({e.kind.value}, status={e.status_code}): {e.message}")
        return _error_result(e.message)
    except ValueError as e:
        logger.warning(f"{name} rejected: {e}")
        return _error_result(str(e))
    except Exception as e:
        logger.exception(f"Unexpected error in {name}")
        return _error_result(f"Unexpected error: {type(e).__name__}: {e}")

    return CallToolResult(content=content, isError=False)
