"""MCP tool definitions for Productive.io.

The input schemas here are what clients see in ``tools/list``. Argument
validation itself happens in ``schemas`` before a handler runs.
"""

from mcp.types import Tool

RESPONSE_FORMAT = {
    "type": "string",
    "enum": ["markdown", "json"],
    "description": "Output format: 'markdown' for humans, 'json' for machine processing (default: markdown)"
}
LIMIT = {
    "type": "integer",
    "minimum": 1,
    "maximum": 100,
    "description": "Maximum results to return (default: 20, max: 100)"
}
OFFSET = {
    "type": "integer",
    "minimum": 0,
    "description": "Number of results to skip for pagination (default: 0)"
}
ISO_DATE = {
    "type": "string",
    "pattern": r"^\d{4}-\d{2}-\d{2}$",
}
NUMERIC_ID = {
    "type": "string",
    "pattern": r"^\d+$",
    "description": "Numeric task ID"
}
DEPENDENCY_TYPE = {
    "type": "string",
    "enum": ["blocking", "waiting_on", "related"],
    "description": "Dependency type"
}
BILLING_TYPE = {
    "type": "string",
    "enum": ["Fixed", "Time and Materials", "Non-Billable"],
    "description": "Billing type"
}
UNIT = {
    "type": "string",
    "enum": ["Hour", "Piece", "Day"],
    "description": "Unit of measure"
}


def _date(description: str) -> dict:
    return {**ISO_DATE, "description": description}


def _id(description: str) -> dict:
    return {"type": "string", "minLength": 1, "description": description}


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools exposed by the Productive.io gateway."""
    return [
        # ============================================================================
        # Project, Task List, Board and People Tools
        # ============================================================================
        Tool(
            name="productive_list_projects",
            description="List projects in the organization. "
                        "Use this to find the project_id needed by productive_create_task and productive_search_tasks. "
                        "Archived projects are excluded unless status is 'archived' or 'all'.",
            inputSchema={
                "type": "object",
                "properties": {
                    "status": {
                        "type": "string",
                        "enum": ["active", "archived", "all"],
                        "description": "Filter by project status (default: active)"
                    },
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_task_lists",
            description="List task lists within a project. "
                        "Task lists group tasks; productive_create_task requires a task_list_id.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Project ID to list task lists for"),
                    "board_id": _id("Only return task lists on this board"),
                    "include_inactive": {
                        "type": "boolean",
                        "description": "Include archived task lists (default: false)"
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["project_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_task_list",
            description="Get details of a single task list.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_task_list",
            description="Create a task list in a project. Without board_id the project's first board is used.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Project ID"),
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "Task list name"},
                    "board_id": _id("Board ID (default: first board of the project)"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["project_id", "name"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_task_list",
            description="Rename a task list.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID"),
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "New name"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id", "name"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_archive_task_list",
            description="Archive a task list. Archived lists are hidden but keep their tasks.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_restore_task_list",
            description="Restore an archived task list.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_delete_task_list",
            description="Delete a task list. Where the API does not support deletion, "
                        "use productive_archive_task_list instead.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID")
                },
                "required": ["task_list_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_reposition_task_list",
            description="Move a task list so it sits before another task list on the same board.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID to move"),
                    "move_before_id": {
                        "type": "string",
                        "pattern": r"^\d+$",
                        "description": "Numeric ID of the task list to place it before"
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id", "move_before_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_move_task_list",
            description="Move a task list to a different board.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_list_id": _id("Task list ID"),
                    "board_id": _id("Target board ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_list_id", "board_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_copy_task_list",
            description="Create a new task list from an existing one used as a template, "
                        "optionally copying its open tasks and their assignees.",
            inputSchema={
                "type": "object",
                "properties": {
                    "template_id": {
                        "type": "string",
                        "pattern": r"^\d+$",
                        "description": "Numeric ID of the task list to copy"
                    },
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "Name of the copy"},
                    "project_id": _id("Project ID for the copy"),
                    "board_id": _id("Board ID (default: first board of the project)"),
                    "copy_open_tasks": {"type": "boolean", "description": "Copy open tasks (default: true)"},
                    "copy_assignees": {"type": "boolean", "description": "Keep task assignees (default: true)"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["template_id", "name", "project_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_boards",
            description="List boards within a project. Boards contain task lists.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Project ID to list boards for"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["project_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_people",
            description="List people in the organization. "
                        "Use this to find assignee_id values for tasks and todos.",
            inputSchema={
                "type": "object",
                "properties": {
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Task Tools
        # ============================================================================
        Tool(
            name="productive_create_task",
            description="Create a task in a project task list. "
                        "task_type, priority and workflow_status take names from the workspace config "
                        "(see productive-mcp-setup). Optional todos are created as checklist items on the new task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "minLength": 1,
                        "maxLength": 200,
                        "description": "Task title (1-200 characters)"
                    },
                    "description": {
                        "type": "string",
                        "maxLength": 10000,
                        "description": "Task description in Markdown (converted to HTML)"
                    },
                    "project_id": _id("Project ID"),
                    "task_list_id": _id("Task list ID"),
                    "assignee_id": _id("Person ID to assign the task to"),
                    "due_date": _date("Due date (YYYY-MM-DD)"),
                    "start_date": _date("Start date (YYYY-MM-DD)"),
                    "initial_estimate": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Initial estimate in minutes"
                    },
                    "task_type": {
                        "type": "string",
                        "description": "Task type name, e.g. 'Bug' or 'Feature'"
                    },
                    "priority": {
                        "type": "string",
                        "description": "Priority name, e.g. 'High'"
                    },
                    "workflow_status": {
                        "type": "string",
                        "description": "Workflow status name, e.g. 'In Progress'"
                    },
                    "labels": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Labels (tags) for the task"
                    },
                    "parent_task_id": _id("Parent task ID to create this task as a sub-task"),
                    "todos": {
                        "type": "array",
                        "description": "Checklist items to create on the task",
                        "items": {
                            "type": "object",
                            "properties": {
                                "description": {"type": "string", "minLength": 1, "maxLength": 5000},
                                "due_date": ISO_DATE,
                                "assignee_id": {"type": "string"},
                                "closed": {"type": "boolean"}
                            },
                            "required": ["description"],
                            "additionalProperties": False
                        }
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["title", "project_id", "task_list_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_search_tasks",
            description="Search tasks by title, project, assignee or open/closed state. "
                        "Results are paginated with limit and offset.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Text to match against task titles"
                    },
                    "project_id": _id("Only tasks in this project"),
                    "assignee_id": _id("Only tasks assigned to this person"),
                    "closed": {
                        "type": "boolean",
                        "description": "true for closed tasks, false for open tasks"
                    },
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_task",
            description="Get full details of a task, including project, assignee, workflow status, "
                        "custom fields and attachments. Errors: task not found.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_task",
            description="Update a task. Only the fields you pass are changed; "
                        "pass null for assignee_id, due_date or start_date to clear them.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "title": {"type": "string", "minLength": 1, "maxLength": 200, "description": "New title"},
                    "description": {
                        "type": ["string", "null"],
                        "maxLength": 10000,
                        "description": "New description in Markdown"
                    },
                    "due_date": {**ISO_DATE, "type": ["string", "null"], "description": "Due date (YYYY-MM-DD) or null"},
                    "start_date": {**ISO_DATE, "type": ["string", "null"], "description": "Start date (YYYY-MM-DD) or null"},
                    "closed": {"type": "boolean", "description": "Close or reopen the task"},
                    "assignee_id": {"type": ["string", "null"], "description": "Person ID, or null to unassign"},
                    "estimate_minutes": {"type": "integer", "minimum": 0, "description": "Estimate in minutes"},
                    "priority": {"type": "string", "description": "Priority name"},
                    "task_type": {"type": "string", "description": "Task type name"},
                    "workflow_status": {"type": "string", "description": "Workflow status name"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_tasks_batch",
            description="Create several tasks in one project. Each task may override the default task list "
                        "and assignee. Failures are reported per task and do not stop the batch.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Project ID for all tasks"),
                    "default_task_list_id": _id("Task list used when a task does not set task_list_id"),
                    "default_assignee_id": _id("Assignee used when a task does not set assignee_id"),
                    "tasks": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "properties": {
                                "title": {"type": "string", "minLength": 1, "maxLength": 200},
                                "description": {"type": "string", "maxLength": 10000},
                                "due_date": ISO_DATE,
                                "start_date": ISO_DATE,
                                "task_list_id": {"type": "string"},
                                "assignee_id": {"type": "string"},
                                "task_type": {"type": "string"},
                                "priority": {"type": "string"}
                            },
                            "required": ["title"],
                            "additionalProperties": False
                        }
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["project_id", "tasks"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_subtasks",
            description="List the sub-tasks (child tasks) of a task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "parent_task_id": _id("Parent task ID"),
                    "closed": {"type": "boolean", "description": "Filter by closed state"},
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["parent_task_id"],
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Dependency, Workflow and Attachment Tools
        # ============================================================================
        Tool(
            name="productive_create_task_dependency",
            description="Link two tasks. 'blocking': task_id blocks dependent_task_id; "
                        "'waiting_on': task_id waits on dependent_task_id; 'related': a plain link.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": NUMERIC_ID,
                    "dependent_task_id": NUMERIC_ID,
                    "dependency_type": DEPENDENCY_TYPE,
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id", "dependent_task_id", "dependency_type"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_task_dependencies",
            description="List the dependencies of a task, with the titles of both linked tasks.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_task_dependency",
            description="Get a single task dependency.",
            inputSchema={
                "type": "object",
                "properties": {
                    "dependency_id": _id("Dependency ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["dependency_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_task_dependency",
            description="Change the type of a task dependency.",
            inputSchema={
                "type": "object",
                "properties": {
                    "dependency_id": _id("Dependency ID"),
                    "dependency_type": DEPENDENCY_TYPE,
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["dependency_id", "dependency_type"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_delete_task_dependency",
            description="Remove a task dependency. The tasks themselves are untouched.",
            inputSchema={
                "type": "object",
                "properties": {
                    "dependency_id": _id("Dependency ID")
                },
                "required": ["dependency_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_mark_as_blocked_by",
            description="Set a task's workflow status to 'Blocked' and record that it waits on another task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": {**NUMERIC_ID, "description": "Numeric ID of the blocked task"},
                    "blocked_by_task_id": {**NUMERIC_ID, "description": "Numeric ID of the blocking task"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id", "blocked_by_task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_mark_as_duplicate",
            description="Set a task's workflow status to \"Obsolete / Won't Fix\" and link it to the task it duplicates.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": {**NUMERIC_ID, "description": "Numeric ID of the duplicate task"},
                    "duplicate_of_task_id": {**NUMERIC_ID, "description": "Numeric ID of the original task"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id", "duplicate_of_task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_attachments",
            description="List the files and inline images attached to a task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_upload_attachment",
            description="Attach a file to a task, comment or page. Give exactly one source: "
                        "file_path (local file), url (downloaded, max 50 MB) or base64_content.",
            inputSchema={
                "type": "object",
                "properties": {
                    "attachable_type": {
                        "type": "string",
                        "enum": ["task", "comment", "page"],
                        "description": "Kind of object to attach the file to"
                    },
                    "attachable_id": _id("ID of the task, comment or page"),
                    "file_path": {"type": "string", "description": "Path of a local file"},
                    "url": {"type": "string", "pattern": r"^https?://", "description": "HTTP(S) URL to download"},
                    "base64_content": {"type": "string", "description": "Base64-encoded file content"},
                    "filename": {"type": "string", "minLength": 1, "description": "File name to store"},
                    "content_type": {
                        "type": "string",
                        "description": "MIME type (default: guessed from the filename or download)"
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["attachable_type", "attachable_id", "filename"],
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Todo Tools
        # ============================================================================
        Tool(
            name="productive_create_todo",
            description="Add a checklist item (todo) to a task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "description": {"type": "string", "minLength": 1, "maxLength": 5000, "description": "Todo text"},
                    "due_date": _date("Due date (YYYY-MM-DD)"),
                    "assignee_id": _id("Person ID"),
                    "closed": {"type": "boolean", "description": "Create the todo already completed"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id", "description"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_todos",
            description="List the checklist items (todos) of a task.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_todo",
            description="Get a single todo.",
            inputSchema={
                "type": "object",
                "properties": {
                    "todo_id": _id("Todo ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["todo_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_todo",
            description="Update a todo's text, due date or completion state.",
            inputSchema={
                "type": "object",
                "properties": {
                    "todo_id": _id("Todo ID"),
                    "description": {"type": "string", "minLength": 1, "maxLength": 5000, "description": "New text"},
                    "due_date": {**ISO_DATE, "type": ["string", "null"], "description": "Due date (YYYY-MM-DD) or null"},
                    "closed": {"type": "boolean", "description": "Mark complete or incomplete"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["todo_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_delete_todo",
            description="Delete a todo.",
            inputSchema={
                "type": "object",
                "properties": {
                    "todo_id": _id("Todo ID")
                },
                "required": ["todo_id"],
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Comment and Page Tools
        # ============================================================================
        Tool(
            name="productive_list_comments",
            description="List comments on a task, newest first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "task_id": _id("Task ID"),
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["task_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_pages",
            description="List documentation pages, optionally filtered by project or creator.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": {
                        "oneOf": [
                            {"type": "string"},
                            {"type": "array", "items": {"type": "string"}}
                        ],
                        "description": "Project ID or list of project IDs"
                    },
                    "creator_id": _id("Only pages created by this person"),
                    "sort_by": {
                        "type": "string",
                        "enum": ["created_at", "creator_name", "edited_at", "project", "title", "updated_at"],
                        "description": "Sort field"
                    },
                    "sort_order": {"type": "string", "enum": ["asc", "desc"], "description": "Sort direction"},
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_page",
            description="Get a documentation page with its full content.",
            inputSchema={
                "type": "object",
                "properties": {
                    "page_id": _id("Page ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["page_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_page",
            description="Create a documentation page. The body is Markdown and is converted to "
                        "Productive's document format (headings h1-h3, lists, quotes, code, links).",
            inputSchema={
                "type": "object",
                "properties": {
                    "title": {"type": "string", "minLength": 1, "maxLength": 500, "description": "Page title"},
                    "body": {"type": "string", "description": "Page content in Markdown"},
                    "project_id": _id("Project the page belongs to"),
                    "parent_page_id": _id("Parent page ID to create a sub-page"),
                    "version_number": {"type": "string", "description": "Version label"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["title"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_page",
            description="Update a page's title or body. Pass null for body to clear the content.",
            inputSchema={
                "type": "object",
                "properties": {
                    "page_id": _id("Page ID"),
                    "title": {"type": "string", "minLength": 1, "maxLength": 500, "description": "New title"},
                    "body": {"type": ["string", "null"], "description": "New content in Markdown, or null"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["page_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_delete_page",
            description="Delete a documentation page.",
            inputSchema={
                "type": "object",
                "properties": {
                    "page_id": _id("Page ID")
                },
                "required": ["page_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_search_pages",
            description="Search documentation pages by title, optionally within one project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text to match against page titles"},
                    "project_id": _id("Only pages in this project"),
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Budget and Revenue Distribution Tools
        # ============================================================================
        Tool(
            name="productive_list_budgets",
            description="List budgets (deals of budget type), optionally filtered by project, company, "
                        "responsible person, status or recurrence.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Project ID"),
                    "company_id": _id("Company ID"),
                    "responsible_id": _id("Responsible person ID"),
                    "status": {"type": "string", "enum": ["open", "closed"], "description": "Budget status"},
                    "recurring": {"type": "boolean", "description": "Only recurring (or non-recurring) budgets"},
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_budget",
            description="Get details of a budget.",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _id("Budget ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["budget_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_budget",
            description="Update a budget's name, end date or delivery date. "
                        "Pass null for end_date or delivered_on to clear them.",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _id("Budget ID"),
                    "name": {"type": "string", "maxLength": 200, "description": "New name"},
                    "end_date": {**ISO_DATE, "type": ["string", "null"], "description": "End date (YYYY-MM-DD) or null"},
                    "delivered_on": {
                        **ISO_DATE,
                        "type": ["string", "null"],
                        "description": "Delivery date (YYYY-MM-DD) or null"
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["budget_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_mark_budget_delivered",
            description="Record the date a budget was delivered.",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _id("Budget ID"),
                    "delivered_on": _date("Delivery date (YYYY-MM-DD)"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["budget_id", "delivered_on"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_close_budget",
            description="Close a budget so no further time or expenses can be tracked against it.",
            inputSchema={
                "type": "object",
                "properties": {
                    "budget_id": _id("Budget ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["budget_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_audit_project_budgets",
            description="Check open budgets for missing end dates and end dates that have passed "
                        "without delivery. With project_id, also reports a project with no open budget.",
            inputSchema={
                "type": "object",
                "properties": {
                    "project_id": _id("Only audit budgets of this project"),
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_revenue_distributions",
            description="List revenue distributions, optionally for one budget (deal).",
            inputSchema={
                "type": "object",
                "properties": {
                    "deal_id": _id("Budget (deal) ID"),
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_revenue_distribution",
            description="Get a single revenue distribution.",
            inputSchema={
                "type": "object",
                "properties": {
                    "distribution_id": _id("Revenue distribution ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["distribution_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_revenue_distribution",
            description="Spread a share of a budget's revenue over a date range.",
            inputSchema={
                "type": "object",
                "properties": {
                    "deal_id": _id("Budget (deal) ID"),
                    "start_on": _date("Start date (YYYY-MM-DD)"),
                    "end_on": _date("End date (YYYY-MM-DD)"),
                    "amount_percent": {
                        "type": "number",
                        "minimum": 0,
                        "maximum": 100,
                        "description": "Share of the budget revenue, in percent"
                    },
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["deal_id", "start_on", "end_on", "amount_percent"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_revenue_distribution",
            description="Update the dates or percentage of a revenue distribution.",
            inputSchema={
                "type": "object",
                "properties": {
                    "distribution_id": _id("Revenue distribution ID"),
                    "start_on": _date("Start date (YYYY-MM-DD)"),
                    "end_on": _date("End date (YYYY-MM-DD)"),
                    "amount_percent": {"type": "number", "minimum": 0, "maximum": 100, "description": "Percent"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["distribution_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_delete_revenue_distribution",
            description="Delete a revenue distribution.",
            inputSchema={
                "type": "object",
                "properties": {
                    "distribution_id": _id("Revenue distribution ID")
                },
                "required": ["distribution_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_extend_revenue_distribution",
            description="Move the end date of a revenue distribution.",
            inputSchema={
                "type": "object",
                "properties": {
                    "distribution_id": _id("Revenue distribution ID"),
                    "new_end_on": _date("New end date (YYYY-MM-DD)"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["distribution_id", "new_end_on"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_report_overdue_distributions",
            description="Report revenue distributions whose end date has passed, most overdue first, "
                        "noting whether each budget has been delivered.",
            inputSchema={
                "type": "object",
                "properties": {
                    "as_of_date": _date("Reference date (YYYY-MM-DD, default: today)"),
                    "project_id": _id("Only distributions of this project"),
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Service and Service Type Tools
        # ============================================================================
        Tool(
            name="productive_list_services",
            description="List services (budget line items), optionally filtered by budget, project, person, "
                        "billing type or tracking settings.",
            inputSchema={
                "type": "object",
                "properties": {
                    "deal_id": _id("Budget (deal) ID"),
                    "project_id": _id("Project ID"),
                    "person_id": _id("Person ID"),
                    "billing_type": BILLING_TYPE,
                    "time_tracking_enabled": {"type": "boolean", "description": "Filter by time tracking"},
                    "expense_tracking_enabled": {"type": "boolean", "description": "Filter by expense tracking"},
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_service",
            description="Get details of a service, including tracking settings and financials.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_id": _id("Service ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["service_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_service",
            description="Add a service (line item) to a budget.",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "Service name"},
                    "description": {"type": "string", "maxLength": 5000, "description": "Service description"},
                    "deal_id": _id("Budget (deal) ID"),
                    "service_type_id": _id("Service type ID"),
                    "billing_type": {**BILLING_TYPE, "description": "Billing type (default: Time and Materials)"},
                    "unit": {**UNIT, "description": "Unit (default: Hour)"},
                    "price": {"type": "string", "description": "Price per unit"},
                    "quantity": {"type": "string", "description": "Quantity of units"},
                    "person_id": _id("Person responsible for the service"),
                    "time_tracking_enabled": {"type": "boolean", "description": "Allow time tracking (default: true)"},
                    "expense_tracking_enabled": {"type": "boolean", "description": "Allow expenses (default: false)"},
                    "booking_tracking_enabled": {"type": "boolean", "description": "Allow bookings (default: false)"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["name", "deal_id", "service_type_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_service",
            description="Update a service. Only the fields you pass are changed.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_id": _id("Service ID"),
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "New name"},
                    "description": {"type": "string", "maxLength": 5000, "description": "New description"},
                    "billing_type": BILLING_TYPE,
                    "unit": UNIT,
                    "price": {"type": "string", "description": "Price per unit"},
                    "quantity": {"type": "string", "description": "Quantity of units"},
                    "time_tracking_enabled": {"type": "boolean", "description": "Allow time tracking"},
                    "expense_tracking_enabled": {"type": "boolean", "description": "Allow expenses"},
                    "booking_tracking_enabled": {"type": "boolean", "description": "Allow bookings"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["service_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_list_service_types",
            description="List service types, the organization-wide categories services are built from.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text to match against service type names"},
                    "person_id": _id("Only service types assigned to this person"),
                    "limit": LIMIT,
                    "offset": OFFSET,
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_get_service_type",
            description="Get a single service type.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_type_id": _id("Service type ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["service_type_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_create_service_type",
            description="Create a service type.",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "Name"},
                    "description": {"type": "string", "maxLength": 5000, "description": "Description"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["name"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_update_service_type",
            description="Rename a service type or change its description.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_type_id": _id("Service type ID"),
                    "name": {"type": "string", "minLength": 1, "maxLength": 200, "description": "New name"},
                    "description": {"type": "string", "maxLength": 5000, "description": "New description"},
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["service_type_id"],
                "additionalProperties": False
            }
        ),
        Tool(
            name="productive_archive_service_type",
            description="Archive a service type so it can no longer be used for new services.",
            inputSchema={
                "type": "object",
                "properties": {
                    "service_type_id": _id("Service type ID"),
                    "response_format": RESPONSE_FORMAT
                },
                "required": ["service_type_id"],
                "additionalProperties": False
            }
        ),

        # ============================================================================
        # Rate Limit Tools
        # ============================================================================
        Tool(
            name="productive_rate_limit_status",
            description="Show how many API requests have been used in the current rate-limit window "
                        "(100 requests per 10 seconds). Does not call the API.",
            inputSchema={
                "type": "object",
                "properties": {
                    "response_format": RESPONSE_FORMAT
                },
                "additionalProperties": False
            }
        ),
    ]
