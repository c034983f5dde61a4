"""Shared formatting functions for MCP responses.

Two layers:
- ``format_*`` flatten a JSON:API resource (plus ``included``) into a plain dict
- ``*_markdown`` render those dicts for display

``render`` picks JSON or markdown and ``truncate_response`` caps the size.
"""
import json
from datetime import datetime
from typing import Any, Callable, Optional

from .config import APP_URL, CHARACTER_LIMIT, WorkspaceConfig
from .jsonapi import (
    find_included,
    included_name,
    included_person_name,
    person_name,
    relationship_id,
    relationship_ids,
)

BILLING_TYPES = {1: "Fixed", 2: "Time and Materials", 3: "Non-Billable"}
UNITS = {1: "Hour", 2: "Piece", 3: "Day"}
BILLING_TYPE_IDS = {name: type_id for type_id, name in BILLING_TYPES.items()}
UNIT_IDS = {name: unit_id for unit_id, name in UNITS.items()}


# ============================================================================
# Response shaping
# ============================================================================

def render(data: Any, response_format: str, markdown: Optional[Callable[[], str]] = None) -> str:
    """Render ``data`` as pretty JSON or via the markdown callback."""
    if response_format == "json" or markdown is None:
        return json.dumps(data, indent=2, default=str)
    return markdown()


def truncate_response(content: str, response_format: str) -> str:
    """Cap a response at CHARACTER_LIMIT characters with a pagination hint."""
    if len(content) <= CHARACTER_LIMIT:
        return content

    if response_format == "markdown":
        notice = ("\n\n---\n**Response truncated.** Use `limit` and `offset` parameters "
                  "to paginate through results.")
    else:
        notice = "\n\n[Response truncated. Use limit and offset parameters to paginate.]"
    return content[:CHARACTER_LIMIT] + notice


def format_datetime(value: Optional[str]) -> str:
    """``2025-01-15T09:30:00Z`` -> ``15 Jan 2025, 09:30 UTC``; unparseable input passes through."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    tz = parsed.tzname() or ""
    return f"{parsed.strftime('%d %b %Y, %H:%M')} {tz}".strip()


def format_date(value: Optional[str]) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value


def format_estimate(minutes: int) -> str:
    """``135`` -> ``2h 15m``."""
    hours, rest = divmod(minutes, 60)
    if hours and rest:
        return f"{hours}h {rest}m"
    if hours:
        return f"{hours}h"
    return f"{rest}m"


# ============================================================================
# Tasks
# ============================================================================

def format_task(task: dict, org_id: str, included: Optional[list], workspace: WorkspaceConfig) -> dict:
    """Flatten a task resource, resolving names from ``included``."""
    attrs = task.get("attributes") or {}
    custom_fields = attrs.get("custom_fields") or {}
    field_ids = workspace.custom_field_ids

    project_id = relationship_id(task, "project")
    task_list_id = relationship_id(task, "task_list")
    assignee_id = relationship_id(task, "assignee")
    status_id = relationship_id(task, "workflow_status")

    task_type = None
    if field_ids.task_type:
        task_type = workspace.task_type_name(custom_fields.get(field_ids.task_type))
    priority = None
    if field_ids.priority:
        priority = workspace.priority_name(custom_fields.get(field_ids.priority))

    estimate = attrs.get("initial_estimate")
    attachments = []
    for attachment_id in relationship_ids(task, "attachments"):
        attachment = find_included(included, "attachments", attachment_id)
        if attachment:
            attachments.append(format_attachment(attachment))

    task_id = task.get("id")
    return {
        "id": task_id,
        "number": attrs.get("number") or None,
        "title": attrs.get("title"),
        "description": attrs.get("description") or None,
        "project_id": project_id,
        "project_name": included_name(included, "projects", project_id),
        "task_list_id": task_list_id,
        "task_list_name": included_name(included, "task_lists", task_list_id),
        "assignee_id": assignee_id,
        "assignee_name": included_person_name(included, assignee_id),
        "estimate_minutes": estimate if isinstance(estimate, int) else None,
        "task_type": task_type,
        "priority": priority,
        "workflow_status": included_name(included, "workflow_statuses", status_id),
        "closed": bool(attrs.get("closed")),
        "due_date": attrs.get("due_date") or None,
        "start_date": attrs.get("start_date") or None,
        "created_at": attrs.get("created_at"),
        "url": f"{APP_URL}/{org_id}/tasks/{task_id}" if task_id else None,
        "attachments": attachments,
    }


def format_attachment(attachment: dict) -> dict:
    attrs = attachment.get("attributes") or {}
    size = attrs.get("size") or 0
    content_type = attrs.get("content_type") or ""
    return {
        "id": attachment.get("id"),
        "name": attrs.get("name") or "attachment",
        "url": attrs.get("url"),
        "content_type": content_type,
        "size": size,
        "size_formatted": format_file_size(size),
        "is_image": content_type.startswith("image/"),
        "is_inline": attrs.get("attachment_type") == "inline" or bool(attrs.get("inline")),
    }


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def task_ref(task: dict) -> str:
    return f"#{task['number']}" if task.get("number") else str(task["id"])


def task_markdown(task: dict, heading: str = "Task") -> str:
    """Format a single task for display."""
    lines = [
        f"# {heading}",
        "",
        f"**ID**: {task_ref(task)}",
        f"**Title**: {task['title']}",
    ]

    if task["description"]:
        lines.append(f"**Description**: {task['description']}")

    if task["project_name"]:
        lines.append(f"**Project**: {task['project_name']}")
    elif task["project_id"]:
        lines.append(f"**Project ID**: {task['project_id']}")

    if task["task_list_name"]:
        lines.append(f"**Task List**: {task['task_list_name']}")
    elif task["task_list_id"]:
        lines.append(f"**Task List ID**: {task['task_list_id']}")

    if task["assignee_name"]:
        lines.append(f"**Assignee**: {task['assignee_name']}")
    elif task["assignee_id"]:
        lines.append(f"**Assignee ID**: {task['assignee_id']}")

    if task["task_type"]:
        lines.append(f"**Type**: {task['task_type']}")
    if task["priority"]:
        lines.append(f"**Priority**: {task['priority']}")
    if task["workflow_status"]:
        lines.append(f"**Workflow Status**: {task['workflow_status']}")

    if task["estimate_minutes"] is not None:
        minutes = task["estimate_minutes"]
        lines.append(f"**Estimate**: {format_estimate(minutes)} ({minutes} minutes)")

    lines.append(f"**Status**: {'Closed' if task['closed'] else 'Open'}")

    if task["due_date"]:
        lines.append(f"**Due Date**: {task['due_date']}")
    if task["start_date"]:
        lines.append(f"**Start Date**: {task['start_date']}")
    if task["created_at"]:
        lines.append(f"**Created**: {format_datetime(task['created_at'])}")

    if task["attachments"]:
        lines.extend(["", "## Attachments"])
        inline = [a for a in task["attachments"] if a["is_inline"]]
        files = [a for a in task["attachments"] if not a["is_inline"]]
        for label, group in (("**Inline Images:**", inline), ("**Files:**", files)):
            if group:
                lines.extend(["", label])
                for att in group:
                    icon = "🖼️ " if att["is_image"] else "📎 "
                    lines.append(f"- {icon}[{att['name']}]({att['url']}) ({att['size_formatted']})")

    if task["url"]:
        lines.extend(["", f"[View in Productive]({task['url']})"])

    return "\n".join(lines)


def task_list_markdown(tasks: list[dict], total: Optional[int] = None) -> str:
    """Format tasks as a compact list (token-efficient)."""
    if not tasks:
        return "No tasks found."

    lines = ["# Tasks", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} tasks", ""])

    for task in tasks:
        status = "✓" if task["closed"] else "○"
        lines.append(f"{status} **{task_ref(task)}**: {task['title']}")
        if task["project_name"]:
            lines.append(f"  Project: {task['project_name']}")
        if task["due_date"]:
            lines.append(f"  Due: {task['due_date']}")
        if task["url"]:
            lines.append(f"  [View]({task['url']})")
        lines.append("")

    return "\n".join(lines)


def subtasks_markdown(subtasks: list[dict], parent_task_id: str, total: Optional[int] = None) -> str:
    if not subtasks:
        return f"No sub-tasks found for task {parent_task_id}."

    lines = ["# Sub-tasks (Child Tasks)", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} sub-tasks", ""])

    for task in subtasks:
        status = "✓" if task["closed"] else "○"
        priority = f" [{task['priority']}]" if task["priority"] else ""
        task_type = f" ({task['task_type']})" if task["task_type"] else ""
        lines.append(f"{status} **{task_ref(task)}**: {task['title']}{task_type}{priority}")
        if task["assignee_name"]:
            lines.append(f"  Assignee: {task['assignee_name']}")
        if task["workflow_status"]:
            lines.append(f"  Status: {task['workflow_status']}")
        if task["due_date"]:
            lines.append(f"  Due: {task['due_date']}")
        if task["url"]:
            lines.append(f"  [View]({task['url']})")
        lines.append("")

    return "\n".join(lines)


def batch_summary_markdown(summary: dict) -> str:
    lines = [
        "# Batch Task Creation Results",
        "",
        f"**Total**: {summary['total']}",
        f"**Successful**: {summary['successful']}",
        f"**Failed**: {summary['failed']}",
        "",
    ]

    if summary["successful"]:
        lines.extend(["## Successfully Created Tasks", ""])
        for result in summary["results"]:
            if result["success"]:
                task = result["task"]
                lines.append(f"✓ **{task_ref(task)}**: {task['title']}")
                if task["url"]:
                    lines.append(f"  [View]({task['url']})")
                lines.append("")

    if summary["failed"]:
        lines.extend(["## Failed Tasks", ""])
        for result in summary["results"]:
            if not result["success"]:
                error = result["error"]
                lines.append(f"✗ **{result['title']}**")
                lines.append(f"  {error}" if error.startswith("Error") else f"  Error: {error}")
                lines.append("")

    return "\n".join(lines)


# ============================================================================
# Dependencies and attachments
# ============================================================================

DEPENDENCY_TYPE_IDS = {"blocking": 1, "waiting_on": 2, "related": 3}
DEPENDENCY_TYPE_NAMES = {type_id: name for name, type_id in DEPENDENCY_TYPE_IDS.items()}
DEPENDENCY_HEADINGS = {
    "blocking": "Blocking",
    "waiting_on": "Waiting On (Is Blocked By)",
    "related": "Related",
}


def format_task_dependency(dependency: dict, included: Optional[list]) -> dict:
    attrs = dependency.get("attributes") or {}
    type_id = attrs.get("type_id")
    task_id = relationship_id(dependency, "task")
    dependent_task_id = relationship_id(dependency, "dependent_task")
    task = find_included(included, "tasks", task_id)
    dependent = find_included(included, "tasks", dependent_task_id)
    return {
        "id": dependency.get("id"),
        "task_id": task_id or "",
        "task_title": ((task or {}).get("attributes") or {}).get("title"),
        "dependent_task_id": dependent_task_id or "",
        "dependent_task_title": ((dependent or {}).get("attributes") or {}).get("title"),
        "dependency_type": DEPENDENCY_TYPE_NAMES.get(int(type_id) if str(type_id).isdigit() else None, "related"),
        "created_at": attrs.get("created_at"),
    }


def dependency_markdown(dependency: dict, heading: str = "Task Dependency") -> str:
    lines = [
        f"# {heading}",
        "",
        f"**ID**: {dependency['id']}",
        f"**Type**: {DEPENDENCY_HEADINGS[dependency['dependency_type']]}",
    ]
    if dependency["task_title"]:
        lines.append(f"**Task**: {dependency['task_title']} (ID: {dependency['task_id']})")
    else:
        lines.append(f"**Task ID**: {dependency['task_id']}")
    if dependency["dependent_task_title"]:
        lines.append(
            f"**Dependent Task**: {dependency['dependent_task_title']} (ID: {dependency['dependent_task_id']})"
        )
    else:
        lines.append(f"**Dependent Task ID**: {dependency['dependent_task_id']}")
    if dependency["created_at"]:
        lines.append(f"**Created**: {format_datetime(dependency['created_at'])}")
    return "\n".join(lines)


def dependency_list_markdown(dependencies: list[dict], task_id: str) -> str:
    """Group a task's dependencies by type."""
    if not dependencies:
        return f"No dependencies found for task {task_id}."

    lines = [f"# Dependencies for Task {task_id}", "", f"**Total**: {len(dependencies)} dependencies", ""]
    for dependency_type, heading in DEPENDENCY_HEADINGS.items():
        group = [d for d in dependencies if d["dependency_type"] == dependency_type]
        if not group:
            continue
        lines.extend([f"## {heading}", ""])
        for dep in group:
            name = dep["dependent_task_title"] or f"Task {dep['dependent_task_id']}"
            lines.append(f"- **{name}** (ID: {dep['dependent_task_id']})")
        lines.append("")

    return "\n".join(lines)


def attachments_markdown(attachments: list[dict]) -> str:
    if not attachments:
        return "No attachments found for this task."

    lines = ["# Task Attachments", "", f"**Total**: {len(attachments)} attachments"]
    inline = [a for a in attachments if a["is_inline"]]
    files = [a for a in attachments if not a["is_inline"]]
    for heading, group in (("## Inline Images", inline), ("## Files", files)):
        if group:
            lines.extend(["", heading, ""])
            for att in group:
                icon = "🖼️" if att["is_image"] else "📎"
                lines.append(f"- {icon} [{att['name']}]({att['url']}) ({att['size_formatted']})")

    return "\n".join(lines)


def uploaded_attachment_markdown(result: dict, org_id: str) -> str:
    resource_url = f"{APP_URL}/{org_id}/{result['attachable_type']}s/{result['attachable_id']}"
    return "\n".join([
        "# Attachment Uploaded",
        "",
        f"**ID**: {result['id']}",
        f"**Filename**: {result['filename']}",
        f"**Size**: {result['size_formatted']}",
        f"**Type**: {result['content_type']}",
        f"**Attached to**: {result['attachable_type'].capitalize()} {result['attachable_id']}",
        "",
        f"[View in Productive]({resource_url})",
    ])


# ============================================================================
# Projects, task lists, boards, people
# ============================================================================

def format_project(project: dict, included: Optional[list]) -> dict:
    attrs = project.get("attributes") or {}
    client_id = relationship_id(project, "company")
    return {
        "id": project.get("id"),
        "name": attrs.get("name"),
        "project_number": attrs.get("project_number") or None,
        "archived": attrs.get("archived") is True or bool(attrs.get("archived_at")),
        "client_id": client_id,
        "client_name": included_name(included, "companies", client_id),
    }


def project_list_markdown(projects: list[dict]) -> str:
    if not projects:
        return "No projects found."

    lines = ["# Projects", ""]
    for project in projects:
        status = "[Archived]" if project["archived"] else "[Active]"
        number = f"({project['project_number']}) " if project["project_number"] else ""
        lines.append(f"- **{project['name']}** {number}{status}")
        lines.append(f"  ID: {project['id']}")
        if project["client_name"]:
            lines.append(f"  Client: {project['client_name']} (ID: {project['client_id']})")
        elif project["client_id"]:
            lines.append(f"  Client ID: {project['client_id']}")
        lines.append("")

    return "\n".join(lines)


def format_task_list(task_list: dict) -> dict:
    attrs = task_list.get("attributes") or {}
    return {
        "id": task_list.get("id"),
        "name": attrs.get("name") or "",
        "position": attrs.get("position"),
        "archived": attrs.get("archived_at") is not None,
        "board_id": relationship_id(task_list, "board"),
        "project_id": relationship_id(task_list, "project"),
    }


def task_lists_markdown(task_lists: list[dict]) -> str:
    if not task_lists:
        return "No task lists found for this project."

    lines = ["# Task Lists", ""]
    for task_list in task_lists:
        status = "(Inactive)" if task_list["archived"] else "(Active)"
        lines.append(f"- **{task_list['name']}** {status}")
        lines.append(f"  ID: {task_list['id']}")
        lines.append("")

    return "\n".join(lines)


def single_task_list_markdown(task_list: dict) -> str:
    lines = [
        f"# Task List: {task_list['name']}",
        "",
        f"**ID**: {task_list['id']}",
        f"**Status**: {'Archived' if task_list['archived'] else 'Active'}",
    ]
    if task_list["position"] is not None:
        lines.append(f"**Position**: {task_list['position']}")
    if task_list["board_id"]:
        lines.append(f"**Board ID**: {task_list['board_id']}")
    if task_list["project_id"]:
        lines.append(f"**Project ID**: {task_list['project_id']}")
    return "\n".join(lines)


def format_board(board: dict) -> dict:
    attrs = board.get("attributes") or {}
    return {
        "id": board.get("id"),
        "name": attrs.get("name") or "",
        "position": attrs.get("position"),
        "archived": attrs.get("archived_at") is not None,
    }


def boards_markdown(boards: list[dict]) -> str:
    if not boards:
        return "No boards found for this project."

    lines = ["# Boards", ""]
    for board in boards:
        status = "(Archived)" if board["archived"] else "(Active)"
        lines.append(f"- **{board['name']}** {status}")
        lines.append(f"  ID: {board['id']}")
        if board["position"] is not None:
            lines.append(f"  Position: {board['position']}")
        lines.append("")

    return "\n".join(lines)


def format_person(person: dict) -> dict:
    attrs = person.get("attributes") or {}
    return {
        "id": person.get("id"),
        "name": person_name(person) or "Unknown",
        "email": attrs.get("email") or "No email",
        "active": attrs.get("active", True) is not False,
    }


def people_markdown(people: list[dict]) -> str:
    if not people:
        return "No people found."

    lines = ["# People", ""]
    for person in people:
        status = "[Active]" if person["active"] else "[Inactive]"
        lines.append(f"- **{person['name']}** {status}")
        lines.append(f"  Email: {person['email']}")
        lines.append(f"  ID: {person['id']}")
        lines.append("")

    return "\n".join(lines)


# ============================================================================
# Todos and comments
# ============================================================================

def format_todo(todo: dict) -> dict:
    attrs = todo.get("attributes") or {}
    return {
        "id": todo.get("id"),
        "description": attrs.get("description"),
        "closed": bool(attrs.get("closed")),
        "due_date": attrs.get("due_date") or None,
        "task_id": relationship_id(todo, "task"),
        "assignee_id": relationship_id(todo, "assignee"),
        "created_at": attrs.get("created_at"),
    }


def todo_markdown(todo: dict) -> str:
    status = "✓" if todo["closed"] else "○"
    lines = [f"{status} {todo['description']}", f"  ID: {todo['id']}"]
    if todo["due_date"]:
        lines.append(f"  Due: {todo['due_date']}")
    if todo["assignee_id"]:
        lines.append(f"  Assignee ID: {todo['assignee_id']}")
    return "\n".join(lines)


def todo_list_markdown(todos: list[dict]) -> str:
    if not todos:
        return "No todos found."
    items = "\n\n".join(todo_markdown(todo) for todo in todos)
    return f"# Todo Items ({len(todos)})\n\n{items}"


def format_comment(comment: dict, included: Optional[list]) -> dict:
    attrs = comment.get("attributes") or {}
    author_id = relationship_id(comment, "creator")
    return {
        "id": comment.get("id"),
        "body": attrs.get("body") or "",
        "created_at": attrs.get("created_at"),
        "updated_at": attrs.get("updated_at"),
        "pinned": bool(attrs.get("pinned")),
        "author_id": author_id,
        "author_name": included_person_name(included, author_id),
        "task_id": relationship_id(comment, "task"),
    }


def comments_markdown(comments: list[dict], total: Optional[int] = None) -> str:
    if not comments:
        return "No comments found for this task."

    lines = ["# Task Comments", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} comments", ""])

    for comment in comments:
        pinned = " 📌" if comment["pinned"] else ""
        if comment["author_name"]:
            author = comment["author_name"]
        elif comment["author_id"]:
            author = f"User {comment['author_id']}"
        else:
            author = "Unknown"
        lines.extend([
            f"## {author}{pinned}",
            f"*{format_datetime(comment['created_at'])}*",
            "",
            comment["body"],
            "",
            "---",
            "",
        ])

    return "\n".join(lines)


# ============================================================================
# Pages
# ============================================================================

def format_page(page: dict, org_id: str, included: Optional[list]) -> dict:
    attrs = page.get("attributes") or {}
    project_id = relationship_id(page, "project")
    creator_id = relationship_id(page, "creator")
    page_id = page.get("id")
    return {
        "id": page_id,
        "title": attrs.get("title"),
        "body": attrs.get("body") or None,
        "created_at": attrs.get("created_at"),
        "updated_at": attrs.get("updated_at"),
        "edited_at": attrs.get("edited_at") or None,
        "parent_page_id": attrs.get("parent_page_id") or None,
        "root_page_id": attrs.get("root_page_id") or None,
        "public_access": bool(attrs.get("public_access")),
        "version_number": attrs.get("version_number") or None,
        "project_id": project_id,
        "project_name": included_name(included, "projects", project_id),
        "creator_id": creator_id,
        "creator_name": included_person_name(included, creator_id),
        "url": f"{APP_URL}/1-{org_id}/pages/{page_id}" if project_id else None,
    }


def _preview(body: str, length: int = 200) -> str:
    return body[:length] + "..." if len(body) > length else body


def page_markdown(page: dict, full_content: bool = False) -> str:
    lines = [f"# {page['title']}", "", f"**Page ID**: {page['id']}"]
    if page["project_name"]:
        lines.append(f"**Project**: {page['project_name']}")
    lines.append(f"**Created**: {format_date(page['created_at'])}")
    lines.append(f"**Updated**: {format_date(page['updated_at'])}")
    if page["edited_at"]:
        lines.append(f"**Last Activity**: {format_date(page['edited_at'])}")
    if page["creator_name"]:
        lines.append(f"**Creator**: {page['creator_name']}")
    lines.append(f"**Public**: {'Yes' if page['public_access'] else 'No'}")
    if page["version_number"]:
        lines.append(f"**Version**: {page['version_number']}")
    if page["url"]:
        lines.append(f"**URL**: {page['url']}")

    if page["body"]:
        body = page["body"] if full_content else _preview(page["body"])
        lines.extend(["", "## Content", "", body])

    if page["parent_page_id"] or page["root_page_id"]:
        lines.extend(["", "---", ""])
        if page["parent_page_id"]:
            lines.append(f"**Parent Page ID**: {page['parent_page_id']}")
        if page["root_page_id"]:
            lines.append(f"**Root Page ID**: {page['root_page_id']}")

    return "\n".join(lines)


def page_list_markdown(pages: list[dict], total: Optional[int] = None) -> str:
    if not pages:
        return "No pages found."

    count = f" (showing {len(pages)} of {total})" if total is not None else f" ({len(pages)})"
    sections = []
    for page in pages:
        lines = [f"## {page['title']}"]
        if page["url"]:
            lines.append(f"**Link**: {page['url']}")
        if page["project_name"]:
            lines.append(f"**Project**: {page['project_name']}")
        lines.append(f"**ID**: {page['id']}")
        lines.append(f"**Created**: {format_date(page['created_at'])}")
        lines.append(f"**Updated**: {format_date(page['updated_at'])}")
        if page["creator_name"]:
            lines.append(f"**Creator**: {page['creator_name']}")
        if page["body"]:
            lines.extend(["", _preview(page["body"])])
        sections.append("\n".join(lines))

    return f"# Pages{count}\n\n" + "\n\n---\n\n".join(sections)


# ============================================================================
# Budgets and services
# ============================================================================

def format_budget(budget: dict, org_id: str, included: Optional[list]) -> dict:
    attrs = budget.get("attributes") or {}
    project_id = relationship_id(budget, "project")
    company_id = relationship_id(budget, "company")
    responsible_id = relationship_id(budget, "responsible")
    budget_id = budget.get("id")
    return {
        "id": budget_id,
        "name": attrs.get("name"),
        "status": "open" if attrs.get("budget_status") == 1 else "closed",
        "start_date": attrs.get("date") or None,
        "end_date": attrs.get("end_date") or None,
        "delivered_on": attrs.get("delivered_on") or None,
        "total": attrs.get("total") or None,
        "currency": attrs.get("currency") or None,
        "project_id": project_id,
        "project_name": included_name(included, "projects", project_id),
        "company_id": company_id,
        "company_name": included_name(included, "companies", company_id),
        "responsible_id": responsible_id,
        "responsible_name": included_person_name(included, responsible_id),
        "created_at": attrs.get("created_at"),
        "url": f"{APP_URL}/{org_id}/deals/{budget_id}" if budget_id else None,
    }


def budget_list_markdown(budgets: list[dict], total: Optional[int] = None) -> str:
    if not budgets:
        return "No budgets found."

    lines = ["# Budgets", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} budgets", ""])

    for budget in budgets:
        delivered = " [Delivered]" if budget["delivered_on"] else ""
        lines.append(f"- **{budget['name']}** ({budget['status'].capitalize()}){delivered}")
        lines.append(f"  ID: {budget['id']}")
        if budget["project_name"]:
            lines.append(f"  Project: {budget['project_name']}")
        if budget["total"] and budget["currency"]:
            lines.append(f"  Total: {budget['currency']} {budget['total']}")
        if budget["end_date"]:
            lines.append(f"  End Date: {budget['end_date']}")
        if budget["delivered_on"]:
            lines.append(f"  Delivered: {budget['delivered_on']}")
        if budget["url"]:
            lines.append(f"  [View]({budget['url']})")
        lines.append("")

    return "\n".join(lines)


def _named(label: str, name: Optional[str], ident: Optional[str]) -> Optional[str]:
    if name:
        return f"**{label}**: {name} (ID: {ident})"
    if ident:
        return f"**{label} ID**: {ident}"
    return None


def budget_markdown(budget: dict) -> str:
    lines = [
        f"# Budget: {budget['name']}",
        "",
        f"**ID**: {budget['id']}",
        f"**Status**: {budget['status'].capitalize()}",
    ]
    if budget["total"] and budget["currency"]:
        lines.append(f"**Total**: {budget['currency']} {budget['total']}")
    if budget["start_date"]:
        lines.append(f"**Start Date**: {budget['start_date']}")
    if budget["end_date"]:
        lines.append(f"**End Date**: {budget['end_date']}")
    if budget["delivered_on"]:
        lines.append(f"**Delivered On**: {budget['delivered_on']}")

    for line in (
        _named("Project", budget["project_name"], budget["project_id"]),
        _named("Company", budget["company_name"], budget["company_id"]),
        _named("Responsible", budget["responsible_name"], budget["responsible_id"]),
    ):
        if line:
            lines.append(line)

    if budget["created_at"]:
        lines.append(f"**Created**: {format_datetime(budget['created_at'])}")
    if budget["url"]:
        lines.extend(["", f"[View in Productive]({budget['url']})"])

    return "\n".join(lines)


def format_service(service: dict, included: Optional[list]) -> dict:
    attrs = service.get("attributes") or {}
    deal_id = relationship_id(service, "deal")
    service_type_id = relationship_id(service, "service_type")
    person_id = relationship_id(service, "person")
    billing_type_id = attrs.get("billing_type_id")
    unit_id = attrs.get("unit_id")
    return {
        "id": service.get("id"),
        "name": attrs.get("name"),
        "description": attrs.get("description") or None,
        "billing_type": BILLING_TYPES.get(billing_type_id, f"Unknown ({billing_type_id})"),
        "unit": UNITS.get(unit_id, f"Unknown ({unit_id})"),
        "price": attrs.get("price") or None,
        "quantity": attrs.get("quantity") or None,
        "billable": bool(attrs.get("billable")),
        "time_tracking_enabled": bool(attrs.get("time_tracking_enabled")),
        "expense_tracking_enabled": bool(attrs.get("expense_tracking_enabled")),
        "booking_tracking_enabled": bool(attrs.get("booking_tracking_enabled")),
        "budget_cap_enabled": bool(attrs.get("budget_cap_enabled")),
        "budgeted_time": attrs.get("budgeted_time") or None,
        "worked_time": attrs.get("worked_time") or None,
        "revenue": attrs.get("revenue") or None,
        "cost": attrs.get("cost") or None,
        "profit": attrs.get("profit") or None,
        "profit_margin": attrs.get("profit_margin") or None,
        "budget_total": attrs.get("budget_total") or None,
        "budget_used": attrs.get("budget_used") or None,
        "deal_id": deal_id,
        "deal_name": included_name(included, "deals", deal_id),
        "service_type_id": service_type_id,
        "service_type_name": included_name(included, "service_types", service_type_id),
        "person_id": person_id,
        "person_name": included_person_name(included, person_id),
    }


def _tracking(service: dict) -> list[str]:
    tracking = []
    if service["time_tracking_enabled"]:
        tracking.append("Time")
    if service["expense_tracking_enabled"]:
        tracking.append("Expense")
    if service["booking_tracking_enabled"]:
        tracking.append("Booking")
    return tracking


def service_list_markdown(services: list[dict], total: Optional[int] = None) -> str:
    if not services:
        return "No services found."

    lines = ["# Services", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} services", ""])

    for service in services:
        billable = "" if service["billable"] else " [Non-Billable]"
        lines.append(f"- **{service['name']}** ({service['billing_type']}){billable}")
        lines.append(f"  ID: {service['id']}")
        if service["service_type_name"]:
            lines.append(f"  Type: {service['service_type_name']}")
        if service["deal_name"]:
            lines.append(f"  Budget: {service['deal_name']}")
        elif service["deal_id"]:
            lines.append(f"  Budget ID: {service['deal_id']}")
        if service["price"]:
            lines.append(f"  Price: {service['price']}/{service['unit'].lower()}")
        if service["person_name"]:
            lines.append(f"  Person: {service['person_name']}")
        tracking = _tracking(service)
        if tracking:
            lines.append(f"  Tracking: {', '.join(tracking)}")
        lines.append("")

    return "\n".join(lines)


def service_markdown(service: dict) -> str:
    lines = [
        f"# Service: {service['name']}",
        "",
        f"**ID**: {service['id']}",
        f"**Billing Type**: {service['billing_type']}",
        f"**Unit**: {service['unit']}",
        f"**Billable**: {'Yes' if service['billable'] else 'No'}",
    ]
    if service["description"]:
        lines.append(f"**Description**: {service['description']}")
    if service["price"]:
        lines.append(f"**Price**: {service['price']}")
    if service["quantity"]:
        lines.append(f"**Quantity**: {service['quantity']}")

    for line in (
        _named("Budget", service["deal_name"], service["deal_id"]),
        _named("Service Type", service["service_type_name"], service["service_type_id"]),
        _named("Person", service["person_name"], service["person_id"]),
    ):
        if line:
            lines.append(line)

    tracking = _tracking(service)
    if tracking:
        lines.append(f"**Tracking**: {', '.join(tracking)}")
    if service["budget_cap_enabled"]:
        lines.append("**Budget Cap**: Enabled")

    financials = [
        ("Budgeted Time", service["budgeted_time"]),
        ("Worked Time", service["worked_time"]),
        ("Budget Total", service["budget_total"]),
        ("Budget Used", service["budget_used"]),
        ("Revenue", service["revenue"]),
        ("Cost", service["cost"]),
        ("Profit", service["profit"]),
        ("Profit Margin", service["profit_margin"]),
    ]
    shown = [(label, value) for label, value in financials if value is not None]
    if shown:
        lines.extend(["", "## Financials"])
        lines.extend(f"**{label}**: {value}" for label, value in shown)

    return "\n".join(lines)


def format_service_type(service_type: dict) -> dict:
    attrs = service_type.get("attributes") or {}
    return {
        "id": service_type.get("id"),
        "name": attrs.get("name"),
        "description": attrs.get("description") or None,
        "archived": attrs.get("archived_at") is not None,
    }


def service_types_markdown(service_types: list[dict], total: Optional[int] = None) -> str:
    if not service_types:
        return "No service types found."

    lines = ["# Service Types", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} service types", ""])

    for service_type in service_types:
        status = "(Archived)" if service_type["archived"] else "(Active)"
        lines.append(f"- **{service_type['name']}** {status}")
        lines.append(f"  ID: {service_type['id']}")
        if service_type["description"]:
            lines.append(f"  {service_type['description']}")
        lines.append("")

    return "\n".join(lines)


def service_type_markdown(service_type: dict) -> str:
    lines = [
        f"# Service Type: {service_type['name']}",
        "",
        f"**ID**: {service_type['id']}",
        f"**Status**: {'Archived' if service_type['archived'] else 'Active'}",
    ]
    if service_type["description"]:
        lines.append(f"**Description**: {service_type['description']}")
    return "\n".join(lines)


# ============================================================================
# Budget audits and revenue distributions
# ============================================================================

AUDIT_LABELS = {"expired_end_date": "Warning: Expired", "no_end_date": "Warning: No End Date"}


def budget_audit_markdown(report: dict) -> str:
    lines = [
        "# Budget Audit Report",
        "",
        f"**Budgets Checked**: {report['total_budgets_checked']}",
        f"**Issues Found**: {report['issues_found']}",
        "",
    ]

    if report["issues"]:
        lines.extend(["## Issues", ""])
        for issue in report["issues"]:
            label = AUDIT_LABELS.get(issue["issue_type"], "Info")
            lines.append(f"### {label}: {issue['budget_name']}")
            lines.append(f"- **Budget ID**: {issue['budget_id']}")
            if issue["project_name"]:
                lines.append(f"- **Project**: {issue['project_name']}")
            lines.append(f"- **Issue**: {issue['details']}")
            lines.append("")

    if report["projects_without_open_budget"]:
        lines.extend(["## Projects Without Open Budgets", ""])
        for project in report["projects_without_open_budget"]:
            lines.append(f"- **{project['project_name']}** (ID: {project['project_id']})")
        lines.append("")

    if not report["issues_found"]:
        lines.append("All budgets are healthy with valid end dates.")

    return "\n".join(lines)


def format_revenue_distribution(distribution: dict, included: Optional[list]) -> dict:
    """Flatten a revenue distribution; the project comes from the included deal."""
    attrs = distribution.get("attributes") or {}
    deal_id = relationship_id(distribution, "deal")
    deal = find_included(included, "deals", deal_id)
    project_id = relationship_id(deal, "project") if deal else None
    return {
        "id": distribution.get("id"),
        "start_on": attrs.get("start_on"),
        "end_on": attrs.get("end_on"),
        "amount_percent": attrs.get("amount_percent"),
        "deal_id": deal_id,
        "deal_name": included_name(included, "deals", deal_id),
        "project_id": project_id,
        "project_name": included_name(included, "projects", project_id),
        "created_at": attrs.get("created_at"),
    }


def revenue_distribution_list_markdown(distributions: list[dict], total: Optional[int] = None) -> str:
    if not distributions:
        return "No revenue distributions found."

    lines = ["# Revenue Distributions", ""]
    if total is not None:
        lines.extend([f"**Total**: {total} distributions", ""])

    for dist in distributions:
        lines.append(f"- **{dist['start_on']} to {dist['end_on']}** ({dist['amount_percent']}%)")
        lines.append(f"  ID: {dist['id']}")
        if dist["deal_name"]:
            lines.append(f"  Budget: {dist['deal_name']}")
        elif dist["deal_id"]:
            lines.append(f"  Budget ID: {dist['deal_id']}")
        if dist["project_name"]:
            lines.append(f"  Project: {dist['project_name']}")
        lines.append("")

    return "\n".join(lines)


def revenue_distribution_markdown(dist: dict) -> str:
    lines = [
        "# Revenue Distribution",
        "",
        f"**ID**: {dist['id']}",
        f"**Start Date**: {dist['start_on']}",
        f"**End Date**: {dist['end_on']}",
        f"**Amount**: {dist['amount_percent']}%",
    ]
    for line in (
        _named("Budget", dist["deal_name"], dist["deal_id"]),
        _named("Project", dist["project_name"], dist["project_id"]),
    ):
        if line:
            lines.append(line)
    if dist["created_at"]:
        lines.append(f"**Created**: {format_datetime(dist['created_at'])}")
    return "\n".join(lines)


def overdue_distributions_markdown(report: dict) -> str:
    lines = [
        "# Overdue Revenue Distributions Report",
        "",
        f"**Total Distributions Checked**: {report['total_checked']}",
        f"**Overdue Distributions**: {report['overdue_count']}",
        "",
    ]

    if not report["overdue_distributions"]:
        lines.append("No overdue revenue distributions found.")
        return "\n".join(lines)

    lines.extend(["## Overdue Items", ""])
    for item in report["overdue_distributions"]:
        dist = item["distribution"]
        delivered = " [Budget Delivered]" if item["budget_delivered"] else " [Not Delivered]"
        lines.append(f"### {dist['deal_name'] or dist['deal_id']}{delivered}")
        lines.append(f"- **Distribution ID**: {dist['id']}")
        lines.append(f"- **End Date**: {dist['end_on']}")
        lines.append(f"- **Days Overdue**: {item['days_overdue']}")
        if dist["project_name"]:
            lines.append(f"- **Project**: {dist['project_name']}")
        lines.append(f"- **Amount**: {dist['amount_percent']}%")
        lines.append("")

    return "\n".join(lines)


# ============================================================================
# Rate limiting
# ============================================================================

def rate_limit_markdown(status: dict) -> str:
    return f"""# Rate Limit Status
**Used**: {status['count']} of {status['limit']} requests
**Remaining**: {status['remaining']}
**Window**: {status['window_ms'] // 1000} seconds"""
