"""Tests for tool handlers and the run_tool dispatcher."""
import json

import httpx
import pytest

from productive_mcp import tools
from productive_mcp.handlers import HANDLERS, run_tool


def task_resource(task_id="77", title="Fix login", **attributes):
    return {
        "id": task_id,
        "type": "tasks",
        "attributes": {"title": title, "number": 12, "closed": False, **attributes},
        "relationships": {
            "project": {"data": {"type": "projects", "id": "5"}},
            "assignee": {"data": {"type": "people", "id": "9"}},
        },
    }


INCLUDED = [
    {"id": "5", "type": "projects", "attributes": {"name": "Website"}},
    {"id": "9", "type": "people", "attributes": {"first_name": "Ada", "last_name": "Lovelace"}},
]


def text_of(result) -> str:
    return result.content[0].text


class TestToolRegistry:
    """Test that every listed tool has a handler."""

    def test_tools_and_handlers_match(self):
        names = {tool.name for tool in tools.get_tools()}
        assert names == set(HANDLERS)
        assert all(name.startswith("productive_") for name in names)


class TestRunToolErrors:
    """Test that run_tool never raises."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, client, workspace):
        result = await run_tool("productive_nope", {}, client, workspace)
        assert result.isError
        assert text_of(result) == "Error: Unknown tool: productive_nope"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, client, api, workspace):
        """Validation failures are reported before any API call."""
        result = await run_tool("productive_create_task", {"title": ""}, client, workspace)

        assert result.isError
        assert text_of(result).startswith("Error: Invalid arguments for productive_create_task:")
        assert "project_id" in text_of(result)
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_unknown_argument_rejected(self, client, api, workspace):
        result = await run_tool("productive_get_task", {"task_id": "1", "bogus": True}, client, workspace)
        assert result.isError
        assert "bogus" in text_of(result)

    @pytest.mark.asyncio
    async def test_bad_date_rejected(self, client, api, workspace):
        result = await run_tool(
            "productive_create_todo",
            {"task_id": "1", "description": "x", "due_date": "20/11/2025"},
            client, workspace,
        )
        assert result.isError
        assert "YYYY-MM-DD" in text_of(result)
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_api_error_surfaces_message(self, client, api, workspace):
        api.route = lambda request: httpx.Response(404, json={"errors": [{"detail": "Task not found"}]})

        result = await run_tool("productive_get_task", {"task_id": "404"}, client, workspace)

        assert result.isError
        assert text_of(result) == "Error: Task not found. Task not found"

    @pytest.mark.asyncio
    async def test_unconfigured_task_type(self, client, api, workspace):
        result = await run_tool(
            "productive_create_task",
            {"title": "T", "project_id": "5", "task_list_id": "6", "task_type": "Epic"},
            client, workspace,
        )
        assert result.isError
        assert 'Task type "Epic"' in text_of(result)
        assert api.requests == []


class TestTaskHandlers:
    """Test task payloads and parameters."""

    @pytest.mark.asyncio
    async def test_create_task_payload(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={"data": task_resource(), "included": INCLUDED})

        result = await run_tool("productive_create_task", {
            "title": "Fix login",
            "description": "**Steps** to reproduce",
            "project_id": "5",
            "task_list_id": "6",
            "assignee_id": "9",
            "due_date": "2025-11-20",
            "task_type": "Bug",
            "priority": "High",
            "workflow_status": "In Progress",
            "labels": ["auth"],
            "parent_task_id": "70",
        }, client, workspace)

        assert not result.isError
        body = api.body()["data"]
        assert body["type"] == "tasks"
        assert body["attributes"]["title"] == "Fix login"
        assert "<strong>Steps</strong>" in body["attributes"]["description"]
        assert body["attributes"]["due_date"] == "2025-11-20"
        assert body["attributes"]["custom_fields"] == {"cf-type": "101", "cf-priority": "201"}
        assert body["attributes"]["label_list"] == ["auth"]
        assert body["relationships"]["project"] == {"data": {"type": "projects", "id": "5"}}
        assert body["relationships"]["task_list"] == {"data": {"type": "task_lists", "id": "6"}}
        assert body["relationships"]["assignee"] == {"data": {"type": "people", "id": "9"}}
        assert body["relationships"]["parent_task"] == {"data": {"type": "tasks", "id": "70"}}
        assert body["relationships"]["workflow_status"] == {"data": {"type": "workflow_statuses", "id": "302"}}
        assert api.last.url.params["include"] == "project,task_list,assignee,workflow_status,attachments"

        text = text_of(result)
        assert "# Task Created" in text
        assert "**Project**: Website" in text
        assert "**Assignee**: Ada Lovelace" in text
        assert "https://app.productive.io/12345/tasks/77" in text

    @pytest.mark.asyncio
    async def test_unconfigured_priority_skipped(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={"data": task_resource()})

        result = await run_tool("productive_create_task", {
            "title": "T", "project_id": "5", "task_list_id": "6", "priority": "Urgent",
        }, client, workspace)

        assert not result.isError
        assert "custom_fields" not in api.body()["data"]["attributes"]

    @pytest.mark.asyncio
    async def test_create_task_with_todos_survives_todo_failure(self, client, api, workspace):
        def route(request):
            if request.url.path.endswith("/tasks"):
                return httpx.Response(201, json={"data": task_resource()})
            if json.loads(request.content)["data"]["attributes"]["description"] == "broken":
                return httpx.Response(422, json={"errors": [{"detail": "invalid"}]})
            return httpx.Response(201, json={"data": {"id": "1", "type": "todos", "attributes": {}}})

        api.route = route
        result = await run_tool("productive_create_task", {
            "title": "T", "project_id": "5", "task_list_id": "6",
            "todos": [{"description": "broken"}, {"description": "ok", "assignee_id": "9"}],
        }, client, workspace)

        assert not result.isError
        assert len(api.requests) == 3
        todo = api.body(2)["data"]
        assert todo["relationships"]["task"] == {"data": {"type": "tasks", "id": "77"}}
        assert todo["relationships"]["assignee"] == {"data": {"type": "people", "id": "9"}}

    @pytest.mark.asyncio
    async def test_search_params(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": [task_resource()], "included": INCLUDED, "meta": {"total_count": 41},
        })

        result = await run_tool("productive_search_tasks", {
            "query": "login", "project_id": "5", "closed": True, "limit": 20, "offset": 40,
        }, client, workspace)

        params = api.last.url.params
        assert params["filter[title]"] == "login"
        assert params["filter[project_id]"] == "5"
        assert params["filter[status]"] == "2"
        assert params["page[number]"] == "3"
        assert params["page[size]"] == "20"
        assert "filter[assignee_id]" not in params
        assert "**Total**: 41 tasks" in text_of(result)

    @pytest.mark.asyncio
    async def test_search_json_format(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": [task_resource()], "meta": {"total_count": 1}})

        result = await run_tool("productive_search_tasks", {"response_format": "json"}, client, workspace)

        data = json.loads(text_of(result))
        assert data["total"] == 1
        assert data["count"] == 1
        assert data["tasks"][0]["title"] == "Fix login"

    @pytest.mark.asyncio
    async def test_update_task_only_sends_given_fields(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": task_resource()})

        await run_tool("productive_update_task", {
            "task_id": "77", "estimate_minutes": 90, "assignee_id": None, "due_date": None,
        }, client, workspace)

        assert api.last.method == "PATCH"
        data = api.body()["data"]
        assert data["id"] == "77"
        assert data["attributes"] == {"due_date": None, "initial_estimate": 90}
        assert data["relationships"] == {"assignee": {"data": None}}

    @pytest.mark.asyncio
    async def test_batch_reports_each_task(self, client, api, workspace):
        def route(request):
            title = json.loads(request.content)["data"]["attributes"]["title"]
            if title == "bad":
                return httpx.Response(422, json={"errors": [{"detail": "Title is taken"}]})
            return httpx.Response(201, json={"data": task_resource(title=title)})

        api.route = route
        result = await run_tool("productive_create_tasks_batch", {
            "project_id": "5",
            "default_task_list_id": "6",
            "default_assignee_id": "9",
            "tasks": [{"title": "good"}, {"title": "bad"}, {"title": "override", "assignee_id": "3"}],
        }, client, workspace)

        assert not result.isError
        assert len(api.requests) == 3
        assert api.body(0)["data"]["relationships"]["assignee"]["data"]["id"] == "9"
        assert api.body(2)["data"]["relationships"]["assignee"]["data"]["id"] == "3"
        text = text_of(result)
        assert "# Batch Task Creation Results" in text
        assert "**Successful**: 2" in text
        assert "**Failed**: 1" in text
        assert "## Failed Tasks" in text
        assert "Error: Validation failed: invalid title. Title is taken" in text


class TestListHandlers:
    """Test list tools and their empty states."""

    @pytest.mark.asyncio
    async def test_list_projects_filters_archived(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": [
                {"id": "1", "type": "projects", "attributes": {"name": "Live", "archived": False}},
                {"id": "2", "type": "projects", "attributes": {"name": "Old", "archived_at": "2024-01-01"}},
            ],
            "meta": {"total_pages": 1},
        })

        active = await run_tool("productive_list_projects", {"response_format": "json"}, client, workspace)
        archived = await run_tool(
            "productive_list_projects", {"status": "archived", "response_format": "json"}, client, workspace
        )

        assert [p["name"] for p in json.loads(text_of(active))] == ["Live"]
        assert [p["name"] for p in json.loads(text_of(archived))] == ["Old"]
        assert api.last.url.params["page[size]"] == "30"

    @pytest.mark.asyncio
    async def test_task_lists_active_by_default(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": [
            {"id": "6", "type": "task_lists", "attributes": {"name": "Backlog"}},
            {"id": "7", "type": "task_lists", "attributes": {"name": "Sprint"}},
        ]})

        result = await run_tool(
            "productive_list_task_lists", {"project_id": "5", "response_format": "json"}, client, workspace
        )

        assert api.last.url.params["filter[status]"] == "1"
        assert [t["sort_order"] for t in json.loads(text_of(result))] == [1, 2]

    @pytest.mark.asyncio
    async def test_list_pages_params(self, client, api, workspace):
        await run_tool("productive_list_pages", {
            "project_id": ["1", "2"], "sort_by": "updated_at",
        }, client, workspace)

        params = api.last.url.params
        assert params["filter[project_id]"] == "1,2"
        assert params["sort"] == "-updated_at"

    @pytest.mark.asyncio
    async def test_list_budgets_params(self, client, api, workspace):
        await run_tool("productive_list_budgets", {"status": "open", "recurring": False}, client, workspace)

        params = api.last.url.params
        assert api.last.url.path.endswith("/deals")
        assert params["filter[type]"] == "2"
        assert params["filter[budget_status]"] == "1"
        assert params["filter[recurring]"] == "false"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,arguments,empty", [
        ("productive_search_tasks", {}, "No tasks found."),
        ("productive_list_people", {}, "No people found."),
        ("productive_list_boards", {"project_id": "5"}, "No boards found for this project."),
        ("productive_list_todos", {"task_id": "1"}, "No todos found."),
        ("productive_list_comments", {"task_id": "1"}, "No comments found for this task."),
        ("productive_list_pages", {}, "No pages found."),
        ("productive_list_budgets", {}, "No budgets found."),
        ("productive_list_services", {}, "No services found."),
    ])
    async def test_empty_results(self, client, workspace, name, arguments, empty):
        result = await run_tool(name, arguments, client, workspace)
        assert not result.isError
        assert text_of(result) == empty

    @pytest.mark.asyncio
    async def test_delete_todo(self, client, api, workspace):
        api.route = lambda request: httpx.Response(204)

        result = await run_tool("productive_delete_todo", {"todo_id": "8"}, client, workspace)

        assert api.last.method == "DELETE"
        assert text_of(result) == "Todo 8 deleted successfully."


class TestRateLimitStatus:
    """Test the rate limit status tool."""

    @pytest.mark.asyncio
    async def test_no_api_call(self, client, api, limiter, workspace):
        limiter.record_request()

        result = await run_tool("productive_rate_limit_status", {"response_format": "json"}, client, workspace)

        assert api.requests == []
        assert json.loads(text_of(result)) == {"count": 1, "limit": 100, "window_ms": 10000, "remaining": 99}


def task_list_resource(task_list_id="6", name="Backlog", **attributes):
    return {
        "id": task_list_id,
        "type": "task_lists",
        "attributes": {"name": name, "position": 1, "archived_at": None, **attributes},
        "relationships": {
            "board": {"data": {"type": "boards", "id": "3"}},
            "project": {"data": {"type": "projects", "id": "5"}},
        },
    }


def dependency_resource(dependency_id="40", type_id=1, task_id="10", dependent_task_id="11"):
    return {
        "id": dependency_id,
        "type": "task_dependencies",
        "attributes": {"type_id": type_id, "created_at": "2025-03-01T10:00:00Z"},
        "relationships": {
            "task": {"data": {"type": "tasks", "id": task_id}},
            "dependent_task": {"data": {"type": "tasks", "id": dependent_task_id}},
        },
    }


DEPENDENCY_INCLUDED = [
    {"id": "10", "type": "tasks", "attributes": {"title": "Ship release"}},
    {"id": "11", "type": "tasks", "attributes": {"title": "Write changelog"}},
]


def budget_resource(budget_id="20", name="Retainer", **attributes):
    return {
        "id": budget_id,
        "type": "deals",
        "attributes": {"name": name, "budget_status": 1, **attributes},
        "relationships": {"project": {"data": {"type": "projects", "id": "5"}}},
    }


def distribution_resource(distribution_id="60", deal_id="20", **attributes):
    return {
        "id": distribution_id,
        "type": "revenue_distributions",
        "attributes": {"start_on": "2025-01-01", "end_on": "2025-03-31", "amount_percent": "50", **attributes},
        "relationships": {"deal": {"data": {"type": "deals", "id": deal_id}}},
    }


DISTRIBUTION_INCLUDED = [
    {
        "id": "20",
        "type": "deals",
        "attributes": {"name": "Retainer"},
        "relationships": {"project": {"data": {"type": "projects", "id": "5"}}},
    },
    {"id": "5", "type": "projects", "attributes": {"name": "Website"}},
]


@pytest.fixture
def workflow_workspace(workspace):
    return workspace.model_copy(update={"workflow_status_ids": {
        **workspace.workflow_status_ids,
        "Blocked": "304",
        "Obsolete / Won't Fix": "305",
    }})


class TestTaskListHandlers:
    """Test task list lifecycle tools."""

    @pytest.mark.asyncio
    async def test_create_uses_first_board(self, client, api, workspace):
        def route(request):
            if request.url.path.endswith("/boards"):
                return httpx.Response(200, json={"data": [
                    {"id": "3", "type": "boards", "attributes": {"name": "Main"}},
                    {"id": "4", "type": "boards", "attributes": {"name": "Other"}},
                ]})
            return httpx.Response(201, json={"data": task_list_resource()})

        api.route = route
        result = await run_tool("productive_create_task_list", {"project_id": "5", "name": "Backlog"}, client, workspace)

        assert not result.isError
        assert api.requests[0].url.params["filter[project_id]"] == "5"
        data = api.body()["data"]
        assert data["attributes"] == {"name": "Backlog"}
        assert data["relationships"]["board"] == {"data": {"type": "boards", "id": "3"}}
        assert text_of(result).startswith("Task list created successfully:\n\n# Task List: Backlog")

    @pytest.mark.asyncio
    async def test_create_without_boards(self, client, api, workspace):
        result = await run_tool("productive_create_task_list", {"project_id": "5", "name": "Backlog"}, client, workspace)

        assert result.isError
        assert text_of(result) == "Error: Project has no boards. Please create a board first in Productive."
        assert len(api.requests) == 1

    @pytest.mark.asyncio
    async def test_archive_and_restore(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": task_list_resource()})

        await run_tool("productive_archive_task_list", {"task_list_id": "6"}, client, workspace)
        await run_tool("productive_restore_task_list", {"task_list_id": "6"}, client, workspace)

        assert [r.method for r in api.requests] == ["PATCH", "PATCH"]
        assert api.requests[0].url.path.endswith("/task_lists/6/archive")
        assert api.requests[1].url.path.endswith("/task_lists/6/restore")

    @pytest.mark.asyncio
    async def test_delete_unsupported_suggests_archive(self, client, api, workspace):
        api.route = lambda request: httpx.Response(404, json={"errors": [{"detail": "Not found"}]})

        result = await run_tool("productive_delete_task_list", {"task_list_id": "6"}, client, workspace)

        assert result.isError
        assert text_of(result) == (
            "Error: Delete operation not supported for task lists. "
            "Use productive_archive_task_list instead to deactivate the task list."
        )

    @pytest.mark.asyncio
    async def test_delete(self, client, api, workspace):
        api.route = lambda request: httpx.Response(204)

        result = await run_tool("productive_delete_task_list", {"task_list_id": "6"}, client, workspace)

        assert api.last.method == "DELETE"
        assert text_of(result) == "Task list 6 deleted successfully."

    @pytest.mark.asyncio
    async def test_reposition_sends_integer(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": task_list_resource()})

        await run_tool("productive_reposition_task_list", {"task_list_id": "6", "move_before_id": "9"}, client, workspace)

        assert api.last.url.path.endswith("/task_lists/6/reposition")
        assert api.body()["data"]["attributes"] == {"move_before_id": 9}

    @pytest.mark.asyncio
    async def test_reposition_rejects_non_numeric_target(self, client, api, workspace):
        result = await run_tool(
            "productive_reposition_task_list", {"task_list_id": "6", "move_before_id": "top"}, client, workspace
        )
        assert result.isError
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_move(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": task_list_resource()})

        await run_tool("productive_move_task_list", {"task_list_id": "6", "board_id": "8"}, client, workspace)

        assert api.last.url.path.endswith("/task_lists/6/move")
        assert api.body()["data"]["relationships"] == {"board": {"data": {"type": "boards", "id": "8"}}}

    @pytest.mark.asyncio
    async def test_copy_payload(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={"data": task_list_resource("7", "Sprint 2")})

        result = await run_tool("productive_copy_task_list", {
            "template_id": "6", "name": "Sprint 2", "project_id": "5", "board_id": "3", "copy_assignees": False,
        }, client, workspace)

        assert len(api.requests) == 1
        assert api.last.url.path.endswith("/task_lists/copy")
        assert api.body()["data"]["attributes"] == {
            "template_id": 6, "name": "Sprint 2", "copy_open_tasks": True, "copy_assignees": False,
        }
        assert "Task list copied successfully" in text_of(result)


class TestDependencyHandlers:
    """Test task dependency tools and the workflow shortcuts."""

    @pytest.mark.asyncio
    async def test_create_payload(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={
            "data": dependency_resource(), "included": DEPENDENCY_INCLUDED,
        })

        result = await run_tool("productive_create_task_dependency", {
            "task_id": "10", "dependent_task_id": "11", "dependency_type": "blocking",
        }, client, workspace)

        assert api.body()["data"]["attributes"] == {"task_id": 10, "dependent_task_id": 11, "type_id": 1}
        text = text_of(result)
        assert text.startswith("# Dependency Created Successfully")
        assert "**Type**: Blocking" in text
        assert "**Task**: Ship release (ID: 10)" in text
        assert "**Dependent Task**: Write changelog (ID: 11)" in text

    @pytest.mark.asyncio
    async def test_create_rejects_non_numeric_ids(self, client, api, workspace):
        result = await run_tool("productive_create_task_dependency", {
            "task_id": "abc", "dependent_task_id": "11", "dependency_type": "blocking",
        }, client, workspace)
        assert result.isError
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_list_groups_by_type(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": [dependency_resource(), dependency_resource("41", 3, "10", "12")],
            "included": DEPENDENCY_INCLUDED,
        })

        result = await run_tool("productive_list_task_dependencies", {"task_id": "10"}, client, workspace)

        params = api.last.url.params
        assert params["filter[task_id]"] == "10"
        assert params["include"] == "task,dependent_task"
        assert params["page[size]"] == "200"
        text = text_of(result)
        assert "**Total**: 2 dependencies" in text
        assert "## Blocking\n\n- **Write changelog** (ID: 11)" in text
        assert "## Related\n\n- **Task 12** (ID: 12)" in text

    @pytest.mark.asyncio
    async def test_list_json(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": [dependency_resource(type_id="2")]})

        result = await run_tool(
            "productive_list_task_dependencies", {"task_id": "10", "response_format": "json"}, client, workspace
        )

        data = json.loads(text_of(result))
        assert data["task_id"] == "10"
        assert data["count"] == 1
        assert data["dependencies"][0]["dependency_type"] == "waiting_on"

    @pytest.mark.asyncio
    async def test_update_type(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": dependency_resource(type_id=3)})

        result = await run_tool("productive_update_task_dependency", {
            "dependency_id": "40", "dependency_type": "related",
        }, client, workspace)

        assert api.last.method == "PATCH"
        assert api.body()["data"]["attributes"] == {"type_id": 3}
        assert "# Dependency Updated Successfully" in text_of(result)

    @pytest.mark.asyncio
    async def test_mark_as_blocked_by(self, client, api, workflow_workspace):
        def route(request):
            if request.url.path.endswith("/tasks/10"):
                return httpx.Response(200, json={"data": task_resource("10")})
            return httpx.Response(201, json={"data": dependency_resource(type_id=2)})

        api.route = route
        result = await run_tool("productive_mark_as_blocked_by", {
            "task_id": "10", "blocked_by_task_id": "11",
        }, client, workflow_workspace)

        assert not result.isError
        assert [r.method for r in api.requests] == ["PATCH", "POST"]
        assert api.body(0)["data"]["relationships"]["workflow_status"]["data"]["id"] == "304"
        assert api.body(1)["data"]["attributes"] == {"task_id": 10, "dependent_task_id": 11, "type_id": 2}
        assert "**Type**: Waiting On (Is Blocked By)" in text_of(result)

    @pytest.mark.asyncio
    async def test_mark_as_duplicate_failure_is_prefixed(self, client, api, workflow_workspace):
        def route(request):
            if request.url.path.endswith("/tasks/10"):
                return httpx.Response(200, json={"data": task_resource("10")})
            return httpx.Response(422, json={"errors": [{"detail": "already linked"}]})

        api.route = route
        result = await run_tool("productive_mark_as_duplicate", {
            "task_id": "10", "duplicate_of_task_id": "11",
        }, client, workflow_workspace)

        assert result.isError
        assert api.body(0)["data"]["relationships"]["workflow_status"]["data"]["id"] == "305"
        assert api.body(1)["data"]["attributes"]["type_id"] == 3
        assert text_of(result).startswith("Error: Failed to mark task as duplicate: ")
        assert "already linked" in text_of(result)


class TestAttachmentHandlers:
    """Test listing and uploading attachments."""

    @pytest.mark.asyncio
    async def test_list_splits_inline_images(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": task_resource(),
            "included": [
                INCLUDED[0],
                {"id": "1", "type": "attachments", "attributes": {
                    "name": "shot.png", "url": "https://files.test/shot.png", "content_type": "image/png",
                    "size": 2048, "attachment_type": "inline",
                }},
                {"id": "2", "type": "attachments", "attributes": {
                    "name": "brief.pdf", "url": "https://files.test/brief.pdf", "content_type": "application/pdf",
                    "size": 100,
                }},
            ],
        })

        result = await run_tool("productive_list_attachments", {"task_id": "77"}, client, workspace)

        assert api.last.url.params["include"] == "attachments"
        text = text_of(result)
        assert "**Total**: 2 attachments" in text
        assert "## Inline Images\n\n- 🖼️ [shot.png](https://files.test/shot.png) (2.0 KB)" in text
        assert "## Files\n\n- 📎 [brief.pdf](https://files.test/brief.pdf) (100 B)" in text

    @pytest.mark.asyncio
    async def test_upload_flow(self, client, api, workspace):
        def route(request):
            if request.url.host != "api.test":
                return httpx.Response(201, headers={"location": "https://files.test/uploads/notes.txt"})
            if request.method == "POST":
                return httpx.Response(201, json={"data": {"id": "90", "type": "attachments", "attributes": {
                    "aws_policy": {"key": "uploads/notes.txt", "policy": "cG9saWN5"},
                }}})
            if request.method == "GET":
                return httpx.Response(200, json={"data": {**task_resource(), "relationships": {
                    "attachments": {"data": [{"type": "attachments", "id": "1"}]},
                }}})
            return httpx.Response(200, json={"data": {"id": "90", "type": "attachments"}})

        api.route = route
        result = await run_tool("productive_upload_attachment", {
            "attachable_type": "task",
            "attachable_id": "77",
            "filename": "notes.txt",
            "base64_content": "aGVsbG8=",
        }, client, workspace)

        assert not result.isError
        steps = [(r.method, r.url.host, r.url.path.removeprefix("/api/v2")) for r in api.requests]
        assert steps == [
            ("POST", "api.test", "/attachments"),
            ("POST", "productive-files-production.s3.eu-west-1.amazonaws.com", "/"),
            ("PATCH", "api.test", "/attachments/90"),
            ("GET", "api.test", "/tasks/77"),
            ("PATCH", "api.test", "/tasks/77"),
        ]
        assert api.body(0)["data"]["attributes"] == {
            "name": "notes.txt", "content_type": "text/plain", "size": 5, "attachable_type": "task",
        }
        assert "x-auth-token" not in api.requests[1].headers
        assert api.body(2)["data"]["attributes"] == {"temp_url": "https://files.test/uploads/notes.txt"}
        assert api.body(4)["data"]["relationships"]["attachments"]["data"] == [
            {"type": "attachments", "id": "1"},
            {"type": "attachments", "id": "90"},
        ]
        text = text_of(result)
        assert "# Attachment Uploaded" in text
        assert "**Attached to**: Task 77" in text
        assert "[View in Productive](https://app.productive.io/12345/tasks/77)" in text

    @pytest.mark.asyncio
    async def test_upload_needs_exactly_one_source(self, client, api, workspace):
        result = await run_tool("productive_upload_attachment", {
            "attachable_type": "task", "attachable_id": "77", "filename": "a.txt",
            "base64_content": "aGVsbG8=", "url": "https://files.test/a.txt",
        }, client, workspace)

        assert result.isError
        assert "Exactly one of file_path, url, or base64_content must be provided" in text_of(result)
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_upload_bad_base64_makes_no_calls(self, client, api, workspace):
        result = await run_tool("productive_upload_attachment", {
            "attachable_type": "task", "attachable_id": "77", "filename": "a.txt", "base64_content": "%%%",
        }, client, workspace)

        assert result.isError
        assert text_of(result) == "Error: Failed to decode base64 content: Invalid base64 encoding"
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_upload_without_policy(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={"data": {"id": "90", "type": "attachments"}})

        result = await run_tool("productive_upload_attachment", {
            "attachable_type": "comment", "attachable_id": "3", "filename": "a.txt", "base64_content": "aGVsbG8=",
        }, client, workspace)

        assert result.isError
        assert text_of(result) == "Error: No AWS policy returned from Productive API"
        assert len(api.requests) == 1


class TestPageHandlers:
    """Test page creation, updates and search."""

    @pytest.mark.asyncio
    async def test_create_converts_body(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={
            "data": {"id": "4", "type": "pages", "attributes": {"title": "Guide"}},
        })

        result = await run_tool("productive_create_page", {
            "title": "Guide", "body": "# Intro\n\nHello", "project_id": "5", "parent_page_id": "2",
        }, client, workspace)

        data = api.body()["data"]
        doc = json.loads(data["attributes"]["body"])
        assert doc["type"] == "doc"
        assert doc["content"][0] == {
            "type": "heading", "attrs": {"level": 1}, "content": [{"type": "text", "text": "Intro"}],
        }
        assert data["relationships"] == {
            "project": {"data": {"type": "projects", "id": "5"}},
            "parent_page": {"data": {"type": "pages", "id": "2"}},
        }
        assert text_of(result).startswith("Page created successfully:\n\n# Guide")

    @pytest.mark.asyncio
    async def test_update_clears_body(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": {"id": "4", "type": "pages", "attributes": {"title": "Guide"}},
        })

        await run_tool("productive_update_page", {"page_id": "4", "body": None}, client, workspace)
        assert api.body()["data"]["attributes"] == {"body": None}

        await run_tool("productive_update_page", {"page_id": "4", "title": "Renamed"}, client, workspace)
        assert api.body()["data"]["attributes"] == {"title": "Renamed"}

    @pytest.mark.asyncio
    async def test_search_params(self, client, api, workspace):
        await run_tool("productive_search_pages", {"query": "onboarding", "project_id": "5"}, client, workspace)

        params = api.last.url.params
        assert params["filter[title]"] == "onboarding"
        assert params["filter[project_id]"] == "5"

    @pytest.mark.asyncio
    async def test_delete(self, client, api, workspace):
        api.route = lambda request: httpx.Response(204)

        result = await run_tool("productive_delete_page", {"page_id": "4"}, client, workspace)

        assert api.last.method == "DELETE"
        assert text_of(result) == "Page 4 deleted successfully."


class TestBudgetHandlers:
    """Test budget updates and the budget audit."""

    @pytest.mark.asyncio
    async def test_update_then_reread(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": budget_resource(), "included": INCLUDED})

        result = await run_tool("productive_update_budget", {
            "budget_id": "20", "end_date": None, "name": "Retainer Q2",
        }, client, workspace)

        assert [r.method for r in api.requests] == ["PATCH", "GET"]
        assert api.body(0)["data"]["attributes"] == {"name": "Retainer Q2", "end_date": None}
        assert api.last.url.params["include"] == "project,company,responsible"
        assert text_of(result).startswith("Budget updated successfully:")

    @pytest.mark.asyncio
    async def test_mark_delivered_and_close(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": budget_resource()})

        delivered = await run_tool(
            "productive_mark_budget_delivered", {"budget_id": "20", "delivered_on": "2025-06-30"}, client, workspace
        )
        await run_tool("productive_close_budget", {"budget_id": "20"}, client, workspace)

        assert api.body(0)["data"]["attributes"] == {"delivered_on": "2025-06-30"}
        assert api.body(2)["data"]["attributes"] == {"budget_status": 2}
        assert text_of(delivered).startswith("Budget marked as delivered on 2025-06-30:")

    @pytest.mark.asyncio
    async def test_audit_flags_missing_and_expired_end_dates(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": [
                budget_resource("20", "No end"),
                budget_resource("21", "Lapsed", end_date="2020-01-31"),
                budget_resource("22", "Delivered", end_date="2020-01-31", delivered_on="2020-02-01"),
                budget_resource("23", "Future", end_date="2999-01-01"),
            ],
            "included": INCLUDED,
            "meta": {"total_pages": 1},
        })

        result = await run_tool(
            "productive_audit_project_budgets", {"response_format": "json"}, client, workspace
        )

        params = api.last.url.params
        assert params["filter[type]"] == "2"
        assert params["filter[budget_status]"] == "1"
        report = json.loads(text_of(result))
        assert report["total_budgets_checked"] == 4
        assert [(i["budget_id"], i["issue_type"]) for i in report["issues"]] == [
            ("20", "no_end_date"), ("21", "expired_end_date"),
        ]
        assert report["issues"][0]["project_name"] == "Website"

    @pytest.mark.asyncio
    async def test_audit_project_without_open_budget(self, client, api, workspace):
        def route(request):
            if request.url.path.endswith("/projects/5"):
                return httpx.Response(200, json={"data": INCLUDED[0]})
            return httpx.Response(200, json={"data": [], "meta": {"total_pages": 1}})

        api.route = route
        result = await run_tool("productive_audit_project_budgets", {"project_id": "5"}, client, workspace)

        text = text_of(result)
        assert "## Projects Without Open Budgets\n\n- **Website** (ID: 5)" in text
        assert "All budgets are healthy with valid end dates." in text


class TestRevenueDistributionHandlers:
    """Test revenue distribution tools and the overdue report."""

    @pytest.mark.asyncio
    async def test_create_payload(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={
            "data": distribution_resource(), "included": DISTRIBUTION_INCLUDED,
        })

        result = await run_tool("productive_create_revenue_distribution", {
            "deal_id": "20", "start_on": "2025-01-01", "end_on": "2025-03-31", "amount_percent": 50,
        }, client, workspace)

        data = api.body()["data"]
        assert data["attributes"] == {"start_on": "2025-01-01", "end_on": "2025-03-31", "amount_percent": "50"}
        assert data["relationships"] == {"deal": {"data": {"type": "deals", "id": "20"}}}
        text = text_of(result)
        assert "**Budget**: Retainer (ID: 20)" in text
        assert "**Project**: Website (ID: 5)" in text

    @pytest.mark.asyncio
    async def test_percent_out_of_range(self, client, api, workspace):
        result = await run_tool("productive_create_revenue_distribution", {
            "deal_id": "20", "start_on": "2025-01-01", "end_on": "2025-03-31", "amount_percent": 120,
        }, client, workspace)
        assert result.isError
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_list_params(self, client, api, workspace):
        await run_tool("productive_list_revenue_distributions", {"deal_id": "20"}, client, workspace)

        params = api.last.url.params
        assert params["filter[deal_id]"] == "20"
        assert params["include"] == "deal,deal.project"

    @pytest.mark.asyncio
    async def test_extend(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": distribution_resource(end_on="2025-06-30")})

        result = await run_tool("productive_extend_revenue_distribution", {
            "distribution_id": "60", "new_end_on": "2025-06-30",
        }, client, workspace)

        assert [r.method for r in api.requests] == ["PATCH", "GET"]
        assert api.body(0)["data"]["attributes"] == {"end_on": "2025-06-30"}
        assert text_of(result).startswith("Revenue distribution end date extended to 2025-06-30:")

    @pytest.mark.asyncio
    async def test_overdue_report(self, client, api, workspace):
        def route(request):
            if request.url.path.endswith("/deals/20"):
                return httpx.Response(200, json={"data": budget_resource(delivered_on="2025-04-01")})
            if request.url.path.endswith("/deals/21"):
                return httpx.Response(404, json={"errors": [{"detail": "gone"}]})
            return httpx.Response(200, json={
                "data": [
                    distribution_resource("60", "20", end_on="2025-03-31"),
                    distribution_resource("61", "21", end_on="2025-01-31"),
                    distribution_resource("62", "20", end_on="2025-12-31"),
                    distribution_resource("63", "20", end_on="2025-02-28"),
                ],
                "included": DISTRIBUTION_INCLUDED,
                "meta": {"total_pages": 1},
            })

        api.route = route
        result = await run_tool("productive_report_overdue_distributions", {
            "as_of_date": "2025-04-10", "response_format": "json",
        }, client, workspace)

        report = json.loads(text_of(result))
        assert report["total_checked"] == 4
        assert report["overdue_count"] == 3
        items = report["overdue_distributions"]
        assert [(i["distribution"]["id"], i["days_overdue"]) for i in items] == [("61", 69), ("63", 41), ("60", 10)]
        assert [i["budget_delivered"] for i in items] == [False, True, True]
        deal_fetches = [r for r in api.requests if "/deals/" in r.url.path]
        assert len(deal_fetches) == 2

    @pytest.mark.asyncio
    async def test_overdue_report_project_filter(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": [distribution_resource(end_on="2025-01-31")],
            "included": DISTRIBUTION_INCLUDED,
            "meta": {"total_pages": 1},
        })

        result = await run_tool("productive_report_overdue_distributions", {
            "as_of_date": "2025-04-10", "project_id": "99",
        }, client, workspace)

        assert "No overdue revenue distributions found." in text_of(result)


class TestServiceHandlers:
    """Test service and service type tools."""

    @pytest.mark.asyncio
    async def test_list_services_filters(self, client, api, workspace):
        await run_tool("productive_list_services", {
            "billing_type": "Fixed", "time_tracking_enabled": True, "expense_tracking_enabled": False,
        }, client, workspace)

        params = api.last.url.params
        assert params["filter[billing_type]"] == "1"
        assert params["filter[time_tracking_enabled]"] == "true"
        assert params["filter[expense_tracking_enabled]"] == "false"

    @pytest.mark.asyncio
    async def test_create_service_defaults(self, client, api, workspace):
        api.route = lambda request: httpx.Response(201, json={
            "data": {"id": "30", "type": "services", "attributes": {"name": "Design", "billing_type_id": 2}},
        })

        result = await run_tool("productive_create_service", {
            "name": "Design", "deal_id": "20", "service_type_id": "8", "price": "120",
        }, client, workspace)

        data = api.body()["data"]
        assert data["attributes"] == {
            "name": "Design",
            "billing_type_id": 2,
            "unit_id": 1,
            "time_tracking_enabled": True,
            "expense_tracking_enabled": False,
            "booking_tracking_enabled": False,
            "price": "120",
        }
        assert data["relationships"] == {
            "deal": {"data": {"type": "deals", "id": "20"}},
            "service_type": {"data": {"type": "service_types", "id": "8"}},
        }
        assert text_of(result).startswith("Service created successfully:")

    @pytest.mark.asyncio
    async def test_update_service_only_given_fields(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={
            "data": {"id": "30", "type": "services", "attributes": {"name": "Design"}},
        })

        await run_tool("productive_update_service", {
            "service_id": "30", "unit": "Day", "expense_tracking_enabled": True,
        }, client, workspace)

        assert [r.method for r in api.requests] == ["PATCH", "GET"]
        assert api.body(0)["data"]["attributes"] == {"unit_id": 3, "expense_tracking_enabled": True}

    @pytest.mark.asyncio
    async def test_list_service_types(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": [
            {"id": "8", "type": "service_types", "attributes": {"name": "Design", "archived_at": None}},
            {"id": "9", "type": "service_types", "attributes": {"name": "Legacy", "archived_at": "2024-01-01"}},
        ], "meta": {"total_count": 2}})

        result = await run_tool("productive_list_service_types", {"query": "des"}, client, workspace)

        assert api.last.url.params["filter[query]"] == "des"
        text = text_of(result)
        assert "- **Design** (Active)" in text
        assert "- **Legacy** (Archived)" in text

    @pytest.mark.asyncio
    async def test_archive_service_type(self, client, api, workspace):
        api.route = lambda request: httpx.Response(200, json={"data": {
            "id": "8", "type": "service_types", "attributes": {"name": "Design", "archived_at": "2025-05-01"},
        }})

        result = await run_tool("productive_archive_service_type", {"service_type_id": "8"}, client, workspace)

        assert api.requests[0].url.path.endswith("/service_types/8/archive")
        assert api.body(0) == {"data": {"type": "service_types", "id": "8"}}
        assert "**Status**: Archived" in text_of(result)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,arguments,empty", [
        ("productive_list_service_types", {}, "No service types found."),
        ("productive_list_revenue_distributions", {}, "No revenue distributions found."),
        ("productive_list_task_dependencies", {"task_id": "10"}, "No dependencies found for task 10."),
        ("productive_search_pages", {}, "No pages found."),
    ])
    async def test_empty_results(self, client, workspace, name, arguments, empty):
        result = await run_tool(name, arguments, client, workspace)
        assert not result.isError
        assert text_of(result) == empty
