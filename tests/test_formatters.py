"""Tests for resource formatters and response shaping."""
import json

from productive_mcp import formatters
from productive_mcp.config import CHARACTER_LIMIT, WorkspaceConfig
from productive_mcp.richtext import markdown_to_html


class TestResponseShaping:
    """Test render and truncate_response."""

    def test_json_render(self):
        assert json.loads(formatters.render({"a": 1}, "json", lambda: "md")) == {"a": 1}

    def test_markdown_render(self):
        assert formatters.render({"a": 1}, "markdown", lambda: "md") == "md"

    def test_short_response_untouched(self):
        assert formatters.truncate_response("short", "markdown") == "short"

    def test_markdown_truncation(self):
        text = formatters.truncate_response("x" * (CHARACTER_LIMIT + 10), "markdown")
        assert text.startswith("x" * CHARACTER_LIMIT)
        assert text.endswith("Use `limit` and `offset` parameters to paginate through results.")
        assert "**Response truncated.**" in text

    def test_json_truncation(self):
        text = formatters.truncate_response("x" * (CHARACTER_LIMIT + 1), "json")
        assert text.endswith("[Response truncated. Use limit and offset parameters to paginate.]")


class TestTaskFormatting:
    """Test task flattening and include resolution."""

    def test_custom_fields_reverse_mapped(self, workspace):
        task = {
            "id": "1",
            "type": "tasks",
            "attributes": {
                "title": "T",
                "custom_fields": {"cf-type": "102", "cf-priority": "202"},
                "initial_estimate": 135,
            },
            "relationships": {"workflow_status": {"data": {"type": "workflow_statuses", "id": "302"}}},
        }
        included = [{"id": "302", "type": "workflow_statuses", "attributes": {"name": "In Progress"}}]

        formatted = formatters.format_task(task, "99", included, workspace)

        assert formatted["task_type"] == "Feature"
        assert formatted["priority"] == "Low"
        assert formatted["workflow_status"] == "In Progress"
        assert formatted["estimate_minutes"] == 135
        assert formatted["url"] == "https://app.productive.io/99/tasks/1"
        assert "**Estimate**: 2h 15m (135 minutes)" in formatters.task_markdown(formatted)

    def test_without_workspace_config(self):
        task = {"id": "1", "attributes": {"title": "T", "custom_fields": {"cf-type": "102"}}}
        formatted = formatters.format_task(task, "99", None, WorkspaceConfig())
        assert formatted["task_type"] is None
        assert formatted["project_name"] is None

    def test_attachments_grouped(self, workspace):
        task = {
            "id": "1",
            "attributes": {"title": "T"},
            "relationships": {"attachments": {"data": [{"type": "attachments", "id": "a1"}]}},
        }
        included = [{
            "id": "a1",
            "type": "attachments",
            "attributes": {"name": "shot.png", "url": "https://files/shot.png", "content_type": "image/png", "size": 2048},
        }]

        formatted = formatters.format_task(task, "99", included, workspace)

        assert formatted["attachments"][0]["size_formatted"] == "2.0 KB"
        assert formatted["attachments"][0]["is_image"]
        assert "[shot.png](https://files/shot.png)" in formatters.task_markdown(formatted)


class TestOtherFormatters:
    """Test formatters for the remaining resources."""

    def test_person_name_joined(self):
        person = {"id": "9", "attributes": {"first_name": "Ada", "last_name": " ", "email": None}}
        formatted = formatters.format_person(person)
        assert formatted["name"] == "Ada"
        assert formatted["email"] == "No email"

    def test_budget_status_and_url(self):
        budget = {"id": "4", "attributes": {"name": "Q1", "budget_status": 1}}
        formatted = formatters.format_budget(budget, "99", None)
        assert formatted["status"] == "open"
        assert formatted["url"] == "https://app.productive.io/99/deals/4"

    def test_service_billing_and_unit(self):
        service = {"id": "3", "attributes": {"name": "Design", "billing_type_id": 2, "unit_id": 1, "price": "100"}}
        formatted = formatters.format_service(service, None)
        assert formatted["billing_type"] == "Time and Materials"
        assert formatted["unit"] == "Hour"
        assert "Price: 100/hour" in formatters.service_list_markdown([formatted])

    def test_page_url_requires_project(self):
        page = {"id": "8", "attributes": {"title": "Docs", "body": "b" * 300}}
        formatted = formatters.format_page(page, "99", None)
        assert formatted["url"] is None

        page["relationships"] = {"project": {"data": {"type": "projects", "id": "5"}}}
        formatted = formatters.format_page(page, "99", None)
        assert formatted["url"] == "https://app.productive.io/1-99/pages/8"
        assert ("b" * 200 + "...") in formatters.page_list_markdown([formatted])

    def test_comment_author_fallback(self):
        comment = {
            "id": "c1",
            "attributes": {"body": "hi", "created_at": "2025-01-15T09:30:00Z"},
            "relationships": {"creator": {"data": {"type": "people", "id": "9"}}},
        }
        text = formatters.comments_markdown([formatters.format_comment(comment, None)])
        assert "## User 9" in text
        assert "15 Jan 2025, 09:30 UTC" in text

    def test_rate_limit_markdown(self):
        text = formatters.rate_limit_markdown({"count": 3, "limit": 100, "window_ms": 10000, "remaining": 97})
        assert "**Used**: 3 of 100 requests" in text
        assert "**Window**: 10 seconds" in text


class TestMarkdownToHtml:
    """Test description conversion."""

    def test_converts(self):
        assert markdown_to_html("**bold**") == "<p><strong>bold</strong></p>"

    def test_blank_passthrough(self):
        assert markdown_to_html("") == ""
        assert markdown_to_html(None) is None
