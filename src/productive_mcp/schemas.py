"""Pydantic schemas for MCP tool argument validation.

Each tool validates its raw ``arguments`` dict against one of these models
before any API call is made. Unknown keys are rejected.
"""
import re
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ResponseFormat = Literal["markdown", "json"]

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Productive IDs are numeric; some endpoints take them as JSON integers
NumericId = Annotated[str, Field(pattern=r"^\d+$")]


def _check_date(value: Optional[str]) -> Optional[str]:
    if value is not None and not ISO_DATE_RE.match(value):
        raise ValueError("Date must be in ISO 8601 format (YYYY-MM-DD)")
    return value


class ToolArgs(BaseModel):
    """Base for all tool arguments."""

    model_config = ConfigDict(extra="forbid")

    @field_validator(
        "due_date", "start_date", "end_date", "delivered_on", "start_on", "end_on", "new_end_on", "as_of_date",
        check_fields=False,
    )
    @classmethod
    def check_iso_date(cls, value: Optional[str]) -> Optional[str]:
        return _check_date(value)


class FormattedArgs(ToolArgs):
    response_format: ResponseFormat = "markdown"


class PagedArgs(FormattedArgs):
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)

    @property
    def page_number(self) -> int:
        """1-indexed ``page[number]`` for this offset/limit pair."""
        return self.offset // self.limit + 1


# Projects, task lists, boards, people

class ListProjectsArgs(PagedArgs):
    status: Literal["active", "archived", "all"] = "active"


class ListTaskListsArgs(FormattedArgs):
    project_id: str = Field(..., min_length=1)
    board_id: Optional[str] = None
    include_inactive: bool = False


class GetTaskListArgs(FormattedArgs):
    task_list_id: str = Field(..., min_length=1)


class CreateTaskListArgs(FormattedArgs):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    board_id: Optional[str] = None


class UpdateTaskListArgs(FormattedArgs):
    task_list_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)


class TaskListActionArgs(FormattedArgs):
    """Archive or restore."""

    task_list_id: str = Field(..., min_length=1)


class DeleteTaskListArgs(ToolArgs):
    task_list_id: str = Field(..., min_length=1)


class RepositionTaskListArgs(FormattedArgs):
    task_list_id: str = Field(..., min_length=1)
    move_before_id: NumericId


class MoveTaskListArgs(FormattedArgs):
    task_list_id: str = Field(..., min_length=1)
    board_id: str = Field(..., min_length=1)


class CopyTaskListArgs(FormattedArgs):
    template_id: NumericId
    name: str = Field(..., min_length=1, max_length=200)
    project_id: str = Field(..., min_length=1)
    board_id: Optional[str] = None
    copy_open_tasks: bool = True
    copy_assignees: bool = True


class ListBoardsArgs(FormattedArgs):
    project_id: str = Field(..., min_length=1)


class ListPeopleArgs(PagedArgs):
    pass


# Tasks

class TodoItem(ToolArgs):
    description: str = Field(..., min_length=1, max_length=5000)
    due_date: Optional[str] = None
    assignee_id: Optional[str] = None
    closed: Optional[bool] = None


class CreateTaskArgs(FormattedArgs):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10000)
    project_id: str = Field(..., min_length=1)
    task_list_id: str = Field(..., min_length=1)
    assignee_id: Optional[str] = None
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    initial_estimate: Optional[int] = Field(None, ge=0)
    task_type: Optional[str] = None
    priority: Optional[str] = None
    workflow_status: Optional[str] = None
    labels: Optional[list[str]] = None
    parent_task_id: Optional[str] = None
    todos: Optional[list[TodoItem]] = None


class SearchTasksArgs(PagedArgs):
    query: Optional[str] = None
    project_id: Optional[str] = None
    assignee_id: Optional[str] = None
    closed: Optional[bool] = None


class GetTaskArgs(FormattedArgs):
    task_id: str = Field(..., min_length=1)


class UpdateTaskArgs(FormattedArgs):
    """Fields left out are unchanged; explicit nulls clear nullable fields."""

    task_id: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10000)
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    closed: Optional[bool] = None
    assignee_id: Optional[str] = None
    estimate_minutes: Optional[int] = Field(None, ge=0)
    priority: Optional[str] = None
    task_type: Optional[str] = None
    workflow_status: Optional[str] = None


class BatchTaskItem(ToolArgs):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=10000)
    due_date: Optional[str] = None
    start_date: Optional[str] = None
    task_list_id: Optional[str] = None
    assignee_id: Optional[str] = None
    task_type: Optional[str] = None
    priority: Optional[str] = None


class CreateTasksBatchArgs(FormattedArgs):
    tasks: list[BatchTaskItem] = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    default_task_list_id: Optional[str] = None
    default_assignee_id: Optional[str] = None


class ListSubtasksArgs(PagedArgs):
    parent_task_id: str = Field(..., min_length=1)
    closed: Optional[bool] = None


# Dependencies and workflows

DependencyType = Literal["blocking", "waiting_on", "related"]


class CreateTaskDependencyArgs(FormattedArgs):
    task_id: NumericId
    dependent_task_id: NumericId
    dependency_type: DependencyType


class ListTaskDependenciesArgs(FormattedArgs):
    task_id: str = Field(..., min_length=1)


class GetTaskDependencyArgs(FormattedArgs):
    dependency_id: str = Field(..., min_length=1)


class UpdateTaskDependencyArgs(FormattedArgs):
    dependency_id: str = Field(..., min_length=1)
    dependency_type: DependencyType


class DeleteTaskDependencyArgs(ToolArgs):
    dependency_id: str = Field(..., min_length=1)


class MarkAsBlockedByArgs(FormattedArgs):
    task_id: NumericId
    blocked_by_task_id: NumericId


class MarkAsDuplicateArgs(FormattedArgs):
    task_id: NumericId
    duplicate_of_task_id: NumericId


# Attachments

class ListAttachmentsArgs(FormattedArgs):
    task_id: str = Field(..., min_length=1)


class UploadAttachmentArgs(FormattedArgs):
    """Exactly one file source: a local path, a URL, or base64 content."""

    attachable_type: Literal["task", "comment", "page"]
    attachable_id: str = Field(..., min_length=1)
    file_path: Optional[str] = None
    url: Optional[str] = Field(None, pattern=r"^https?://")
    base64_content: Optional[str] = None
    filename: str = Field(..., min_length=1)
    content_type: Optional[str] = None

    @model_validator(mode="after")
    def check_one_source(self) -> "UploadAttachmentArgs":
        sources = [source for source in (self.file_path, self.url, self.base64_content) if source]
        if len(sources) != 1:
            raise ValueError("Exactly one of file_path, url, or base64_content must be provided")
        return self


# Todos

class CreateTodoArgs(FormattedArgs):
    task_id: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1, max_length=5000)
    due_date: Optional[str] = None
    assignee_id: Optional[str] = None
    closed: Optional[bool] = None


class ListTodosArgs(FormattedArgs):
    task_id: str = Field(..., min_length=1)


class GetTodoArgs(FormattedArgs):
    todo_id: str = Field(..., min_length=1)


class UpdateTodoArgs(FormattedArgs):
    todo_id: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    due_date: Optional[str] = None
    closed: Optional[bool] = None


class DeleteTodoArgs(ToolArgs):
    todo_id: str = Field(..., min_length=1)


# Comments

class ListCommentsArgs(PagedArgs):
    task_id: str = Field(..., min_length=1)


# Pages

PageSortField = Literal["created_at", "creator_name", "edited_at", "project", "title", "updated_at"]


class ListPagesArgs(PagedArgs):
    project_id: Optional[Union[str, list[str]]] = None
    creator_id: Optional[str] = None
    sort_by: Optional[PageSortField] = None
    sort_order: Optional[Literal["asc", "desc"]] = None


class GetPageArgs(FormattedArgs):
    page_id: str = Field(..., min_length=1)


class CreatePageArgs(FormattedArgs):
    title: str = Field(..., min_length=1, max_length=500)
    body: Optional[str] = None
    project_id: Optional[str] = None
    parent_page_id: Optional[str] = None
    version_number: Optional[str] = None


class UpdatePageArgs(FormattedArgs):
    """An explicit null body clears the page content."""

    page_id: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    body: Optional[str] = None


class DeletePageArgs(ToolArgs):
    page_id: str = Field(..., min_length=1)


class SearchPagesArgs(PagedArgs):
    query: Optional[str] = None
    project_id: Optional[str] = None


# Budgets

class ListBudgetsArgs(PagedArgs):
    project_id: Optional[str] = None
    company_id: Optional[str] = None
    responsible_id: Optional[str] = None
    status: Optional[Literal["open", "closed"]] = None
    recurring: Optional[bool] = None


class GetBudgetArgs(FormattedArgs):
    budget_id: str = Field(..., min_length=1)


class UpdateBudgetArgs(FormattedArgs):
    """Explicit nulls clear end_date and delivered_on."""

    budget_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=200)
    end_date: Optional[str] = None
    delivered_on: Optional[str] = None


class MarkBudgetDeliveredArgs(FormattedArgs):
    budget_id: str = Field(..., min_length=1)
    delivered_on: str


class CloseBudgetArgs(FormattedArgs):
    budget_id: str = Field(..., min_length=1)


class AuditProjectBudgetsArgs(FormattedArgs):
    project_id: Optional[str] = None


# Revenue distributions

class ListRevenueDistributionsArgs(PagedArgs):
    deal_id: Optional[str] = None


class GetRevenueDistributionArgs(FormattedArgs):
    distribution_id: str = Field(..., min_length=1)


class CreateRevenueDistributionArgs(FormattedArgs):
    deal_id: str = Field(..., min_length=1)
    start_on: str
    end_on: str
    amount_percent: float = Field(..., ge=0, le=100)


class UpdateRevenueDistributionArgs(FormattedArgs):
    distribution_id: str = Field(..., min_length=1)
    start_on: Optional[str] = None
    end_on: Optional[str] = None
    amount_percent: Optional[float] = Field(None, ge=0, le=100)


class DeleteRevenueDistributionArgs(ToolArgs):
    distribution_id: str = Field(..., min_length=1)


class ExtendRevenueDistributionArgs(FormattedArgs):
    distribution_id: str = Field(..., min_length=1)
    new_end_on: str


class ReportOverdueDistributionsArgs(FormattedArgs):
    as_of_date: Optional[str] = None
    project_id: Optional[str] = None


# Services

BillingType = Literal["Fixed", "Time and Materials", "Non-Billable"]
Unit = Literal["Hour", "Piece", "Day"]


class ListServicesArgs(PagedArgs):
    deal_id: Optional[str] = None
    project_id: Optional[str] = None
    person_id: Optional[str] = None
    billing_type: Optional[BillingType] = None
    time_tracking_enabled: Optional[bool] = None
    expense_tracking_enabled: Optional[bool] = None


class GetServiceArgs(FormattedArgs):
    service_id: str = Field(..., min_length=1)


class CreateServiceArgs(FormattedArgs):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    deal_id: str = Field(..., min_length=1)
    service_type_id: str = Field(..., min_length=1)
    billing_type: BillingType = "Time and Materials"
    unit: Unit = "Hour"
    price: Optional[str] = None
    quantity: Optional[str] = None
    person_id: Optional[str] = None
    time_tracking_enabled: bool = True
    expense_tracking_enabled: bool = False
    booking_tracking_enabled: bool = False


class UpdateServiceArgs(FormattedArgs):
    """An explicit null description clears it."""

    service_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    billing_type: Optional[BillingType] = None
    unit: Optional[Unit] = None
    price: Optional[str] = None
    quantity: Optional[str] = None
    time_tracking_enabled: Optional[bool] = None
    expense_tracking_enabled: Optional[bool] = None
    booking_tracking_enabled: Optional[bool] = None


class ListServiceTypesArgs(PagedArgs):
    query: Optional[str] = None
    person_id: Optional[str] = None


class ServiceTypeArgs(FormattedArgs):
    """Get or archive."""

    service_type_id: str = Field(..., min_length=1)


class CreateServiceTypeArgs(FormattedArgs):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


class UpdateServiceTypeArgs(FormattedArgs):
    service_type_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)


# Rate limiting

class RateLimitStatusArgs(FormattedArgs):
    pass
