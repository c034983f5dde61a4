"""Workspace discovery for ``productive.config.json``.

Connects with the configured credentials, finds the task type, priority and
estimate custom fields by name, collects their options and the workflow
statuses, and writes the config file the server reads at startup.

Usage:
    productive-mcp-setup [--output productive.config.json]
"""
import argparse
import asyncio
import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional

from .client import ProductiveClient
from .config import CustomFieldIds, WorkspaceConfig, load_settings
from .errors import ConfigurationError, ProductiveAPIError

FIELD_PATTERNS = {
    "task_type": [re.compile(p, re.IGNORECASE) for p in (r"^type$", r"^task.?type$", r"^category$")],
    "priority": [re.compile(p, re.IGNORECASE) for p in (r"^priority$", r"^urgency$")],
    "estimate": [re.compile(p, re.IGNORECASE) for p in (r"^estimate$", r"^estimation$", r"^time.?estimate$")],
}


def _name(resource: dict) -> str:
    return (resource.get("attributes") or {}).get("name") or ""


def match_custom_fields(fields: list[dict]) -> dict[str, Optional[dict]]:
    """Pick the first field whose name matches each role's patterns."""
    matched: dict[str, Optional[dict]] = {role: None for role in FIELD_PATTERNS}
    for field in fields:
        name = _name(field)
        for role, patterns in FIELD_PATTERNS.items():
            if matched[role] is None and any(p.search(name) for p in patterns):
                matched[role] = field
    return matched


async def discover_field_options(client: ProductiveClient, field_id: str) -> dict[str, str]:
    options, _ = await client.fetch_all_pages("/custom_field_options", {"filter[custom_field_id]": field_id})
    return {_name(option): str(option["id"]) for option in options if _name(option)}


async def discover_workflow_statuses(client: ProductiveClient) -> tuple[list[str], dict[str, str]]:
    """Workflow status names and IDs; the first status with a given name wins."""
    statuses, _ = await client.fetch_all_pages("/workflow_statuses")
    names: list[str] = []
    ids: dict[str, str] = {}
    for status in statuses:
        name = _name(status)
        if name and name not in ids:
            ids[name] = str(status["id"])
            names.append(name)
    return names, ids


async def discover(client: ProductiveClient) -> WorkspaceConfig:
    """Build a WorkspaceConfig from the live organization.

    Raises:
        ProductiveAPIError: If the connection check or any discovery call fails
    """
    print("\nConnecting to Productive.io...")
    await client.get("/organization_memberships", {"page[size]": 1})
    print("  Connected successfully")

    print("\nFetching custom fields...")
    fields, _ = await client.fetch_all_pages("/custom_fields")
    print(f"  Found {len(fields)} custom fields")
    matched = match_custom_fields(fields)

    field_ids = CustomFieldIds()
    task_type_options: dict[str, str] = {}
    priority_options: dict[str, str] = {}

    task_type_field = matched["task_type"]
    if task_type_field:
        field_ids.task_type = str(task_type_field["id"])
        task_type_options = await discover_field_options(client, field_ids.task_type)
        print(f'  Task type field: "{_name(task_type_field)}" (ID: {field_ids.task_type})')
        print(f"    Options: {', '.join(task_type_options) or '(none)'}")
    else:
        print("  Task type field: not found (task type setting will be disabled)")

    priority_field = matched["priority"]
    if priority_field:
        field_ids.priority = str(priority_field["id"])
        priority_options = await discover_field_options(client, field_ids.priority)
        print(f'  Priority field: "{_name(priority_field)}" (ID: {field_ids.priority})')
        print(f"    Options: {', '.join(priority_options) or '(none)'}")
    else:
        print("  Priority field: not found (priority setting will be disabled)")

    estimate_field = matched["estimate"]
    if estimate_field:
        field_ids.estimate = str(estimate_field["id"])
        print(f'  Estimate field: "{_name(estimate_field)}" (ID: {field_ids.estimate})')
    else:
        print("  Estimate field: not found")

    print("\nFetching workflow statuses...")
    status_names, status_ids = await discover_workflow_statuses(client)
    print(f"  Found {len(status_names)} workflow statuses: {', '.join(status_names) or '(none)'}")

    return WorkspaceConfig(
        custom_field_ids=field_ids,
        task_type_options=task_type_options,
        priority_options=priority_options,
        workflow_status_names=status_names,
        workflow_status_ids=status_ids,
    )


def write_config(config: WorkspaceConfig, path: Path) -> None:
    path.write_text(json.dumps(config.model_dump(), indent=2) + "\n")


async def run_setup(output: Optional[Path] = None) -> int:
    """Discover and write the workspace config; returns a process exit code."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"\nError: {e.message}", file=sys.stderr)
        return 1

    path = output or settings.config_path
    async with ProductiveClient(settings.api_token, settings.org_id, base_url=settings.api_url) as client:
        try:
            config = await discover(client)
        except ProductiveAPIError as e:
            print("\nError: Could not complete setup", file=sys.stderr)
            print(f"  {e.message}", file=sys.stderr)
            print("\nCheck your API token and organization ID\n", file=sys.stderr)
            return 1

    write_config(config, path)
    print(f"\nWrote {path}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Discover Productive.io custom fields and workflow statuses"
    )
    parser.add_argument(
        "--output", type=Path, default=None,
        help="Config file to write (default: PRODUCTIVE_CONFIG_PATH or productive.config.json)"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                        stream=sys.stderr)

    print("=" * 60)
    print("Productive.io MCP Server - Auto Setup")
    print("=" * 60)
    sys.exit(asyncio.run(run_setup(args.output)))


if __name__ == "__main__":
    main()
