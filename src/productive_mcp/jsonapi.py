"""Helpers for reading JSON:API envelopes.

Productive returns ``{"data": ..., "included": [...], "meta": {...}}``. Related
resources are referenced from ``relationships`` by ``(type, id)`` and sideloaded
into ``included`` when requested with ``include=``.
"""
from typing import Optional


def resource_list(envelope: dict) -> list[dict]:
    """Return ``data`` as a list, dropping null entries."""
    data = envelope.get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return [item for item in data if item is not None]


def first_resource(envelope: dict) -> dict:
    """Return the single resource of a show/create/update response."""
    data = envelope.get("data")
    if isinstance(data, list):
        return data[0] if data else {}
    return data or {}


def total_count(envelope: dict) -> Optional[int]:
    return (envelope.get("meta") or {}).get("total_count")


def relationship_id(resource: dict, name: str) -> Optional[str]:
    """ID of a to-one relationship, or None when absent or null."""
    rel = (resource.get("relationships") or {}).get(name) or {}
    data = rel.get("data")
    if isinstance(data, dict) and "id" in data:
        return str(data["id"])
    return None


def relationship_ids(resource: dict, name: str) -> list[str]:
    """IDs of a to-many (or to-one) relationship."""
    rel = (resource.get("relationships") or {}).get(name) or {}
    data = rel.get("data")
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []
    return [str(item["id"]) for item in data if isinstance(item, dict) and "id" in item]


def find_included(included: Optional[list], resource_type: str, resource_id: Optional[str]) -> Optional[dict]:
    if not included or resource_id is None:
        return None
    for item in included:
        if (
            isinstance(item, dict)
            and item.get("type") == resource_type
            and str(item.get("id")) == str(resource_id)
        ):
            return item
    return None


def included_name(included: Optional[list], resource_type: str, resource_id: Optional[str]) -> Optional[str]:
    """``attributes.name`` of an included resource."""
    item = find_included(included, resource_type, resource_id)
    if item is None:
        return None
    return (item.get("attributes") or {}).get("name") or None


def person_name(person: Optional[dict]) -> Optional[str]:
    """``"First Last"`` for a people resource, or None when both are blank."""
    if not person:
        return None
    attrs = person.get("attributes") or {}
    full = f"{attrs.get('first_name') or ''} {attrs.get('last_name') or ''}".strip()
    return full or None


def included_person_name(included: Optional[list], person_id: Optional[str]) -> Optional[str]:
    return person_name(find_included(included, "people", person_id))


def relationship(resource_type: str, resource_id: Optional[str]) -> dict:
    """Build a relationship linkage; a None id clears the relationship."""
    if resource_id is None:
        return {"data": None}
    return {"data": {"type": resource_type, "id": str(resource_id)}}
