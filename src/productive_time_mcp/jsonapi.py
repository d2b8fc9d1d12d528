"""JSON:API document helpers.

Productive side-loads related resources under the top-level ``included`` key when a
request carries ``include=...``. These helpers index that list by ``"{type}:{id}"``
so formatters can resolve relation names inline.
"""

from __future__ import annotations

from typing import Any


def resource_key(type_: str, id_: str) -> str:
    return f"{type_}:{id_}"


def build_included_index(document: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Map ``"{type}:{id}"`` to each included resource of a response document."""
    index: dict[str, dict[str, Any]] = {}
    if not document:
        return index
    for item in document.get("included") or []:
        if isinstance(item, dict) and "type" in item and "id" in item:
            index[resource_key(str(item["type"]), str(item["id"]))] = item
    return index


def primary_data(document: dict[str, Any] | None) -> Any:
    if not document:
        return None
    return document.get("data")


def primary_list(document: dict[str, Any] | None) -> list[dict[str, Any]]:
    data = primary_data(document)
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def attributes(resource: dict[str, Any] | None) -> dict[str, Any]:
    if not resource:
        return {}
    attrs = resource.get("attributes")
    return attrs if isinstance(attrs, dict) else {}


def related(
    resource: dict[str, Any],
    relation: str,
    index: dict[str, dict[str, Any]],
) -> dict[str, Any] | None:
    """Return the included resource a to-one relationship points at, if side-loaded."""
    relationships = resource.get("relationships") or {}
    link = (relationships.get(relation) or {}).get("data")
    if not isinstance(link, dict) or "type" not in link or "id" not in link:
        return None
    return index.get(resource_key(str(link["type"]), str(link["id"])))


def to_one(type_: str, id_: str) -> dict[str, Any]:
    """Build a to-one relationship object for request bodies."""
    return {"data": {"type": type_, "id": id_}}
