"""Content Editor Operations - in-place edits on a content document.

Each admin editor holds a copy of one section, mutates it and saves the whole
document. These helpers are the mutation half: they never validate or persist.
List operations always leave ``order`` dense (0..n-1) in display sequence.
"""
import copy
import uuid
from typing import Any, Dict, List, Optional

from services.portfolio_schema import ALL_SECTIONS, LIST_SECTIONS, default_portfolio_content


class EditorError(ValueError):
    """Raised for an edit that cannot be applied (unknown section or item)."""
    pass


def renumber(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reassign order densely by list position."""
    return [{**item, "order": index} for index, item in enumerate(items)]


def sort_by_order(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: item.get("order", 0))


def add_item(items: List[Dict[str, Any]], item: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Append an item, generating an id when it carries none."""
    new_item = dict(item)
    if not new_item.get("id"):
        new_item["id"] = str(uuid.uuid4())
    if any(existing.get("id") == new_item["id"] for existing in items):
        raise EditorError(f"Item {new_item['id']} already exists")
    return renumber(sort_by_order(items) + [new_item])


def remove_item(items: List[Dict[str, Any]], item_id: str) -> List[Dict[str, Any]]:
    remaining = [item for item in sort_by_order(items) if item.get("id") != item_id]
    if len(remaining) == len(items):
        raise EditorError(f"Item {item_id} not found")
    return renumber(remaining)


def move_item(items: List[Dict[str, Any]], active_id: str, over_id: str) -> List[Dict[str, Any]]:
    """Drag-and-drop move: place ``active_id`` at the position of ``over_id``."""
    ordered = sort_by_order(items)
    ids = [item.get("id") for item in ordered]
    if active_id not in ids or over_id not in ids:
        raise EditorError("Both items must exist to reorder")
    old_index = ids.index(active_id)
    new_index = ids.index(over_id)
    moved = ordered.pop(old_index)
    ordered.insert(new_index, moved)
    return renumber(ordered)


def update_item(items: List[Dict[str, Any]], item_id: str, field: str, value: Any) -> List[Dict[str, Any]]:
    """Edit one field of one item, keyed by its stable id."""
    if field in ("id", "order"):
        raise EditorError(f"Field '{field}' cannot be edited directly")
    found = False
    updated = []
    for item in items:
        if item.get("id") == item_id:
            item = {**item, field: value}
            found = True
        updated.append(item)
    if not found:
        raise EditorError(f"Item {item_id} not found")
    return updated


def remove_experience_section(content: Dict[str, Any], section_id: str) -> Dict[str, Any]:
    """Drop an experience section and detach the experiences that referenced it."""
    result = copy.deepcopy(content)
    result["experienceSections"] = remove_item(result.get("experienceSections") or [], section_id)
    result["experiences"] = [
        {**exp, "sectionId": None} if exp.get("sectionId") == section_id else exp
        for exp in result.get("experiences") or []
    ]
    return result


def apply_section(content: Optional[Dict[str, Any]], section: str, value: Any) -> Dict[str, Any]:
    """Return a copy of ``content`` with one top-level section replaced.

    Starts from the placeholder document when the owner has none yet.
    """
    if section not in ALL_SECTIONS:
        raise EditorError(f"Unknown section '{section}'")
    result = copy.deepcopy(content) if content else default_portfolio_content()
    # Non-object items are left for the validator to reject
    if section in LIST_SECTIONS and isinstance(value, list) and all(isinstance(i, dict) for i in value):
        value = renumber(value)
    result[section] = value
    return result


def apply_list_operation(
    content: Optional[Dict[str, Any]],
    section: str,
    operation: str,
    **kwargs,
) -> Dict[str, Any]:
    """Apply add/remove/move/update to one list section of a document copy."""
    if section not in LIST_SECTIONS:
        raise EditorError(f"Section '{section}' is not a list")
    result = copy.deepcopy(content) if content else default_portfolio_content()

    if operation == "remove" and section == "experienceSections":
        return remove_experience_section(result, kwargs["item_id"])

    items = result.get(section) or []
    if operation == "add":
        items = add_item(items, kwargs["item"])
    elif operation == "remove":
        items = remove_item(items, kwargs["item_id"])
    elif operation == "move":
        items = move_item(items, kwargs["active_id"], kwargs["over_id"])
    elif operation == "update":
        items = update_item(items, kwargs["item_id"], kwargs["field"], kwargs["value"])
    else:
        raise EditorError(f"Unknown operation '{operation}'")
    result[section] = items
    return result


def apply_experience_grouping(content: Dict[str, Any], grouping: Dict[str, Any]) -> Dict[str, Any]:
    """Turn an AI grouping ({sections: [{name, intro, experienceIds}]}) into
    experience sections plus ``sectionId`` links. Unknown experience ids are ignored.
    """
    result = copy.deepcopy(content)
    experience_ids = {exp.get("id") for exp in result.get("experiences") or []}
    sections = []
    assignment = {}
    for group in grouping.get("sections") or []:
        name = (group.get("name") or "").strip()
        if not name:
            continue
        section_id = str(uuid.uuid4())
        sections.append({"id": section_id, "title": name, "order": len(sections)})
        for exp_id in group.get("experienceIds") or []:
            if exp_id in experience_ids and exp_id not in assignment:
                assignment[exp_id] = section_id

    result["experienceSections"] = sections
    result["experiences"] = [
        {**exp, "sectionId": assignment.get(exp.get("id"))}
        for exp in result.get("experiences") or []
    ]
    return result


def count_items(content: Optional[Dict[str, Any]], section: str) -> int:
    if not content:
        return 0
    return len(content.get(section) or [])
