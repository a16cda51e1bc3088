"""Render a report snapshot into the XML document the submission service expects"""

import re
from collections import Counter
import xml.etree.ElementTree as ET
from typing import Any, Dict

from trip_reports.domain.exceptions import RenderingError

# list key -> (item element, field used as the item's id attribute)
LIST_ITEMS = {
    "team": ("member", "member_id"),
    "travel_groups": ("travel_group", "id"),
    "segments": ("segment", "id"),
    "accommodations": ("accommodation", "id"),
    "additional_expenses": ("expense", "id"),
    "travelers": ("traveler", None),
    "attachments": ("attachment", None),
    "route_attachments": ("attachment", None),
    "renewed_sections": ("section", None),
}

# dict key -> item element; the dict keys become id attributes
KEYED_ITEMS = {
    "objects": "object",
    "calculation": "member",
    "payouts": "payout",
}

# sections whose fields are lifted into the document root
INLINED_SECTIONS = ("part_a", "part_b")


def _element_name(name: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9_.-]", "_", str(name))
    if re.match(r"^[0-9.-]", name):
        name = f"_{name}"
    return name or "element"


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _append(parent: ET.Element, key: str, value: Any) -> None:
    if value is None or value == "":
        return

    if key in KEYED_ITEMS and isinstance(value, dict):
        container = ET.SubElement(parent, _element_name(key))
        for item_id, item in value.items():
            element = ET.SubElement(container, KEYED_ITEMS[key], id=str(item_id))
            if isinstance(item, dict):
                _append_fields(element, item)
            else:
                element.text = _text(item)
        return

    if isinstance(value, list):
        item_name, id_field = LIST_ITEMS.get(key, ("item", None))
        container = ET.SubElement(parent, _element_name(key))
        for item in value:
            element = ET.SubElement(container, item_name)
            if isinstance(item, dict):
                if id_field and item.get(id_field) is not None:
                    element.set("id", str(item[id_field]))
                _append_fields(element, {k: v for k, v in item.items() if k != id_field})
            else:
                element.text = _text(item)
        return

    if isinstance(value, dict):
        element = ET.SubElement(parent, _element_name(key))
        _append_fields(element, value)
        return

    element = ET.SubElement(parent, _element_name(key))
    element.text = _text(value)


def _append_fields(parent: ET.Element, data: Dict[str, Any]) -> None:
    for key, value in data.items():
        _append(parent, key, value)


def render_report_document(snapshot: Dict[str, Any]) -> str:
    """
    Build the submission XML document.

    Layout:
    - root <report> carries order_id and order_number as attributes
    - Part A and Part B fields are lifted directly under the root; a field
      both parts share (the completion flag) is prefixed with its part
    - empty values are omitted

    Raises:
        RenderingError: snapshot is not a mapping or lacks the order reference
    """
    if not isinstance(snapshot, dict) or snapshot.get("order_id") is None:
        raise RenderingError("Malformed report snapshot: missing order reference")

    root = ET.Element("report", order_id=str(snapshot["order_id"]))
    if snapshot.get("order_number"):
        root.set("order_number", str(snapshot["order_number"]))

    sections = {}
    for section in INLINED_SECTIONS:
        value = snapshot.get(section, {})
        if not isinstance(value, dict):
            raise RenderingError(f"Malformed report snapshot: {section} is not a mapping")
        sections[section] = value

    # fields present in several sections keep their section as prefix
    seen = Counter(key for value in sections.values() for key in value)

    body: Dict[str, Any] = {}
    for key, value in snapshot.items():
        if key in ("id", "order_id", "order_number"):
            continue
        if key in sections:
            for field, field_value in sections[key].items():
                body[f"{key}_{field}" if seen[field] > 1 else field] = field_value
        else:
            body[key] = value

    _append_fields(root, body)
    ET.indent(root)
    return ET.tostring(root, encoding="unicode", xml_declaration=True)
