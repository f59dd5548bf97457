"""Helpers for dynamic form templates and their submitted values."""
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Value used for a field the outlet user never answered
_EMPTY_VALUES = {
    "checkbox": False,
    "checkbox-group": [],
    "radio-group": [],
}


def decode_json(raw: Any) -> Any:
    """Return JSON columns as Python data, decoding values stored as text."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored form data is not valid JSON; returning it as text")
            return raw
    return raw


def combine_structure_with_values(
    structure: Optional[List[Dict[str, Any]]],
    values: Optional[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Attach each submitted value to its template element.

    Elements without an answer get an empty value for their type. The result is
    sorted by the element's `order` (missing order sorts as 0).
    """
    structure = decode_json(structure)
    values = decode_json(values)
    if not isinstance(structure, list) or not isinstance(values, dict):
        return []

    combined = []
    for element in structure:
        if not isinstance(element, dict) or "id" not in element:
            continue
        mapped = dict(element)
        element_id = element["id"]
        if element_id in values:
            mapped["value"] = values[element_id]
        else:
            empty = _EMPTY_VALUES.get(element.get("type"))
            mapped["value"] = list(empty) if isinstance(empty, list) else empty
        combined.append(mapped)

    combined.sort(key=lambda e: e.get("order") or 0)
    return combined


def form_text_content(combined: List[Dict[str, Any]]) -> str:
    """Flatten a combined form into `label: value` lines."""
    lines = []
    for field in combined:
        if not isinstance(field, dict):
            continue
        label = field.get("label") or "Unnamed Field"
        value = field.get("value")
        field_type = field.get("type") or "unknown"

        if value is None:
            value = "No response"
        elif field_type in ("checkbox", "radio", "checkbox-group", "radio-group") and isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        elif field_type == "file":
            if isinstance(value, list) and value:
                names = [str(f.get("name")) for f in value if isinstance(f, dict) and f.get("name")]
                value = "Files uploaded: " + ", ".join(names)
            else:
                value = "No files uploaded"
        elif isinstance(value, (list, dict)):
            value = json.dumps(value)

        lines.append(f"{label}: {value}")
    return "\n".join(lines) + ("\n" if lines else "")
