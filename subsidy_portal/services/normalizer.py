"""
Defensive decoding of stored requirement and rule-item rows

Historical rows are inconsistently shaped: `type` may hold anything,
`extra` may be a JSON object, a JSON-encoded string, plain text or absent,
and scalar columns may be missing entirely. Decoding never raises and
always yields a well-typed value.
"""
import json
from typing import Any, Mapping, Optional, Union

from ..models.requirement import (
    RequirementDefinition,
    RuleItem,
    RuleValue,
    StructuredExtra,
    RawTextExtra,
)


def as_string(value: Any, fallback: str = "") -> str:
    """String form of a value, fallback for None"""
    if isinstance(value, str):
        return value
    if value is None:
        return fallback
    return str(value)


def as_optional_string(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return as_string(value)


def as_mapping(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def decode_value(value: Any) -> RuleValue:
    """Keep scalar values, serialize containers so nothing is lost"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def decode_extra(value: Any):
    """
    Decode requirement metadata into StructuredExtra, RawTextExtra or None

    Args:
        value: Stored `extra` column in any historical shape

    Returns:
        None for falsy values or JSON null, StructuredExtra for objects/arrays
        (parsed or already structured), RawTextExtra with the decoded JSON
        string, or with the original text for other scalars and unparseable text
    """
    if not value:
        return None
    if isinstance(value, (dict, list)):
        return StructuredExtra(data=value)
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return RawTextExtra(text=value)
        if parsed is None:
            return None
        if isinstance(parsed, (dict, list)):
            return StructuredExtra(data=parsed)
        if isinstance(parsed, str):
            return RawTextExtra(text=parsed)
        return RawTextExtra(text=value)
    return RawTextExtra(text=str(value))


def decode_requirement(raw: Any) -> RequirementDefinition:
    """Decode one stored requirement row (or None) into a RequirementDefinition"""
    row = as_mapping(raw)
    requirement_type = "condition" if row.get("type") == "condition" else "document"
    description = row.get("description")

    return RequirementDefinition(
        id=as_optional_string(row.get("id")),
        type=requirement_type,
        name=as_string(row.get("name")),
        description=description if isinstance(description, str) else None,
        field_key=as_optional_string(row.get("field_key")),
        operator=as_optional_string(row.get("operator")),
        value=decode_value(row.get("value")),
        extra=decode_extra(row.get("extra")),
    )


def decode_rule_item(raw: Any) -> RuleItem:
    """Decode one program rule condition; operator defaults to equals"""
    row = as_mapping(raw)
    note = row.get("note")
    return RuleItem(
        field=as_string(row.get("field")),
        operator=as_string(row.get("operator")) or "equals",
        value=decode_value(row.get("value")),
        note=note if isinstance(note, str) else None,
    )


def as_identity(value: Any) -> Optional[Union[int, str]]:
    """Stored identity as int or str, anything else stringified"""
    if value is None:
        return None
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        return value
    return str(value)


def coerce_identity(value: Any) -> Any:
    """Integer form of numeric string identities, anything else unchanged"""
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value
