"""
Human-readable rendering of requirements and rule items

Every function here is pure: identical input always yields identical output.
"""
from typing import Optional

from ..models.requirement import RequirementDefinition, RuleItem, RuleValue, StructuredExtra, RawTextExtra

OPERATOR_LABELS = {
    "equals": "equals",
    "not_equals": "not equals",
    "greater_than": "greater than",
    "greater_or_equal": "greater or equal",
    "less_than": "less than",
    "less_or_equal": "less or equal",
    "contains": "contains",
}

# Checked in this order on structured extra metadata
NOTE_KEYS = ("note", "instructions", "details", "detail")

GENERIC_LABEL = "Requirement"


def operator_label(operator: Optional[str]) -> str:
    if not operator:
        return ""
    return OPERATOR_LABELS.get(operator, operator.replace("_", " "))


def format_value(value: RuleValue) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_note(requirement: RequirementDefinition) -> Optional[str]:
    """Note carried in the extra metadata, None when there is nothing usable"""
    extra = requirement.extra
    if isinstance(extra, RawTextExtra):
        return extra.text.strip() or None
    if isinstance(extra, StructuredExtra) and isinstance(extra.data, dict):
        for key in NOTE_KEYS:
            candidate = extra.data.get(key)
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
    return None


def summarize_document(requirement: RequirementDefinition) -> str:
    description = (requirement.description or "").strip()
    if description:
        return description
    note = extract_note(requirement)
    if note:
        return note
    return f"Provide {requirement.name}".strip()


def summarize_condition(requirement: RequirementDefinition) -> str:
    segments = [
        requirement.field_key or "value",
        operator_label(requirement.operator),
        format_value(requirement.value),
    ]
    return " ".join(segment for segment in segments if segment).strip()


def summarize_requirement(requirement: RequirementDefinition) -> str:
    """Single display line for a normalized requirement"""
    if requirement.type == "condition":
        return summarize_condition(requirement)
    return summarize_document(requirement)


def requirement_label(requirement: RequirementDefinition) -> str:
    """Condition-map label: 'Document: <name>' / 'Condition: <name>'"""
    name = requirement.name.strip()
    if not name:
        return GENERIC_LABEL
    kind = "Condition" if requirement.type == "condition" else "Document"
    return f"{kind}: {name}"


def summarize_rule_item(item: RuleItem) -> str:
    """Display line for a program rule item, with its note in parentheses"""
    segments = [item.field or "value", operator_label(item.operator), format_value(item.value)]
    line = " ".join(segment for segment in segments if segment).strip()
    if item.note and item.note.strip():
        line = f"{line} ({item.note.strip()})"
    return line
