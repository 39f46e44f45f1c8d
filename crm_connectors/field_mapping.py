"""
Field mapping helpers shared by connectors
Translate a submission's field-value map into provider property names
"""

from typing import Dict, Optional


def unwrap_fields(form_data: dict) -> dict:
    """Return the field-value map, accepting both {'fields': {...}} and a flat dict."""
    if isinstance(form_data.get('fields'), dict):
        return form_data['fields']
    return form_data


def is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def flatten_value(value):
    """Lists (checkbox groups, multi-selects) are sent as comma separated text."""
    if isinstance(value, (list, tuple)):
        return ', '.join(str(v) for v in value)
    return value


def map_fields(field_data: dict, field_mapping: Optional[Dict[str, str]] = None,
               fallback_map: Optional[Dict[str, str]] = None) -> dict:
    """Map form fields to provider properties.

    With an explicit mapping {form_field: property} only mapped, non-empty
    values are copied. Without one, the provider's alias table is applied.
    The first alias that supplies a property wins.
    """
    mapped = {}
    mapping = field_mapping or {}

    if mapping:
        for form_field, target in mapping.items():
            if not target:
                continue
            value = field_data.get(form_field)
            if not is_empty(value):
                mapped[target] = flatten_value(value)
        return mapped

    for form_field, target in (fallback_map or {}).items():
        if target in mapped:
            continue
        value = field_data.get(form_field)
        if not is_empty(value):
            mapped[target] = flatten_value(value)
    return mapped
