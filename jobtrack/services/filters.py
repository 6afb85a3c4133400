"""
Filter engine for the job table.

Pure functions over an in-memory record list. Records may be ``JobRecord``
models or wire dicts (camelCase keys).
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from jobtrack.core.dates import normalize_date
from jobtrack.core.schemas import (
    FilterSet, JobRecord, TEXT_FIELDS, BOOLEAN_FIELDS, DATE_FIELDS, to_attr, status_label
)

Record = Union[JobRecord, Mapping[str, Any]]

_TRUE_VALUES = {"true", "active", "yes", "1"}
_FALSE_VALUES = {"false", "inactive", "no", "0"}


def field_value(record: Record, name: str) -> Any:
    """Read a field from a model or a dict by wire name."""
    if isinstance(record, Mapping):
        if name in record:
            return record[name]
        return record.get(to_attr(name))
    return getattr(record, to_attr(name))


def parse_bool_filter(value: Any) -> Optional[bool]:
    """
    Interpret a boolean filter value.

    Returns None for an empty value, meaning the field is not constrained.

    Raises:
        ValueError: for strings that are neither truthy nor falsy labels
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean filter value: {value!r}")


def matches(record: Record, name: str, expected: Any) -> bool:
    """Check one field of one record against one filter value."""
    actual = field_value(record, name)

    if name in TEXT_FIELDS:
        return str(expected).lower() in str(actual or "").lower()

    if name in BOOLEAN_FIELDS:
        wanted = parse_bool_filter(expected)
        return wanted is None or bool(actual) == wanted

    if name in DATE_FIELDS:
        return normalize_date(actual) == normalize_date(expected)

    raise KeyError(f"Unknown filter field: {name}")


def filter_jobs(records: Iterable[Record],
                filters: Optional[Union[FilterSet, Dict[str, Any]]] = None) -> List[Record]:
    """
    Derive the filtered view.

    A record passes when every non-empty filter field matches:
    text fields by case-insensitive substring, booleans by equality,
    and the applied date by equality on ``YYYY-MM-DD``.

    Args:
        records: Full record list
        filters: FilterSet, or a dict keyed by wire/attribute names

    Returns:
        Passing records, in input order
    """
    if filters is None:
        filters = FilterSet()
    elif not isinstance(filters, FilterSet):
        filters = FilterSet(**filters)

    constraints = filters.active()
    if not constraints:
        return list(records)

    return [
        record for record in records
        if all(matches(record, name, value) for name, value in constraints.items())
    ]


def unique_options(records: Iterable[Record], name: str) -> List[str]:
    """
    Distinct display values of one field, sorted, for filter choices.

    Booleans render as ``true``/``false`` except status, which renders as
    its Active/Inactive label.
    """
    values = set()
    for record in records:
        value = field_value(record, name)
        if name == "status":
            values.add(status_label(bool(value)))
        elif name in BOOLEAN_FIELDS:
            values.add("true" if value else "false")
        elif name in DATE_FIELDS:
            values.add(normalize_date(value))
        else:
            values.add(str(value or ""))
    values.discard("")
    return sorted(values)
