"""Date helpers for the applied-date field."""

from datetime import date, datetime, timezone
from typing import Optional, Union

DISPLAY_FORMAT = "%Y-%m-%d"

DateLike = Union[str, date, datetime, None]


def normalize_date(value: DateLike) -> str:
    """
    Convert any accepted date representation to the ``YYYY-MM-DD`` display form.

    Accepts ISO dates, ISO datetimes (``Z`` or numeric offsets, which are
    converted to UTC before the date part is taken), ``date``/``datetime``
    objects, and empty or missing input, which yields ``""``.

    Raises:
        ValueError: if a non-empty string is not an ISO date or datetime.
    """
    if value is None:
        return ""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().strftime(DISPLAY_FORMAT)

    if isinstance(value, date):
        return value.strftime(DISPLAY_FORMAT)

    text = str(value).strip()
    if not text:
        return ""

    if len(text) == 10:
        return date.fromisoformat(text).strftime(DISPLAY_FORMAT)

    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    return normalize_date(datetime.fromisoformat(text))


def parse_date(value: DateLike) -> Optional[date]:
    """Parse to a ``date`` object, or None for empty input."""
    normalized = normalize_date(value)
    if not normalized:
        return None
    return date.fromisoformat(normalized)
