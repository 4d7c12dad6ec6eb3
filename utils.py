import uuid
from datetime import datetime, UTC
from errors import ValidationError


def new_id() -> str:
    """Return an opaque unique id."""
    return uuid.uuid4().hex


def now_stamp() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat(timespec="seconds")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def clean(value: str | None) -> str:
    return (value or "").strip()


def parse_date(date_str: str) -> datetime:
    """Parse a date string into a datetime object."""
    try:
        return datetime.fromisoformat(date_str)
    except ValueError:
        try:
            return datetime.strptime(date_str, "%Y-%m-%d %H:%M")
        except ValueError:
            raise ValidationError("Invalid date format")


def unique(items) -> list:
    """Drop repeated items, keeping first-seen order."""
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def filter_records(records, query: str, fields) -> list:
    """Keep records where any of fields contains query, ignoring case."""
    q = clean(query).lower()
    if not q:
        return list(records)
    return [r for r in records if any(q in str(getattr(r, f)).lower() for f in fields)]
