from datetime import date, datetime, timezone


def from_iso_string(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        raise ValueError("Stored datetime must be timezone-aware")
    return dt.astimezone(timezone.utc)


def to_calendar_date(value) -> date:
    """Reduce a date, datetime or ISO string to a calendar date.

    Aware datetimes are converted to UTC first; naive ones are taken as given.
    """
    if isinstance(value, str):
        value = value.strip()
        if "T" in value or " " in value:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        else:
            return date.fromisoformat(value)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    raise ValueError(f"Cannot interpret {value!r} as a date")
