from datetime import UTC, date, datetime


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for DB timestamp columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def parse_datetime(raw_value):
    """Parse an ISO-8601 string into a naive UTC datetime, or None if malformed."""
    if isinstance(raw_value, datetime):
        parsed = raw_value
    else:
        text = str(raw_value or '').strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def parse_date(raw_value):
    """Parse an ISO date (or datetime) string into a date, or None if malformed."""
    if isinstance(raw_value, date) and not isinstance(raw_value, datetime):
        return raw_value
    parsed = parse_datetime(raw_value)
    if parsed is not None:
        return parsed.date()
    return None


def isoformat_or_none(value):
    return value.isoformat() if value else None
