from datetime import UTC, date, datetime


def utcnow_naive():
    """Return current UTC timestamp as naive datetime for DB timestamp columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def today_local():
    """Calendar date on the server, used for game-date checks."""
    return date.today()
