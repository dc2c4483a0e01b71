from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def display_timestamp(moment: datetime) -> str:
    return moment.strftime('%d/%m/%Y, %I:%M:%S %p')
