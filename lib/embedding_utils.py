from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

def get_date_string(timestamp: Any) -> str:
    """Format a timestamp as YYYY-MM-DD.

    Accepts datetimes, ISO-8601 strings and epoch milliseconds (the format
    mobile clients send). Missing values give 'Unknown Date', unparseable
    ones 'Invalid Date'.
    """
    if timestamp is None or timestamp == '':
        return 'Unknown Date'

    if isinstance(timestamp, datetime):
        date = timestamp
    elif isinstance(timestamp, bool):
        return 'Unknown Date'
    elif isinstance(timestamp, (int, float)):
        try:
            date = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return 'Invalid Date'
    elif isinstance(timestamp, str):
        try:
            date = datetime.fromisoformat(timestamp.replace('Z', '+00:00'))
        except ValueError:
            return 'Invalid Date'
    else:
        return 'Unknown Date'

    return date.strftime('%Y-%m-%d')

def get_context_as_string(title: str, content: str, created_at: Optional[Any] = None) -> str:
    """Text that gets embedded for a prayer point or topic"""
    if created_at is None:
        created_at = datetime.now(timezone.utc)
    return f"{get_date_string(created_at)}, {title}, {content}".strip()

def average_vectors(vectors: List[List[float]]) -> List[float]:
    """Element-wise mean of equal-length vectors, empty for no vectors"""
    if not vectors:
        return []
    return [sum(values) / len(vectors) for values in zip(*vectors)]

def distinct_prayer_types(prayer_types: Iterable[Any]) -> List[str]:
    # Lowercased, first-seen order
    distinct = []
    for prayer_type in prayer_types:
        if isinstance(prayer_type, str) and prayer_type and prayer_type.lower() not in distinct:
            distinct.append(prayer_type.lower())
    return distinct
