from datetime import datetime, timezone
from typing import List, Optional


def normalize_timestamp(value):
    """Supabase sends ISO strings ending in Z; naive datetimes are taken as UTC."""
    if isinstance(value, str) and value.endswith("Z"):
        return value.replace("Z", "+00:00")
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def unique_ids(values: Optional[List[str]]) -> List[str]:
    """De-duplicate an id list, keeping first-seen order."""
    if values is None:
        return []
    if not isinstance(values, (list, tuple, set)):
        raise ValueError("expected a list of ids")
    return list(dict.fromkeys(str(v) for v in values))
