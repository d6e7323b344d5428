# core/utils.py

import copy
import re
from typing import Any, Iterable, Mapping


def safe_filename(filename: str) -> str:
    """Replace anything outside [A-Za-z0-9._-] so the name is a safe blob key segment."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", filename.strip())
    return cleaned or "file"


def without_keys(data: Mapping[str, Any], keys: Iterable[str]) -> dict:
    """
    Shallow copy of `data` minus `keys`.
    Used to silently strip protected fields from partial updates.
    """
    blocked = set(keys)
    return {k: v for k, v in data.items() if k not in blocked}


def clone_document(doc: Mapping[str, Any]) -> dict:
    """Deep copy, so callers never share nested lists with the store."""
    return copy.deepcopy(dict(doc))
