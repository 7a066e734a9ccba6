from typing import Any, Dict, Iterable, Optional

from schoolcrm.utils.text import fold_name


def names_overlap(candidate: str, value: str) -> bool:
    """Case-insensitive substring match in either direction."""
    left = fold_name(candidate)
    right = fold_name(value)
    if not left or not right:
        return False
    return right in left or left in right


def match_by_name(
    candidates: Iterable[Dict[str, Any]], name: Optional[str], key: str = "name"
) -> Optional[Dict[str, Any]]:
    """Return the first candidate whose name overlaps `name`, keeping candidate order."""
    if not name:
        return None
    for candidate in candidates:
        if names_overlap(candidate.get(key) or "", name):
            return candidate
    return None
