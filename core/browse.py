"""Searching, genre filtering, sorting and paging of catalog show previews."""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

SHOWS_PER_PAGE = 8

SORT_OPTIONS = {
    "recent": "Recently updated",
    "oldest": "Oldest updated",
    "title-az": "Title A-Z",
    "title-za": "Title Z-A",
    "seasons": "Most seasons",
}


def _updated_timestamp(show: Dict[str, Any]) -> float:
    value = show.get("updated")
    if not value:
        return 0.0
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return 0.0


def _season_count(show: Dict[str, Any]) -> int:
    try:
        return int(show.get("seasons") or 0)
    except (ValueError, TypeError):
        return 0


def _title(show: Dict[str, Any]) -> str:
    return (show.get("title") or "").lower()


def filter_shows(shows: List[Dict[str, Any]], term: str = "", genre_id: Optional[int] = None) -> List[Dict[str, Any]]:
    """Keeps shows whose title contains `term` and, when given, that are tagged with `genre_id`."""
    term = term.strip().lower()
    result = []
    for show in shows:
        if term and term not in _title(show):
            continue
        if genre_id is not None and genre_id not in (show.get("genres") or []):
            continue
        result.append(show)
    return result


def sort_shows(shows: List[Dict[str, Any]], order: str = "recent") -> List[Dict[str, Any]]:
    """
    Returns a sorted copy of `shows`.

    Unknown orders fall back to "recent". Shows without an `updated` date
    count as the oldest, shows without seasons as having none.
    """
    if order == "title-az":
        return sorted(shows, key=_title)
    if order == "title-za":
        return sorted(shows, key=_title, reverse=True)
    if order == "oldest":
        return sorted(shows, key=_updated_timestamp)
    if order == "seasons":
        return sorted(shows, key=_season_count, reverse=True)
    return sorted(shows, key=_updated_timestamp, reverse=True)


def paginate(items: List[Any], page: int, per_page: int = SHOWS_PER_PAGE) -> Tuple[List[Any], int, int]:
    """
    Slices one page out of `items`.

    Returns:
        tuple: (page items, total pages, the 1-based page actually shown).
        A page past the end falls back to the first page.
    """
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_pages = math.ceil(len(items) / per_page)
    if page < 1 or page > total_pages:
        page = 1
    start = (page - 1) * per_page
    return items[start:start + per_page], total_pages, page
