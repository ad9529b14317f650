"""Range and full-table scans over the movie rows."""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from itertools import islice
from typing import Optional

from movierating.cache import get_cache
from movierating.queries import get_movie_tags
from movierating.store import Families, Result, get_table

_TOTAL_COUNT_KEY = "total_movies_count"


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _strict_float(text: str) -> Optional[float]:
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _is_movie_row(result: Result) -> bool:
    # Composite keys "<movieId>_<userId>" hold ratings and tags, not movies.
    return "_" not in result.row_key()


def _movie_rows(start_row: str = "", stop_row: str = "", families: Families = None) -> Iterator[Result]:
    return filter(_is_movie_row, get_table().scan(start_row, stop_row, families))


def _take(results: Iterable[Result], limit: int) -> list[Result]:
    return list(islice(results, max(int(limit), 0)))


def scan_movies(start_row: str, end_row: str, limit: int) -> list[Result]:
    """Return up to ``limit`` movie rows between ``start_row`` and ``end_row``."""
    return _take(_movie_rows(start_row, end_row), limit)


def scan_movies_with_families(
    start_row: str, end_row: str, families: Iterable[str], limit: int
) -> list[Result]:
    """Like :func:`scan_movies`, restricted to the given column families."""
    wanted = {family: None for family in families}
    return _take(_movie_rows(start_row, end_row, wanted), limit)


def _has_genre(result: Result, genre: str) -> bool:
    needle = genre.lower()
    return any(
        cell.family == "movie" and cell.qualifier == "genres" and needle in _text(cell.value).lower()
        for cell in result.cells
    )


def scan_movies_by_genre(genre: str, limit: int) -> list[Result]:
    """Return up to ``limit`` movie rows whose genres contain ``genre`` (case-insensitive)."""
    return _take((r for r in _movie_rows() if _has_genre(r, genre)), limit)


def _has_tag(result: Result, tag: str) -> bool:
    needle = tag.lower()
    try:
        tags = get_movie_tags(result.row_key())
    except Exception:  # noqa: BLE001 - a failed tag lookup means no match
        return False
    return any(needle in _text(value).lower() for value in tags.get("tag", {}).values())


def scan_movies_by_tag(tag: str, limit: int) -> list[Result]:
    """Return up to ``limit`` movie rows carrying a user tag that contains ``tag``."""
    return _take((r for r in _movie_rows() if _has_tag(r, tag)), limit)


def scan_movies_with_pagination(page: int, page_size: int) -> tuple[list[Result], int]:
    """Return one page of movie rows and the total number of movie rows."""
    rows = list(_movie_rows("1", ""))
    total = len(rows)
    start = (page - 1) * page_size
    end = min(start + page_size, total)
    if start >= total:
        return [], total
    if start < 0 or end < start:
        raise ValueError(f"invalid page {page} with page size {page_size}")
    return rows[start:end], total


def _matches_query(result: Result, query: str) -> bool:
    return any(
        cell.family == "movie"
        and cell.qualifier in ("title", "genres")
        and query in _text(cell.value).lower()
        for cell in result.cells
    )


def search_movie_rows(query: str, limit: int) -> list[Result]:
    """Return up to ``limit`` movie rows whose title or genres contain ``query``."""
    needle = query.lower()
    return _take((r for r in _movie_rows() if _matches_query(r, needle)), limit)


def get_movies_by_rating_range(min_rating: float, max_rating: float, limit: int) -> list[str]:
    """Return ids of rows whose average ``rating:*`` column lies within the range."""
    matched: list[str] = []
    for result in get_table().scan("", "", {"rating": None}):
        values = [
            value
            for cell in result.cells
            if cell.qualifier.startswith("rating:")
            and (value := _strict_float(_text(cell.value))) is not None
        ]
        if not values:
            continue
        average = sum(values) / len(values)
        if min_rating <= average <= max_rating:
            matched.append(result.row_key())
            if len(matched) >= limit:
                break
    return matched


def count_movie_rows() -> int:
    """Count every row of the table, caching the result in the shared cache."""
    cache = get_cache()
    cached = cache.get(_TOTAL_COUNT_KEY)
    if cached is not None:
        return cached
    count = sum(1 for _ in get_table().scan())
    cache.set(_TOTAL_COUNT_KEY, count)
    return count