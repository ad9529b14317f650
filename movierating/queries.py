"""Row-level queries: movies, ratings, tags and per-user data."""
from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from movierating.parser import parse_movie_data
from movierating.store import Result, get_table

_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|infinity|inf|nan)",
    re.IGNORECASE,
)
_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1
_MAX_WORKERS = 16


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def _strict_float(text: str) -> Optional[float]:
    """Parse a whole string as a float, or return ``None``."""
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _strict_int64(text: str) -> Optional[int]:
    if not _INTEGER.fullmatch(text):
        return None
    number = int(text)
    return number if _INT64_MIN <= number <= _INT64_MAX else None


def _prefix_bounds(movie_id: str) -> tuple[str, str]:
    # Rows of the form "<movieId>_<userId>" sort between these two keys.
    return movie_id + "_", movie_id + "`"


def _row_map(result: Result) -> Optional[dict[str, dict[str, bytes]]]:
    return result.to_map() if result.cells else None


def get_movie(movie_id: str) -> Optional[dict[str, dict[str, bytes]]]:
    """Return a movie row as ``{family: {qualifier: value}}``, or ``None`` if absent."""
    return _row_map(get_table().get(movie_id))


def get_movie_with_families(
    movie_id: str, families: Iterable[str]
) -> Optional[dict[str, dict[str, bytes]]]:
    """Like :func:`get_movie`, restricted to the given column families."""
    wanted = {family: None for family in families}
    return _row_map(get_table().get(movie_id, wanted))


def get_movie_with_all_data(movie_id: str) -> Optional[dict[str, Any]]:
    """Return the parsed movie dictionary, or ``None`` if the movie does not exist."""
    data = get_movie(movie_id)
    if data is None:
        return None
    return parse_movie_data(movie_id, data)


def get_movie_ratings(movie_id: str) -> dict[str, Any]:
    """Collect all user ratings of a movie together with count, average, minimum and maximum."""
    start, stop = _prefix_bounds(movie_id)
    values: list[float] = []
    ratings: list[dict[str, Any]] = []
    for result in get_table().scan(start, stop, {"rating": None}):
        parts = result.row_key().split("_")
        if len(parts) != 2:
            continue
        user_id = parts[1]
        for cell in result.cells:
            if cell.family != "rating" or cell.qualifier != "rating":
                continue
            value = _strict_float(_text(cell.value))
            if value is None:
                continue
            values.append(value)
            info: dict[str, Any] = {"userId": user_id, "rating": value}
            if cell.timestamp is not None:
                info["timestamp"] = int(cell.timestamp)
            ratings.append(info)

    if not values:
        return {
            "ratings": [],
            "count": 0,
            "avgRating": 0.0,
            "minRating": 0.0,
            "maxRating": 0.0,
        }
    return {
        "ratings": ratings,
        "count": len(values),
        "avgRating": sum(values) / len(values),
        "minRating": min(values),
        "maxRating": max(values),
    }


def get_movie_tags(movie_id: str) -> dict[str, dict[str, bytes]]:
    """Return ``{"tag": {"user_tag:<userId>": value}}`` for every user tag of a movie."""
    start, stop = _prefix_bounds(movie_id)
    tags: dict[str, bytes] = {}
    for result in get_table().scan(start, stop, {"tag": None}):
        for cell in result.cells:
            if cell.family != "tag" or cell.qualifier != "tag":
                continue
            parts = cell.row.split("_")
            if len(parts) == 2:
                tags["user_tag:" + parts[1]] = cell.value
    return {"tag": tags}


def get_user_rating(movie_id: str, user_id: str) -> tuple[float, int]:
    """Return ``(rating, timestamp)`` of one user's rating, or ``(0.0, 0)`` if there is none.

    A separate ``rating:timestamp`` column takes precedence over the cell timestamp.
    """
    result = get_table().get(f"{movie_id}_{user_id}", {"rating": None})
    rating = 0.0
    timestamp = 0
    for cell in result.cells:
        if cell.family != "rating":
            continue
        if cell.qualifier == "rating":
            parsed = _strict_float(_text(cell.value))
            rating = parsed if parsed is not None else 0.0
            if cell.timestamp is not None:
                timestamp = int(cell.timestamp)
        elif cell.qualifier == "timestamp":
            stamp = _strict_int64(_text(cell.value))
            if stamp is not None:
                timestamp = stamp
    return rating, timestamp


def _user_rows(user_id: str, family: str) -> Iterator[tuple[str, Result]]:
    """Yield ``(movie_id, result)`` for every ``<movieId>_<userId>`` row of the user."""
    for result in get_table().scan("", "", {family: None}):
        if not result.cells:
            continue
        parts = result.row_key().split("_")
        if len(parts) == 2 and parts[1] == user_id:
            yield parts[0], result


def _rated_movie_ids(user_id: str) -> list[str]:
    rated: list[str] = []
    for movie_id, result in _user_rows(user_id, "rating"):
        if any(c.family == "rating" and c.qualifier == "rating" for c in result.cells):
            rated.append(movie_id)
    return rated


def _movie_genres(movie_id: str) -> list[str]:
    data = get_movie_with_families(movie_id, ["movie"])
    if data is None:
        return []
    raw = data.get("movie", {}).get("genres")
    if raw is None:
        return []
    return [genre for genre in _text(raw).split("|") if genre]


def get_user_favorite_genres(user_id: str) -> dict[str, int]:
    """Count the genres of the movies a user has rated."""
    counts: Counter[str] = Counter()
    for movie_id in _rated_movie_ids(user_id):
        counts.update(_movie_genres(movie_id))
    return dict(counts)


def get_user_tags(user_id: str) -> list[str]:
    """Distinct tags the user has applied, in table order."""
    tags: list[str] = []
    for _movie_id, result in _user_rows(user_id, "tag"):
        for cell in result.cells:
            if cell.family == "tag" and cell.qualifier == "tag":
                tag = _text(cell.value)
                if tag not in tags:
                    tags.append(tag)
    return tags


def get_recommended_movies_for_user(user_id: str) -> list[str]:
    """Movies the user has not rated that share a genre with the ones they have."""
    rated = set(_rated_movie_ids(user_id))
    favourites: Counter[str] = Counter()
    for movie_id in rated:
        favourites.update(_movie_genres(movie_id))
    if not favourites:
        return []

    scored: list[tuple[int, str]] = []
    for result in get_table().scan("", "", {"movie": None}):
        if not result.cells:
            continue
        movie_id = result.row_key()
        if "_" in movie_id or movie_id in rated:
            continue
        raw = result.to_map().get("movie", {}).get("genres")
        if raw is None:
            continue
        score = sum(favourites[genre] for genre in set(_text(raw).split("|")))
        if score > 0:
            scored.append((score, movie_id))
    scored.sort(key=lambda item: -item[0])
    return [movie_id for _score, movie_id in scored]


def _fetch_all(func, movie_ids: Sequence[str]) -> list[tuple[str, Any, Optional[Exception]]]:
    def call(movie_id: str) -> tuple[str, Any, Optional[Exception]]:
        try:
            return movie_id, func(movie_id), None
        except Exception as exc:  # noqa: BLE001 - failures are reported per id
            return movie_id, None, exc

    ids = list(movie_ids)
    if not ids:
        return []
    with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(ids))) as pool:
        return list(pool.map(call, ids))


def get_movies_multiple(movie_ids: Sequence[str]) -> dict[str, dict[str, dict[str, bytes]]]:
    """Fetch several movies concurrently; missing or failing ones are left out."""
    return {
        movie_id: data
        for movie_id, data, error in _fetch_all(get_movie, movie_ids)
        if error is None and data is not None
    }


def parse_float(text: str, default: float) -> float:
    """Read a leading floating-point number from ``text``, or return ``default``."""
    match = _FLOAT_PREFIX.match(text.lstrip())
    if match is None:
        return default
    try:
        return float(match.group(0))
    except ValueError:
        return default


def get_movie_rating_stats(movie_id: str) -> dict[str, float]:
    """Average, minimum, maximum and count of the positive ratings of a movie."""
    start, stop = _prefix_bounds(movie_id)
    count = 0.0
    total = 0.0
    lowest = 5.0
    highest = 0.0
    for result in get_table().scan(start, stop, {"rating": ["rating"]}):
        for cell in result.cells:
            if cell.family != "rating" or cell.qualifier != "rating":
                continue
            rating = parse_float(_text(cell.value), 0.0)
            if rating > 0:
                total += rating
                count += 1
                lowest = min(lowest, rating)
                highest = max(highest, rating)
    if count == 0:
        lowest = 0.0
    return {
        "avgRating": total / count if count > 0 else 0.0,
        "minRating": lowest,
        "maxRating": highest,
        "count": count,
    }


def get_movies_ratings_batch(movie_ids: Sequence[str]) -> dict[str, dict[str, Any]]:
    """Fetch ratings for several movies concurrently; failures get zero defaults."""
    results: dict[str, dict[str, Any]] = {}
    for movie_id, data, error in _fetch_all(get_movie_ratings, movie_ids):
        if error is None and data is not None:
            results[movie_id] = data
        else:
            results[movie_id] = {"avgRating": 0.0, "count": 0}
    return results