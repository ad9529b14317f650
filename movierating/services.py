"""Movie listing, detail, random selection and search built on the store and cache."""
from __future__ import annotations

import random
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from movierating.cache import get_cache
from movierating.models import Links, Movie, MovieDetail, MovieList, extract_year
from movierating.parser import parse_movie_data
from movierating.queries import get_movie, get_movie_ratings, get_movies_ratings_batch
from movierating.scan import scan_movies, scan_movies_with_pagination
from movierating.store import get_table

_TOTAL_COUNT_KEY = "total_movies_count"

_rng = random.Random()


def _links_from(data: Any) -> Links:
    if not isinstance(data, Mapping):
        return Links()
    return Links(
        imdb_id=data.get("imdbId", "") or "",
        imdb_url=data.get("imdbUrl", "") or "",
        tmdb_id=data.get("tmdbId", "") or "",
        tmdb_url=data.get("tmdbUrl", "") or "",
    )


def _build_movie(movie_id: str, movie_data: Mapping[str, Any], *, with_links: bool) -> Movie:
    movie = Movie(movie_id=movie_id)
    title = movie_data.get("title")
    if isinstance(title, str):
        movie.title = title
        movie.year = extract_year(title)
    genres = movie_data.get("genres")
    if isinstance(genres, list):
        movie.genres = list(genres)
    avg_rating = movie_data.get("avgRating")
    if isinstance(avg_rating, float):
        movie.avg_rating = avg_rating
    if with_links:
        movie.links = _links_from(movie_data.get("links"))
    tags = movie_data.get("uniqueTags")
    if isinstance(tags, list):
        movie.tags = list(tags)
    return movie


def get_total_movies_count() -> int:
    """Return the number of movie rows, caching the result."""
    cache = get_cache()
    cached = cache.get(_TOTAL_COUNT_KEY)
    if cached is not None:
        return cached
    _, total = scan_movies_with_pagination(1, 1)
    cache.set(_TOTAL_COUNT_KEY, total)
    return total


def get_movies_list(page: int, per_page: int) -> MovieList:
    """Return one page of movies, scanning the row range the page's ids fall in."""
    total_movies = get_total_movies_count()
    start_idx = (page - 1) * per_page + 1
    end_idx = start_idx + per_page

    movies = []
    for result in scan_movies(str(start_idx), str(end_idx), per_page):
        movie_id = result.row_key()
        if not movie_id:
            continue
        movie_data = parse_movie_data(movie_id, result.to_map())
        movies.append(_build_movie(movie_id, movie_data, with_links=True))

    return MovieList(
        movies=movies,
        total_movies=total_movies,
        page=page,
        per_page=per_page,
        total_pages=(total_movies + per_page - 1) // per_page,
    )


def get_movie_by_id(movie_id: str) -> Optional[MovieDetail]:
    """Return the details of a movie, or ``None`` if it does not exist."""
    cache = get_cache()
    cache_key = f"movie_detail:{movie_id}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    data = get_movie(movie_id)
    if data is None:
        return None

    movie_data = parse_movie_data(movie_id, data)
    movie = _build_movie(movie_id, movie_data, with_links=True)

    try:
        rating_data: Optional[dict[str, Any]] = get_movie_ratings(movie_id)
    except Exception:  # noqa: BLE001 - missing ratings leave the average at zero
        rating_data = None

    movie.avg_rating = 0.0
    rating_count = 0
    if rating_data is not None:
        avg_rating = rating_data.get("avgRating")
        if isinstance(avg_rating, float):
            movie.avg_rating = avg_rating
        count = rating_data.get("count")
        if isinstance(count, int):
            rating_count = count

    detail = MovieDetail(
        movie=movie,
        stats={
            "ratingCount": float(rating_count),
            "tagCount": float(len(movie.tags or [])),
        },
    )
    cache.set(cache_key, detail)
    return detail


def generate_random_ids(maximum: int, count: int, rng: Optional[random.Random] = None) -> list[int]:
    """Return ``min(count, maximum)`` distinct random ids from 1 to ``maximum``."""
    generator = rng if rng is not None else _rng
    count = min(count, maximum)
    chosen: dict[int, None] = {}
    while len(chosen) < count:
        chosen[generator.randrange(maximum) + 1] = None
    return list(chosen)


def get_random_movies(count: int) -> list[Movie]:
    """Return up to ``count`` random movies; the choice stays fixed within each hour."""
    total_movies = get_total_movies_count()
    cache = get_cache()
    cache_key = f"random_movies:{count}:{datetime.now().hour}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    movies = []
    for number in generate_random_ids(total_movies, count):
        movie_id = str(number)
        try:
            data = get_movie(movie_id)
        except Exception:  # noqa: BLE001 - unreadable rows are skipped
            continue
        if data is None:
            continue
        movie_data = parse_movie_data(movie_id, data)
        movies.append(_build_movie(movie_id, movie_data, with_links=False))

    cache.set(cache_key, movies)
    return movies


def _matches(movie_data: Mapping[str, Any], needle: str) -> bool:
    title = movie_data.get("title")
    if isinstance(title, str) and needle in title.lower():
        return True
    genres = movie_data.get("genres")
    if isinstance(genres, list):
        return any(needle in genre.lower() for genre in genres)
    return False


def search_movies(query: str, page: int, per_page: int) -> MovieList:
    """Search titles and genres case-insensitively and return one page of matches."""
    cache = get_cache()
    cache_key = f"search:{query}:{page}:{per_page}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    needle = query.lower()
    matched: list[Movie] = []
    for result in get_table().scan():
        movie_id = result.row_key()
        if not movie_id:
            continue
        movie_data = parse_movie_data(movie_id, result.to_map())
        if _matches(movie_data, needle):
            matched.append(_build_movie(movie_id, movie_data, with_links=False))

    if matched:
        try:
            ratings = get_movies_ratings_batch([movie.movie_id for movie in matched])
        except Exception:  # noqa: BLE001 - ratings are optional for search results
            ratings = {}
        for movie in matched:
            avg_rating = ratings.get(movie.movie_id, {}).get("avgRating")
            if isinstance(avg_rating, float):
                movie.avg_rating = avg_rating

    total = len(matched)
    start = (page - 1) * per_page
    end = min(start + per_page, total)
    movies = [] if start >= total else matched[start:end]

    result_list = MovieList(
        movies=movies,
        total_movies=total,
        page=page,
        per_page=per_page,
        total_pages=(total + per_page - 1) // per_page,
    )
    cache.set(cache_key, result_list)
    return result_list