"""Turning raw row data into a movie dictionary."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_IMDB_URL = "https://www.imdb.com/title/tt{}/"
_TMDB_URL = "https://www.themoviedb.org/movie/{}"


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def parse_movie_data(movie_id: str, data: Mapping[str, Mapping[str, bytes]]) -> dict[str, Any]:
    """Build a movie dictionary from ``{family: {qualifier: value}}`` row data.

    Ratings and tags are only given default (empty) values here.
    """
    result: dict[str, Any] = {"movieId": movie_id}

    movie = data.get("movie")
    if movie is not None:
        if "title" in movie:
            result["title"] = _text(movie["title"])
        if "genres" in movie:
            result["genres"] = _text(movie["genres"]).split("|")

    links: dict[str, str] = {}
    link = data.get("link")
    if link is not None:
        if "imdbId" in link:
            imdb_id = _text(link["imdbId"])
            links["imdbId"] = imdb_id
            links["imdbUrl"] = _IMDB_URL.format(imdb_id)
        if "tmdbId" in link:
            tmdb_id = _text(link["tmdbId"])
            links["tmdbId"] = tmdb_id
            links["tmdbUrl"] = _TMDB_URL.format(tmdb_id)
    result["links"] = links

    result["avgRating"] = 0.0
    result["ratings"] = []
    result["uniqueTags"] = []
    return result