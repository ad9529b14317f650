"""Movie data models and their JSON representations."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


def extract_year(title: str) -> int:
    """Return the year in a title such as ``"Heat (1995)"``, or 0 if there is none."""
    parts = title.split(" (")
    if len(parts) < 2:
        return 0
    text = parts[-1].removesuffix(")")
    if not _INTEGER.fullmatch(text):
        return 0
    year = int(text)
    return year if _INT64_MIN <= year <= _INT64_MAX else 0


@dataclass
class Links:
    imdb_id: str = ""
    imdb_url: str = ""
    tmdb_id: str = ""
    tmdb_url: str = ""

    def to_dict(self) -> dict[str, str]:
        pairs = {
            "imdbId": self.imdb_id,
            "imdbUrl": self.imdb_url,
            "tmdbId": self.tmdb_id,
            "tmdbUrl": self.tmdb_url,
        }
        return {key: value for key, value in pairs.items() if value}


@dataclass
class Movie:
    movie_id: str
    title: str = ""
    genres: Optional[list[str]] = None
    year: int = 0
    avg_rating: float = 0.0
    links: Links = field(default_factory=Links)
    tags: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "movieId": self.movie_id,
            "title": self.title,
            "genres": list(self.genres) if self.genres is not None else None,
        }
        if self.year:
            data["year"] = self.year
        data["avgRating"] = self.avg_rating
        data["links"] = self.links.to_dict()
        if self.tags:
            data["tags"] = list(self.tags)
        return data


@dataclass
class MovieList:
    movies: list[Movie] = field(default_factory=list)
    total_movies: int = 0
    page: int = 0
    per_page: int = 0
    total_pages: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "movies": [movie.to_dict() for movie in self.movies],
            "totalMovies": self.total_movies,
            "page": self.page,
            "perPage": self.per_page,
            "totalPages": self.total_pages,
        }


@dataclass
class Rating:
    user_id: str
    rating: float

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "rating": self.rating}


@dataclass
class MovieDetail:
    movie: Movie
    ratings: list[Rating] = field(default_factory=list)
    tagged_users: list[dict[str, str]] = field(default_factory=list)
    stats: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"movie": self.movie.to_dict()}
        if self.ratings:
            data["ratings"] = [rating.to_dict() for rating in self.ratings]
        if self.tagged_users:
            data["taggedUsers"] = [dict(user) for user in self.tagged_users]
        if self.stats:
            data["stats"] = dict(self.stats)
        return data