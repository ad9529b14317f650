# movierating

A small JSON HTTP backend for a movie rating site. Movies, ratings and tags
live in a single wide-column table (`moviedata`, a `movierating.store.Table`).
The service pages through movies, searches them by title or genre, picks
random ones, aggregates ratings and keeps results in an in-memory cache with
expiry.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
movierating
```

The server listens on port 5000 by default and runs until it receives SIGINT
or SIGTERM. Settings come from `movierating.config.get_config()`, which
returns a `Config` holding an `HBaseConfig` (host, quorum and ports) and a
`ServerConfig` (the HTTP port). On start-up the cache is created with a
five-minute default expiry and a ten-minute cleanup interval, then the store
is set up and probed with a lookup of row `"1"`.

## What it does not do

The table is held in memory only. The `movierating` command starts with an
empty table, and nothing is saved when it stops. The store settings in
`HBaseConfig` are only shown in log messages; the package does not connect
to any external database. The HTTP API is read-only: there is no endpoint
for adding movies, ratings or tags. To serve data, fill a `Table` in Python
and pass it to `movierating.app.build_app` (see below).

## Data layout

Every row of the table belongs to one of two kinds:

* **Movie rows**, keyed by the movie id (`"1"`, `"2"`, ...), with the
  families `movie` (`title`, `genres` as a `|`-separated list) and `link`
  (`imdbId`, `tmdbId`; IMDb and TMDB URLs are built from them).
* **User rows**, keyed by `<movieId>_<userId>`, holding a user's rating
  (`rating:rating`, optionally `rating:timestamp`) and tag (`tag:tag`) for
  that movie.

Rows are ordered by the bytes of their keys, so ranges of ids compare as
strings. Titles of the form `Name (1995)` have their year extracted.

## HTTP API

All responses are JSON.

| Method | Path | Description |
| --- | --- | --- |
| GET | `/api/movies?page=1&per_page=12` | Page through movies (`per_page` at most 50). |
| GET | `/api/movies/<id>` | Movie detail with links, average rating and `ratingCount`/`tagCount` statistics; 404 if unknown. |
| GET | `/api/movies/random?count=6` | Random movies (at most 20); results are cached per count and hour of the day. |
| POST | `/api/movies/random` | Same, with a body such as `{"count": 6}`. A body that cannot be read gives status 400 but still returns six movies. |
| GET | `/api/movies/search?query=toy&page=1&per_page=12` | Case-insensitive search over titles and genres; `query` is required. |
| GET | `/api/ratings/movie/<id>` | Every rating of a movie with count, average, minimum and maximum. |
| GET | `/api/system/logs?lines=20` | Generated status lines (at most 100) followed by three fixed database entries. |
| GET | `/api/system/cache` | Cache statistics: entries, expired entries, hits, misses, hit rate and entries per key prefix. |

Invalid or non-positive numeric parameters fall back to their defaults.
Errors come back as `{"status": "error", "message": "..."}` with a 4xx or 5xx
status. Cross-origin requests are allowed from any origin.

## Using it as a library

```python
from movierating.app import build_app
from movierating.config import get_config
from movierating.store import Table

table = Table()
table.put("1", "movie", "title", b"Toy Story (1995)", None)
table.put("1", "movie", "genres", b"Adventure|Animation|Children", None)
table.put("1_7", "rating", "rating", b"4.5", None)

app = build_app(get_config(), table)
client = app.test_client()
print(client.get("/api/movies/1").get_json())
```

The pieces can also be used on their own:

* `movierating.cache.MemoryCache` is a thread-safe expiring cache with hit
  statistics; `init_cache` and `get_cache` manage the shared instance.
* `movierating.store` holds `Table`, `Result`, `Cell` and the shared-table
  functions `init_store` and `get_table`.
* `movierating.parser.parse_movie_data` turns a family/qualifier map into a
  movie record.
* `movierating.queries` holds row lookups (`get_movie`, `get_movie_ratings`,
  `get_movie_tags`, `get_user_rating`, `get_user_favorite_genres`,
  `get_user_tags`, `get_recommended_movies_for_user`, batch fetches).
* `movierating.scan` holds range and full-table scans (`scan_movies`,
  `scan_movies_by_genre`, `scan_movies_by_tag`,
  `scan_movies_with_pagination`, `search_movie_rows`,
  `get_movies_by_rating_range`, `count_movie_rows`).
* `movierating.services` builds the listing, detail, random and search
  results returned by the API, as the dataclasses in `movierating.models`.