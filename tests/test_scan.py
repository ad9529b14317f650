import pytest

from movierating.cache import init_cache
from movierating.config import HBaseConfig
from movierating.scan import (
    count_movie_rows,
    get_movies_by_rating_range,
    scan_movies,
    scan_movies_by_genre,
    scan_movies_by_tag,
    scan_movies_with_families,
    scan_movies_with_pagination,
    search_movie_rows,
)
from movierating.store import Table, init_store


@pytest.fixture
def table():
    t = Table()
    t.put("1", "movie", "title", "Toy Story (1995)")
    t.put("1", "movie", "genres", "Adventure|Animation|Comedy")
    t.put("1", "link", "imdbId", "0114709")
    t.put("10", "movie", "title", "GoldenEye (1995)")
    t.put("10", "movie", "genres", "Action|Thriller")
    t.put("2", "movie", "title", "Heat (1995)")
    t.put("2", "movie", "genres", "Crime|Drama")
    t.put("1_5", "rating", "rating", "4.0")
    t.put("1_7", "tag", "tag", "funny")
    init_store(HBaseConfig(), t)
    cache = init_cache(300, 0)
    yield t
    cache.flush()


def keys(results):
    return [r.row_key() for r in results]


def test_scan_movies_skips_composite_rows(table):
    assert keys(scan_movies("1", "3", 10)) == ["1", "10", "2"]


def test_scan_movies_respects_limit(table):
    assert keys(scan_movies("1", "3", 2)) == ["1", "10"]
    assert scan_movies("1", "3", 0) == []


def test_scan_movies_stop_row_exclusive(table):
    assert keys(scan_movies("1", "2", 10)) == ["1", "10"]


def test_scan_with_families_restricts_cells(table):
    results = scan_movies_with_families("1", "", ["link"], 10)
    assert keys(results) == ["1"]
    assert all(cell.family == "link" for r in results for cell in r.cells)


def test_scan_by_genre_case_insensitive(table):
    assert keys(scan_movies_by_genre("THRILLER", 10)) == ["10"]
    assert scan_movies_by_genre("western", 10) == []


def test_scan_by_tag(table):
    assert keys(scan_movies_by_tag("FUN", 10)) == ["1"]
    assert scan_movies_by_tag("scary", 10) == []


def test_pagination(table):
    page, total = scan_movies_with_pagination(1, 2)
    assert total == 3
    assert keys(page) == ["1", "10"]
    page, total = scan_movies_with_pagination(2, 2)
    assert keys(page) == ["2"]


def test_pagination_past_end(table):
    page, total = scan_movies_with_pagination(5, 2)
    assert page == []
    assert total == 3


def test_pagination_invalid_page(table):
    with pytest.raises(ValueError):
        scan_movies_with_pagination(0, 2)


def test_search_matches_title_and_genres(table):
    assert keys(search_movie_rows("heat", 10)) == ["2"]
    assert keys(search_movie_rows("comedy", 10)) == ["1"]
    assert keys(search_movie_rows("1995", 2)) == ["1", "10"]


def test_rating_range(table):
    table.put("3", "rating", "rating:5", "4.0")
    table.put("3", "rating", "rating:6", "2.0")
    table.put("3", "rating", "rating:7", "bad")
    table.put("4", "rating", "rating:5", "5.0")
    assert get_movies_by_rating_range(2.5, 3.5, 10) == ["3"]
    assert get_movies_by_rating_range(0, 5, 1) == ["3"]
    assert get_movies_by_rating_range(0, 5, 10) == ["3", "4"]


def test_count_rows_is_cached(table):
    first = count_movie_rows()
    assert first == 5
    table.put("99", "movie", "title", "Extra")
    assert count_movie_rows() == first