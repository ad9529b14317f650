import pytest

from movierating import queries
from movierating.config import HBaseConfig
from movierating.store import StoreError, Table, init_store


@pytest.fixture
def table():
    tbl = Table()
    init_store(HBaseConfig(), tbl)
    return tbl


@pytest.fixture
def movies(table):
    table.put("1", "movie", "title", "Toy Story (1995)")
    table.put("1", "movie", "genres", "Adventure|Animation")
    table.put("1", "link", "imdbId", "0114709")
    table.put("2", "movie", "title", "Jumanji (1995)")
    return table


def test_get_movie_returns_family_map(movies):
    data = queries.get_movie("1")
    assert data["movie"]["title"] == b"Toy Story (1995)"
    assert data["link"]["imdbId"] == b"0114709"


def test_get_movie_missing_is_none(movies):
    assert queries.get_movie("999") is None


def test_get_movie_empty_id_raises(movies):
    with pytest.raises(StoreError):
        queries.get_movie("")


def test_get_movie_with_families_filters(movies):
    data = queries.get_movie_with_families("1", ["link"])
    assert set(data) == {"link"}
    assert queries.get_movie_with_families("2", ["link"]) is None


def test_get_movie_with_all_data(movies):
    data = queries.get_movie_with_all_data("1")
    assert data["movieId"] == "1"
    assert data["title"] == "Toy Story (1995)"
    assert data["genres"] == ["Adventure", "Animation"]
    assert data["links"]["imdbUrl"] == "https://www.imdb.com/title/tt0114709/"
    assert queries.get_movie_with_all_data("404") is None


def test_get_movie_ratings_collects_rows(table):
    table.put("1_10", "rating", "rating", "4.0", timestamp=1000)
    table.put("1_20", "rating", "rating", "2.0", timestamp=2000)
    table.put("1_30", "rating", "rating", "bad")
    table.put("1_2_3", "rating", "rating", "5.0")
    table.put("10_5", "rating", "rating", "1.0")
    result = queries.get_movie_ratings("1")
    assert result["count"] == 2
    assert result["minRating"] == 2.0
    assert result["maxRating"] == 4.0
    assert result["minRating"] <= result["avgRating"] <= result["maxRating"]
    assert result["avgRating"] * result["count"] == pytest.approx(6.0)
    assert result["ratings"] == [
        {"userId": "10", "rating": 4.0, "timestamp": 1000},
        {"userId": "20", "rating": 2.0, "timestamp": 2000},
    ]


def test_get_movie_ratings_empty(table):
    result = queries.get_movie_ratings("7")
    assert result == {
        "ratings": [],
        "count": 0,
        "avgRating": 0.0,
        "minRating": 0.0,
        "maxRating": 0.0,
    }


def test_get_movie_tags(table):
    table.put("3_8", "tag", "tag", "funny")
    table.put("3_9", "tag", "tag", "pixar")
    table.put("3_9_1", "tag", "tag", "ignored")
    table.put("3_8", "rating", "rating", "4.5")
    tags = queries.get_movie_tags("3")
    assert tags == {"tag": {"user_tag:8": b"funny", "user_tag:9": b"pixar"}}


def test_get_movie_tags_none(table):
    assert queries.get_movie_tags("3") == {"tag": {}}


def test_get_user_rating_prefers_timestamp_column(table):
    table.put("1_5", "rating", "rating", "3.5", timestamp=111)
    table.put("1_5", "rating", "timestamp", "964982703")
    assert queries.get_user_rating("1", "5") == (3.5, 964982703)


def test_get_user_rating_uses_cell_timestamp(table):
    table.put("1_6", "rating", "rating", "4.5", timestamp=222)
    assert queries.get_user_rating("1", "6") == (4.5, 222)


def test_get_user_rating_missing(table):
    assert queries.get_user_rating("1", "404") == (0.0, 0)


def test_get_user_rating_bad_value_is_zero(table):
    table.put("1_7", "rating", "rating", "n/a", timestamp=333)
    table.put("1_7", "rating", "timestamp", "later")
    assert queries.get_user_rating("1", "7") == (0.0, 333)


def test_user_placeholders_are_empty(table):
    assert queries.get_user_favorite_genres("1") == {}
    assert queries.get_user_tags("1") == []
    assert queries.get_recommended_movies_for_user("1") == []


def test_get_movies_multiple_skips_missing(movies):
    result = queries.get_movies_multiple(["1", "2", "404"])
    assert set(result) == {"1", "2"}
    assert result["2"]["movie"]["title"] == b"Jumanji (1995)"


def test_get_movies_multiple_empty(movies):
    assert queries.get_movies_multiple([]) == {}


@pytest.mark.parametrize(
    "text, expected",
    [("3.5", 3.5), ("  2.25xyz", 2.25), ("4", 4.0), ("abc", -1.0), ("", -1.0)],
)
def test_parse_float(text, expected):
    assert queries.parse_float(text, -1.0) == expected


def test_get_movie_rating_stats(table):
    table.put("4_1", "rating", "rating", "3.0")
    table.put("4_2", "rating", "rating", "5.0")
    table.put("4_3", "rating", "rating", "0")
    table.put("4_4", "rating", "rating", "junk")
    stats = queries.get_movie_rating_stats("4")
    assert stats["count"] == 2.0
    assert stats["minRating"] == 3.0
    assert stats["maxRating"] == 5.0
    assert stats["avgRating"] * stats["count"] == pytest.approx(8.0)


def test_get_movie_rating_stats_empty(table):
    assert queries.get_movie_rating_stats("4") == {
        "avgRating": 0.0,
        "minRating": 0.0,
        "maxRating": 0.0,
        "count": 0.0,
    }


def test_get_movies_ratings_batch(table):
    table.put("1_1", "rating", "rating", "4.0")
    result = queries.get_movies_ratings_batch(["1", "2"])
    assert set(result) == {"1", "2"}
    assert result["1"]["count"] == 1
    assert result["1"]["avgRating"] == 4.0
    assert result["2"]["count"] == 0
    assert result["2"]["ratings"] == []