"""HTTP API: movie listing, details, random picks, search, ratings and system status."""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from flask import Flask, Response, current_app, jsonify, request

from movierating import services
from movierating.cache import get_cache
from movierating.queries import get_movie_ratings

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1

_ALLOW_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
_ALLOW_HEADERS = (
    "Origin",
    "Content-Type",
    "Accept",
    "Authorization",
    "X-Cache-Check",
    "X-Requested-With",
)
_EXPOSE_HEADERS = ("Content-Length", "X-Cache-Hit")
_MAX_AGE = timedelta(hours=12)

_DEFAULT_PER_PAGE = 12
_MAX_PER_PAGE = 50
_DEFAULT_RANDOM_COUNT = 6
_MAX_RANDOM_COUNT = 20
_DEFAULT_LOG_LINES = 20
_MAX_LOG_LINES = 100


def _parse_int(text: Optional[str]) -> Optional[int]:
    """Parse a whole string as a signed 64-bit integer, or return ``None``."""
    if text is None or not _INTEGER.fullmatch(text):
        return None
    number = int(text)
    return number if _INT64_MIN <= number <= _INT64_MAX else None


def _query_int(name: str, default: int) -> int:
    """Read a positive integer query parameter, falling back to ``default``."""
    value = _parse_int(request.args.get(name, str(default)))
    if value is None or value < 1:
        return default
    return value


def _error(status: int, message: str) -> tuple[Response, int]:
    return jsonify(status="error", message=message), status


def _rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = moment.isoformat(timespec="seconds")
    return text[: -len("+00:00")] + "Z" if text.endswith("+00:00") else text


def system_logs(lines: int, now: Optional[datetime] = None) -> list[dict[str, str]]:
    """Build the status log: ``lines`` periodic entries followed by three database entries."""
    current = now if now is not None else datetime.now().astimezone()
    start = current - timedelta(minutes=10)
    logs = [
        {
            "timestamp": _rfc3339(start + timedelta(seconds=10 * index)),
            "level": "INFO",
            "message": f"系统正常运行中，已处理 {index * 10 + 5} 个请求",
        }
        for index in range(lines)
    ]
    recent = (
        (3, "HBase 查询执行成功，扫描了 5000 行数据"),
        (2, "完成电影数据缓存更新，共缓存 1500 条记录"),
        (1, "用户评分数据同步完成，更新了 350 条评分"),
    )
    logs.extend(
        {
            "timestamp": _rfc3339(current - timedelta(minutes=minutes)),
            "level": "INFO",
            "message": message,
        }
        for minutes, message in recent
    )
    return logs


def _requested_count() -> Optional[int]:
    """Read ``count`` from a JSON body; ``None`` means the body could not be bound."""
    try:
        body = json.loads(request.get_data(as_text=True))
    except ValueError:
        return None
    if body is None:
        return 0
    if not isinstance(body, dict):
        return None
    if "count" in body:
        value = body["count"]
    else:
        value = next((v for k, v in body.items() if k.lower() == "count"), None)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _cross_origin() -> bool:
    origin = request.headers.get("Origin")
    if not origin:
        return False
    host = request.host
    return origin not in (f"http://{host}", f"https://{host}")


def _preflight() -> Optional[Response]:
    if request.method != "OPTIONS" or not _cross_origin():
        return None
    response = current_app.response_class(status=204)
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Methods"] = ",".join(_ALLOW_METHODS)
    response.headers["Access-Control-Allow-Headers"] = ",".join(_ALLOW_HEADERS)
    response.headers["Access-Control-Max-Age"] = str(int(_MAX_AGE.total_seconds()))
    return response


def _add_cors_headers(response: Response) -> Response:
    if request.method != "OPTIONS" and _cross_origin():
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Expose-Headers"] = ",".join(_EXPOSE_HEADERS)
    return response


def _random_movies_response(count: int, status: int = 200) -> Any:
    count = min(count, _MAX_RANDOM_COUNT)
    try:
        movies = services.get_random_movies(count)
    except Exception as exc:  # noqa: BLE001 - reported to the client as a 500
        logger.error("获取随机电影失败: %s", exc)
        return _error(500, "获取随机电影失败")
    return jsonify(status="success", movies=[movie.to_dict() for movie in movies]), status


def create_app() -> Flask:
    """Create the web application with all API routes and CORS handling."""
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.before_request(_preflight)
    app.after_request(_add_cors_headers)

    @app.get("/api/movies")
    def list_movies():
        page = _query_int("page", 1)
        per_page = min(_query_int("per_page", _DEFAULT_PER_PAGE), _MAX_PER_PAGE)
        try:
            movies = services.get_movies_list(page, per_page)
        except Exception as exc:  # noqa: BLE001
            logger.error("获取电影列表失败: %s", exc)
            return _error(500, "获取电影列表失败")
        return jsonify(movies.to_dict())

    @app.get("/api/movies/random")
    def random_movies():
        count = _query_int("count", _DEFAULT_RANDOM_COUNT)
        return _random_movies_response(count)

    @app.post("/api/movies/random")
    def random_movies_post():
        count = _requested_count()
        # An unreadable body has already committed a 400 status; the movies still follow.
        status = 200 if count is not None else 400
        if count is None or count < 1:
            count = _DEFAULT_RANDOM_COUNT
        return _random_movies_response(count, status)

    @app.get("/api/movies/search")
    def search():
        query = request.args.get("query", "")
        if not query:
            return _error(400, "搜索关键词不能为空")
        page = _query_int("page", 1)
        per_page = min(_query_int("per_page", _DEFAULT_PER_PAGE), _MAX_PER_PAGE)
        try:
            result = services.search_movies(query, page, per_page)
        except Exception as exc:  # noqa: BLE001
            logger.error("搜索电影失败: %s", exc)
            return _error(500, "搜索电影失败")
        return jsonify(result.to_dict())

    @app.get("/api/movies/<movie_id>")
    def movie_detail(movie_id: str):
        if not movie_id:
            return _error(400, "电影ID不能为空")
        try:
            detail = services.get_movie_by_id(movie_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("获取电影详情失败: %s", exc)
            return _error(500, "获取电影详情失败")
        if detail is None:
            return _error(404, "电影不存在")
        return jsonify(detail.to_dict())

    @app.get("/api/ratings/movie/<movie_id>")
    def movie_ratings(movie_id: str):
        if not movie_id:
            return _error(400, "电影ID不能为空")
        try:
            ratings = get_movie_ratings(movie_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("获取电影评分失败: %s", exc)
            return _error(500, "获取电影评分失败")
        if ratings is None:
            ratings = {"ratings": [], "count": 0, "avgRating": 0.0, "minRating": 0.0, "maxRating": 0.0}
        return jsonify(
            status="success",
            ratings=ratings.get("ratings"),
            count=ratings.get("count"),
            avgRating=ratings.get("avgRating"),
            minRating=ratings.get("minRating"),
            maxRating=ratings.get("maxRating"),
        )

    @app.get("/api/system/logs")
    def logs():
        lines = min(_query_int("lines", _DEFAULT_LOG_LINES), _MAX_LOG_LINES)
        return jsonify(status="success", logs=system_logs(lines))

    @app.get("/api/system/cache")
    def cache_stats():
        return jsonify(status="success", data={"stats": get_cache().stats()})

    return app