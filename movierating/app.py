"""Application start-up: logging, cache, store and the HTTP server."""
from __future__ import annotations

import argparse
import logging
import signal
import socketserver
import sys
import threading
from datetime import timedelta
from typing import Optional
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask

from movierating.api import create_app
from movierating.cache import init_cache
from movierating.config import Config, get_config
from movierating.store import StoreError, Table, init_store

logger = logging.getLogger(__name__)

_SHUTDOWN_TIMEOUT = 5.0
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


class _ThreadingServer(socketserver.ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _RequestHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args) -> None:  # noqa: A002 - signature of the base class
        logger.info("%s - %s", self.address_string(), format % args)


def configure_logging() -> None:
    """Send INFO-level log records with full timestamps to standard output."""
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.INFO)


def build_app(config: Config, table: Optional[Table] = None) -> Flask:
    """Initialise the shared cache and store, then create the web application."""
    init_cache(timedelta(minutes=5), timedelta(minutes=10))
    logger.info("缓存系统初始化成功")
    init_store(config.hbase, table)
    return create_app()


def main(argv: Optional[list[str]] = None) -> int:
    """Run the server until SIGINT or SIGTERM; return the process exit status."""
    parser = argparse.ArgumentParser(prog="movierating", description="Movie rating backend server.")
    parser.parse_args(argv)

    configure_logging()
    config = get_config()
    logger.info(
        "配置信息: HBase主机=%s, ZooKeeper地址=%s, ZooKeeper端口=%s",
        config.hbase.host,
        config.hbase.zk_quorum,
        config.hbase.zk_port,
    )

    try:
        app = build_app(config)
    except StoreError as exc:
        logger.critical("初始化HBase失败: %s", exc)
        return 1

    try:
        server = make_server(
            "",
            int(config.server.port),
            app,
            server_class=_ThreadingServer,
            handler_class=_RequestHandler,
        )
    except OSError as exc:
        logger.critical("启动服务器失败: %s", exc)
        return 1

    stop = threading.Event()

    def _request_stop(signum, frame) -> None:
        stop.set()

    previous = {sig: signal.signal(sig, _request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
    worker = threading.Thread(target=server.serve_forever, name="http-server", daemon=True)
    logger.info("电影评分系统后端启动 [端口: %s]", config.server.port)
    worker.start()
    try:
        while not stop.wait(0.5):
            if not worker.is_alive():
                logger.critical("启动服务器失败: server stopped unexpectedly")
                return 1
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    logger.info("关闭服务器...")
    closer = threading.Thread(target=server.shutdown, daemon=True)
    closer.start()
    closer.join(_SHUTDOWN_TIMEOUT)
    server.server_close()
    if closer.is_alive():
        logger.critical("服务器强制关闭: shutdown timed out")
        return 1
    logger.info("服务器已退出")
    return 0