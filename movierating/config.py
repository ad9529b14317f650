"""Application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class HBaseConfig:
    """Connection settings for the movie data store."""

    host: str = "192.168.2.154"
    zk_quorum: str = "192.168.2.154"
    zk_port: str = "2181"
    master_port: str = "16000"
    thrift_port: str = "9090"


@dataclass
class ServerConfig:
    """HTTP server settings."""

    port: str = "5000"


@dataclass
class Config:
    """Complete application configuration."""

    hbase: HBaseConfig = field(default_factory=HBaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def get_config() -> Config:
    """Return a fresh configuration holding the default settings."""
    return Config()