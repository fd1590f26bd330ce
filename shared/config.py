"""
Settings for the coordinator and worker nodes, read from the environment
(and a ``.env`` file when present).
"""
import os
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from shared.models import WorkerAddress

DEFAULT_UDP_PORTS = [41234, 41235, 5000, 6000]


def _split(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_ports(value: Optional[str]) -> List[int]:
    try:
        return [int(port) for port in _split(value)]
    except ValueError:
        raise ValueError(f"Invalid port list: {value!r}")


def parse_clusters(value: Optional[str]) -> List[WorkerAddress]:
    clusters = []
    for item in _split(value):
        ip, sep, port = item.rpartition(":")
        if not sep or not ip:
            raise ValueError(f"Invalid cluster address {item!r}, expected ip:port")
        try:
            clusters.append(WorkerAddress(ip=ip, port=int(port)))
        except ValueError:
            raise ValueError(f"Invalid cluster address {item!r}, expected ip:port")
    return clusters


class Settings(BaseModel):
    udp_ports: List[int] = Field(default_factory=lambda: list(DEFAULT_UDP_PORTS))
    worker_host: str = "0.0.0.0"
    worker_port: int = Field(default=41234, ge=1, le=65535)
    address_prefix: Optional[str] = None
    interface_names: List[str] = Field(default_factory=lambda: ["Ethernet"])
    discovery_timeout: float = Field(default=2.0, gt=0)
    dispatch_timeout: float = Field(default=2.0, gt=0)
    discovery_interval: float = Field(default=5.0, gt=0)
    discovery_concurrency: int = Field(default=512, ge=1)
    dispatch_retries: int = Field(default=0, ge=0)
    dispatch_concurrency: int = Field(default=1, ge=1)
    clusters: List[WorkerAddress] = Field(default_factory=list)
    http_port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("udp_ports")
    @classmethod
    def check_ports(cls, ports):
        if not ports:
            raise ValueError("At least one candidate UDP port is required")
        for port in ports:
            if not 1 <= port <= 65535:
                raise ValueError(f"Port out of range: {port}")
        return ports

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, level):
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {level}")
        return level

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True))

        values = {
            "udp_ports": parse_ports(os.getenv("UDP_PORTS")) or None,
            "worker_host": os.getenv("WORKER_HOST"),
            "worker_port": os.getenv("UDP_PORT"),
            "address_prefix": os.getenv("IP_BASIC_OCTETS") or None,
            "interface_names": _split(os.getenv("SCAN_INTERFACES")) or None,
            "discovery_timeout": os.getenv("DISCOVERY_TIMEOUT"),
            "dispatch_timeout": os.getenv("DISPATCH_TIMEOUT"),
            "discovery_interval": os.getenv("DISCOVERY_INTERVAL"),
            "discovery_concurrency": os.getenv("DISCOVERY_CONCURRENCY"),
            "dispatch_retries": os.getenv("DISPATCH_RETRIES"),
            "dispatch_concurrency": os.getenv("DISPATCH_CONCURRENCY"),
            "clusters": parse_clusters(os.getenv("CLUSTERS")),
            "http_port": os.getenv("PORT"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        try:
            return cls(**{key: value for key, value in values.items() if value is not None})
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e
