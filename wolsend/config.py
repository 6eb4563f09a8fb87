from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from .errors import WolError
from .mac import MacAddress, parse_mac
from .wol import BROADCAST_IP, DEFAULT_PORT, DEFAULT_TIMEOUT

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Host:
    name: str
    mac: MacAddress


@dataclass(frozen=True)
class Settings:
    broadcast_ip: str = BROADCAST_IP
    ports: Tuple[int, ...] = (DEFAULT_PORT,)
    timeout: float = DEFAULT_TIMEOUT
    strict: bool = False
    log_file: Optional[Path] = None
    log_level: int = logging.INFO
    hosts: List[Host] = field(default_factory=list)

    @property
    def endpoints(self) -> List[Tuple[str, int]]:
        return [(self.broadcast_ip, port) for port in self.ports]

    def resolve(self, target: str) -> str:
        """Return the MAC of a configured host called ``target``, else ``target``."""
        wanted = target.strip().lower()
        for h in self.hosts:
            if h.name.lower() == wanted:
                return str(h.mac)
        return target


class ConfigError(WolError):
    pass


def _parse_ports(raw: str) -> Tuple[int, ...]:
    try:
        ports = tuple(int(x) for x in raw.replace(" ", "").split(",") if x)
    except ValueError as e:
        raise ConfigError("WOL_PORTS must be a comma-separated list of integers") from e
    if not ports:
        raise ConfigError("WOL_PORTS must name at least one port")
    for p in ports:
        if not 0 <= p <= 65535:
            raise ConfigError(f"Port out of range: {p}")
    return ports


def _parse_timeout(raw: str) -> float:
    try:
        timeout = float(raw)
    except ValueError as e:
        raise ConfigError("WOL_TIMEOUT must be a number of seconds") from e
    if timeout <= 0:
        raise ConfigError("WOL_TIMEOUT must be positive")
    return timeout


def _parse_level(raw: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"Unknown LOG_LEVEL: {raw}")
    return level


def load_hosts(hosts_path: Path, strict: bool = False) -> List[Host]:
    try:
        with hosts_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {hosts_path}: {e}") from e

    if not isinstance(data, dict) or "hosts" not in data or not isinstance(data["hosts"], list):
        raise ConfigError(f"{hosts_path} must contain a 'hosts' list")

    hosts: List[Host] = []
    seen = set()
    for i, item in enumerate(data["hosts"]):
        if not isinstance(item, dict):
            raise ConfigError(f"Host entry #{i} must be a mapping")
        name = str(item.get("name") or "").strip()
        if not name:
            raise ConfigError(f"Host entry #{i} has no name")
        try:
            mac = parse_mac(str(item["mac"]).strip(), extended=not strict)
        except KeyError as e:
            raise ConfigError(f"Invalid host configuration for {name}: missing {e}") from e
        except WolError as e:
            raise ConfigError(f"Invalid host configuration for {name}: {e}") from e
        if name.lower() in seen:
            raise ConfigError(f"Duplicate host name: {name}")
        seen.add(name.lower())
        hosts.append(Host(name=name, mac=mac))
    return hosts


def load_settings(env_path: Optional[Path] = None, hosts_path: Optional[Path] = None) -> Settings:
    """Load settings from .env and hosts.yml.

    Both files are optional when left at their defaults; a path passed
    explicitly must exist.

    Env vars:
      - WOL_BROADCAST_IP: destination address (default 255.255.255.255)
      - WOL_PORTS: comma-separated destination ports (default 9; "0,7,9" for legacy)
      - WOL_TIMEOUT: seconds to wait for each async datagram send (default 3)
      - WOL_STRICT: only accept plain and hyphenated MAC addresses
      - LOG_FILE: path to a rotating log file (optional)
      - LOG_LEVEL: logging level name (default INFO)
    """
    if env_path is None:
        env_path = Path(".env")
    elif not env_path.exists():
        raise ConfigError(f"Env file not found: {env_path}")
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)

    broadcast_ip = os.getenv("WOL_BROADCAST_IP", BROADCAST_IP).strip()
    if not broadcast_ip:
        raise ConfigError("WOL_BROADCAST_IP must not be empty")
    ports = _parse_ports(os.getenv("WOL_PORTS", str(DEFAULT_PORT)))
    timeout = _parse_timeout(os.getenv("WOL_TIMEOUT", str(DEFAULT_TIMEOUT)))
    strict = os.getenv("WOL_STRICT", "").strip().lower() in _TRUE
    log_file_raw = os.getenv("LOG_FILE", "").strip()
    log_file = Path(log_file_raw) if log_file_raw else None
    log_level = _parse_level(os.getenv("LOG_LEVEL", "INFO"))

    hosts: List[Host] = []
    if hosts_path is None:
        hosts_path = Path("hosts.yml")
        if hosts_path.exists():
            hosts = load_hosts(hosts_path, strict=strict)
    elif not hosts_path.exists():
        raise ConfigError(f"Hosts file not found: {hosts_path}")
    else:
        hosts = load_hosts(hosts_path, strict=strict)

    return Settings(
        broadcast_ip=broadcast_ip,
        ports=ports,
        timeout=timeout,
        strict=strict,
        log_file=log_file,
        log_level=log_level,
        hosts=hosts,
    )
