from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .config import ConfigError, Settings, load_settings
from .errors import BatchSendError, WolError
from .wol import Sender

logger = logging.getLogger("wolsend")

PROMPT = "Enter MAC Address: "


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> None:
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.setLevel(level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)
    if log_file is not None:
        try:
            handler = logging.handlers.RotatingFileHandler(str(log_file), maxBytes=1_000_000, backupCount=3)
        except OSError as e:
            logger.warning("Cannot open log file %s: %s", log_file, e)
        else:
            handler.setFormatter(fmt)
            logger.addHandler(handler)


def _port(value: str) -> int:
    port = int(value)
    if not 0 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {value}")
    return port


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="wolsend",
        description="Send Wake-on-LAN magic packets. Without arguments, read one MAC address per line "
                    "until a blank line.",
    )
    ap.add_argument("targets", nargs="*", metavar="mac",
                    help="MAC address (e.g. 01-23-45-67-89-AB) or a host name from hosts.yml")
    ap.add_argument("--env", type=Path, help="path to a .env file (default ./.env if present)")
    ap.add_argument("--hosts", type=Path, help="path to hosts.yml (default ./hosts.yml if present)")
    ap.add_argument("-b", "--broadcast", help="broadcast address (default from WOL_BROADCAST_IP)")
    ap.add_argument("-p", "--port", type=_port, action="append", dest="ports",
                    help="destination port, repeatable (default from WOL_PORTS)")
    ap.add_argument("--strict", action="store_true",
                    help="only accept 0123456789AB and 01-23-45-67-89-AB forms")
    ap.add_argument("-v", "--verbose", action="store_true", help="log every datagram")
    return ap


async def interactive(sender: Sender, settings: Settings) -> None:
    while True:  # until a blank line or EOF
        try:
            line = await asyncio.to_thread(input, PROMPT)
        except EOFError:
            break
        mac = line.strip()
        if not mac:
            break
        try:
            await sender.send_async(settings.resolve(mac))
            print(f"{mac} [OK]")
        except WolError as e:
            print(f"{mac} [FAIL] {e}")


async def broadcast(sender: Sender, settings: Settings, targets: List[str]) -> int:
    try:
        await sender.send_async([settings.resolve(t) for t in targets])
    except BatchSendError as e:
        for mac, err in e.failures:
            print(f"{mac} [FAIL] {err}", file=sys.stderr)
        return 1
    except WolError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


async def run(args: argparse.Namespace, settings: Settings, endpoints: List[Tuple[str, int]]) -> int:
    async with Sender(endpoints=endpoints, timeout=settings.timeout,
                      extended=not (args.strict or settings.strict)) as sender:
        if not args.targets:
            await interactive(sender, settings)
            return 0
        return await broadcast(sender, settings, args.targets)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(env_path=args.env, hosts_path=args.hosts)
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2

    setup_logging(logging.DEBUG if args.verbose else settings.log_level, settings.log_file)
    endpoints = [(args.broadcast or settings.broadcast_ip, p) for p in (args.ports or settings.ports)]
    logger.debug("Sending to %s", ", ".join(f"{h}:{p}" for h, p in endpoints))
    return asyncio.run(run(args, settings, endpoints))


if __name__ == "__main__":
    sys.exit(main())
