from __future__ import annotations

import asyncio
import logging
import socket
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import (
    BatchSendError,
    MacFormatError,
    MissingAddressError,
    SenderClosedError,
    TransmissionError,
)
from .mac import MAC_LENGTH, MacAddress, coerce_mac

logger = logging.getLogger(__name__)

MAGIC_HEADER = b"\xff" * 6
MAC_REPEAT = 16
PACKET_SIZE = len(MAGIC_HEADER) + MAC_LENGTH * MAC_REPEAT

BROADCAST_IP = "255.255.255.255"
DEFAULT_PORT = 9  # discard
LEGACY_PORTS = (0, 7, 9)  # legacy, echo, discard
DEFAULT_ENDPOINTS: Tuple[Tuple[str, int], ...] = ((BROADCAST_IP, DEFAULT_PORT),)
DEFAULT_TIMEOUT = 3.0

Endpoint = Tuple[str, int]
Target = Union[MacAddress, str, bytes, bytearray]


def build_magic_packet(mac: Target) -> bytes:
    """Return the 102-byte magic packet: six 0xFF bytes, then the address 16 times."""
    if isinstance(mac, (bytes, bytearray)):
        mac_bytes = bytes(mac)
    else:
        mac_bytes = coerce_mac(mac).octets
    if len(mac_bytes) != MAC_LENGTH:
        raise MacFormatError("MAC address must be 6 bytes (48 bits) long")
    return MAGIC_HEADER + mac_bytes * MAC_REPEAT


def _is_single(target: object) -> bool:
    return isinstance(target, (MacAddress, str, bytes, bytearray))


def _iter_targets(targets: Iterable[Target]) -> Iterator[Target]:
    if targets is None:
        raise MissingAddressError("MAC address list is required")
    if _is_single(targets):
        raise MacFormatError(f"Expected a collection of MAC addresses, not a single {type(targets).__name__}")
    try:
        return iter(targets)
    except TypeError as e:
        raise MacFormatError(f"Not a MAC address or a collection of them: {targets!r}") from e


class Sender:
    """Broadcasts magic packets through one reusable UDP socket.

    Keep a single Sender around for repeated sends instead of calling
    :func:`wake` in a loop: every ``wake`` call opens and closes a socket.

    ``endpoints`` defaults to the broadcast address on port 9. Pass
    ``[(BROADCAST_IP, p) for p in LEGACY_PORTS]`` for the 0/7/9 variant.
    """

    def __init__(
        self,
        endpoints: Optional[Iterable[Endpoint]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        extended: bool = True,
        sock: Optional[socket.socket] = None,
    ) -> None:
        self.endpoints: Tuple[Endpoint, ...] = (
            tuple(endpoints) if endpoints is not None else DEFAULT_ENDPOINTS
        )
        if not self.endpoints:
            raise ValueError("At least one endpoint is required")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self.extended = extended

        if sock is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            # Required on macOS before the first broadcast
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError:
            sock.close()
            raise
        self._sock: Optional[socket.socket] = sock

    @classmethod
    def open(cls, **kwargs) -> "Sender":
        return cls(**kwargs)

    @property
    def closed(self) -> bool:
        return self._sock is None

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> "Sender":
        self._socket()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> "Sender":
        self._socket()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def _socket(self) -> socket.socket:
        sock = self._sock
        if sock is None:
            raise SenderClosedError("Sender has been closed")
        return sock

    # Blocking

    def send(self, target: Union[Target, Iterable[Target]]) -> None:
        """Broadcast to one address, or to each address of an iterable in order."""
        self._socket()
        if target is None:
            raise MissingAddressError("MAC address is required")
        if _is_single(target):
            self._send_one(coerce_mac(target, self.extended))
        else:
            self.send_many(target)

    def send_many(self, targets: Iterable[Target]) -> None:
        """Send to each address in turn.

        Each element is parsed right before it is sent, so a bad element
        raises after the earlier ones went out and the rest are skipped.
        """
        self._socket()
        for target in _iter_targets(targets):
            self._send_one(coerce_mac(target, self.extended))

    def _send_one(self, mac: MacAddress) -> None:
        sock = self._socket()
        packet = build_magic_packet(mac)
        for endpoint in self.endpoints:
            try:
                sock.sendto(packet, endpoint)
            except OSError as e:
                raise TransmissionError(
                    f"Failed to send magic packet for {mac} to {endpoint[0]}:{endpoint[1]}: {e}"
                ) from e
            logger.debug("Sent magic packet for %s to %s:%d", mac, *endpoint)
        logger.info("Woke %s via %d endpoint(s)", mac, len(self.endpoints))

    # Asynchronous

    async def send_async(self, target: Union[Target, Iterable[Target]]) -> None:
        """Like :meth:`send`, with endpoints (and addresses) sent concurrently."""
        self._socket()
        if target is None:
            raise MissingAddressError("MAC address is required")
        if _is_single(target):
            await self._send_one_async(coerce_mac(target, self.extended))
        else:
            await self.send_many_async(target)

    async def send_many_async(self, targets: Iterable[Target]) -> None:
        """Send to every address concurrently.

        A malformed address only fails its own entry; every other address
        is still sent. Once all have finished, failures are raised together
        as BatchSendError, keyed by the MacAddress or, for entries that did
        not parse, the original input.
        """
        self._socket()
        macs: List[MacAddress] = []
        failures: List[Tuple[object, BaseException]] = []
        for target in _iter_targets(targets):
            try:
                macs.append(coerce_mac(target, self.extended))
            except (MacFormatError, MissingAddressError) as e:
                failures.append((target, e))

        results = await asyncio.gather(
            *(self._send_one_async(mac) for mac in macs), return_exceptions=True
        )
        failures += [(mac, r) for mac, r in zip(macs, results) if isinstance(r, BaseException)]
        if failures:
            for mac, err in failures:
                logger.warning("WoL failed for %s: %s", mac, err)
            raise BatchSendError(failures)

    async def _send_one_async(self, mac: MacAddress) -> None:
        sock = self._socket()
        packet = build_magic_packet(mac)
        results = await asyncio.gather(
            *(self._sendto_async(sock, packet, mac, ep) for ep in self.endpoints),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            raise errors[0]
        logger.info("Woke %s via %d endpoint(s)", mac, len(self.endpoints))

    async def _sendto_async(
        self, sock: socket.socket, packet: bytes, mac: MacAddress, endpoint: Endpoint
    ) -> None:
        # UDP never waits on the peer, so hitting the timeout means the local stack is stuck
        try:
            await asyncio.wait_for(asyncio.to_thread(sock.sendto, packet, endpoint), self.timeout)
        except asyncio.TimeoutError as e:
            raise TransmissionError(
                f"Timed out after {self.timeout}s sending magic packet for {mac} to {endpoint[0]}:{endpoint[1]}"
            ) from e
        except OSError as e:
            raise TransmissionError(
                f"Failed to send magic packet for {mac} to {endpoint[0]}:{endpoint[1]}: {e}"
            ) from e
        logger.debug("Sent magic packet for %s to %s:%d", mac, *endpoint)


def wake(*targets: Target, endpoints: Optional[Sequence[Endpoint]] = None,
         timeout: float = DEFAULT_TIMEOUT, extended: bool = True) -> None:
    """One-shot blocking send through a temporary Sender."""
    if not targets:
        raise MissingAddressError("At least one MAC address is required")
    with Sender(endpoints=endpoints, timeout=timeout, extended=extended) as sender:
        sender.send_many(targets)


async def wake_async(*targets: Target, endpoints: Optional[Sequence[Endpoint]] = None,
                     timeout: float = DEFAULT_TIMEOUT, extended: bool = True) -> None:
    """One-shot concurrent send through a temporary Sender."""
    if not targets:
        raise MissingAddressError("At least one MAC address is required")
    async with Sender(endpoints=endpoints, timeout=timeout, extended=extended) as sender:
        await sender.send_many_async(targets)
