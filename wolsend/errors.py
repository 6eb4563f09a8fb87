from __future__ import annotations

from typing import List, Tuple


class WolError(Exception):
    pass


class MacFormatError(WolError, ValueError):
    """Text or bytes that do not describe a 6-byte MAC address."""


class MissingAddressError(WolError, TypeError):
    """An address (or a collection of addresses) was None or empty."""


class TransmissionError(WolError, OSError):
    """A datagram could not be handed to the OS, or did not finish in time."""


class SenderClosedError(WolError):
    pass


class BatchSendError(WolError):
    """Raised by async batch sends once every address has been attempted."""

    def __init__(self, failures: List[Tuple[object, BaseException]]):
        self.failures = failures
        macs = ", ".join(str(mac) for mac, _ in failures)
        super().__init__(f"{len(failures)} address(es) failed: {macs}")
