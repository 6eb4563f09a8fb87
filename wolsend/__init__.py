"""Wake-on-LAN magic packet sender."""
from .errors import (
    BatchSendError,
    MacFormatError,
    MissingAddressError,
    SenderClosedError,
    TransmissionError,
    WolError,
)
from .mac import MacAddress, parse_mac, parse_macs
from .wol import (
    BROADCAST_IP,
    DEFAULT_ENDPOINTS,
    LEGACY_PORTS,
    PACKET_SIZE,
    Sender,
    build_magic_packet,
    wake,
    wake_async,
)

__version__ = "1.0.0"
