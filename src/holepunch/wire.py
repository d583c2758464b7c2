from __future__ import annotations

import socket
import struct
from dataclasses import dataclass
from typing import Tuple

from .constants import COUNTER_FORMAT, COUNTER_SIZE, REGISTRATION_FORMAT, REGISTRATION_SIZE, U32_MAX
from .errors import ProtocolSizeError


@dataclass(frozen=True, slots=True)
class Registration:
    """An IPv4 endpoint as carried between client and rendezvous server."""

    address: str = "0.0.0.0"
    port: int = 0

    @property
    def is_sentinel(self) -> bool:
        return self.address == "0.0.0.0" and self.port == 0

    @property
    def endpoint(self) -> Tuple[str, int]:
        return (self.address, self.port)

    def to_bytes(self) -> bytes:
        packed_addr = socket.inet_aton(self.address)
        return struct.pack(REGISTRATION_FORMAT, int.from_bytes(packed_addr, "big"), self.port)

    @staticmethod
    def from_bytes(raw: bytes) -> "Registration":
        if len(raw) != REGISTRATION_SIZE:
            raise ProtocolSizeError("registration", REGISTRATION_SIZE, len(raw))
        addr, port = struct.unpack(REGISTRATION_FORMAT, raw)
        return Registration(socket.inet_ntoa(addr.to_bytes(4, "big")), port)

    @staticmethod
    def from_endpoint(endpoint: Tuple[str, int]) -> "Registration":
        return Registration(endpoint[0], endpoint[1])


SENTINEL = Registration()


def encode_counter(round_number: int) -> bytes:
    if not 0 <= round_number <= U32_MAX:
        raise ValueError(f"round number out of range: {round_number}")
    return struct.pack(COUNTER_FORMAT, round_number)


def decode_counter(raw: bytes) -> int:
    if len(raw) != COUNTER_SIZE:
        raise ProtocolSizeError("counter", COUNTER_SIZE, len(raw))
    (round_number,) = struct.unpack(COUNTER_FORMAT, raw)
    return round_number
