"""Rendezvous server.

Clients are paired two at a time in arrival order. The first client of a pair
is answered with the sentinel and becomes the pending peer; the second is
answered with the pending peer's observed endpoint, which completes the pair
and empties the slot again.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .constants import ANY_HOST
from .net import UdpEndpoint
from .wire import SENTINEL, Registration


@dataclass(frozen=True, slots=True)
class AwaitingFirst:
    pass


@dataclass(frozen=True, slots=True)
class AwaitingSecond:
    pending: Registration


PairingState = Union[AwaitingFirst, AwaitingSecond]


def pair(state: PairingState, sender: Registration) -> Tuple[Registration, PairingState]:
    """Return the reply owed to `sender` and the state after its registration."""
    if isinstance(state, AwaitingSecond):
        return state.pending, AwaitingFirst()
    return SENTINEL, AwaitingSecond(sender)


class RendezvousServer:
    def __init__(self, udp: UdpEndpoint):
        self.udp = udp
        self.state: PairingState = AwaitingFirst()
        self.registrations = 0
        self.pairs = 0

    @classmethod
    def bind(cls, port: int, host: str = ANY_HOST) -> "RendezvousServer":
        return cls(UdpEndpoint.listening(host, port))

    @property
    def address(self) -> Tuple[str, int]:
        return self.udp.local_address

    def handle(self, addr: Tuple[str, int]) -> Registration:
        sender = Registration.from_endpoint(addr)
        reply, next_state = pair(self.state, sender)
        self.udp.sendto(reply.to_bytes(), addr)
        self.state = next_state
        self.registrations += 1

        if reply.is_sentinel:
            logging.info("registered %s:%d; waiting for its peer", *sender.endpoint)
        else:
            self.pairs += 1
            logging.info(
                "paired %s:%d with %s:%d (pair #%d)",
                *reply.endpoint,
                *sender.endpoint,
                self.pairs,
            )
        return reply

    def serve_forever(self, max_datagrams: Optional[int] = None) -> None:
        """Answer registrations until `max_datagrams` have been handled, or forever."""
        logging.info("rendezvous server listening on %s:%d", *self.address)
        while max_datagrams is None or self.registrations < max_datagrams:
            # payload is ignored; only the source endpoint matters
            _, addr = self.udp.recvfrom()
            self.handle(addr)

    def close(self) -> None:
        self.udp.close()
