from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .constants import DEFAULT_INITIATOR_EXTRA, DEFAULT_LISTENER_EXTRA
from .net import UdpEndpoint
from .wire import SENTINEL, Registration, decode_counter, encode_counter


class ClientRole(enum.Enum):
    LISTENER = "listener"
    INITIATOR = "initiator"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    server: Tuple[str, int]
    passes: int
    listener_extra: int = DEFAULT_LISTENER_EXTRA
    initiator_extra: int = DEFAULT_INITIATOR_EXTRA

    def __post_init__(self) -> None:
        if self.passes <= 0:
            raise ValueError(f"passes must be positive, got {self.passes}")
        if self.listener_extra < 0 or self.initiator_extra < 0:
            raise ValueError("extra iteration counts must not be negative")

    def total_iterations(self, role: ClientRole) -> int:
        extra = self.initiator_extra if role is ClientRole.INITIATOR else self.listener_extra
        return 2 * self.passes + extra


@dataclass(slots=True)
class ExchangeState:
    udp: UdpEndpoint
    role: ClientRole
    iteration: int
    total_iterations: int
    peer: Optional[Tuple[str, int]] = None


@dataclass(slots=True)
class ExchangeResult:
    role: ClientRole
    peer: Optional[Tuple[str, int]]
    received: List[int] = field(default_factory=list)
    sent: List[int] = field(default_factory=list)


def print_round(round_number: int) -> None:
    print(f"Received '{round_number}'", flush=True)


def exchange(state: ExchangeState, report: Callable[[int], None] = print_round) -> ExchangeResult:
    """Alternate receive (even iterations) and send (odd iterations) with the peer.

    A Listener starts without a peer and adopts the source of the first
    counter it receives.
    """
    result = ExchangeResult(role=state.role, peer=state.peer)

    while state.iteration < state.total_iterations:
        if state.iteration % 2 == 0:
            raw, addr = state.udp.recvfrom()
            if state.peer is None:
                state.peer = addr
                result.peer = addr
                logging.info("learned peer %s:%d", *addr)
            round_number = decode_counter(raw)
            result.received.append(round_number)
            report(round_number)
        else:
            assert state.peer is not None, "send before the peer is known"
            round_number = state.iteration // 2
            state.udp.sendto(encode_counter(round_number), state.peer)
            result.sent.append(round_number)
        state.iteration += 1

    logging.info("%s finished after %d iterations", state.role.value, state.total_iterations)
    return result


class PunchClient:
    def __init__(self, config: ClientConfig, report: Callable[[int], None] = print_round):
        self.config = config
        self.report = report

    def register(self, udp: UdpEndpoint) -> Registration:
        """Send the sentinel registration and wait for the server's answer."""
        udp.sendto(SENTINEL.to_bytes(), self.config.server)
        logging.info("registered with %s:%d from %s:%d", *self.config.server, *udp.local_address)
        raw, _ = udp.recvfrom()
        return Registration.from_bytes(raw)

    def select_role(self, reply: Registration, registration_udp: UdpEndpoint) -> ExchangeState:
        if reply.is_sentinel:
            role = ClientRole.LISTENER
            logging.info("no peer pending; listening for one")
            return ExchangeState(
                udp=registration_udp,
                role=role,
                iteration=0,
                total_iterations=self.config.total_iterations(role),
            )

        role = ClientRole.INITIATOR
        logging.info("peer is %s:%d; initiating", *reply.endpoint)
        return ExchangeState(
            udp=UdpEndpoint.ephemeral(),
            role=role,
            iteration=1,
            total_iterations=self.config.total_iterations(role),
            peer=reply.endpoint,
        )

    def run(self) -> ExchangeResult:
        with UdpEndpoint.ephemeral() as registration_udp:
            reply = self.register(registration_udp)
            state = self.select_role(reply, registration_udp)
            try:
                return exchange(state, self.report)
            finally:
                if state.udp is not registration_udp:
                    state.udp.close()
