from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from .client import ClientConfig, ClientRole, ExchangeResult, PunchClient
from .constants import (
    DEFAULT_DEMO_PASSES,
    DEFAULT_INITIATOR_EXTRA,
    DEFAULT_LISTENER_EXTRA,
    LOOPBACK_HOST,
)
from .errors import LoopbackTimeout
from .server import AwaitingSecond, RendezvousServer


@dataclass(frozen=True, slots=True)
class LoopbackResult:
    server_port: int
    listener: ExchangeResult
    initiator: ExchangeResult


def _quiet(_round: int) -> None:
    pass


def run_loopback(
    *,
    passes: int = DEFAULT_DEMO_PASSES,
    listener_extra: int = DEFAULT_LISTENER_EXTRA,
    initiator_extra: int = DEFAULT_INITIATOR_EXTRA,
    join_timeout_s: float = 10.0,
    report: Callable[[int], None] = _quiet,
) -> LoopbackResult:
    """Pair two punch clients through a rendezvous server, all on 127.0.0.1.

    The second client is only started once the first is pending on the
    server, so the roles are deterministic.
    """
    server = RendezvousServer.bind(0, host=LOOPBACK_HOST)
    server_port = server.address[1]
    config = ClientConfig(
        server=(LOOPBACK_HOST, server_port),
        passes=passes,
        listener_extra=listener_extra,
        initiator_extra=initiator_extra,
    )

    results: Dict[str, ExchangeResult] = {}
    errors: Dict[str, BaseException] = {}

    def runner(name: str, target: Callable[[], object]) -> threading.Thread:
        def wrapped() -> None:
            try:
                out = target()
                if isinstance(out, ExchangeResult):
                    results[name] = out
            except BaseException as exc:
                errors[name] = exc

        t = threading.Thread(target=wrapped, name=name, daemon=True)
        t.start()
        return t

    server_thread = runner("server", lambda: server.serve_forever(max_datagrams=2))
    try:
        first = runner("first", PunchClient(config, report).run)

        deadline = time.monotonic() + join_timeout_s
        while not isinstance(server.state, AwaitingSecond) and not errors:
            if time.monotonic() > deadline:
                raise LoopbackTimeout("first client never registered")
            time.sleep(0.01)
        if errors:
            raise next(iter(errors.values()))

        second = runner("second", PunchClient(config, report).run)

        for t in (server_thread, first, second):
            t.join(timeout=join_timeout_s)
            # a failed client leaves its peer blocked
            if errors:
                raise next(iter(errors.values()))
            if t.is_alive():
                raise LoopbackTimeout(f"{t.name} did not finish")
    finally:
        server.close()

    by_role = {r.role: r for r in results.values()}
    return LoopbackResult(
        server_port=server_port,
        listener=by_role[ClientRole.LISTENER],
        initiator=by_role[ClientRole.INITIATOR],
    )
