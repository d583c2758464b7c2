from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import NoReturn

from .client import ClientConfig, ExchangeResult, PunchClient
from .constants import (
    DEFAULT_DEMO_PASSES,
    DEFAULT_INITIATOR_EXTRA,
    DEFAULT_LISTENER_EXTRA,
    DEFAULT_LOG_LEVEL,
    EXIT_OK,
    MAX_PORT,
    MIN_PORT,
)
from .errors import HolePunchError, UsageError
from .loopback import run_loopback
from .net import resolve_ipv4
from .server import RendezvousServer


class _ArgumentParser(argparse.ArgumentParser):
    """Turns argparse failures into `UsageError` instead of exiting with 2."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        raise UsageError(message)


def port_number(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unable to parse port number '{text}'") from None
    if not MIN_PORT <= value <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port ({value}) must be between {MIN_PORT} and {MAX_PORT}")
    return value


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unable to parse '{text}' as an integer") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"({value}) must be positive")
    return value


def non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"unable to parse '{text}' as an integer") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"({value}) must not be negative")
    return value


def _summary(result: ExchangeResult) -> dict:
    return {
        "role": result.role.value,
        "peer": f"{result.peer[0]}:{result.peer[1]}" if result.peer else None,
        "received": result.received,
        "sent": result.sent,
    }


def cmd_server(args: argparse.Namespace) -> int:
    server = RendezvousServer.bind(args.port)
    try:
        server.serve_forever()
    finally:
        server.close()
    return EXIT_OK


def cmd_punch(args: argparse.Namespace) -> int:
    address = resolve_ipv4(args.address)
    config = ClientConfig(
        server=(address, args.port),
        passes=args.passes,
        listener_extra=args.listener_extra,
        initiator_extra=args.initiator_extra,
    )
    result = PunchClient(config).run()

    payload = _summary(result)
    if args.json:
        print(json.dumps(payload, indent=2))
    else:
        logging.info("exchange complete: %s", payload)
    return EXIT_OK


def cmd_demo(args: argparse.Namespace) -> int:
    r = run_loopback(
        passes=args.passes,
        listener_extra=args.listener_extra,
        initiator_extra=args.initiator_extra,
    )
    payload = {
        "role": "demo",
        "server_port": r.server_port,
        "listener": _summary(r.listener),
        "initiator": _summary(r.initiator),
    }
    print(json.dumps(payload, indent=2) if args.json else payload)
    return EXIT_OK


def _add_common(x: argparse.ArgumentParser) -> None:
    x.add_argument(
        "--log-level",
        default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )


def _add_extras(x: argparse.ArgumentParser) -> None:
    x.add_argument("--listener-extra", type=non_negative_int, default=DEFAULT_LISTENER_EXTRA,
                   help="iterations added to the listener's 2*passes")
    x.add_argument("--initiator-extra", type=non_negative_int, default=DEFAULT_INITIATOR_EXTRA,
                   help="iterations added to the initiator's 2*passes")
    x.add_argument("--json", action="store_true")


def configure_server(x: argparse.ArgumentParser) -> None:
    _add_common(x)
    x.add_argument("port", type=port_number)
    x.set_defaults(func=cmd_server)


def configure_punch(x: argparse.ArgumentParser) -> None:
    _add_common(x)
    _add_extras(x)
    x.add_argument("address")
    x.add_argument("port", type=port_number)
    x.add_argument("passes", type=positive_int)
    x.set_defaults(func=cmd_punch)


def configure_demo(x: argparse.ArgumentParser) -> None:
    _add_common(x)
    _add_extras(x)
    x.add_argument("--passes", type=positive_int, default=DEFAULT_DEMO_PASSES)
    x.set_defaults(func=cmd_demo)


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(prog="holepunch", description="UDP NAT hole punching (rendezvous server + punch client).")
    sub = p.add_subparsers(dest="cmd", required=True)

    configure_server(sub.add_parser("server", help="run the rendezvous server"))
    configure_punch(sub.add_parser("punch", help="register with a server and ping-pong with the paired peer"))
    configure_demo(sub.add_parser("demo", help="server and two clients on loopback"))

    return p


def run(parser: argparse.ArgumentParser, argv: list[str] | None = None) -> int:
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return exc.exit_code

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    label = f"{parser.prog} {args.cmd}" if getattr(args, "cmd", None) else parser.prog
    try:
        return int(args.func(args))
    except HolePunchError as exc:
        print(f"{label}: error: {exc}", file=sys.stderr)
        return exc.exit_code


def main(argv: list[str] | None = None) -> int:
    return run(build_parser(), argv)


def server_main(argv: list[str] | None = None) -> int:
    p = _ArgumentParser(prog="holepunch-server", description="UDP hole punching rendezvous server.")
    configure_server(p)
    return run(p, argv)


def punch_main(argv: list[str] | None = None) -> int:
    p = _ArgumentParser(prog="punch", description="Register with a rendezvous server and ping-pong with the paired peer.")
    configure_punch(p)
    return run(p, argv)


if __name__ == "__main__":
    raise SystemExit(main())
