from __future__ import annotations

import json
import socket
import threading
import time

import pytest

from holepunch import cli
from holepunch.constants import EXIT_RECV, EXIT_RESOLUTION, EXIT_SEND, EXIT_TIMEOUT, EXIT_USAGE
from holepunch.errors import LoopbackTimeout, SocketError
from holepunch.server import AwaitingSecond, RendezvousServer


@pytest.fixture
def no_bind(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("socket bound on invalid input")

    monkeypatch.setattr(RendezvousServer, "bind", classmethod(fail))


def test_server_non_numeric_port(no_bind, capsys):
    assert cli.main(["server", "http"]) == EXIT_USAGE
    err = capsys.readouterr().err
    assert "unable to parse port number 'http'" in err


@pytest.mark.parametrize("port", ["0", "65536", "-5"])
def test_server_port_out_of_range(no_bind, port):
    assert cli.main(["server", port]) == EXIT_USAGE


def test_server_script_reports_under_its_own_name(no_bind, capsys):
    assert cli.server_main(["nope"]) == EXIT_USAGE
    err = capsys.readouterr().err
    assert "holepunch-server: error:" in err
    assert "holepunch server" not in err


def test_punch_script_reports_under_its_own_name(monkeypatch, capsys):
    def fail(self):
        raise SocketError("sendto", OSError(101, "Network is unreachable"))

    monkeypatch.setattr(cli.PunchClient, "run", fail)
    assert cli.punch_main(["127.0.0.1", "9000", "1"]) == EXIT_SEND
    err = capsys.readouterr().err
    assert err.startswith("punch: error: error on sendto. errno 101")


def test_missing_arguments():
    assert cli.main(["punch", "127.0.0.1", "9000"]) == EXIT_USAGE
    assert cli.main([]) == EXIT_USAGE


@pytest.mark.parametrize("passes", ["0", "-1", "three"])
def test_punch_rejects_bad_passes(passes):
    assert cli.punch_main(["127.0.0.1", "9000", passes]) == EXIT_USAGE


def test_punch_resolution_failure(monkeypatch, capsys):
    def fail(*args, **kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", fail)
    assert cli.main(["punch", "no.such.host", "9000", "1"]) == EXIT_RESOLUTION
    assert "no.such.host" in capsys.readouterr().err


def test_socket_errors_map_to_exit_code(monkeypatch, capsys):
    def fail(self):
        raise SocketError("recvfrom", OSError(104, "Connection reset by peer"))

    monkeypatch.setattr(cli.PunchClient, "run", fail)
    assert cli.main(["punch", "127.0.0.1", "9000", "1"]) == EXIT_RECV
    assert "errno 104" in capsys.readouterr().err


def test_demo_json(capsys):
    assert cli.main(["demo", "--passes", "2", "--json"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["listener"]["received"] == [0, 1]
    assert payload["initiator"]["sent"] == [0, 1]
    assert payload["listener"]["role"] == "listener"


@pytest.mark.parametrize("host", ["a" * 64 + ".example", "a..b"])
def test_punch_unencodable_hostname(host, capsys):
    assert cli.main(["punch", host, "9000", "1"]) == EXIT_RESOLUTION
    assert "unable to resolve host" in capsys.readouterr().err


def test_demo_timeout_exit_code(monkeypatch, capsys):
    def stall(**kwargs):
        raise LoopbackTimeout("second did not finish")

    monkeypatch.setattr(cli, "run_loopback", stall)
    assert cli.main(["demo"]) == EXIT_TIMEOUT
    assert "holepunch demo: error: second did not finish" in capsys.readouterr().err


def test_punch_pair_through_loopback_server(capsys):
    server = RendezvousServer.bind(0, host="127.0.0.1")
    port = str(server.address[1])
    codes = {}

    def punch(name):
        codes[name] = cli.punch_main(["127.0.0.1", port, "2", "--json"])

    server_thread = threading.Thread(target=server.serve_forever, kwargs={"max_datagrams": 2}, daemon=True)
    first = threading.Thread(target=punch, args=("first",), daemon=True)
    second = threading.Thread(target=punch, args=("second",), daemon=True)
    try:
        server_thread.start()
        first.start()
        deadline = time.monotonic() + 5.0
        while not isinstance(server.state, AwaitingSecond):
            assert time.monotonic() < deadline, "first client never registered"
            time.sleep(0.01)
        second.start()
        for t in (server_thread, first, second):
            t.join(timeout=5.0)
            assert not t.is_alive()
    finally:
        server.close()

    assert codes == {"first": 0, "second": 0}
    out = capsys.readouterr().out
    assert out.count("Received '0'") == 2
    assert out.count("Received '1'") == 2
    assert '"role": "listener"' in out
    assert '"role": "initiator"' in out
    assert out.count('"sent": [\n    0,\n    1\n  ]') == 2
