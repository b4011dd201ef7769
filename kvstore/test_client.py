import io
import logging
import socket
import threading
import time

import pytest

from .client import TCPClient, UDPClient, run_repl
from .settings import ClientConfig


class FakeClient:
    def __init__(self, replies):
        self.replies = list(replies)
        self.sent = []

    def send(self, line):
        self.sent.append(line)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_repl_stops_on_exit_any_case(caplog):
    caplog.set_level(logging.INFO, logger="kvstore.client")
    client = FakeClient(["Operation successful."])
    run_repl(client, io.StringIO("PUT a b\nExIt\nGET a\n"))
    assert client.sent == ["PUT a b"]
    assert any(r.getMessage() == "Server response: Operation successful." for r in caplog.records)


def test_repl_stops_on_eof():
    client = FakeClient(["1", "2"])
    run_repl(client, io.StringIO("GET a\nGET b"))
    assert client.sent == ["GET a", "GET b"]


def test_repl_timeout_warns_and_continues(caplog):
    client = FakeClient([socket.timeout("timed out"), "blue"])
    run_repl(client, io.StringIO("GET slow\nGET color\nexit\n"))
    assert client.sent == ["GET slow", "GET color"]
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings and warnings[0].startswith("No response from server for command: GET slow")


def test_repl_stops_when_server_closes():
    client = FakeClient([ConnectionError("Server closed the connection")])
    run_repl(client, io.StringIO("GET a\nGET b\n"))
    assert client.sent == ["GET a"]


def test_udp_late_reply_is_not_taken_for_the_next_one():
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    client = UDPClient(ClientConfig(host="127.0.0.1", port=server.getsockname()[1], timeout=0.3))
    try:
        with pytest.raises(socket.timeout):
            client.send("GET slow")
        _, addr = server.recvfrom(1024)
        server.sendto(b"stale", addr)
        time.sleep(0.1)

        def answer():
            data, peer = server.recvfrom(1024)
            server.sendto(b"fresh:" + data, peer)

        worker = threading.Thread(target=answer)
        worker.start()
        assert client.send("GET fast") == "fresh:GET fast"
        worker.join()
    finally:
        client.close()
        server.close()


def test_tcp_late_reply_is_not_taken_for_the_next_one():
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    client = TCPClient(ClientConfig(host="127.0.0.1", port=listener.getsockname()[1], timeout=0.3))
    conn, _ = listener.accept()
    reader = conn.makefile("rb")
    try:
        with pytest.raises(socket.timeout):
            client.send("GET slow")
        assert reader.readline() == b"GET slow\n"
        conn.sendall(b"stale\n")
        time.sleep(0.1)

        def answer():
            line = reader.readline()
            conn.sendall(b"fresh:" + line)

        worker = threading.Thread(target=answer)
        worker.start()
        assert client.send("GET fast") == "fresh:GET fast"
        worker.join()
    finally:
        client.close()
        reader.close()
        conn.close()
        listener.close()
