import logging

import pytest

from .settings import ServerConfig
from .tcp_server import TCPServer
from .udp_server import UDPServer


@pytest.fixture(autouse=True)
def reset_kvstore_logger():
    """Undo setup_logging so caplog keeps seeing records"""
    yield
    root = logging.getLogger("kvstore")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def tcp_server():
    server = TCPServer(ServerConfig(host="127.0.0.1", port=0))
    server.start()
    try:
        yield server
    finally:
        server.shutdown()


@pytest.fixture
def udp_server():
    server = UDPServer(ServerConfig(host="127.0.0.1", port=0))
    server.start()
    try:
        yield server
    finally:
        server.shutdown()
