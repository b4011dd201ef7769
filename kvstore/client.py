"""
Console clients for the key-value store
- TCPClient keeps one connection open and reads one response line per command
- UDPClient sends each command as a single packet and waits for one reply
- run_repl reads commands until EOF or 'exit'
"""

import logging
import socket
import sys
from typing import Optional, TextIO, Tuple

from .settings import ClientConfig

logger = logging.getLogger("kvstore.client")


class TCPClient:
    """Client for the TCP server"""

    def __init__(self, config: ClientConfig):
        self.config = config
        self.socket: Optional[socket.socket] = None
        self.buffer = b""
        self._connect()

    def _connect(self):
        """Connect to the server"""
        self.socket = socket.create_connection(
            (self.config.host, self.config.port), timeout=self.config.timeout
        )

    def send(self, line: str) -> str:
        """Send a request line and receive the response line"""
        self._discard_stale()
        self.socket.sendall((line + "\n").encode("utf-8"))

        while b"\n" not in self.buffer:
            chunk = self.socket.recv(4096)
            if not chunk:
                raise ConnectionError("Server closed the connection")
            self.buffer += chunk

        response, _, self.buffer = self.buffer.partition(b"\n")
        return response.decode("utf-8", errors="replace").rstrip("\r")

    def _discard_stale(self):
        """Drop replies to earlier requests that timed out"""
        self.buffer = b""
        self.socket.setblocking(False)
        try:
            while self.socket.recv(4096):
                pass
        except BlockingIOError:
            pass
        finally:
            self.socket.settimeout(self.config.timeout)

    def Put(self, key: str, value: str) -> str:
        return self.send(f"PUT {key} {value}")

    def Get(self, key: str) -> str:
        return self.send(f"GET {key}")

    def Delete(self, key: str) -> str:
        return self.send(f"DELETE {key}")

    def close(self):
        """Close the connection"""
        if self.socket:
            self.socket.close()


class UDPClient:
    """Client for the UDP server"""

    def __init__(self, config: ClientConfig):
        self.config = config
        # Resolve up front so an unknown host fails here rather than on the first send
        self.address: Tuple[str, int] = (socket.gethostbyname(self.config.host), self.config.port)
        self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.socket.settimeout(self.config.timeout)

    def send(self, line: str) -> str:
        """Send one packet and wait for the reply. Raises socket.timeout."""
        self._discard_stale()
        self.socket.sendto(line.encode("utf-8"), self.address)
        data, _ = self.socket.recvfrom(self.config.buffer_size)
        return data.decode("utf-8", errors="replace")

    def _discard_stale(self):
        """Drop late packets answering earlier requests that timed out"""
        self.socket.setblocking(False)
        try:
            while True:
                self.socket.recvfrom(self.config.buffer_size)
        except (BlockingIOError, ConnectionRefusedError):
            pass
        finally:
            self.socket.settimeout(self.config.timeout)

    def Put(self, key: str, value: str) -> str:
        return self.send(f"PUT {key} {value}")

    def Get(self, key: str) -> str:
        return self.send(f"GET {key}")

    def Delete(self, key: str) -> str:
        return self.send(f"DELETE {key}")

    def close(self):
        self.socket.close()


def run_repl(client, stdin: TextIO = sys.stdin) -> None:
    """Prompt for commands and print each server response until 'exit'"""
    while True:
        logger.info("Enter command: ")
        text = stdin.readline()
        if not text:
            break
        text = text.rstrip("\r\n")
        if text.lower() == "exit":
            break

        try:
            response = client.send(text)
        except OSError as e:
            logger.warning("No response from server for command: %s (%s)", text, e)
            if isinstance(e, ConnectionError):
                break
            continue
        logger.info("Server response: %s", response)
