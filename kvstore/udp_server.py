"""
UDP server for the key-value store
Features:
- Single receive loop, one request per packet
- Replies go back to the exact address the packet came from
- Malformed packets and send failures are logged and skipped, never fatal
"""

import logging
import socket
import threading
from typing import Optional, Tuple

from .log import AuditLog, format_peer
from .settings import ServerConfig
from .store import CommandHandler

logger = logging.getLogger("kvstore.udp_server")


class MalformedRequestError(ValueError):
    """Raised for a packet that carries no command at all"""


def decode_packet(payload: bytes) -> str:
    """Turn a packet payload into a request line"""
    line = payload.decode("utf-8", errors="replace").rstrip("\r\n")
    if not line:
        raise MalformedRequestError("Malformed request")
    return line


class UDPServer:
    """UDP server for the key-value store"""

    def __init__(self, config: ServerConfig, handler: Optional[CommandHandler] = None):
        self.config = config
        self.handler = handler if handler is not None else CommandHandler()
        self.audit = AuditLog(logger)
        self.running = False
        self.server_socket: Optional[socket.socket] = None
        self.server_thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server_socket.getsockname()[:2]

    def bind(self):
        """Bind the datagram socket. Raises OSError if the port cannot be used."""
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            self.server_socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error("Server exception: %s", e)
            self.server_socket.close()
            raise
        self.running = True
        logger.info("Server is listening on port %d", self.address[1])

    def start(self):
        """Start the receive loop in a background thread"""
        self.bind()
        self.server_thread = threading.Thread(target=self._receive_loop, daemon=True)
        self.server_thread.start()

    def serve_forever(self):
        self.bind()
        try:
            self._receive_loop()
        except KeyboardInterrupt:
            logger.info("Shutting down (KeyboardInterrupt)...")
        finally:
            self.shutdown()

    def _receive_loop(self):
        while self.running:
            try:
                self.server_socket.settimeout(1.0)
                payload, addr = self.server_socket.recvfrom(self.config.buffer_size)
            except socket.timeout:
                continue
            except OSError as e:
                if not self.running:
                    break
                logger.error("Server exception: %s", e)
                continue

            self._handle_packet(payload, addr)

    def _handle_packet(self, payload: bytes, addr: Tuple):
        """Answer one packet. Nothing raised here may stop the receive loop."""
        try:
            line = decode_packet(payload)
        except MalformedRequestError:
            logger.warning(
                "Received malformed request of length %d from %s",
                len(payload), format_peer(addr)
            )
            return

        self.audit.received(addr, line)
        response = self.handler.handle_line(line)
        self.audit.response(addr, response)

        try:
            self.server_socket.sendto(response.encode("utf-8"), addr)
        except OSError as e:
            logger.error("Server exception: reply to %s failed: %s", format_peer(addr), e)

    def shutdown(self):
        self.running = False
        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError:
                pass
        if self.server_thread and self.server_thread is not threading.current_thread():
            self.server_thread.join(timeout=2.0)
