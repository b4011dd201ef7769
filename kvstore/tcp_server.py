"""
TCP server for the key-value store
Features:
- One daemon thread per client connection, all sharing one CommandHandler
- Newline-delimited requests, one response line per request
- A failing connection is logged and closed without affecting the others
"""

import logging
import socket
import threading
from typing import Optional, Set, Tuple

from .log import AuditLog, format_peer
from .settings import ServerConfig
from .store import CommandHandler

logger = logging.getLogger("kvstore.tcp_server")


class TCPServer:
    """TCP server for the key-value store"""

    def __init__(self, config: ServerConfig, handler: Optional[CommandHandler] = None):
        self.config = config
        self.handler = handler if handler is not None else CommandHandler()
        self.audit = AuditLog(logger)
        self.running = False
        self.server_socket: Optional[socket.socket] = None
        self.server_thread: Optional[threading.Thread] = None
        self.clients: Set[socket.socket] = set()
        self.lock = threading.Lock()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port); the real port when configured with 0"""
        return self.server_socket.getsockname()[:2]

    def bind(self):
        """Bind and listen. Raises OSError if the port cannot be used."""
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            self.server_socket.bind((self.config.host, self.config.port))
            self.server_socket.listen(5)
        except OSError as e:
            logger.error("Server exception: %s", e)
            self.server_socket.close()
            raise
        self.running = True
        logger.info("Server is listening on port %d", self.address[1])

    def start(self):
        """Start the server in a background thread"""
        self.bind()
        self.server_thread = threading.Thread(target=self._accept_connections, daemon=True)
        self.server_thread.start()

    def serve_forever(self):
        """Bind and run the accept loop in the calling thread"""
        self.bind()
        try:
            self._accept_connections()
        except KeyboardInterrupt:
            logger.info("Shutting down (KeyboardInterrupt)...")
        finally:
            self.shutdown()

    def _accept_connections(self):
        """Accept client connections and hand each to its own thread"""
        while self.running:
            try:
                self.server_socket.settimeout(1.0)
                client_socket, addr = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self.running:
                    break
                logger.error("Failed to accept connection: %s", e)
                continue

            client_thread = threading.Thread(
                target=self._handle_client,
                args=(client_socket, addr),
                daemon=True
            )
            client_thread.start()

    def _handle_client(self, client_socket: socket.socket, addr: Tuple):
        """Handle a single client connection until it closes"""
        with self.lock:
            self.clients.add(client_socket)
        client_socket.settimeout(self.config.read_timeout)
        try:
            reader = client_socket.makefile("r", encoding="utf-8", errors="replace", newline="")
            with reader:
                for raw in reader:
                    line = raw.rstrip("\r\n")
                    self.audit.received(addr, line)

                    response = self.handler.handle_line(line)

                    self.audit.response(addr, response)
                    client_socket.sendall((response + "\n").encode("utf-8"))
        except OSError as e:
            logger.error("Server exception: connection %s: %s", format_peer(addr), e)
        finally:
            with self.lock:
                self.clients.discard(client_socket)
            try:
                client_socket.close()
            except OSError as e:
                logger.error("Failed to close client socket: %s", e)

    def shutdown(self):
        """Stop accepting and close every open connection"""
        self.running = False
        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError:
                pass
        with self.lock:
            clients = list(self.clients)
        for client_socket in clients:
            try:
                client_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        if self.server_thread and self.server_thread is not threading.current_thread():
            self.server_thread.join(timeout=2.0)
