"""
Logging setup and the request/response audit trail.

Console lines carry a millisecond timestamp, e.g.
``[2024-05-01 12:00:00.123] Server is listening on port 9999``.
The optional log file is opened in append mode.
"""

import logging
import sys
from typing import Optional, Tuple

CONSOLE_FORMAT = "[%(asctime)s.%(msecs)03d] %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"
FILE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

RECEIVED = "Received from"
RESPONSE = "Response to"


def setup_logging(log_file: Optional[str] = None, level: str = "INFO") -> None:
    """Configure the ``kvstore`` logger with a console and an optional file handler"""
    root = logging.getLogger("kvstore")
    root.setLevel(level.upper())
    root.propagate = False

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
    root.addHandler(console)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as e:
            root.error("Failed to set up log file %s: %s", log_file, e)
        else:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            root.addHandler(file_handler)


def format_peer(addr: Tuple) -> str:
    """Render a socket address as host:port"""
    return f"{addr[0]}:{addr[1]}"


class AuditLog:
    """Records every request and response that passes through a server"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def record(self, direction: str, peer: Tuple, text: str) -> None:
        try:
            self.logger.info("%s %s - %s", direction, format_peer(peer), text)
        except Exception as e:
            print(f"Failed to write audit record: {e}", file=sys.stderr)

    def received(self, peer: Tuple, text: str) -> None:
        self.record(RECEIVED, peer, text)

    def response(self, peer: Tuple, text: str) -> None:
        self.record(RESPONSE, peer, text)
