"""Minimal key-value store served over TCP and UDP."""

from .store import CommandHandler, KVStore, parse_command
from .tcp_server import TCPServer
from .udp_server import UDPServer

__all__ = ["CommandHandler", "KVStore", "parse_command", "TCPServer", "UDPServer"]
