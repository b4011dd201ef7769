"""Command line entry points for the servers and clients."""

import argparse
import logging
import socket
import sys
from typing import List, Optional

from pydantic import ValidationError

from .client import TCPClient, UDPClient, run_repl
from .log import setup_logging
from .settings import ClientConfig, ServerConfig
from .tcp_server import TCPServer
from .udp_server import UDPServer

logger = logging.getLogger("kvstore.cli")


class _UsageParser(argparse.ArgumentParser):
    """ArgumentParser that reports a one-line usage hint on bad arguments"""

    def __init__(self, usage_hint: str, **kwargs):
        super().__init__(**kwargs)
        self.usage_hint = usage_hint

    def error(self, message):
        self.exit(2, f"Sample Usage: {self.usage_hint}\n")


def _server_parser(prog: str) -> argparse.ArgumentParser:
    parser = _UsageParser(f"{prog} <port number>", prog=prog)
    parser.add_argument("port", type=int)
    parser.add_argument("--log-file", default=None)
    return parser


def _client_parser(prog: str) -> argparse.ArgumentParser:
    parser = _UsageParser(f"{prog} <hostname> <port number>", prog=prog)
    parser.add_argument("host")
    parser.add_argument("port", type=int)
    parser.add_argument("--log-file", default=None)
    return parser


def _run_server(server_cls, prog: str, default_log: str, argv: Optional[List[str]]) -> int:
    args = _server_parser(prog).parse_args(argv)
    try:
        config = ServerConfig(port=args.port, log_file=args.log_file or default_log)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_file, config.log_level)
    server = server_cls(config)
    try:
        server.serve_forever()
    except OSError:
        # bind() already logged the reason
        return 1
    return 0


def _run_client(client_cls, prog: str, default_log: str, argv: Optional[List[str]]) -> int:
    args = _client_parser(prog).parse_args(argv)
    try:
        config = ClientConfig(host=args.host, port=args.port, log_file=args.log_file or default_log)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_file, config.log_level)
    try:
        client = client_cls(config)
    except socket.gaierror as e:
        logger.error("Server not found: %s", e)
        return 1
    except OSError as e:
        logger.error("I/O error: %s", e)
        return 1

    try:
        run_repl(client)
    finally:
        client.close()
    return 0


def tcp_server(argv: Optional[List[str]] = None) -> int:
    return _run_server(TCPServer, "kvstore-tcp-server", "tcpserver.log", argv)


def udp_server(argv: Optional[List[str]] = None) -> int:
    return _run_server(UDPServer, "kvstore-udp-server", "udpserver.log", argv)


def tcp_client(argv: Optional[List[str]] = None) -> int:
    return _run_client(TCPClient, "kvstore-tcp-client", "tcpclient.log", argv)


def udp_client(argv: Optional[List[str]] = None) -> int:
    return _run_client(UDPClient, "kvstore-udp-client", "udpclient.log", argv)


COMMANDS = {
    "tcp-server": tcp_server,
    "udp-server": udp_server,
    "tcp-client": tcp_client,
    "udp-client": udp_client,
}


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] not in COMMANDS:
        print(f"Sample Usage: python -m kvstore {{{'|'.join(COMMANDS)}}} ...", file=sys.stderr)
        return 2
    return COMMANDS[argv[0]](argv[1:])
