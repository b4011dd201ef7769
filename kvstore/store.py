"""
In-memory Key-Value Store and text command dispatcher
Shared by the TCP and UDP servers:
- Thread-safe put/get/delete, each atomic under one lock
- Text protocol: PUT <key> <value>, GET <key>, DELETE <key>
"""

import threading
from typing import Dict, List, Optional, Tuple


OK = "Operation successful."
NOT_FOUND = "No record found."
INVALID_COMMAND = "Invalid Command."
PUT_USAGE = "Sample Usage: PUT <key> <value>"
GET_USAGE = "Sample Usage: GET <key>"
DELETE_USAGE = "Sample Usage: DELETE <key>"


class KVStore:
    """
    Key-Value store held entirely in memory.
    Every operation takes the same lock, so a reader never sees a half-applied write.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.lock = threading.RLock()

    def put(self, key: str, value: str) -> bool:
        """Set a key-value pair, replacing any previous value"""
        with self.lock:
            self.data[key] = value
            return True

    def get(self, key: str) -> Optional[str]:
        """Get value for a key"""
        with self.lock:
            return self.data.get(key)

    def delete(self, key: str) -> bool:
        """Delete a key. Missing keys are not an error."""
        with self.lock:
            self.data.pop(key, None)
            return True

    def __len__(self) -> int:
        with self.lock:
            return len(self.data)


def parse_command(line: str) -> Tuple[str, List[str]]:
    """
    Split a request line into a verb and at most two arguments.

    The verb is separated on the first space, then the rest is split once
    more, so a PUT value keeps its spaces while a key stops at the first one.
    """
    parts = line.split(" ", 1)
    command = parts[0]
    if len(parts) < 2:
        return command, []
    return command, parts[1].split(" ", 1)


class CommandHandler:
    """Runs PUT/GET/DELETE commands against its own KVStore"""

    def __init__(self, store: Optional[KVStore] = None):
        self.store = store if store is not None else KVStore()

    def handle_line(self, line: str) -> str:
        """Parse a raw request line and return the response text"""
        command, args = parse_command(line)
        return self.handle_command(command, args)

    def handle_command(self, command: str, args: List[str]) -> str:
        if command == "PUT":
            return self._put(args)
        elif command == "GET":
            return self._get(args)
        elif command == "DELETE":
            return self._delete(args)
        else:
            return INVALID_COMMAND

    def _put(self, args: List[str]) -> str:
        if len(args) < 2:
            return PUT_USAGE
        self.store.put(args[0], args[1])
        return OK

    def _get(self, args: List[str]) -> str:
        if len(args) < 1:
            return GET_USAGE
        value = self.store.get(args[0])
        return value if value is not None else NOT_FOUND

    def _delete(self, args: List[str]) -> str:
        if len(args) < 1:
            return DELETE_USAGE
        self.store.delete(args[0])
        return OK
