"""
Line-oriented progress handling for git subprocess output.

git reports progress on stderr and redraws the same line with carriage
returns, so both '\\n' and '\\r' terminate a line here.
"""

import re
import threading
from typing import Callable, Optional

LineCallback = Callable[[str], None]

RECEIVING_OBJECTS_PATTERN = re.compile(
    r"Receiving objects:\s+\d+%\s+\((\d+)/(\d+)\)"
)


class LineWriter:
    """
    Byte sink that calls a callback once per complete line.

    Incomplete trailing data is buffered until the next write or until
    flush() is called at end of stream. Empty lines are dropped.
    """

    def __init__(self, callback: LineCallback, encoding: str = "utf-8"):
        self._callback = callback
        self._encoding = encoding
        self._buffer = bytearray()
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        with self._lock:
            self._buffer.extend(data)
            start = 0
            for index, byte in enumerate(self._buffer):
                if byte in (0x0A, 0x0D):
                    self._emit(self._buffer[start:index])
                    start = index + 1
            del self._buffer[:start]
        return len(data)

    def flush(self) -> None:
        with self._lock:
            if self._buffer:
                self._emit(self._buffer)
                self._buffer.clear()

    def _emit(self, raw: bytes) -> None:
        line = bytes(raw).decode(self._encoding, errors="replace")
        if line:
            self._callback(line)


def parse_receiving_objects(line: str) -> Optional[tuple[int, int]]:
    """
    Extract (current, total) from a 'Receiving objects' progress line.

    Args:
        line: A single line of git progress output.

    Returns:
        Tuple of current and total object counts, or None if the line
        is not a receiving-objects line.
    """
    match = RECEIVING_OBJECTS_PATTERN.search(line)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))
