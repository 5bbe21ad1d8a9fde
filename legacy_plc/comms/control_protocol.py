"""
ASCII Control Protocol
=======================
The controller's fieldbus-gateway command set (pre-OPC UA).
One request per connection, one reply, then the server closes.

Requests (case-sensitive, optional trailing CR/LF):

    RI<addr>   Read input word      addr 0-15
    RO<addr>   Read output word     addr 0-15
    RR<addr>   Read register word   addr 0-255
    STATUS     Run state, cycle count, error code, timestamp

Replies (always CRLF terminated):

    0812                               value, 4-digit zero padded
    RUN,00001234,01,2004-03-01 08:00:00
    ERR0                               unknown command
    ERR1                               bad or out-of-range address

Parsing is split from reply formatting: parse_command() turns the
request text into a Command, format_response() renders it against
a process snapshot.
"""

import re
import socket
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from legacy_plc.comms.server import PollingServer
from legacy_plc.config.memory_map import Area
from legacy_plc.core.clock import timestamp
from legacy_plc.core.process_image import ProcessSnapshot

logger = logging.getLogger(__name__)

BUFFER_SIZE = 256
TERMINATOR = "\r\n"

ERR_UNKNOWN_COMMAND = "ERR0"
ERR_BAD_ADDRESS = "ERR1"

_ADDRESS_RE = re.compile(r"[0-9]+")
_TERMINATOR_RE = re.compile(r"\r\n|\n|\r")


class CommandKind(Enum):
    READ_INPUT = "RI"
    READ_OUTPUT = "RO"
    READ_REGISTER = "RR"
    STATUS = "STATUS"
    UNKNOWN = "?"


_READ_AREAS = {
    CommandKind.READ_INPUT: Area.INPUT,
    CommandKind.READ_OUTPUT: Area.OUTPUT,
    CommandKind.READ_REGISTER: Area.REGISTER,
}

_READ_PREFIXES = {
    kind.value: kind for kind in _READ_AREAS
}


@dataclass(frozen=True)
class Command:
    """A parsed control-protocol request."""
    kind: CommandKind
    address: Optional[int] = None
    raw: str = ""

    @property
    def is_read(self) -> bool:
        return self.kind in _READ_AREAS


def parse_command(text: str) -> Command:
    """Parse one request line into a Command."""
    line = _first_line(text)

    if line == "STATUS":
        return Command(CommandKind.STATUS, raw=line)

    kind = _READ_PREFIXES.get(line[:2])
    if kind is None:
        return Command(CommandKind.UNKNOWN, raw=line)

    suffix = line[2:]
    address = int(suffix) if _ADDRESS_RE.fullmatch(suffix) else None
    return Command(kind, address=address, raw=line)


def format_response(
    command: Command,
    snapshot: ProcessSnapshot,
    now: Optional[float] = None,
) -> str:
    """Render the reply for a command, including the CRLF terminator."""
    if command.is_read:
        value = snapshot.read(_READ_AREAS[command.kind], command.address)
        body = ERR_BAD_ADDRESS if value is None else f"{value:04d}"
    elif command.kind == CommandKind.STATUS:
        body = (
            f"RUN,{snapshot.cycle_count:08d},"
            f"{snapshot.error_codes:02x},{timestamp(now)}"
        )
    else:
        body = ERR_UNKNOWN_COMMAND
    return body + TERMINATOR


def handle_request(data: bytes, snapshot: ProcessSnapshot) -> bytes:
    """Decode a raw request and produce the raw reply."""
    command = parse_command(data.decode("ascii", errors="replace"))
    if command.kind == CommandKind.UNKNOWN:
        logger.debug("Unknown command: %r", command.raw)
    return format_response(command, snapshot).encode("ascii")


def _first_line(text: str) -> str:
    """Strip the first line terminator and anything after it."""
    return _TERMINATOR_RE.split(text, 1)[0]


class ControlProtocolServer(PollingServer):
    """
    Control-plane listener: one connection, one command, per scan.

    A client that has not sent anything by the time its connection
    is accepted is dropped without a reply, as the original
    hardware did.
    """

    name = "Control"

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 9001,
        backlog: int = 1,
        send_timeout: float = 0.1,
    ):
        super().__init__(host, port, backlog)
        self.send_timeout = send_timeout

    def serve(self, conn: socket.socket, snapshot: ProcessSnapshot) -> bool:
        try:
            data = conn.recv(BUFFER_SIZE)
        except BlockingIOError:
            return False
        if not data:
            return False
        reply = handle_request(data, snapshot)
        conn.settimeout(self.send_timeout)
        conn.sendall(reply)
        return True
