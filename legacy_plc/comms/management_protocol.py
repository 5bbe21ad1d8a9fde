"""
HTTP/JSON Management Protocol
==============================
Monitoring plane, separate from the control plane. Any request
(even an empty one) on the management port gets a single
HTTP/1.1 200 response carrying a JSON snapshot of the process
image, after which the connection is closed.

The request is never parsed. Whatever the client sent is drained
so closing the socket does not reset the connection under it.
"""

import json
import socket
import logging
from typing import Optional

from legacy_plc import DEVICE_NAME, DEVICE_MODEL, __version__
from legacy_plc.comms.server import PollingServer
from legacy_plc.config.memory_map import MemoryMap, REG_DEVICE_ID, ERR_HIGH_TEMP
from legacy_plc.core.clock import timestamp
from legacy_plc.core.process_image import ProcessSnapshot

logger = logging.getLogger(__name__)

DRAIN_CHUNK = 4096

_ERROR_FLAGS = {
    ERR_HIGH_TEMP: "high_temperature",
}

_RESPONSE_HEADERS = (
    "HTTP/1.1 200 OK\r\n"
    "Content-Type: application/json\r\n"
    "Cache-Control: no-cache, no-store, must-revalidate\r\n"
    "Access-Control-Allow-Origin: *\r\n"
    "Connection: close\r\n"
    "Content-Length: {length}\r\n"
    "\r\n"
)


def build_status_document(
    snapshot: ProcessSnapshot,
    build: str,
    memory_map: Optional[MemoryMap] = None,
    now: Optional[float] = None,
) -> dict:
    """Assemble the management JSON document for a snapshot."""
    mm = memory_map or MemoryMap()
    run_state = "RUN" if snapshot.running else "STOP"

    def named(points: dict, table: tuple) -> dict:
        section = {tag: table[point.address] for tag, point in points.items()}
        section["raw"] = list(table)
        return section

    return {
        "device_info": {
            "name": DEVICE_NAME,
            "model": DEVICE_MODEL,
            "version": __version__,
            "build": build,
            "device_id": f"0x{snapshot.registers[REG_DEVICE_ID]:04x}",
            "uptime_cycles": snapshot.cycle_count,
            "status": run_state,
        },
        "status": {
            "running": snapshot.running,
            "error_code": f"0x{snapshot.error_codes:02x}",
            "error_flags": [
                name for bit, name in _ERROR_FLAGS.items()
                if snapshot.error_codes & bit
            ],
            "last_error": snapshot.last_error,
        },
        "inputs": named(mm.inputs, snapshot.inputs),
        "outputs": named(mm.outputs, snapshot.outputs),
        "registers": named(mm.registers, snapshot.registers),
        "timestamp": timestamp(now),
    }


def render_http_response(document: dict) -> bytes:
    """Serialize a document as a complete HTTP/1.1 response."""
    body = json.dumps(document, indent=2).encode("utf-8")
    head = _RESPONSE_HEADERS.format(length=len(body)).encode("ascii")
    return head + body


class ManagementProtocolServer(PollingServer):
    """Management-plane listener: one JSON snapshot per connection."""

    name = "Management"

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8001,
        backlog: int = 5,
        build: str = "physical",
        memory_map: Optional[MemoryMap] = None,
        send_timeout: float = 0.1,
    ):
        super().__init__(host, port, backlog)
        self.build = build
        self.memory_map = memory_map or MemoryMap()
        self.send_timeout = send_timeout

    def serve(self, conn: socket.socket, snapshot: ProcessSnapshot) -> bool:
        self._drain(conn)
        document = build_status_document(snapshot, self.build, self.memory_map)
        conn.settimeout(self.send_timeout)
        conn.sendall(render_http_response(document))
        try:
            conn.shutdown(socket.SHUT_WR)
        except OSError:
            logger.debug("Management client closed before shutdown")
        return True

    @staticmethod
    def _drain(conn: socket.socket) -> int:
        """Discard every request byte that has already arrived."""
        received = 0
        while True:
            try:
                chunk = conn.recv(DRAIN_CHUNK)
            except BlockingIOError:
                return received
            if not chunk:
                return received
            received += len(chunk)
