"""
Polled TCP Listener
====================
Non-blocking listening socket serviced from the scan cycle.

The controller has no network thread: once per scan the
communication phase calls poll(), which accepts at most one
pending connection, serves it to completion, and closes it.
A poll with nobody waiting returns immediately.
"""

import socket
import logging
from typing import Optional

from legacy_plc.core.process_image import ProcessSnapshot

logger = logging.getLogger(__name__)


class PollingServer:
    """Base class for the control and management listeners."""

    name = "TCP"

    def __init__(self, host: str, port: int, backlog: int = 1):
        self.host = host
        self.port = port
        self.backlog = backlog
        self.requests_served = 0
        self.last_error: Optional[str] = None
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def address(self) -> Optional[tuple]:
        """Bound (host, port), useful when listening on port 0."""
        if self._sock is None:
            return None
        return self._sock.getsockname()[:2]

    def open(self) -> bool:
        """Create, bind and listen. Failure leaves the channel inert."""
        sock = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setblocking(False)
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError as exc:
            if sock is not None:
                sock.close()
            self.last_error = f"{self.name} server unavailable on port {self.port}: {exc}"
            logger.error("%s", self.last_error)
            return False
        self._sock = sock
        logger.info(
            "%s server listening on %s:%d", self.name, *self.address
        )
        return True

    def close(self):
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.info("%s server closed", self.name)

    def poll(self, snapshot: ProcessSnapshot) -> bool:
        """Serve at most one waiting client. Returns True if one was served."""
        if self._sock is None:
            return False
        try:
            conn, peer = self._sock.accept()
        except BlockingIOError:
            return False
        except OSError as exc:
            logger.warning("%s accept failed: %s", self.name, exc)
            return False

        with conn:
            try:
                conn.setblocking(False)
                served = self.serve(conn, snapshot)
            except OSError as exc:
                logger.warning("%s client %s: %s", self.name, peer[0], exc)
                return False
        if served:
            self.requests_served += 1
            logger.debug("%s request served for %s:%d", self.name, *peer[:2])
        return served

    def serve(self, conn: socket.socket, snapshot: ProcessSnapshot) -> bool:
        """Handle one accepted connection. Subclasses implement."""
        raise NotImplementedError
