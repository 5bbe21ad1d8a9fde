"""
Cycle Data Log
===============
Append-only ASCII history of the process image, the format the
controller has always written for offline inspection:

    # PLC Data Log - Started 2004-03-01 08:00:00
    # Format: TIMESTAMP,CYCLE,I0,I1,I2,I3,O0,O1,O2,O3,ERR
    2004-03-01 08:00:00,0,812,1,1,500,0,1,0,0,1
    ...
    # PLC Shutdown - 2004-03-01 09:00:00 (36000 cycles)

Logging is best-effort. If the file cannot be opened or written
the logger goes inert and the scan cycle carries on.
"""

import csv
import logging
from pathlib import Path
from typing import Optional

from legacy_plc.core.clock import timestamp
from legacy_plc.core.process_image import ProcessSnapshot

logger = logging.getLogger(__name__)

LOG_FORMAT = "TIMESTAMP,CYCLE,I0,I1,I2,I3,O0,O1,O2,O3,ERR"
LOGGED_POINTS = 4   # first N inputs and outputs per row


class CycleLogger:
    """Writes one CSV row every `interval` cycles."""

    def __init__(self, path: str, interval: int = 10):
        self.path = Path(path)
        self.interval = interval
        self.rows_written = 0
        self.last_error: Optional[str] = None
        self._file = None
        self._writer = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> bool:
        """Open the log for append and write the header comment."""
        try:
            self._file = open(self.path, "a", newline="")
            self._writer = csv.writer(self._file, lineterminator="\n")
            self._file.write(f"# PLC Data Log - Started {timestamp()}\n")
            self._file.write(f"# Format: {LOG_FORMAT}\n")
            self._file.flush()
            logger.info("Data log: %s (every %d cycles)", self.path, self.interval)
            return True
        except OSError as exc:
            self._fail(f"Data log unavailable: {exc}")
            return False

    def maybe_write(self, snapshot: ProcessSnapshot) -> bool:
        """Append a row if this cycle falls on the logging interval."""
        if self._file is None or snapshot.cycle_count % self.interval != 0:
            return False
        row = [timestamp(), snapshot.cycle_count]
        row.extend(snapshot.inputs[:LOGGED_POINTS])
        row.extend(snapshot.outputs[:LOGGED_POINTS])
        row.append(format(snapshot.error_codes, "x"))
        try:
            self._writer.writerow(row)
            self._file.flush()
        except OSError as exc:
            self._fail(f"Data log write failed: {exc}")
            return False
        self.rows_written += 1
        return True

    def close(self, snapshot: Optional[ProcessSnapshot] = None):
        """Write the shutdown footer and release the file."""
        if self._file is None:
            return
        footer = f"# PLC Shutdown - {timestamp()}"
        if snapshot is not None:
            footer += f" ({snapshot.cycle_count} cycles)"
        try:
            self._file.write(footer + "\n")
            self._file.close()
        except OSError as exc:
            logger.warning("Data log close failed: %s", exc)
        self._file = None
        self._writer = None

    def _fail(self, message: str):
        logger.warning("%s", message)
        self.last_error = message
        if self._file is not None:
            try:
                self._file.close()
            except OSError:
                pass
        self._file = None
        self._writer = None
