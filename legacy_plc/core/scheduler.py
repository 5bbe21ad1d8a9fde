"""
Scan Scheduler - Main Scan Loop
================================
Orchestrates the controller. Each scan cycle:

    1. Input scan        (simulated input rack → process image)
    2. Program execution (ladder rungs)
    3. Output update     (mirror registers, take snapshot)
    4. Communication     (control port, then management port)
    5. Data logging      (every Nth cycle)
    6. Cycle counter, periodic status line

Cooperative, non-preemptive timing: tick() is polled roughly
every millisecond and runs the cycle body only once the scan
period has elapsed since the previous cycle. Late cycles are
never caught up, and every component runs on the scan thread.
"""

import time
import logging
import threading
from typing import Optional

from legacy_plc.config.settings import PLCConfig
from legacy_plc.config.memory_map import (
    IN_TEMPERATURE, OUT_HEATER, REG_HEATER_STATUS,
)
from legacy_plc.core.process_image import ProcessImage, ProcessSnapshot
from legacy_plc.core.ladder import ControlProgram
from legacy_plc.core.data_log import CycleLogger
from legacy_plc.comms.control_protocol import ControlProtocolServer
from legacy_plc.comms.management_protocol import ManagementProtocolServer
from legacy_plc.drivers.simulator import InputSimulator

logger = logging.getLogger(__name__)


class ScanScheduler:
    """
    Main PLC scan engine.

    Owns the single mutable ProcessImage. Protocol servers and the
    data log only ever see the snapshot taken after the output
    update phase of the current cycle.
    """

    def __init__(
        self,
        config: Optional[PLCConfig] = None,
        image: Optional[ProcessImage] = None,
        input_source: Optional[InputSimulator] = None,
        program: Optional[ControlProgram] = None,
        control_server: Optional[ControlProtocolServer] = None,
        management_server: Optional[ManagementProtocolServer] = None,
        data_log: Optional[CycleLogger] = None,
    ):
        self.config = config or PLCConfig()
        cfg = self.config

        self.image = image or ProcessImage()
        self.inputs = input_source or InputSimulator(
            realistic=cfg.realistic_inputs,
            seed=cfg.random_seed,
            stop_marker=cfg.stop_marker_path,
        )
        self.program = program or ControlProgram()
        self.control_server = control_server or ControlProtocolServer(
            host=cfg.bind_host,
            port=cfg.control_port,
            backlog=cfg.control_backlog,
        )
        self.management_server = management_server or ManagementProtocolServer(
            host=cfg.bind_host,
            port=cfg.management_port,
            backlog=cfg.management_backlog,
            build=cfg.transport_mode,
            memory_map=self.image.memory_map,
        )
        self.data_log = data_log or CycleLogger(
            cfg.log_path, interval=cfg.log_interval_cycles,
        )

        # Runtime state
        self._last_cycle_ms: Optional[int] = None
        self._snapshot: Optional[ProcessSnapshot] = None
        self._scan_time_ms = 0.0
        self._max_scan_time_ms = 0.0
        self._channels_open = False
        self._shut_down = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.image.running

    @property
    def cycle_count(self) -> int:
        return self.image.cycle_count

    @property
    def scan_time_ms(self) -> float:
        return self._scan_time_ms

    @property
    def max_scan_time_ms(self) -> float:
        return self._max_scan_time_ms

    @property
    def snapshot(self) -> ProcessSnapshot:
        """Snapshot from the most recent commit phase."""
        if self._snapshot is None:
            return self.image.snapshot()
        return self._snapshot

    def _channels(self):
        return (self.control_server, self.management_server, self.data_log)

    # ── Lifecycle ────────────────────────────────────────────

    def open_channels(self):
        """Bring up both listeners and the data log, degrading on failure."""
        if self._channels_open:
            return
        self.control_server.open()
        self.management_server.open()
        self.data_log.open()
        self._channels_open = True
        if not (self.control_server.is_open or self.management_server.is_open):
            logger.error("No network channel available; running control-only")

    def start(self, blocking: bool = True):
        """Start the PLC scan loop."""
        self.open_channels()
        self.image.running = True
        self._shut_down = False
        logger.info(
            "PLC scan engine starting (%s mode, scan rate: %d ms)",
            self.config.transport_mode, self.config.cycle_period_ms,
        )

        if blocking:
            self._scan_loop()
        else:
            self._thread = threading.Thread(
                target=self._scan_loop, name="plc-scan", daemon=True
            )
            self._thread.start()

    def request_stop(self):
        """Request loop termination. Safe from a signal handler."""
        self.image.running = False

    def stop(self):
        """Stop the PLC scan loop gracefully."""
        logger.info("PLC stopping...")
        self.request_stop()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
        self._thread = None
        self.shutdown()

    def shutdown(self):
        """Safe state, close channels, write the log footer. Idempotent."""
        if self._shut_down:
            return
        self._shut_down = True
        self.image.running = False
        self._safe_state()
        self.control_server.close()
        self.management_server.close()
        self.data_log.close(self.image.snapshot())
        self._channels_open = False
        logger.info("PLC stopped. Total cycles executed: %d", self.image.cycle_count)

    def _scan_loop(self):
        """Poll tick() until a stop is requested."""
        poll_sec = self.config.poll_interval_ms / 1000.0
        try:
            while self.image.running:
                try:
                    self.tick()
                except Exception:
                    logger.exception("Scan cycle exception")
                time.sleep(poll_sec)
        finally:
            self.shutdown()

    # ── Scan Cycle ───────────────────────────────────────────

    def tick(self, now: Optional[float] = None) -> bool:
        """Run one cycle if the scan period has elapsed. Returns True if it ran.

        Elapsed time is compared in whole milliseconds.
        """
        if now is None:
            now_ms = time.monotonic_ns() // 1_000_000
        else:
            now_ms = round(now * 1000)
        if (
            self._last_cycle_ms is not None
            and now_ms - self._last_cycle_ms < self.config.cycle_period_ms
        ):
            return False
        self._last_cycle_ms = now_ms
        self._execute_scan()
        return True

    def single_scan(self):
        """Execute exactly one scan cycle regardless of timing (for testing)."""
        self._execute_scan()

    def _execute_scan(self):
        """One complete scan cycle."""
        t_start = time.monotonic()
        image = self.image

        # Phase 1: Input scan
        image.set_inputs(self.inputs.sample(image.cycle_count))

        # Phase 2: Program execution
        self.program.execute(image)

        # Phase 3: Output update
        self.program.commit_outputs(image)
        self._collect_faults()
        snapshot = image.snapshot()
        self._snapshot = snapshot

        # Phase 4: Communication
        self.control_server.poll(snapshot)
        self.management_server.poll(snapshot)

        # Phase 5: Data logging
        self.data_log.maybe_write(snapshot)

        image.increment_cycle()

        elapsed_ms = (time.monotonic() - t_start) * 1000.0
        self._scan_time_ms = elapsed_ms
        self._max_scan_time_ms = max(self._max_scan_time_ms, elapsed_ms)

        interval = self.config.status_interval_cycles
        if interval and image.cycle_count % interval == 0:
            self._display_status()

    def _collect_faults(self):
        """Surface channel degradation through last_error."""
        faults = [c.last_error for c in self._channels() if c.last_error]
        if faults:
            self.image.record_error("; ".join(faults))

    def _display_status(self):
        image = self.image
        logger.info(
            "Cycle: %d | Temp: %d | Heater: %s | Errors: 0x%x",
            image.cycle_count,
            image.inputs[IN_TEMPERATURE],
            "ON" if image.outputs[OUT_HEATER] else "OFF",
            image.error_codes,
        )

    def _safe_state(self):
        """De-energize the heater."""
        self.image.write_output(OUT_HEATER, 0)
        self.image.write_register(REG_HEATER_STATUS, 0)

    def get_status(self) -> dict:
        """Return a scheduler status snapshot."""
        snap = self.snapshot
        return {
            "running": self.image.running,
            "mode": self.config.transport_mode,
            "cycle_count": self.image.cycle_count,
            "scan_time_ms": round(self._scan_time_ms, 2),
            "max_scan_time_ms": round(self._max_scan_time_ms, 2),
            "error_codes": snap.error_codes,
            "last_error": self.image.last_error,
            "control_endpoint": self.control_server.address,
            "management_endpoint": self.management_server.address,
            "control_requests": self.control_server.requests_served,
            "management_requests": self.management_server.requests_served,
            "log_rows": self.data_log.rows_written,
        }
