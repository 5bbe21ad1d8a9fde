"""
Shared test fixtures for the legacy PLC test suite.
"""

import socket
import time

import pytest

from legacy_plc.config.memory_map import MemoryMap
from legacy_plc.config.settings import PLCConfig
from legacy_plc.core.process_image import ProcessImage
from legacy_plc.core.ladder import ControlProgram
from legacy_plc.core.scheduler import ScanScheduler
from legacy_plc.drivers.simulator import InputSimulator


@pytest.fixture
def memory_map():
    return MemoryMap()


@pytest.fixture
def image():
    return ProcessImage()


@pytest.fixture
def program():
    return ControlProgram()


@pytest.fixture
def simulator():
    return InputSimulator(seed=1234)


@pytest.fixture
def config(tmp_path):
    """Loopback, ephemeral ports, files under tmp_path."""
    return PLCConfig(
        bind_host="127.0.0.1",
        control_port=0,
        management_port=0,
        cycle_period_ms=100,
        log_path=str(tmp_path / "plc_data.log"),
        stop_marker_path=str(tmp_path / "plc_estop"),
        random_seed=42,
    )


@pytest.fixture
def scheduler(config):
    """Scheduler with channels open but no scan thread; inputs built from config."""
    sched = ScanScheduler(config)
    sched.open_channels()
    yield sched
    sched.shutdown()


@pytest.fixture
def running_scheduler(config):
    """Scheduler scanning every 10 ms on a background thread."""
    config.cycle_period_ms = 10
    sched = ScanScheduler(config)
    sched.start(blocking=False)
    yield sched
    sched.stop()


def exchange(scheduler, server, payload: bytes = b"", settle: float = 0.05) -> bytes:
    """Connect to a listener, send payload, run one scan, collect the reply."""
    with socket.create_connection(server.address, timeout=2.0) as sock:
        if payload:
            sock.sendall(payload)
        time.sleep(settle)
        scheduler.single_scan()
        chunks = []
        while True:
            try:
                chunk = sock.recv(4096)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def control_exchange(scheduler):
    def _exchange(payload: bytes, settle: float = 0.05) -> bytes:
        return exchange(scheduler, scheduler.control_server, payload, settle)
    return _exchange


@pytest.fixture
def management_exchange(scheduler):
    def _exchange(payload: bytes = b"", settle: float = 0.05) -> bytes:
        return exchange(scheduler, scheduler.management_server, payload, settle)
    return _exchange
