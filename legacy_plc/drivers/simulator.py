"""
Input Simulator
================
Stands in for the controller's input modules. Produces one
sample of the input table per scan:

  - Temperature sensor (raw ADC, clamped 600-900)
  - Cycle / duty input (square wave, 200-cycle period)
  - Run enable (forced off by the emergency stop)
  - Pressure sensor (random walk, clamped 400-600)

Two flavours of plant behavior:
  - physical: uniform jitter around 750, as the legacy I/O rack reads
  - virtual:  slow sinusoid plus noise, a smoother simulated plant

The emergency stop is an operator-accessible input: it trips
while the stop-marker file exists or when set_estop(True) is
called.
"""

import math
import os
import random
import logging
from typing import Optional

from legacy_plc.config.memory_map import (
    INPUT_COUNT, IN_TEMPERATURE, IN_CYCLE, IN_RUN_ENABLE, IN_PRESSURE,
)
from legacy_plc.core.process_image import U16_MASK

logger = logging.getLogger(__name__)

TEMP_MIN = 600
TEMP_MAX = 900
TEMP_BASE = 750

PRESSURE_MIN = 400
PRESSURE_MAX = 600
PRESSURE_BASE = 500

CYCLE_INPUT_PERIOD = 200


class InputSimulator:
    """
    Simulated input rack.

    Deterministic for a given seed. Overrides written through the
    set_* methods replace the simulated value for that address
    until clear_overrides() is called.
    """

    def __init__(
        self,
        realistic: bool = False,
        seed: Optional[int] = None,
        stop_marker: Optional[str] = None,
    ):
        self.realistic = realistic
        self.stop_marker = stop_marker
        self._rng = random.Random(seed)
        self._pressure = float(PRESSURE_BASE)
        self._temperature = float(TEMP_BASE)
        self._estop = False
        self._estop_reported = False
        self._overrides: dict[int, int] = {}

    # ── InputSource ──────────────────────────────────────────

    def sample(self, cycle_count: int) -> list:
        """Return the next 16-word input table."""
        values = [0] * INPUT_COUNT
        values[IN_TEMPERATURE] = self._next_temperature(cycle_count)
        values[IN_CYCLE] = 1 if cycle_count % CYCLE_INPUT_PERIOD < CYCLE_INPUT_PERIOD // 2 else 0
        values[IN_RUN_ENABLE] = 1
        values[IN_PRESSURE] = self._next_pressure()

        for address, value in self._overrides.items():
            values[address] = value

        if self.estop_active:
            values[IN_RUN_ENABLE] = 0
        return values

    @property
    def estop_active(self) -> bool:
        active = self._estop or bool(
            self.stop_marker and os.path.exists(self.stop_marker)
        )
        if active != self._estop_reported:
            if active:
                logger.warning("Emergency stop active: run enable forced off")
            else:
                logger.info("Emergency stop released")
            self._estop_reported = active
        return active

    # ── Simulation Controls ──────────────────────────────────

    def set_estop(self, active: bool):
        """Set the E-stop state."""
        self._estop = active

    def set_temperature(self, raw: int):
        """Override the temperature input for testing."""
        self.set_input(IN_TEMPERATURE, raw)

    def set_pressure(self, raw: int):
        """Override the pressure input for testing."""
        self.set_input(IN_PRESSURE, raw)

    def set_input(self, address: int, value: int):
        """Force any input word."""
        if not 0 <= address < INPUT_COUNT:
            raise IndexError(f"input address out of range: {address}")
        self._overrides[address] = int(value) & U16_MASK

    def clear_overrides(self):
        self._overrides.clear()

    # ── Internal Simulation ──────────────────────────────────

    def _next_temperature(self, cycle_count: int) -> int:
        if self.realistic:
            # ~60 s swing at the default 100 ms scan
            target = TEMP_BASE + 80.0 * math.sin(2 * math.pi * cycle_count / 600.0)
            self._temperature += (target - self._temperature) * 0.2
            value = self._temperature + self._rng.gauss(0, 3.0)
        else:
            value = TEMP_BASE + self._rng.randrange(100)
        return int(_clamp(value, TEMP_MIN, TEMP_MAX))

    def _next_pressure(self) -> int:
        self._pressure += self._rng.choice((-1, 0, 1))
        self._pressure = _clamp(self._pressure, PRESSURE_MIN, PRESSURE_MAX)
        return int(self._pressure)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
