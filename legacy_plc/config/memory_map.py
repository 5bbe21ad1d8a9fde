"""
Process Image Memory Map
=========================
Fixed addresses of the legacy controller's data tables.

Memory Architecture:
  - Inputs:     16 words, 16-bit unsigned (%IW0-%IW15)
  - Outputs:    16 words, 16-bit unsigned (%QW0-%QW15)
  - Registers: 256 words, 16-bit unsigned (%MW0-%MW255)
  - Error word:  8-bit status bitmask

Only a handful of addresses carry a fixed meaning; every other
word is reserved or general-purpose but remains addressable.
"""

from dataclasses import dataclass, field
from enum import Enum


INPUT_COUNT = 16
OUTPUT_COUNT = 16
REGISTER_COUNT = 256

# ── Inputs ───────────────────────────────────────────────────
IN_TEMPERATURE = 0
IN_CYCLE = 1
IN_RUN_ENABLE = 2
IN_PRESSURE = 3

# ── Outputs ──────────────────────────────────────────────────
OUT_HEATER = 0
OUT_ALARM = 1
OUT_HEARTBEAT = 15

# ── Registers ────────────────────────────────────────────────
REG_TEMP_SETPOINT = 0
REG_ALARM_THRESHOLD = 1
REG_TIMER_PRESET = 2
REG_DEVICE_ID = 10
REG_CYCLE_COUNT = 20
REG_TEMPERATURE = 100
REG_HEATER_STATUS = 101

# ── Error bits ───────────────────────────────────────────────
ERR_HIGH_TEMP = 0x01


class Area(Enum):
    INPUT = "I"
    OUTPUT = "O"
    REGISTER = "R"


@dataclass(frozen=True)
class MemoryPoint:
    """Single named word in the process image."""
    tag: str
    area: Area
    address: int
    description: str
    default: int = 0


@dataclass
class MemoryMap:
    """
    Named points of the process image.

    Keys are the field names used in the management document,
    values describe where the word lives and its power-up value.
    """

    inputs: dict = field(default_factory=lambda: {
        "temperature_raw": MemoryPoint(
            tag="temperature_raw",
            area=Area.INPUT,
            address=IN_TEMPERATURE,
            description="Temperature sensor (raw ADC)",
        ),
        "cycle_input": MemoryPoint(
            tag="cycle_input",
            area=Area.INPUT,
            address=IN_CYCLE,
            description="Cycle / duty input",
        ),
        "run_enable": MemoryPoint(
            tag="run_enable",
            area=Area.INPUT,
            address=IN_RUN_ENABLE,
            description="Run enable (0 = emergency stop)",
        ),
        "pressure_raw": MemoryPoint(
            tag="pressure_raw",
            area=Area.INPUT,
            address=IN_PRESSURE,
            description="Pressure sensor (raw ADC)",
        ),
    })

    outputs: dict = field(default_factory=lambda: {
        "heater": MemoryPoint(
            tag="heater",
            area=Area.OUTPUT,
            address=OUT_HEATER,
            description="Heater command",
        ),
        "high_temp_alarm": MemoryPoint(
            tag="high_temp_alarm",
            area=Area.OUTPUT,
            address=OUT_ALARM,
            description="High temperature alarm",
        ),
        "heartbeat": MemoryPoint(
            tag="heartbeat",
            area=Area.OUTPUT,
            address=OUT_HEARTBEAT,
            description="Status LED heartbeat",
        ),
    })

    registers: dict = field(default_factory=lambda: {
        "temp_setpoint": MemoryPoint(
            tag="temp_setpoint",
            area=Area.REGISTER,
            address=REG_TEMP_SETPOINT,
            description="Temperature setpoint",
            default=100,
        ),
        "alarm_threshold": MemoryPoint(
            tag="alarm_threshold",
            area=Area.REGISTER,
            address=REG_ALARM_THRESHOLD,
            description="High temperature alarm threshold",
            default=50,
        ),
        "timer_preset": MemoryPoint(
            tag="timer_preset",
            area=Area.REGISTER,
            address=REG_TIMER_PRESET,
            description="Timer preset",
            default=1000,
        ),
        "device_id": MemoryPoint(
            tag="device_id",
            area=Area.REGISTER,
            address=REG_DEVICE_ID,
            description="Device ID",
            default=0x1234,
        ),
        "cycle_counter": MemoryPoint(
            tag="cycle_counter",
            area=Area.REGISTER,
            address=REG_CYCLE_COUNT,
            description="Cycle counter (low 16 bits)",
        ),
        "temperature_mirror": MemoryPoint(
            tag="temperature_mirror",
            area=Area.REGISTER,
            address=REG_TEMPERATURE,
            description="Temperature copied at output commit",
        ),
        "heater_status": MemoryPoint(
            tag="heater_status",
            area=Area.REGISTER,
            address=REG_HEATER_STATUS,
            description="Heater status copied at output commit",
        ),
    })

    def all_points(self) -> list:
        """Return every named point across all areas."""
        return (
            list(self.inputs.values())
            + list(self.outputs.values())
            + list(self.registers.values())
        )

    def register_defaults(self) -> dict:
        """Power-up register values keyed by address."""
        return {
            point.address: point.default
            for point in self.registers.values()
            if point.default
        }

    def get_point(self, tag: str):
        """Look up a named point in any area, or None."""
        for area in (self.inputs, self.outputs, self.registers):
            if tag in area:
                return area[tag]
        return None
