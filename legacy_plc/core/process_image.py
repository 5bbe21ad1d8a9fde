"""
Process Image
==============
The controller's in-memory data tables: inputs, outputs,
registers, error word, and cycle counter.

The scan scheduler owns the single mutable ProcessImage. After
each cycle's output commit it takes a ProcessSnapshot, an
immutable value copy handed to the protocol servers and the data
log, so nothing outside the scan cycle ever observes a partially
updated image.
"""

from dataclasses import dataclass
from typing import Optional

from legacy_plc.config.memory_map import (
    MemoryMap, Area,
    INPUT_COUNT, OUTPUT_COUNT, REGISTER_COUNT,
    OUT_ALARM, ERR_HIGH_TEMP,
)

U8_MASK = 0xFF
U16_MASK = 0xFFFF
U32_MASK = 0xFFFFFFFF


@dataclass(frozen=True)
class ProcessSnapshot:
    """Read-only copy of the process image at the end of a commit phase."""
    running: bool
    cycle_count: int
    inputs: tuple
    outputs: tuple
    registers: tuple
    error_codes: int
    last_error: str

    def read(self, area: Area, address: int) -> Optional[int]:
        """Bounds-checked read; None when the address is outside the table."""
        table = self._table(area)
        if address is None or not 0 <= address < len(table):
            return None
        return table[address]

    def read_input(self, address: int) -> Optional[int]:
        return self.read(Area.INPUT, address)

    def read_output(self, address: int) -> Optional[int]:
        return self.read(Area.OUTPUT, address)

    def read_register(self, address: int) -> Optional[int]:
        return self.read(Area.REGISTER, address)

    @property
    def alarm_active(self) -> bool:
        return bool(self.error_codes & ERR_HIGH_TEMP)

    def _table(self, area: Area) -> tuple:
        if area == Area.INPUT:
            return self.inputs
        if area == Area.OUTPUT:
            return self.outputs
        return self.registers


class ProcessImage:
    """
    Mutable data tables of the running controller.

    Every write is masked to the width of the destination so the
    image always holds valid unsigned 16-bit words (8-bit for the
    error word, 32-bit for the cycle counter).
    """

    def __init__(self, memory_map: Optional[MemoryMap] = None):
        self.memory_map = memory_map or MemoryMap()
        self.running = False
        self.cycle_count = 0
        self.inputs = [0] * INPUT_COUNT
        self.outputs = [0] * OUTPUT_COUNT
        self.registers = [0] * REGISTER_COUNT
        self.error_codes = 0
        self.last_error = ""
        self._load_defaults()

    def _load_defaults(self):
        """Power-up register configuration."""
        for address, value in self.memory_map.register_defaults().items():
            self.registers[address] = value & U16_MASK

    # ── Writes (scan cycle only) ─────────────────────────────

    def write_input(self, address: int, value: int):
        self.inputs[address] = int(value) & U16_MASK

    def write_output(self, address: int, value: int):
        self.outputs[address] = int(value) & U16_MASK

    def write_register(self, address: int, value: int):
        self.registers[address] = int(value) & U16_MASK

    def set_inputs(self, values):
        """Replace the input table; missing trailing words read as 0."""
        values = list(values)[:INPUT_COUNT]
        values += [0] * (INPUT_COUNT - len(values))
        self.inputs = [int(v) & U16_MASK for v in values]

    def set_error_codes(self, value: int):
        self.error_codes = int(value) & U8_MASK

    def increment_cycle(self) -> int:
        self.cycle_count = (self.cycle_count + 1) & U32_MASK
        return self.cycle_count

    def record_error(self, message: str):
        self.last_error = message

    # ── Reads ────────────────────────────────────────────────

    def snapshot(self) -> ProcessSnapshot:
        """Immutable copy for protocol handlers and the data log."""
        return ProcessSnapshot(
            running=self.running,
            cycle_count=self.cycle_count,
            inputs=tuple(self.inputs),
            outputs=tuple(self.outputs),
            registers=tuple(self.registers),
            error_codes=self.error_codes,
            last_error=self.last_error,
        )

    def alarm_consistent(self) -> bool:
        """Alarm output and error bit 0 must never diverge."""
        return bool(self.outputs[OUT_ALARM]) == bool(self.error_codes & ERR_HIGH_TEMP)
