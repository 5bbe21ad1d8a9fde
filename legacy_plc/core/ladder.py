"""
Control Program ("Ladder Logic")
=================================
The fixed program loaded into the controller at startup.
Each scan cycle the rungs are evaluated in order:

    Rung 1: Run enable          (input 2)
    Rung 2: Temperature control (heater output 0)
    Rung 3: High temp alarm     (output 1 + error bit 0)
    Rung 4: Cycle counter       (register 20)
    Rung 5: Heartbeat LED       (output 15)

followed by a separate output-commit phase that mirrors process
values into registers 100/101.

The evaluation itself is a pure function of the image contents;
ControlProgram applies its result to the image as one batch.
"""

import logging
from dataclasses import dataclass

from legacy_plc.core.process_image import ProcessImage, U16_MASK, U8_MASK
from legacy_plc.config.memory_map import (
    IN_TEMPERATURE, IN_RUN_ENABLE,
    OUT_HEATER, OUT_ALARM, OUT_HEARTBEAT,
    REG_TEMP_SETPOINT, REG_ALARM_THRESHOLD, REG_CYCLE_COUNT,
    REG_TEMPERATURE, REG_HEATER_STATUS,
    ERR_HIGH_TEMP,
)

logger = logging.getLogger(__name__)

HEARTBEAT_PERIOD = 10   # cycles per LED blink
HEARTBEAT_ON = 5        # cycles lit within each period


@dataclass(frozen=True)
class RungResult:
    """Words written by one evaluation of the control program."""
    heater: int
    alarm: int
    heartbeat: int
    cycle_register: int
    error_codes: int


def evaluate(inputs, registers, cycle_count: int, error_codes: int) -> RungResult:
    """Evaluate rungs 1-5 against the given tables."""
    temperature = inputs[IN_TEMPERATURE] & U16_MASK

    # Rung 1: Run enable logic
    run_enable = inputs[IN_RUN_ENABLE] == 1

    # Rung 2: Temperature control
    heater = 1 if run_enable and temperature < (registers[REG_TEMP_SETPOINT] & U16_MASK) else 0

    # Rung 3: High temperature alarm
    if temperature > (registers[REG_ALARM_THRESHOLD] & U16_MASK):
        alarm = 1
        error_codes |= ERR_HIGH_TEMP
    else:
        alarm = 0
        error_codes &= ~ERR_HIGH_TEMP

    # Rung 4: Cycle counter output
    cycle_register = cycle_count & U16_MASK

    # Rung 5: Status LED (heartbeat)
    heartbeat = 1 if cycle_count % HEARTBEAT_PERIOD < HEARTBEAT_ON else 0

    return RungResult(
        heater=heater,
        alarm=alarm,
        heartbeat=heartbeat,
        cycle_register=cycle_register,
        error_codes=error_codes & U8_MASK,
    )


class ControlProgram:
    """Applies the ladder rungs and output commit to a process image."""

    def execute(self, image: ProcessImage) -> RungResult:
        """Program execution phase."""
        result = evaluate(
            image.inputs, image.registers, image.cycle_count, image.error_codes,
        )
        previous_alarm = image.outputs[OUT_ALARM]

        image.write_output(OUT_HEATER, result.heater)
        image.write_output(OUT_ALARM, result.alarm)
        image.write_output(OUT_HEARTBEAT, result.heartbeat)
        image.write_register(REG_CYCLE_COUNT, result.cycle_register)
        image.set_error_codes(result.error_codes)

        if result.alarm != previous_alarm:
            if result.alarm:
                logger.warning(
                    "High temperature alarm: %d > %d",
                    image.inputs[IN_TEMPERATURE],
                    image.registers[REG_ALARM_THRESHOLD],
                )
            else:
                logger.info("High temperature alarm cleared")
        return result

    def commit_outputs(self, image: ProcessImage):
        """Output update phase: mirror process values into registers."""
        image.write_register(REG_TEMPERATURE, image.inputs[IN_TEMPERATURE])
        image.write_register(REG_HEATER_STATUS, image.outputs[OUT_HEATER])
