"""
Tests for the ProcessImage and ProcessSnapshot.
"""

import dataclasses

import pytest

from legacy_plc.config.memory_map import (
    Area, INPUT_COUNT, OUTPUT_COUNT, REGISTER_COUNT,
    REG_TEMP_SETPOINT, REG_ALARM_THRESHOLD, REG_TIMER_PRESET,
    REG_DEVICE_ID, REG_CYCLE_COUNT,
)
from legacy_plc.core.process_image import ProcessImage


class TestProcessImage:
    """Test table layout, power-up defaults and write masking."""

    def test_table_sizes(self, image):
        assert len(image.inputs) == INPUT_COUNT == 16
        assert len(image.outputs) == OUTPUT_COUNT == 16
        assert len(image.registers) == REGISTER_COUNT == 256

    def test_power_up_registers(self, image):
        assert image.registers[REG_TEMP_SETPOINT] == 100
        assert image.registers[REG_ALARM_THRESHOLD] == 50
        assert image.registers[REG_TIMER_PRESET] == 1000
        assert image.registers[REG_DEVICE_ID] == 0x1234
        assert image.registers[REG_CYCLE_COUNT] == 0

    def test_general_purpose_registers_start_at_zero(self, image):
        configured = {REG_TEMP_SETPOINT, REG_ALARM_THRESHOLD, REG_TIMER_PRESET, REG_DEVICE_ID}
        for address, value in enumerate(image.registers):
            if address not in configured:
                assert value == 0, address

    def test_initial_state(self, image):
        assert image.running is False
        assert image.cycle_count == 0
        assert image.error_codes == 0
        assert image.last_error == ""

    def test_writes_are_masked_to_16_bits(self, image):
        image.write_register(50, 70000)
        image.write_input(4, -1)
        image.write_output(2, 0x1FFFF)
        assert image.registers[50] == 70000 & 0xFFFF
        assert image.inputs[4] == 0xFFFF
        assert image.outputs[2] == 0xFFFF

    def test_error_codes_masked_to_8_bits(self, image):
        image.set_error_codes(0x1FF)
        assert image.error_codes == 0xFF

    def test_cycle_counter_wraps_at_32_bits(self, image):
        image.cycle_count = 0xFFFFFFFF
        assert image.increment_cycle() == 0

    def test_set_inputs_pads_short_tables(self, image):
        image.set_inputs([800, 1, 1])
        assert image.inputs[:4] == [800, 1, 1, 0]
        assert len(image.inputs) == INPUT_COUNT

    def test_set_inputs_truncates_long_tables(self, image):
        image.set_inputs(range(40))
        assert image.inputs == list(range(16))


class TestProcessSnapshot:
    """Test snapshot isolation and bounds-checked reads."""

    def test_snapshot_is_a_copy(self, image):
        image.write_input(0, 812)
        snap = image.snapshot()
        image.write_input(0, 999)
        assert snap.inputs[0] == 812

    def test_snapshot_is_frozen(self, image):
        snap = image.snapshot()
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.cycle_count = 5
        assert isinstance(snap.registers, tuple)

    def test_bounds_checked_reads(self, image):
        image.write_input(15, 7)
        image.write_register(255, 9)
        snap = image.snapshot()
        assert snap.read_input(15) == 7
        assert snap.read_register(255) == 9
        assert snap.read_input(16) is None
        assert snap.read_output(16) is None
        assert snap.read_register(256) is None

    def test_negative_address_does_not_wrap(self, image):
        image.write_register(255, 9)
        snap = image.snapshot()
        assert snap.read_register(-1) is None
        assert snap.read(Area.INPUT, -16) is None

    def test_none_address(self, image):
        assert image.snapshot().read(Area.OUTPUT, None) is None

    def test_alarm_active_flag(self, image):
        image.set_error_codes(0x01)
        assert image.snapshot().alarm_active


class TestMemoryMap:
    """Test the named point table."""

    def test_register_defaults(self, memory_map):
        assert memory_map.register_defaults() == {
            0: 100, 1: 50, 2: 1000, 10: 0x1234,
        }

    def test_get_point(self, memory_map):
        point = memory_map.get_point("heater")
        assert point.area == Area.OUTPUT
        assert point.address == 0
        assert memory_map.get_point("nonexistent") is None

    def test_all_points_unique_addresses_per_area(self, memory_map):
        seen = set()
        for point in memory_map.all_points():
            key = (point.area, point.address)
            assert key not in seen
            seen.add(key)

    def test_custom_map_changes_power_up(self, memory_map):
        memory_map.registers["temp_setpoint"] = dataclasses.replace(
            memory_map.registers["temp_setpoint"], default=250,
        )
        assert ProcessImage(memory_map).registers[REG_TEMP_SETPOINT] == 250
