"""
Tests for runtime configuration.
"""

import json

import pytest

from legacy_plc.config.settings import PLCConfig


class TestPLCConfig:
    """Test mode defaults, validation and configuration sources."""

    def test_physical_defaults(self):
        cfg = PLCConfig()
        assert cfg.transport_mode == "physical"
        assert cfg.control_port == 9001
        assert cfg.management_port == 8001
        assert cfg.cycle_period_ms == 100
        assert cfg.log_interval_cycles == 10
        assert cfg.log_path == "/tmp/plc_data.log"
        assert not cfg.realistic_inputs

    def test_virtual_defaults(self):
        cfg = PLCConfig.for_mode("virtual")
        assert cfg.control_port == 9901
        assert cfg.management_port == 8901
        assert cfg.realistic_inputs

    def test_explicit_port_beats_mode(self):
        cfg = PLCConfig(transport_mode="virtual", control_port=7000)
        assert cfg.control_port == 7000
        assert cfg.management_port == 8901

    def test_endpoints(self):
        cfg = PLCConfig()
        assert cfg.control_endpoint == "0.0.0.0:9001"
        assert cfg.management_endpoint == "0.0.0.0:8001"

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            PLCConfig(transport_mode="simulated")

    @pytest.mark.parametrize("kwargs", [
        {"cycle_period_ms": 0},
        {"control_port": 70000},
        {"management_backlog": 2},
        {"log_interval_cycles": 0},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            PLCConfig(**kwargs)

    def test_from_env(self):
        cfg = PLCConfig.from_env({
            "PLC_MODE": "virtual",
            "PLC_CONTROL_PORT": "7001",
            "PLC_CYCLE_MS": "50",
        })
        assert cfg.transport_mode == "virtual"
        assert cfg.control_port == 7001
        assert cfg.management_port == 8901
        assert cfg.cycle_period_ms == 50

    def test_from_env_ignores_unrelated(self):
        cfg = PLCConfig.from_env({"HOME": "/root"})
        assert cfg == PLCConfig()

    def test_load_precedence(self, tmp_path):
        path = tmp_path / "plc.json"
        path.write_text(json.dumps({
            "transport_mode": "virtual",
            "cycle_period_ms": 200,
            "log_path": "/var/log/legacy-plc/data.log",
        }))
        cfg = PLCConfig.load(
            str(path),
            environ={"PLC_CYCLE_MS": "150"},
            overrides={"log_path": str(tmp_path / "x.log"), "control_port": None},
        )
        assert cfg.transport_mode == "virtual"
        assert cfg.cycle_period_ms == 150
        assert cfg.log_path == str(tmp_path / "x.log")
        assert cfg.control_port == 9901

    def test_load_missing_file_uses_defaults(self, tmp_path):
        cfg = PLCConfig.load(str(tmp_path / "absent.json"), environ={})
        assert cfg == PLCConfig()

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "cfg" / "plc.json"
        PLCConfig(transport_mode="virtual", random_seed=5).save(str(path))
        cfg = PLCConfig.load(str(path), environ={})
        assert cfg.transport_mode == "virtual"
        assert cfg.random_seed == 5

    def test_update(self):
        cfg = PLCConfig()
        assert cfg.update("cycle_period_ms", "250")
        assert cfg.cycle_period_ms == 250
        assert cfg.cycle_period_sec == 0.25

    def test_update_invalid_restores(self):
        cfg = PLCConfig()
        assert not cfg.update("cycle_period_ms", -5)
        assert cfg.cycle_period_ms == 100
        assert not cfg.update("nonexistent", 1)
        assert not cfg.update("_config_path", "x")

    def test_as_dict_hides_private(self):
        data = PLCConfig().as_dict()
        assert "transport_mode" in data
        assert "_config_path" not in data

    def test_mode_change_moves_default_ports(self):
        cfg = PLCConfig()
        assert cfg.update("transport_mode", "virtual")
        assert (cfg.control_port, cfg.management_port) == (9901, 8901)
        assert cfg.update("transport_mode", "physical")
        assert (cfg.control_port, cfg.management_port) == (9001, 8001)

    def test_mode_change_keeps_explicit_port(self):
        cfg = PLCConfig()
        assert cfg.update("control_port", 7000)
        assert cfg.update("transport_mode", "virtual")
        assert cfg.control_port == 7000
        assert cfg.management_port == 8901

    def test_update_port_back_to_mode_default(self):
        cfg = PLCConfig(control_port=7000)
        assert cfg.update("control_port", None)
        assert cfg.control_port == 9001

    def test_saved_default_ports_follow_env_mode(self, tmp_path):
        path = tmp_path / "plc.json"
        PLCConfig().save(str(path))
        saved = json.loads(path.read_text())
        assert saved["control_port"] is None
        assert saved["management_port"] is None
        cfg = PLCConfig.load(str(path), environ={"PLC_MODE": "virtual"})
        assert (cfg.control_port, cfg.management_port) == (9901, 8901)

    def test_saved_explicit_port_survives(self, tmp_path):
        path = tmp_path / "plc.json"
        PLCConfig(management_port=8100).save(str(path))
        cfg = PLCConfig.load(str(path), environ={"PLC_MODE": "virtual"})
        assert cfg.management_port == 8100
        assert cfg.control_port == 9901

    @pytest.mark.parametrize("key", [
        "cycle_period_sec", "control_endpoint", "realistic_inputs", "save",
    ])
    def test_update_rejects_non_settings(self, key):
        cfg = PLCConfig()
        assert not cfg.update(key, 1)
        assert cfg == PLCConfig()

    @pytest.mark.parametrize("key, value", [
        ("control_port", "abc"),
        ("random_seed", "x"),
        ("cycle_period_ms", None),
        ("cycle_period_ms", [100]),
        ("log_interval_cycles", True),
    ])
    def test_update_rejects_bad_values(self, key, value):
        cfg = PLCConfig()
        assert not cfg.update(key, value)
        assert cfg == PLCConfig()

    @pytest.mark.parametrize("data", [
        {"control_port": "abc"},
        {"management_port": [8001]},
        {"cycle_period_ms": None},
        {"random_seed": "seed"},
    ])
    def test_load_bad_values_raise_value_error(self, tmp_path, data):
        path = tmp_path / "plc.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ValueError):
            PLCConfig.load(str(path), environ={})

    def test_load_non_object_rejected(self, tmp_path):
        path = tmp_path / "plc.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            PLCConfig.load(str(path), environ={})

    def test_numeric_strings_coerced(self):
        cfg = PLCConfig.from_env({"PLC_MGMT_PORT": "8111"})
        assert cfg.management_port == 8111
        assert cfg.update("random_seed", "7")
        assert cfg.random_seed == 7

    def test_as_dict_keeps_explicit_ports(self):
        data = PLCConfig(control_port=7000).as_dict()
        assert data["control_port"] == 7000
        assert data["management_port"] is None
