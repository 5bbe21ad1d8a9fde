from legacy_plc.drivers.simulator import InputSimulator

__all__ = ["InputSimulator"]
