from legacy_plc.config.memory_map import MemoryMap
from legacy_plc.config.settings import PLCConfig

__all__ = ["MemoryMap", "PLCConfig"]
