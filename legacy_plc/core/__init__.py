from legacy_plc.core.process_image import ProcessImage, ProcessSnapshot
from legacy_plc.core.ladder import ControlProgram
from legacy_plc.core.data_log import CycleLogger

__all__ = [
    "ProcessImage",
    "ProcessSnapshot",
    "ControlProgram",
    "CycleLogger",
]
