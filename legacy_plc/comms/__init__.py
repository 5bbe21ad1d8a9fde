from legacy_plc.comms.control_protocol import ControlProtocolServer, parse_command
from legacy_plc.comms.management_protocol import ManagementProtocolServer

__all__ = [
    "ControlProtocolServer",
    "ManagementProtocolServer",
    "parse_command",
]
