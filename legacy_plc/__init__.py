"""
Legacy PLC Simulator
=====================
Scan-cycle emulation of an early-2000s programmable logic
controller (Schneider/Modicon TSX Premium class, circa 2004).

Control plane:     ASCII/TCP command protocol (pre-OPC UA)
Management plane:  HTTP/JSON process-image snapshot
"""

__version__ = "2.1.0"

DEVICE_NAME = "Legacy PLC Simulator"
DEVICE_MODEL = "Schneider/Modicon TSX Premium (circa 2004)"
