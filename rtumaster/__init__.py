"""Modbus RTU master with servo-drive extension function codes."""

__version__ = "0.1.0"
__all__ = ["frames", "master", "serial_master"]