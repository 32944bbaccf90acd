"""Modbus RTU master on a serial port."""

from __future__ import annotations

import time
from typing import Any

import serial

from .master import RtuMaster


class SerialMaster(RtuMaster):
    """RTU master that talks over a pyserial port (or any object like one)."""

    def __init__(self, port: Any, baudrate: int | None = None) -> None:
        super().__init__()
        if isinstance(port, str):
            if baudrate is None:
                port = serial.serial_for_url(port)
            else:
                port = serial.serial_for_url(port, baudrate=baudrate)
        elif baudrate is not None:
            port.baudrate = baudrate
        self.port = port
        self.frame_gap = 0.0
        self._tx_buffer = bytearray()
        if baudrate is not None:
            self.set_frame_gap(baudrate)

    def set_timeout(self, timeout: float | None) -> None:
        """Set the read timeout in seconds."""
        self.port.timeout = timeout

    def set_frame_gap(self, baudrate: int) -> None:
        """Set the idle time after a sent frame to 3.5 characters at *baudrate*."""
        self.frame_gap = (35_000_000 // baudrate) / 1_000_000

    def _write(self, data: bytes) -> None:
        if self.auto_flush:
            self.port.write(data)
        else:
            self._tx_buffer += data

    def _read(self, size: int) -> bytes:
        return bytes(self.port.read(size))

    def _flush_rx(self) -> None:
        self.port.reset_input_buffer()

    def _flush_tx(self) -> None:
        if not self.auto_flush:
            self.port.write(bytes(self._tx_buffer))
            self._tx_buffer.clear()
        self.port.flush()
        time.sleep(self.frame_gap)