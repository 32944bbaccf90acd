"""Modbus RTU bus master: query/poll state machine and high-level requests."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from enum import IntEnum

from .frames import (
    ErrorCode,
    FunctionCode,
    ModbusError,
    Telegram,
    build_request,
    decode_response,
    expected_response_length,
    validate_response,
)


class ComState(IntEnum):
    """Communication state of the master."""

    IDLE = 0
    WAITING = 1


def _as_list(values: int | Iterable[int]) -> list[int]:
    if isinstance(values, int):
        return [values]
    return list(values)


class RtuMaster(ABC):
    """Modbus RTU master independent of the transport.

    Subclasses supply the byte transport by implementing ``_write``, ``_read``,
    ``_flush_rx`` and ``_flush_tx``.
    """

    def __init__(self) -> None:
        self.state = ComState.IDLE
        self.last_error: ErrorCode | None = None
        self.slave_id = 0
        self.auto_flush = True
        self.telegram: Telegram | None = None

    @abstractmethod
    def _write(self, data: bytes) -> None:
        """Send (or queue) *data* on the bus."""

    @abstractmethod
    def _read(self, size: int) -> bytes:
        """Read up to *size* bytes, returning fewer on timeout."""

    @abstractmethod
    def _flush_rx(self) -> None:
        """Discard any pending received bytes."""

    @abstractmethod
    def _flush_tx(self) -> None:
        """Push out any queued bytes and wait for the end of the frame."""

    def _fail(self, exc: ModbusError) -> ModbusError:
        self.last_error = exc.code
        self.state = ComState.IDLE
        return exc

    def query(self, telegram: Telegram) -> None:
        """Send *telegram*; ignored while a previous query is still pending."""
        if self.state is not ComState.IDLE:
            return
        self.telegram = telegram
        try:
            frame = build_request(telegram)
        except ModbusError as exc:
            self.last_error = exc.code
            raise
        if self.auto_flush:
            self._flush_rx()
            self._write(frame)
            self._flush_tx()
        else:
            self._write(frame)
        self.state = ComState.WAITING
        self.last_error = None

    def poll(self) -> list[int]:
        """Receive and process the reply to the pending query.

        Returns the telegram's register values after the reply was applied.
        """
        telegram = self.telegram
        if telegram is None:
            raise RuntimeError("no query has been sent")
        try:
            length = expected_response_length(telegram)
        except ModbusError as exc:
            raise self._fail(exc) from None
        if length == 0:
            self.state = ComState.IDLE
            return list(telegram.registers)

        frame = self._read(length)
        if len(frame) != length:
            raise self._fail(ModbusError(ErrorCode.NO_REPLY))
        try:
            self.slave_id = validate_response(frame, telegram)
        except ModbusError as exc:
            raise self._fail(exc) from None

        telegram.registers = decode_response(frame, telegram)
        self.state = ComState.IDLE
        return list(telegram.registers)

    def transact(self, telegram: Telegram) -> list[int]:
        """Send *telegram* and wait for its reply; return the register values."""
        self.query(telegram)
        result = list(telegram.registers)
        while self.state is not ComState.IDLE:
            result = self.poll()
        return result

    def write_register(self, slave_id: int, address: int, value: int) -> None:
        """Write one holding register."""
        self.transact(
            Telegram(slave_id, FunctionCode.WRITE_REGISTER, address, 1, [value])
        )

    def write_registers(self, slave_id: int, address: int, values: Iterable[int]) -> None:
        """Write consecutive holding registers."""
        registers = list(values)
        self.transact(
            Telegram(
                slave_id,
                FunctionCode.WRITE_MULTIPLE_REGISTERS,
                address,
                len(registers),
                registers,
            )
        )

    def read_registers(self, slave_id: int, address: int, count: int) -> list[int]:
        """Read *count* holding registers starting at *address*."""
        result = self.transact(
            Telegram(slave_id, FunctionCode.READ_REGISTERS, address, count, [0] * count)
        )
        return result[:count]

    def read_register(self, slave_id: int, address: int) -> int:
        """Read one holding register."""
        return self.read_registers(slave_id, address, 1)[0]

    def ping(self, slave_id: int) -> int:
        """Ask a slave to report its id; return the id of the slave that answered."""
        self.transact(Telegram(slave_id, FunctionCode.REPORT_ID))
        return self.slave_id

    def _send_only(self, telegram: Telegram) -> None:
        self.query(telegram)
        self.state = ComState.IDLE

    def reboot(self, slave_id: int) -> None:
        """Tell a slave to reboot; no reply is awaited."""
        self._send_only(Telegram(slave_id, FunctionCode.REBOOT))

    def write_user(self, slave_id: int, address: int, values: int | Iterable[int]) -> None:
        """Send a user write of one or more registers; no reply is awaited."""
        registers = _as_list(values)
        self._send_only(
            Telegram(slave_id, FunctionCode.USER_WRITE, address, len(registers), registers)
        )

    def write_sync(self, slave_id: int, address: int, values: int | Iterable[int]) -> None:
        """Send a synchronised write of one or more registers; no reply is awaited."""
        registers = _as_list(values)
        self._send_only(
            Telegram(slave_id, FunctionCode.SYNC_WRITE, address, len(registers), registers)
        )

    def action_sync(self, slave_id: int) -> None:
        """Trigger previously sent synchronised writes; no reply is awaited."""
        self._send_only(Telegram(slave_id, FunctionCode.SYNC_ACTION))

    def flush_tx(self) -> None:
        """Send out any queued frames."""
        self._flush_tx()