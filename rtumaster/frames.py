"""Modbus RTU request building and response parsing for a bus master."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator

MAX_BUFFER = 64
MAX_SLAVE_ID = 247
BROADCAST_ID = 0


class FunctionCode(IntEnum):
    """Function codes understood by the master."""

    NONE = 0
    READ_COILS = 1
    READ_DISCRETE_INPUT = 2
    READ_REGISTERS = 3
    READ_INPUT_REGISTER = 4
    WRITE_COIL = 5
    WRITE_REGISTER = 6
    WRITE_MULTIPLE_COILS = 15
    WRITE_MULTIPLE_REGISTERS = 16
    REPORT_ID = 17
    REBOOT = 65
    USER_WRITE = 66
    SYNC_WRITE = 67
    SYNC_ACTION = 68
    SPEED_CTL = 69
    POSITION_CTL = 70
    TORQUE_CTL = 71
    SETP_CTL = 72
    STATUS_FB = 73


class ErrorCode(IntEnum):
    """Reasons a transaction can fail."""

    NO_REPLY = 1
    FUNC_CODE = 2
    CRC_CMP = 3
    SLAVE_ID = 4
    BUFF_OVERFLOW = 5


class ModbusError(Exception):
    """A failed Modbus transaction, carrying its :class:`ErrorCode`."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = ErrorCode(code)
        super().__init__(message or self.code.name.lower().replace("_", " "))


SUPPORTED_FUNCTIONS = frozenset(fc for fc in FunctionCode if fc is not FunctionCode.NONE)

_READ_BITS = {FunctionCode.READ_COILS, FunctionCode.READ_DISCRETE_INPUT}
_READ_WORDS = {FunctionCode.READ_REGISTERS, FunctionCode.READ_INPUT_REGISTER}
_PLAIN_WRITES = {
    FunctionCode.WRITE_COIL,
    FunctionCode.WRITE_REGISTER,
    FunctionCode.WRITE_MULTIPLE_COILS,
    FunctionCode.WRITE_MULTIPLE_REGISTERS,
}
_CONTROL = {
    FunctionCode.SPEED_CTL,
    FunctionCode.POSITION_CTL,
    FunctionCode.TORQUE_CTL,
    FunctionCode.SETP_CTL,
    FunctionCode.STATUS_FB,
}
_USER_WRITES = {FunctionCode.USER_WRITE, FunctionCode.SYNC_WRITE}
_BARE = {FunctionCode.REPORT_ID, FunctionCode.REBOOT, FunctionCode.SYNC_ACTION}

_CONTROL_REGISTERS = 6


@dataclass
class Telegram:
    """One master query: target slave, function, address, count and data."""

    slave_id: int
    function: int
    address: int = 0
    count: int = 0
    registers: list[int] = field(default_factory=list)
    ack: int = 0


def crc16(data: bytes) -> int:
    """Return the Modbus CRC-16 of *data* (sent low byte first on the wire)."""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = (crc >> 1) ^ 0xA001 if crc & 1 else crc >> 1
    return crc


def _word(value: int) -> bytes:
    return (value & 0xFFFF).to_bytes(2, "big")


def _needed_registers(telegram: Telegram, count: int) -> list[int]:
    if len(telegram.registers) < count:
        raise ValueError(
            f"telegram needs {count} register values, got {len(telegram.registers)}"
        )
    return telegram.registers[:count]


def _append_words(frame: bytearray, values: list[int]) -> None:
    for value in values:
        if len(frame) + 1 >= MAX_BUFFER:
            raise ModbusError(ErrorCode.BUFF_OVERFLOW)
        frame += _word(value)


def _coil_bytes(values: list[int], byte_count: int) -> Iterator[int]:
    for i in range(byte_count):
        word = values[i // 2]
        yield word & 0xFF if i % 2 else (word >> 8) & 0xFF


def build_request(telegram: Telegram) -> bytes:
    """Encode *telegram* as a complete RTU frame, CRC included."""
    if telegram.slave_id > MAX_SLAVE_ID:
        raise ModbusError(ErrorCode.SLAVE_ID)
    try:
        fc = FunctionCode(telegram.function)
    except ValueError:
        raise ModbusError(ErrorCode.FUNC_CODE) from None
    if fc is FunctionCode.NONE:
        raise ModbusError(ErrorCode.FUNC_CODE)

    frame = bytearray((telegram.slave_id, fc))
    address = _word(telegram.address)
    count = _word(telegram.count)

    if fc in _READ_BITS or fc in _READ_WORDS:
        frame += address + count
    elif fc is FunctionCode.WRITE_COIL:
        (value,) = _needed_registers(telegram, 1)
        frame += address + bytes((0xFF if value > 0 else 0, 0))
    elif fc is FunctionCode.WRITE_REGISTER:
        (value,) = _needed_registers(telegram, 1)
        frame += address + _word(value)
    elif fc is FunctionCode.WRITE_MULTIPLE_COILS:
        words, remainder = divmod(telegram.count, 16)
        byte_count = (words * 2 + (1 if remainder else 0)) & 0xFF
        values = _needed_registers(telegram, (byte_count + 1) // 2)
        frame += address + count + bytes((byte_count,))
        for byte in _coil_bytes(values, byte_count):
            if len(frame) >= MAX_BUFFER:
                raise ModbusError(ErrorCode.BUFF_OVERFLOW)
            frame.append(byte)
    elif fc is FunctionCode.WRITE_MULTIPLE_REGISTERS:
        values = _needed_registers(telegram, telegram.count)
        frame += address + count + bytes(((telegram.count * 2) & 0xFF,))
        _append_words(frame, values)
    elif fc in _USER_WRITES:
        values = _needed_registers(telegram, telegram.count)
        frame += address + count
        _append_words(frame, values)
    elif fc in _CONTROL:
        _append_words(frame, _needed_registers(telegram, telegram.count))
        if fc is not FunctionCode.STATUS_FB:
            frame.append(telegram.ack & 0xFF)
    # Functions in _BARE carry only the header.

    frame += crc16(frame).to_bytes(2, "little")
    return bytes(frame)


def expected_response_length(telegram: Telegram) -> int:
    """Return the reply length in bytes, or 0 when no reply is expected."""
    fc = telegram.function
    if fc in _READ_BITS:
        length = 5 + telegram.count
    elif fc in _READ_WORDS:
        length = 5 + telegram.count * 2
    elif fc in _PLAIN_WRITES:
        length = 0 if telegram.slave_id == BROADCAST_ID else 8
    elif fc == FunctionCode.REPORT_ID:
        length = 8
    elif fc in _CONTROL:
        length = 0 if telegram.slave_id == BROADCAST_ID else 16
    else:
        raise ModbusError(ErrorCode.FUNC_CODE)
    if length > MAX_BUFFER:
        raise ModbusError(ErrorCode.BUFF_OVERFLOW)
    return length


def validate_response(frame: bytes, telegram: Telegram) -> int:
    """Check CRC, slave id and function of a reply; return the replying slave id."""
    if len(frame) < 4:
        raise ModbusError(ErrorCode.CRC_CMP)
    if crc16(frame[:-2]) != int.from_bytes(frame[-2:], "little"):
        raise ModbusError(ErrorCode.CRC_CMP)
    slave_id, function = frame[0], frame[1]
    if telegram.slave_id and slave_id != telegram.slave_id:
        raise ModbusError(ErrorCode.SLAVE_ID)
    if function & 0x80 or function not in SUPPORTED_FUNCTIONS:
        raise ModbusError(ErrorCode.FUNC_CODE)
    return slave_id


def _decode_bits(frame: bytes, current: list[int]) -> list[int]:
    byte_count = frame[2]
    data = frame[3:3 + byte_count]
    needed = (len(data) + 1) // 2
    registers = current + [0] * max(0, needed - len(current))
    for i, byte in enumerate(data):
        word = registers[i // 2]
        if i % 2:
            registers[i // 2] = (byte << 8) | (word & 0xFF)
        else:
            registers[i // 2] = (word & 0xFF00) | byte
    return registers


def _decode_words(data: bytes, count: int) -> list[int]:
    return [
        int.from_bytes(data[i:i + 2], "big")
        for i in range(0, min(count * 2, len(data) - len(data) % 2), 2)
    ]


def decode_response(frame: bytes, telegram: Telegram) -> list[int]:
    """Return the register values carried by a validated reply.

    For replies that carry no data the telegram's registers come back unchanged.
    """
    current = list(telegram.registers)
    function = frame[1]
    if function in _READ_BITS:
        return _decode_bits(frame, current)
    if function in _READ_WORDS:
        values = _decode_words(frame[3:], frame[2] // 2)
        return values + current[len(values):]
    if function in _CONTROL:
        values = _decode_words(frame[2:], _CONTROL_REGISTERS)
        return values + current[len(values):]
    return current