import pytest

from rtumaster.frames import (
    ErrorCode,
    FunctionCode,
    ModbusError,
    Telegram,
    build_request,
    crc16,
    decode_response,
    expected_response_length,
    validate_response,
)


def _with_crc(body: bytes) -> bytes:
    return body + crc16(body).to_bytes(2, "little")


def test_crc16_check_value():
    assert crc16(b"123456789") == 0x4B37


def test_read_registers_wire_bytes():
    frame = build_request(Telegram(1, FunctionCode.READ_REGISTERS, 0, 1))
    assert frame == bytes.fromhex("010300000001840A")


@pytest.mark.parametrize(
    "telegram",
    [
        Telegram(1, FunctionCode.READ_COILS, 0x10, 8),
        Telegram(2, FunctionCode.WRITE_REGISTER, 0x20, 1, [0x1234]),
        Telegram(3, FunctionCode.WRITE_MULTIPLE_REGISTERS, 5, 3, [1, 2, 3]),
        Telegram(4, FunctionCode.SPEED_CTL, 0, 2, [7, 8], ack=1),
        Telegram(5, FunctionCode.REPORT_ID),
    ],
)
def test_crc_residue_is_zero(telegram):
    frame = build_request(telegram)
    assert crc16(frame) == 0
    assert crc16(frame[:-2]) == int.from_bytes(frame[-2:], "little")


def test_request_validates_as_response():
    telegram = Telegram(9, FunctionCode.READ_REGISTERS, 0x100, 2)
    assert validate_response(build_request(telegram), telegram) == 9


def test_write_coil_on_and_off():
    on = build_request(Telegram(1, FunctionCode.WRITE_COIL, 3, 1, [1]))
    off = build_request(Telegram(1, FunctionCode.WRITE_COIL, 3, 1, [0]))
    assert on[4:6] == bytes((0xFF, 0))
    assert off[4:6] == bytes((0, 0))


def test_write_register_payload():
    frame = build_request(Telegram(1, FunctionCode.WRITE_REGISTER, 0x0102, 1, [0xABCD]))
    assert frame[:6] == bytes((1, 6, 0x01, 0x02, 0xAB, 0xCD))


def test_write_multiple_registers_layout():
    frame = build_request(
        Telegram(1, FunctionCode.WRITE_MULTIPLE_REGISTERS, 0, 2, [0x1122, 0x3344])
    )
    assert frame[:7] == bytes((1, 16, 0, 0, 0, 2, 4))
    assert frame[7:11] == bytes((0x11, 0x22, 0x33, 0x44))
    assert len(frame) == 13


def test_write_multiple_registers_overflow():
    ok = build_request(
        Telegram(1, FunctionCode.WRITE_MULTIPLE_REGISTERS, 0, 28, [0] * 28)
    )
    assert len(ok) == 7 + 56 + 2
    with pytest.raises(ModbusError) as info:
        build_request(Telegram(1, FunctionCode.WRITE_MULTIPLE_REGISTERS, 0, 29, [0] * 29))
    assert info.value.code is ErrorCode.BUFF_OVERFLOW


def test_write_multiple_coils_bytes():
    frame = build_request(
        Telegram(1, FunctionCode.WRITE_MULTIPLE_COILS, 0, 16, [0xA55A])
    )
    assert frame[6] == 2
    assert frame[7:9] == bytes((0xA5, 0x5A))


def test_user_write_has_no_byte_count():
    frame = build_request(Telegram(2, FunctionCode.USER_WRITE, 0x10, 1, [0x0304]))
    assert frame[:8] == bytes((2, 66, 0, 0x10, 0, 1, 3, 4))


def test_control_frames_ack_handling():
    speed = build_request(Telegram(1, FunctionCode.SPEED_CTL, 0, 1, [0x0102], ack=1))
    status = build_request(Telegram(1, FunctionCode.STATUS_FB, 0, 1, [0x0102], ack=1))
    assert speed[:5] == bytes((1, 69, 1, 2, 1))
    assert len(speed) == len(status) + 1
    assert status[:4] == bytes((1, 73, 1, 2))


@pytest.mark.parametrize(
    "fc", [FunctionCode.REPORT_ID, FunctionCode.REBOOT, FunctionCode.SYNC_ACTION]
)
def test_bare_frames(fc):
    frame = build_request(Telegram(5, fc))
    assert frame[:2] == bytes((5, fc))
    assert len(frame) == 4


def test_slave_id_out_of_range():
    with pytest.raises(ModbusError) as info:
        build_request(Telegram(248, FunctionCode.READ_REGISTERS, 0, 1))
    assert info.value.code is ErrorCode.SLAVE_ID


def test_unknown_function_rejected():
    with pytest.raises(ModbusError) as info:
        build_request(Telegram(1, 99))
    assert info.value.code is ErrorCode.FUNC_CODE


def test_missing_register_values():
    with pytest.raises(ValueError):
        build_request(Telegram(1, FunctionCode.WRITE_MULTIPLE_REGISTERS, 0, 3, [1]))


def test_expected_length_reads():
    assert expected_response_length(Telegram(1, FunctionCode.READ_REGISTERS, 0, 2)) == 9
    assert expected_response_length(Telegram(1, FunctionCode.REPORT_ID)) == 8


def test_expected_length_broadcast_write_is_zero():
    assert expected_response_length(Telegram(0, FunctionCode.WRITE_REGISTER, 0, 1)) == 0
    assert expected_response_length(Telegram(0, FunctionCode.SPEED_CTL)) == 0
    assert expected_response_length(Telegram(3, FunctionCode.SPEED_CTL)) == 16


def test_expected_length_overflow():
    with pytest.raises(ModbusError) as info:
        expected_response_length(Telegram(1, FunctionCode.READ_REGISTERS, 0, 30))
    assert info.value.code is ErrorCode.BUFF_OVERFLOW


def test_expected_length_no_reply_function():
    with pytest.raises(ModbusError) as info:
        expected_response_length(Telegram(1, FunctionCode.REBOOT))
    assert info.value.code is ErrorCode.FUNC_CODE


def test_validate_bad_crc():
    frame = bytearray(_with_crc(bytes((1, 3, 2, 0, 5))))
    frame[3] ^= 0xFF
    with pytest.raises(ModbusError) as info:
        validate_response(bytes(frame), Telegram(1, FunctionCode.READ_REGISTERS))
    assert info.value.code is ErrorCode.CRC_CMP


def test_validate_wrong_slave():
    frame = _with_crc(bytes((2, 3, 2, 0, 5)))
    with pytest.raises(ModbusError) as info:
        validate_response(frame, Telegram(1, FunctionCode.READ_REGISTERS))
    assert info.value.code is ErrorCode.SLAVE_ID


def test_validate_broadcast_accepts_any_slave():
    frame = _with_crc(bytes((7, 17, 0, 0, 0, 0)))
    assert validate_response(frame, Telegram(0, FunctionCode.REPORT_ID)) == 7


def test_validate_exception_reply():
    frame = _with_crc(bytes((1, 0x83, 2)))
    with pytest.raises(ModbusError) as info:
        validate_response(frame, Telegram(1, FunctionCode.READ_REGISTERS))
    assert info.value.code is ErrorCode.FUNC_CODE


def test_validate_unsupported_function():
    frame = _with_crc(bytes((1, 40, 0)))
    with pytest.raises(ModbusError) as info:
        validate_response(frame, Telegram(1, FunctionCode.READ_REGISTERS))
    assert info.value.code is ErrorCode.FUNC_CODE


def test_decode_read_registers():
    frame = _with_crc(bytes((1, 3, 4, 0x12, 0x34, 0xAB, 0xCD)))
    values = decode_response(frame, Telegram(1, FunctionCode.READ_REGISTERS, 0, 2))
    assert values == [0x1234, 0xABCD]


def test_decode_control_feedback():
    data = bytes(range(1, 13))
    frame = _with_crc(bytes((1, 73)) + data)
    values = decode_response(frame, Telegram(1, FunctionCode.STATUS_FB))
    assert values == [int.from_bytes(data[i:i + 2], "big") for i in range(0, 12, 2)]


def test_decode_coils_places_bytes():
    frame = _with_crc(bytes((1, 1, 2, 0x11, 0x22)))
    values = decode_response(frame, Telegram(1, FunctionCode.READ_COILS, 0, 16, [0]))
    assert values == [0x2211]


def test_decode_write_returns_registers_unchanged():
    telegram = Telegram(1, FunctionCode.WRITE_REGISTER, 0, 1, [42])
    frame = build_request(telegram)
    assert decode_response(frame, telegram) == [42]


def test_modbus_error_code_attribute():
    err = ModbusError(ErrorCode.NO_REPLY)
    assert err.code is ErrorCode.NO_REPLY
    assert "no reply" in str(err)