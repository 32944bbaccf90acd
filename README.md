# rtumaster

rtumaster is a Modbus RTU master for serial lines. It builds request frames
and checks the CRC, slave address and function code of each reply. It also
decodes the register data in a reply. It supports the standard function
codes 1–6, 15 and 16. It also supports a set of extension codes used by servo
drives:

- report ID (17)
- reboot (65)
- user write (66)
- sync write (67)
- sync action (68)
- speed, position, torque and step control (69–72)
- status feedback (73)

## Installation

```
pip install rtumaster
```

The package depends on pyserial.

## Usage

Open a serial port and talk to a slave:

```python
from rtumaster.serial_master import SerialMaster
from rtumaster.frames import ModbusError

master = SerialMaster("/dev/ttyUSB0", 115200)
master.set_timeout(0.1)  # read timeout in seconds

master.write_register(1, 0x0010, 1234)
master.write_registers(1, 0x0020, [1, 2, 3])

value = master.read_register(1, 0x0010)
values = master.read_registers(1, 0x0020, 3)

slave = master.ping(1)  # id of the slave that answered

try:
    master.read_registers(7, 0x0000, 2)
except ModbusError as exc:
    print("request failed:", exc.code)
```

`SerialMaster` takes either a port name or URL, which it opens with pyserial,
or an object that is already open and behaves like a pyserial port.

A failed transaction raises `ModbusError`. Its `code` is one of these
`ErrorCode` members:

- `NO_REPLY`: the reply was short or missing
- `FUNC_CODE`: an unknown function or an exception reply
- `CRC_CMP`: a bad CRC
- `SLAVE_ID`: the wrong slave answered, or the id is above 247
- `BUFF_OVERFLOW`: the frame is larger than 64 bytes

The master also records the code in `last_error`. The attributes `state`
(a `ComState`) and `slave_id` hold the state of the link and the id of the
last slave that answered.

Writes to broadcast address `0` are sent without waiting for a reply. The
extension commands `reboot`, `write_user`, `write_sync` and `action_sync` do
not wait for a reply either. `write_user` and `write_sync` take a single
value or an iterable of values.

For any other request, including the coil functions and the control codes,
fill in a `Telegram` yourself and pass it to `transact`. This sends the
request, waits for the reply and returns the register values. `query` and
`poll` do the same in two steps.

### Frame gap and batched sends

When a baud rate is given, the master waits after each sent frame for a gap
of 35 bit times. Call `set_frame_gap(baudrate)` to work the gap out again
after the baud rate changes. Without a baud rate there is no gap.

If you set `master.auto_flush = False`, frames are collected instead of
written, and `flush_tx()` sends them all together. Use this for commands
that do not wait for a reply. For example, you can queue several
`write_sync` calls and an `action_sync`, then send them all at once.

### Frames without a port

`rtumaster.frames` works on its own:

- `Telegram` describes a request.
- `build_request` turns a request into bytes with the CRC appended.
- `expected_response_length` gives the length of the reply to expect.
- `validate_response` checks a reply.
- `decode_response` decodes the register values in a reply.
- `crc16` returns the Modbus CRC of a byte string.

To use another transport, subclass `rtumaster.master.RtuMaster` and
implement `_write`, `_read`, `_flush_rx` and `_flush_tx`.

### Not included

The package is a bus master only. It does not act as a slave, and it has no
command-line tool.

## Tests

Install the `test` extra to get pytest, then run pytest from the project
directory.