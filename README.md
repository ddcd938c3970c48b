# udscal

Building blocks for a CAN diagnostic and calibration tool. The package has no
runtime dependencies.

- `udscal.timers`: a software `Clock` with wrapping 16-bit counters for milliseconds,
  tenths of a second and seconds (`TimeUnit`). It also provides `Deadline`, which checks
  timeouts against one of those counters and handles wrap-around.
- `udscal.frames`: ISO 15765-2 frame primitives. These are `PciType`, `FlowStatus`, `Result`,
  `Pdu` (with `Pdu.from_bytes` and `to_bytes`) and `encode_pci` / `decode_pci`. The module
  also holds the `Indication` and `Confirmation` records that are handed to the layer above.
- `udscal.netlayer`: `NetworkLayer`, a half-duplex transport. It handles single, first,
  consecutive and flow-control frames, the N_Bs and N_Cr timeouts and block sizes. Received
  frames are queued with `receive_frame`, messages are sent with `request`, and `poll`
  drives both directions. `send_nrc78` sends a "response pending" frame.
- `udscal.seedkey`: seed-to-key algorithms for security access. `mask_key(seed, mask)` is a
  shift-and-xor derivation and `tea_key(seed, level2)` is a two-round TEA-style derivation.
  `ror3` is an 8-bit rotation helper.
- `udscal.applayer`: `ApplicationLayer`, the tester side of the diagnostic exchange.
  - `poll` sends the session-control request for the current `SessionMode` once, and sends
    any message held by `queue`.
  - It counts tester-present intervals in `tester_present_count` and releases the
    `SecurityState.TIMELOCK` delay.
  - For a security-access seed response it computes a key with the `key_function` you
    supply and sends it back.
  - Read-DID, write-DID and read-DTC responses are passed to the callbacks you supply.
- `udscal.eeprom_codec`: conversion between raw EEPROM bytes and the display values of the
  calibration table. It provides `decode`, `encode`, `DataType`, `initial_eeprom`,
  `scale_by_ten`, `byte_to_percent` and `percent_to_byte`.
- `udscal.eeprom_params`: the calibration parameter table, through `parameters()` (a list of
  `Parameter` rows) and `column_headers()`.

## Install

    pip install .

To run the tests:

    pip install ".[test]"
    pytest

## Example

```python
from udscal.timers import Clock
from udscal.netlayer import NetworkLayer
from udscal.applayer import ApplicationLayer
from udscal.seedkey import mask_key

clock = Clock()
sent = []

app = ApplicationLayer(
    clock,
    key_function=lambda seed, level: mask_key(seed, 0x5C735C73),
    on_message=print,
    on_read_did=print,
    on_write_did=print,
    on_read_dtc=print,
)
net = NetworkLayer(clock, send_frame=sent.append)
app.attach(net)  # routes the network layer's callbacks to the application layer

# Main loop: advance the clock, feed received CAN frames and poll both layers.
clock.tick_ms()
net.receive_frame(0x19, bytes([0x02, 0x50, 0x03]))
app.poll()
net.poll()
print(sent)  # eight-byte frames handed to the bus
```

Decoding a calibration image:

```python
from udscal.eeprom_codec import EEPROM_LENGTH, decode, initial_eeprom
from udscal.eeprom_params import parameters

values = decode(initial_eeprom(EEPROM_LENGTH))
for param, value in zip(parameters(), values):
    print(param.number, param.name, value, param.unit)
```

## What the package does not do

- It does not talk to CAN hardware. Outgoing frames go to the `send_frame` callable, and
  incoming frames must be passed to `NetworkLayer.receive_frame`.
- It does not advance time by itself. Call `Clock.tick_ms` every millisecond, and
  `update_tenths` and `update_seconds` as well.
- It has no user interface, no command-line program and no storage for EEPROM images.