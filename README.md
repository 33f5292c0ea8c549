# minnow

Pieces for building and testing a small TCP/IP stack in user space. The package has
no dependencies outside the standard library.

## What is in it

| Module | Contents |
| --- | --- |
| `minnow.parser` | `Parser` and `Serializer`: big-endian integers and byte strings over lists of `bytes` buffers |
| `minnow.checksum` | `InternetChecksum`, the ones'-complement sum used by IPv4 and TCP |
| `minnow.ethernet` | `EthernetHeader`, `EthernetFrame`, `ETHERNET_BROADCAST`, `format_ethernet_address` |
| `minnow.ipv4` | `IPv4Header`, `IPv4Datagram` (also named `InternetDatagram`), `UserDatagramInfo` |
| `minnow.arp` | `ARPMessage` (Ethernet/IPv4 requests and replies) |
| `minnow.helpers` | `serialize`, `parse`, `concat`, `pretty_print`, `summary`, `clone` |
| `minnow.address` | `Address`: IPv4/IPv6 socket addresses and name resolution |
| `minnow.file_descriptor` | `FileDescriptor`: a shared, reference-counted handle on an OS descriptor |
| `minnow.sockets` | `UDPSocket`, `TCPSocket`, `PacketSocket`, `RawSocket`, `LocalStreamSocket`, `LocalDatagramSocket` |
| `minnow.tun` | `TunFD` and `TapFD` for existing persistent TUN/TAP devices |
| `minnow.eventloop` | `EventLoop`, `Direction`, `Result`, `RuleHandle` |
| `minnow.errors` | `TaggedError`, `UnixError`, `check_system_call`, `notnull` |
| `minnow.debug` | `debug`, `debug_str`, `set_debug_handler`, `reset_debug_handler` |
| `minnow.randomness` | `get_random_engine`, a `random.Random` seeded from OS entropy |

## Installation

```
pip install .
```

Use `pip install .[test]` to include the test dependencies as well.

## Wire formats

Every wire-format class has `parse(parser)` and `serialize(serializer)` methods. The
helpers in `minnow.helpers` wrap them:

- `serialize(obj)` returns the list of `bytes` buffers that encode `obj`.
- `parse(obj, buffers)` fills `obj` in from `buffers` and returns `False` if the input
  was short or malformed (for IPv4, also if the header checksum is wrong).

A `Parser` never raises on short input: it sets an error flag, and reads after that
return zeros. `IPv4Header.serialize` writes the checksum field as it stands; call
`compute_checksum()` first to set it.

```python
from minnow.address import Address
from minnow.helpers import concat, parse, serialize
from minnow.ipv4 import IPv4Datagram

dgram = IPv4Datagram()
dgram.header.src = Address("5.6.7.8", 0).ipv4_numeric()
dgram.header.dst = Address("13.12.11.10", 0).ipv4_numeric()
dgram.payload = [b"hello"]
dgram.header.len = dgram.header.hlen * 4 + len(b"hello")
dgram.header.compute_checksum()

wire = serialize(dgram)

copy = IPv4Datagram()
assert parse(copy, wire)
assert concat(copy.payload) == b"hello"
```

An ARP request inside an Ethernet frame, described with `summary`:

```python
from minnow.arp import ARPMessage
from minnow.ethernet import ETHERNET_BROADCAST, EthernetFrame, EthernetHeader
from minnow.helpers import serialize, summary

local = bytes.fromhex("020000000001")
arp = ARPMessage(
    opcode=ARPMessage.OPCODE_REQUEST,
    sender_ethernet_address=local,
    sender_ip_address=0x0A000001,
    target_ip_address=0x0A000002,
)
frame = EthernetFrame(
    EthernetHeader(dst=ETHERNET_BROADCAST, src=local, type=EthernetHeader.TYPE_ARP),
    serialize(arp),
)
print(summary(frame))
```

`ARPMessage.serialize` raises `RuntimeError` unless the message is an Ethernet/IPv4
request or reply; `pretty_print` escapes unprintable bytes and double quotes and cuts
long output short with `...`.

## System wrappers

These need a POSIX system, and some need Linux.

- `FileDescriptor` wraps a descriptor number. `duplicate()` returns another handle
  sharing the same state (end-of-file and closed flags, read and write counts);
  the descriptor is closed when the last handle goes away, by `close()`, or on
  leaving a `with` block. `read`, `read_vectored`, `write`, `write_vectored` and
  `write_all` are provided; on a non-blocking descriptor a call that would block
  returns an empty result instead of raising.
- `Address(ip, port)` takes a numeric IPv4 address; `Address.resolve(host, service)`
  looks a name up; `Address.from_ipv4_numeric(n)` and `ipv4_numeric()` convert to
  and from 32-bit numbers; `str(address)` gives `"ip:port"`.
- The socket classes are `FileDescriptor`s. `DatagramSocket.recv` returns
  `(Address, bytes)`, or `None` if a non-blocking socket has nothing to read, and
  raises if the datagram is larger than the requested size.
- `TunFD(name)` and `TapFD(name)` open an existing persistent TUN or TAP device
  through `/dev/net/tun`.

Failed system calls raise `UnixError`, whose `attempt` names the call and whose
`error_code` holds the errno value.

## Event loop

```python
from minnow.eventloop import Direction, EventLoop, Result

loop = EventLoop()
category = loop.add_category("reader")
loop.add_fd_rule(category, fd, Direction.IN, on_readable, lambda: True, on_cancel, on_error)
while loop.wait_next_event(-1) != Result.EXIT:
    pass
```

Here `fd` is a `FileDescriptor` or a socket, and `on_readable`, `on_cancel` and
`on_error` are functions you supply. `add_rule(category, callback, interest)` adds a
rule with no descriptor, whose callback runs while `interest()` is true. Either kind
of `category` may be a category id or a name for a new category; at most 64
categories can exist. Each call to `wait_next_event` serves at most one rule and
returns `Result.SUCCESS`, `Result.TIMEOUT` or `Result.EXIT` (nothing left that is
interested). The `RuleHandle` returned for each rule can `cancel()` it.

Busy loops are reported as errors: a descriptor rule whose callback neither reads nor
writes its descriptor but is still interested afterwards, or a rule without a
descriptor that stays interested for more than 128 calls in a row, raises
`RuntimeError`.

## Debug output

`debug(fmt, *args, **kwargs)` formats with `str.format` and writes `DEBUG: ...` to
standard error; under `python -O` it does nothing. `set_debug_handler(handler)` sends
messages to `handler` instead, and `reset_debug_handler()` restores standard error.

## What it does not do

This is a library of parts. It has no TCP sender or receiver, no byte stream or
reassembler, no network interface with an ARP cache, no router, and no command-line
program. It supplies the formats, checksums, descriptors, sockets and event loop that
such pieces are built from.

## Running the tests

```
pytest
```

Packet sockets, raw sockets and TUN/TAP devices need Linux and the matching
privileges.