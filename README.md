# netlabs

Small networking tools and building blocks, written with the standard library
only:

- `cat` and `tac` for text files
- a UDP **link emulator** with limited bandwidth, delay, loss and corruption,
  and a client for it (`netlabs.linklib`)
- a stop-and-wait **file transfer** and a sliding-**window** sender whose
  frames carry a parity word
- a UDP **file backup** client and server
- a `select`-based multi-client **chat** server and client
- **DNS** forward and reverse lookups
- a **statistics server** that collects numbers over UDP and reports them over TCP
- a software **router** (longest-prefix match, ARP, ICMP) over raw sockets
- **ping** and **traceroute** built from raw Ethernet frames

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Commands

### Text files

```
netlabs-cat notes.txt      # print a file
netlabs-tac notes.txt      # print its lines last to first
```

### Link emulator

The emulator listens on UDP ports 10000 and 10001. Traffic arriving on the
first port is shaped and passed on to the peer of the second; traffic from the
second goes straight back to the first. Each side's first datagram only
announces its address.

```
netlabs-link speed=5 delay=10 loss=0 corrupt=10
```

Parameters are `speed` (Mb/s), `delay` (ms), `loss` and `corrupt` (percent of
packets). A corrupted message has one bit of one byte flipped.

With the emulator running, transfer a file. The receiver writes the copy as
`<name>_copy.txt` in the given directory (default: the current one); the
sender sends `file.txt` unless given another path:

```
netlabs-recv-file [directory]
netlabs-send-file [path]
```

Or send 100 parity frames with a window sized from the bandwidth-delay product
and let the receiver count how many arrive intact:

```
netlabs-window-recv
netlabs-window-send 50
```

### UDP backup

```
netlabs-udp-backup-server 12345 backup.bin
netlabs-udp-backup-client 127.0.0.1 12345 data.bin
```

The client sends the file name, the contents and then `EXIT`. The server
creates its second argument empty, receives one file and stores it in the
current directory under the name the client sent.

### Chat

The server accepts any number of clients and tells them when others connect
or disconnect. Clients are known by their socket number on the server; a
client sends a message to another by prefixing it with that number:

```
netlabs-select-chat-server 12345
netlabs-select-chat-client 127.0.0.1 12345
```

Typing `exit` on the server sends it to every client and stops the server;
typing `exit` on a client ends that client.

### DNS

```
netlabs-dns -n example.com     # name to addresses
netlabs-dns -a 127.0.0.1       # address to host name and service (port 8080)
```

### Statistics server

```
netlabs-stats-server 12345
netlabs-stats-send 127.0.0.1 12345 42
netlabs-stats-client 127.0.0.1 12345
```

Numbers arrive over UDP; each new TCP client is sent the numbers received so
far and their average, or a note that the list is empty.

### Router and ping

These need raw sockets (root or `CAP_NET_RAW`) on Linux.

```
netlabs-router rtable.txt r-0 r-1 rr-0-1
netlabs-ping ping 127.0.0.1 4
netlabs-ping traceroute 127.0.0.1
```

The routing table has one `prefix next_hop mask interface` line per route;
the interface number indexes the interface names given after the file.
`netlabs-ping` uses the interface named by the `NETLABS_IFNAME` environment
variable (default `eno2`) and finds the default gateway with `ip route`.

## Library use

```python
from netlabs.checksum import ip_checksum
from netlabs.packets import IpHeader
from netlabs.routing import get_best_route, read_rtable, sort_rtable

with open("rtable.txt") as handle:
    table = sort_rtable(read_rtable(handle))

route = get_best_route(0xC0A80105, table)  # 192.168.1.5

header = IpHeader(protocol=1, saddr=0x0A000001, daddr=0x0A000002)
header.check = ip_checksum(header.pack())
assert ip_checksum(header.pack()) == 0
```

Other building blocks: `netlabs.parity` (parity-protected frames),
`netlabs.buffer.Buffer` (a byte buffer with case-sensitive and
case-insensitive search), `netlabs.packets` (Ethernet, IPv4, ICMP and ARP
headers) and `netlabs.router.Router`, whose `handle_packet` returns the frames
to send without touching the network.

## What is not included

There is no HTTP client, no mail-sending client and no simple one- or
two-client TCP echo server; the only TCP chat is the `select`-based one above.