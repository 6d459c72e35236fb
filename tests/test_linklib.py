import socket

import pytest

from netlabs.linklib import MESSAGE_SIZE, MSGSIZE, LinkClient, Message


def test_packed_size_is_fixed():
    assert len(Message(b"abc").pack()) == MESSAGE_SIZE
    assert len(Message().pack()) == 4 + MSGSIZE


def test_pack_layout():
    data = Message(b"hi\x00").pack()
    assert data[:4] == (3).to_bytes(4, "little")
    assert data[4:7] == b"hi\x00"
    assert set(data[7:]) == {0}


def test_round_trip():
    original = Message(b"file.txt\x00")
    assert Message.unpack(original.pack()) == original


def test_explicit_length_round_trip():
    original = Message(b"abcd", 2)
    decoded = Message.unpack(original.pack())
    assert decoded.length == 2
    assert decoded.payload == b"ab"


def test_unpack_length_beyond_data():
    decoded = Message.unpack(b"\x05\x00\x00\x00ab")
    assert decoded.length == 5
    assert decoded.payload == b"ab"


def test_payload_too_long():
    with pytest.raises(ValueError):
        Message(b"x" * (MSGSIZE + 1))


def test_unpack_too_short():
    with pytest.raises(ValueError):
        Message.unpack(b"\x01\x00")


def test_invalid_address():
    with pytest.raises(ValueError):
        LinkClient("not-an-ip", 10000)


def test_client_over_udp():
    server = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    server.bind(("127.0.0.1", 0))
    server.settimeout(5)
    try:
        with LinkClient("127.0.0.1", server.getsockname()[1]) as client:
            hello, address = server.recvfrom(MESSAGE_SIZE + 10)
            assert len(hello) == MESSAGE_SIZE

            client.send_message(Message(b"ping\x00"))
            data, _ = server.recvfrom(MESSAGE_SIZE + 10)
            assert Message.unpack(data).payload == b"ping\x00"

            server.sendto(Message(b"pong\x00").pack(), address)
            reply = client.recv_message()
            assert reply.payload == b"pong\x00"
            assert reply.length == 5
    finally:
        server.close()