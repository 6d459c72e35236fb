import socket

import pytest

from netlabs.udpbackup import BUFLEN, main_client, receive_backup, send_file


@pytest.fixture
def pair():
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    sender.bind(("127.0.0.1", 0))
    receiver.settimeout(5)
    yield sender, receiver
    sender.close()
    receiver.close()


def test_round_trip(pair, tmp_path):
    sender, receiver = pair
    content = bytes(range(256)) * 16
    path = tmp_path / "data.bin"
    path.write_bytes(content)
    sent = send_file(sender, receiver.getsockname(), path)
    backup = receive_backup(receiver)
    assert sent == len(content)
    assert backup.filename == "data.bin"
    assert backup.data == content
    assert backup.sender == sender.getsockname()


def test_empty_file(pair, tmp_path):
    sender, receiver = pair
    path = tmp_path / "empty.txt"
    path.write_bytes(b"")
    assert send_file(sender, receiver.getsockname(), path) == 0
    assert receive_backup(receiver).data == b""


def test_datagram_layout(pair, tmp_path):
    sender, receiver = pair
    path = tmp_path / "a.txt"
    path.write_bytes(b"x" * (BUFLEN + 10))
    send_file(sender, receiver.getsockname(), path)
    datagrams = [receiver.recv(BUFLEN + 100) for _ in range(4)]
    assert len(datagrams[0]) == BUFLEN
    assert datagrams[0].rstrip(b"\x00") == b"a.txt"
    assert [len(d) for d in datagrams[1:3]] == [BUFLEN, 10]
    assert datagrams[3] == b"EXIT\x00"


def test_exit_content_ends_transfer(pair, tmp_path):
    sender, receiver = pair
    path = tmp_path / "exit.txt"
    path.write_bytes(b"EXIT")
    send_file(sender, receiver.getsockname(), path)
    assert receive_backup(receiver).data == b""


def test_missing_file(pair, tmp_path):
    sender, receiver = pair
    with pytest.raises(FileNotFoundError):
        send_file(sender, receiver.getsockname(), tmp_path / "missing")


def test_main_client(pair, tmp_path):
    _, receiver = pair
    path = tmp_path / "notes.txt"
    path.write_bytes(b"some notes\n")
    host, port = receiver.getsockname()
    assert main_client([host, str(port), str(path)]) == 0
    backup = receive_backup(receiver)
    assert backup.data == b"some notes\n"


def test_main_client_usage():
    assert main_client(["127.0.0.1"]) == 1