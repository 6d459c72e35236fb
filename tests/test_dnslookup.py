import pytest

from netlabs.dnslookup import get_ip, get_name, main


def test_get_ip_numeric_address_resolves_to_itself():
    addresses = get_ip("127.0.0.1")
    assert len(addresses) >= 1
    assert set(addresses) == {"127.0.0.1"}


def test_get_name_returns_numeric_service_for_unlisted_port():
    host, service = get_name("127.0.0.1", 47123)
    assert len(host) > 0
    assert service == "47123"


def test_get_name_rejects_invalid_address():
    with pytest.raises(ValueError):
        get_name("not-an-ip")


def test_main_forward_lookup_prints_address(capsys):
    assert main(["-n", "127.0.0.1"]) == 0
    out = capsys.readouterr().out
    assert "IP is 127.0.0.1" in out


def test_main_reverse_lookup_prints_name_and_service(capsys):
    assert main(["-a", "127.0.0.1"]) == 0
    out = capsys.readouterr().out
    assert "Name is " in out
    assert "Service is " in out


def test_main_unknown_option_prints_usage(capsys):
    assert main(["-x", "example"]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_main_missing_argument_prints_usage(capsys):
    assert main(["-n"]) == 1
    assert "-a <IP>" in capsys.readouterr().out