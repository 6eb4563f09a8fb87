from __future__ import annotations

import io
import socket
import sys

import pytest
import yaml

from wolsend.cli import main
from wolsend.errors import TransmissionError
from wolsend.mac import parse_mac
from wolsend.wol import Sender, build_magic_packet

MAC_A = "01-23-45-67-89-AB"
MAC_C = "00:11:22:33:44:55"


@pytest.fixture
def listener():
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.bind(("127.0.0.1", 0))
    s.settimeout(2.0)
    yield s
    s.close()


def target_args(listener):
    host, port = listener.getsockname()
    return ["-b", host, "-p", str(port)]


def test_arguments_are_sent(listener, capsys):
    assert main(target_args(listener) + [MAC_A, MAC_C]) == 0
    got = {listener.recvfrom(2048)[0] for _ in range(2)}
    assert got == {build_magic_packet(parse_mac(MAC_A)), build_magic_packet(parse_mac(MAC_C))}


def test_bad_argument_fails_alone(listener, capsys):
    assert main(target_args(listener) + [MAC_A, "not-a-mac"]) == 1
    assert "not-a-mac [FAIL] Invalid MAC address" in capsys.readouterr().err
    assert listener.recvfrom(2048)[0] == build_magic_packet(parse_mac(MAC_A))


def test_strict_flag(listener, capsys):
    assert main(target_args(listener) + ["--strict", MAC_C]) == 1
    assert f"{MAC_C} [FAIL]" in capsys.readouterr().err


def test_partial_failure_reports_each_address(listener, capsys, monkeypatch):
    original = Sender._send_one_async

    async def flaky(self, mac):
        if mac == parse_mac(MAC_C):
            raise TransmissionError("boom")
        await original(self, mac)

    monkeypatch.setattr(Sender, "_send_one_async", flaky)
    assert main(target_args(listener) + [MAC_A, MAC_C]) == 1
    err = capsys.readouterr().err
    assert "00:11:22:33:44:55 [FAIL] boom" in err
    assert listener.recvfrom(2048)[0] == build_magic_packet(parse_mac(MAC_A))


def test_interactive(listener, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO(f"{MAC_A}\nnot-a-mac\n  {MAC_C}  \n\n{MAC_A}\n"))
    assert main(target_args(listener)) == 0
    out = capsys.readouterr().out
    assert f"{MAC_A} [OK]" in out
    assert "not-a-mac [FAIL] Invalid MAC address" in out
    assert f"{MAC_C} [OK]" in out
    # input after the blank line is never read
    assert out.count("[OK]") == 2
    got = [listener.recvfrom(2048)[0] for _ in range(2)]
    assert got == [build_magic_packet(parse_mac(MAC_A)), build_magic_packet(parse_mac(MAC_C))]


def test_interactive_stops_at_eof(listener, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO(MAC_A))
    assert main(target_args(listener)) == 0
    assert f"{MAC_A} [OK]" in capsys.readouterr().out


def test_host_name_from_hosts_file(listener, tmp_path, capsys):
    hosts = tmp_path / "hosts.yml"
    hosts.write_text(yaml.safe_dump({"hosts": [{"name": "nas", "mac": MAC_A}]}), encoding="utf-8")
    assert main(target_args(listener) + ["--hosts", str(hosts), "nas"]) == 0
    assert listener.recvfrom(2048)[0] == build_magic_packet(parse_mac(MAC_A))


def test_config_error_exits_2(tmp_path, capsys):
    assert main(["--hosts", str(tmp_path / "missing.yml"), MAC_A]) == 2
    assert "config error" in capsys.readouterr().err


def test_log_file(listener, tmp_path, capsys):
    log = tmp_path / "wol.log"
    (tmp_path / ".env").write_text(f"LOG_FILE={log}\n", encoding="utf-8")
    assert main(target_args(listener) + ["-v", MAC_A]) == 0
    text = log.read_text(encoding="utf-8")
    assert "Woke 01:23:45:67:89:ab" in text
