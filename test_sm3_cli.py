import io
import sys

import pytest

from sm3_cli import hash_stream, main
from sm3_hash import sm3


ABC_HEX = "66c7f0f462eeedd9d1f2d46bdc10e4e24167c4875cf2f7a2297da02b8f4ba8e0"


def test_hashes_message_argument(capsys):
    assert main(["abc"]) == 0
    assert capsys.readouterr().out == ABC_HEX + "\n"


def test_hashes_several_messages_in_order(capsys):
    assert main(["abc", "", "héllo"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [ABC_HEX, sm3(b"").hex(), sm3("héllo".encode("utf-8")).hex()]


def test_upper_case_output(capsys):
    assert main(["--upper", "abc"]) == 0
    assert capsys.readouterr().out.strip() == ABC_HEX.upper()


@pytest.mark.parametrize("chunk_size", ["1", "64", "65536"])
def test_hashes_file(tmp_path, capsys, chunk_size):
    data = bytes(range(256)) * 5
    path = tmp_path / "data.bin"
    path.write_bytes(data)

    assert main(["-f", str(path), "--chunk-size", chunk_size]) == 0
    assert capsys.readouterr().out == f"{sm3(data).hex()}  {path}\n"


def test_missing_file_reports_error_and_continues(tmp_path, capsys):
    good = tmp_path / "good.txt"
    good.write_bytes(b"abc")
    missing = tmp_path / "missing.txt"

    assert main(["-f", str(missing), "-f", str(good)]) == 1
    captured = capsys.readouterr()
    assert "Error reading file" in captured.err
    assert captured.out == f"{ABC_HEX}  {good}\n"


def test_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"abc")))
    assert main(["-f", "-"]) == 0
    assert capsys.readouterr().out == f"{ABC_HEX}  -\n"


def test_no_input_is_usage_error(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().err


def test_rejects_non_positive_chunk_size(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--chunk-size", "0", "abc"])
    assert exc.value.code == 2


def test_hash_stream():
    assert hash_stream(io.BytesIO(b"abc"), chunk_size=2).hex() == ABC_HEX
