import struct

import pytest

from ljbcview.bytecode import parse_bytecode
from ljbcview.cli import main, render
from ljbcview.formatting import (
    format_constants,
    format_instructions,
    format_proto_details,
    format_protos,
)

JMP_WORD = 0x80000058  # JMP with D = 0x8000, i.e. jump by +1
RET0_WORD = 0x0001004B


def _proto(params=2, stripped=True):
    body = bytes([0, params, 3, 0])  # flags, params, frame size, upvalues
    body += bytes([1, 0, 2])  # sizekgc, sizekn, sizebc
    if not stripped:
        body += b"\x00"  # no debug info
    body += struct.pack("<2I", JMP_WORD, RET0_WORD)
    body += bytes([5 + 2]) + b"hi"
    return bytes([0x20]) + body


def _dump(protos, stripped=True, chunk=b""):
    data = b"\x1bLJ\x02"
    if stripped:
        data += b"\x02"
    else:
        data += b"\x00" + bytes([len(chunk)]) + chunk
    for proto in protos:
        data += proto
    return data + b"\x00"


@pytest.fixture
def dump_file(tmp_path):
    path = tmp_path / "sample.ljbc"
    path.write_bytes(_dump([_proto(params=2), _proto(params=4)]))
    return path


def test_render_contains_every_formatted_section():
    bytecode = parse_bytecode(_dump([_proto(), _proto(params=4)]))
    text = render(bytecode, 1)
    proto = bytecode.proto(1)
    for line in (
        format_protos(bytecode, 1)
        + format_constants(proto)
        + format_instructions(proto)
        + format_proto_details(proto)
    ):
        assert line in text.splitlines()


def test_render_section_order():
    bytecode = parse_bytecode(_dump([_proto()]))
    text = render(bytecode, 0)
    positions = [
        text.index(f"== {name} ==")
        for name in ("Prototypes", "Constants", "Bytecode", "Proto details")
    ]
    assert positions == sorted(positions)


def test_render_shows_chunk_name():
    bytecode = parse_bytecode(_dump([_proto(stripped=False)], stripped=False, chunk=b"=demo"))
    assert render(bytecode, 0).splitlines()[0] == "Chunk: =demo"


def test_render_unknown_proto_raises():
    bytecode = parse_bytecode(_dump([_proto()]))
    with pytest.raises(KeyError):
        render(bytecode, 7)


def test_render_without_protos_has_no_detail_sections():
    bytecode = parse_bytecode(_dump([]))
    text = render(bytecode, 0)
    assert "== Bytecode ==" not in text
    assert "== Prototypes ==" in text


def test_main_prints_instructions(dump_file, capsys):
    assert main([str(dump_file)]) == 0
    out = capsys.readouterr().out
    assert "JMP<0x58>" in out
    assert "RET0<0x4B>" in out
    assert "hi" in out


def test_main_selects_proto(dump_file, capsys):
    assert main([str(dump_file), "--proto", "1"]) == 0
    out = capsys.readouterr().out
    assert "Params Count: 4" in out


def test_main_without_arguments_fails(capsys):
    assert main([]) == 1
    assert "arguments" in capsys.readouterr().err


def test_main_rejects_bad_header(tmp_path, capsys):
    path = tmp_path / "bad.bin"
    path.write_bytes(b"\x1bLua\x00\x00")
    assert main([str(path)]) == 1
    assert "not a LuaJIT bytecode file" in capsys.readouterr().err


def test_main_rejects_other_version(tmp_path, capsys):
    path = tmp_path / "v1.bin"
    path.write_bytes(b"\x1bLJ\x01\x02\x00")
    assert main([str(path)]) == 1
    assert "version" in capsys.readouterr().err


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.ljbc")]) == 1
    assert "cannot read" in capsys.readouterr().err


def test_main_unknown_proto(dump_file, capsys):
    assert main([str(dump_file), "-p", "9"]) == 1
    assert "no prototype with id 9" in capsys.readouterr().err