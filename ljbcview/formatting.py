"""Text rendering of parsed bytecode: prototypes, constants, instructions and jump arrows."""

from __future__ import annotations

import math
from typing import NamedTuple

from ljbcview.bytecode import KgcType, LuaBytecode, Proto

ARROW_SIZE = 10.0
ARROW_ANGLE = math.pi / 6.0
NO_CONSTANTS = "No constants in prototype"


class Segment(NamedTuple):
    """A straight line from (x1, y1) to (x2, y2)."""

    x1: float
    y1: float
    x2: float
    y2: float


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _is_alnum(byte: int) -> bool:
    return (
        0x30 <= byte <= 0x39
        or 0x41 <= byte <= 0x5A
        or 0x61 <= byte <= 0x7A
    )


def string_normalize(data: bytes) -> str:
    """Replace every byte that is not an ASCII letter or digit with a dot."""
    return "".join(chr(byte) if _is_alnum(byte) else "." for byte in data)


def bin_str_to_hex(data: bytes) -> str:
    """Render bytes as upper-case two-digit hex, each followed by a space."""
    return "".join(f"{byte:02X} " for byte in data)


def _unit(dx: float, dy: float) -> tuple[float, float]:
    length = math.hypot(dx, dy)
    if length == 0:
        raise ValueError("arrow endpoints coincide")
    return dx / length, dy / length


def arrow_segments(
    start_x: float,
    start_y: float,
    end_x: float,
    end_y: float,
    margin_scale: float,
) -> list[Segment]:
    """Return the line segments of a bracket-shaped jump arrow with an arrowhead at the end."""
    dx, dy = _unit(start_x - end_x, start_y - end_y)

    turn = -math.pi / 2
    off_x = margin_scale * (dx * math.cos(turn) - dy * math.sin(turn))
    off_y = margin_scale * (dx * math.sin(turn) - dy * math.cos(turn))

    margin1 = (start_x + off_x, start_y + off_y)
    margin2 = (end_x + off_x, end_y + off_y)

    segments = [
        Segment(start_x, start_y, *margin1),
        Segment(end_x, end_y, *margin2),
        Segment(*margin1, *margin2),
    ]

    hx, hy = _unit(margin2[0] - end_x, margin2[1] - end_y)
    cos_a, sin_a = math.cos(ARROW_ANGLE), math.sin(ARROW_ANGLE)
    left = (
        end_x + ARROW_SIZE * (hx * cos_a - hy * sin_a),
        end_y + ARROW_SIZE * (hx * sin_a + hy * cos_a),
    )
    right = (
        end_x + ARROW_SIZE * (hx * math.cos(-ARROW_ANGLE) - hy * math.sin(-ARROW_ANGLE)),
        end_y + ARROW_SIZE * (hy * math.cos(-ARROW_ANGLE) + hx * math.sin(-ARROW_ANGLE)),
    )
    segments.append(Segment(end_x, end_y, *left))
    segments.append(Segment(end_x, end_y, *right))
    return segments


def format_protos(bytecode: LuaBytecode, selected: int) -> list[str]:
    """List every prototype, marking the selected one."""
    lines = []
    for proto in bytecode.protos:
        marker = ">" if proto.id == selected else " "
        lines.append(
            f"{marker} FO:0x{proto.file_offset:X}\tID: {proto.id}\tParams count: {proto.params_count}"
        )
    return lines


def _constant_text(constant) -> str:
    if constant.type == KgcType.STR:
        return string_normalize(constant.data or b"")
    if constant.type in (KgcType.TAB, KgcType.CHILD):
        return ""
    return str(_as_int32(constant.value or 0))


def format_constants(proto: Proto) -> list[str]:
    """List the garbage-collected constants of a prototype."""
    if not proto.size_kgc and not proto.size_kn:
        return [NO_CONSTANTS]
    return [
        f"FO:0x{constant.file_offset:X}\t{constant.constant_str}\t{_constant_text(constant)}"
        for constant in proto.kgc
    ]


def format_instructions(proto: Proto) -> list[str]:
    """List the instructions of a prototype, one tab-separated row each."""
    lines = []
    for instruction in proto.instructions:
        target = instruction.jump_target(proto.size_bc)
        columns = [
            f"FO:0x{instruction.file_offset:X}",
            str(instruction.pc),
            "" if target is None else str(target),
            f"{instruction.name}<0x{instruction.op:X}>",
            str(instruction.a),
            str(instruction.b),
            str(instruction.c),
            str(instruction.d),
        ]
        lines.append("\t".join(columns))
    return lines


def format_proto_details(proto: Proto) -> list[str]:
    """Describe the header fields of a prototype."""
    fields = [
        ("File Offset:", f"0x{proto.file_offset:X}"),
        ("Proto Length:", str(proto.proto_len)),
        ("ID:", str(proto.id)),
        ("Flags:", str(proto.flags)),
        ("Params Count:", str(proto.params_count)),
        ("Frame Size:", str(proto.frame_size)),
        ("Size UV:", str(proto.size_uv)),
        ("Size KGC:", str(proto.size_kgc)),
        ("Size KN:", str(proto.size_kn)),
        ("Size BC:", str(proto.size_bc)),
    ]
    return [f"{label} {value}" for label, value in fields]