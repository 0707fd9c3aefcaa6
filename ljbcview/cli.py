"""Command-line viewer for LuaJIT bytecode dumps."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from ljbcview.bytecode import LuaBytecode, load_bytecode
from ljbcview.formatting import (
    format_constants,
    format_instructions,
    format_proto_details,
    format_protos,
)
from ljbcview.reader import BytecodeError

TITLE = "LuaJIT Bytecode Viewer"
USAGE_ERROR = "Wrong count of arguments. Look for usage!"


def _section(title: str, body: list[str]) -> list[str]:
    return [f"== {title} ==", *body, ""]


def render(bytecode: LuaBytecode, selected: int) -> str:
    """Render the whole dump as text, with the selected prototype shown in detail."""
    lines: list[str] = []
    if bytecode.chunk_name is not None:
        lines.append(f"Chunk: {bytecode.chunk_name.decode('latin-1')}")
    lines.append(
        f"Version: {bytecode.version}\tFlags: 0x{bytecode.flags:X}\t"
        f"Prototypes: {bytecode.protos_count}"
    )
    lines.append("")
    lines.extend(_section("Prototypes", format_protos(bytecode, selected)))

    if bytecode.protos:
        proto = bytecode.proto(selected)
        lines.extend(_section("Constants", format_constants(proto)))
        lines.extend(_section("Bytecode", format_instructions(proto)))
        lines.extend(_section("Proto details", format_proto_details(proto)))

    return "\n".join(lines).rstrip("\n") + "\n"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ljbcview", description="Show the contents of a LuaJIT bytecode file."
    )
    parser.add_argument("path", help="bytecode file to inspect")
    parser.add_argument(
        "-p",
        "--proto",
        type=int,
        default=0,
        help="id of the prototype to show in detail (default: 0)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the viewer; return the process exit status."""
    args_list = list(sys.argv[1:] if argv is None else argv)
    if not args_list:
        print(USAGE_ERROR, file=sys.stderr)
        return 1

    args = _build_parser().parse_args(args_list)

    try:
        bytecode = load_bytecode(args.path)
    except OSError as exc:
        print(f"error: cannot read {args.path}: {exc.strerror or exc}", file=sys.stderr)
        return 1
    except BytecodeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        text = render(bytecode, args.proto)
    except KeyError:
        print(f"error: no prototype with id {args.proto}", file=sys.stderr)
        return 1

    print(f"{TITLE} ({args.path})")
    sys.stdout.write(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())