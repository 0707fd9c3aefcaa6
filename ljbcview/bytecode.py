"""Parsing of LuaJIT 2.x bytecode dumps into prototypes, constants and instructions."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Optional, Union

from ljbcview.reader import BytecodeError, Reader, read_file

BCDUMP_F_BE = 0x01
BCDUMP_F_STRIP = 0x02
BCDUMP_F_FFI = 0x04
BCDUMP_F_KNOWN = BCDUMP_F_FFI * 2 - 1

SUPPORTED_VERSION = 2

OPCODE_NAMES: tuple[str, ...] = (
    "ISLT", "ISGE", "ISLE", "ISGT",
    "ISEQV", "ISNEV", "ISEQS", "ISNES",
    "ISEQN", "ISNEN", "ISEQP", "ISNEP",
    "ISTC", "ISFC", "IST", "ISF",
    "ISTYPE", "ISNUM", "MOV", "NOT",
    "UNM", "LEN", "ADDVN", "SUBVN",
    "MULVN", "DIVVN", "MODVN", "ADDNV",
    "SUBNV", "MULNV", "DIVNV", "MODNV",
    "ADDVV", "SUBVV", "MULVV", "DIVVV",
    "MODVV", "POW", "CAT", "KSTR",
    "KCDATA", "KSHORT", "KNUM", "KPRI",
    "KNIL", "UGET", "USETV", "USETS",
    "USETN", "USETP", "UCLO", "FNEW",
    "TNEW", "TDUP", "GGET", "GSET",
    "TGETV", "TGETS", "TGETB", "TGETR",
    "TSETV", "TSETS", "TSETB", "TSETM",
    "TSETR", "CALLM", "CALL", "CALLMT",
    "CALLT", "ITERC", "ITERN", "VARG",
    "ISNEXT", "RETM", "RET", "RET0",
    "RET1", "FORI", "JFORI", "FORL",
    "IFORL", "JFORL", "ITERL", "IITERL",
    "JITERL", "LOOP", "ILOOP", "JLOOP",
    "JMP", "FUNCF", "IFUNCF", "JFUNCF",
    "FUNCV", "IFUNCV", "JFUNCV", "FUNCC",
    "FUNCCW",
)

UNKNOWN_OPCODE = "UNKNOWN"
OP_KSTR = 0x27
OP_JMP = 0x58
JUMP_BIAS = 0x7FFF


class KgcType(IntEnum):
    """Tags of garbage-collected constants."""

    CHILD = 0
    TAB = 1
    I64 = 2
    U64 = 3
    COMPLEX = 4
    STR = 5


class KtabType(IntEnum):
    """Tags of constant-table entries."""

    NIL = 0
    FALSE = 1
    TRUE = 2
    INT = 3
    NUM = 4
    STR = 5


def opcode_name(op: int) -> str:
    """Return the mnemonic of an opcode, or UNKNOWN when out of range."""
    if 0 <= op < len(OPCODE_NAMES):
        return OPCODE_NAMES[op]
    return UNKNOWN_OPCODE


@dataclass(frozen=True)
class Instruction:
    """One decoded 32-bit bytecode instruction."""

    op: int
    a: int
    b: int
    c: int
    d: int
    name: str
    jmp_addr: Optional[int] = None
    pc: int = 1
    file_offset: int = 0

    @property
    def is_known(self) -> bool:
        return self.op < len(OPCODE_NAMES)

    def jump_target(self, size_bc: int) -> Optional[int]:
        """Return the target pc of a JMP that lands inside the prototype, else None."""
        if self.op != OP_JMP or self.jmp_addr is None:
            return None
        target = self.jmp_addr + self.pc
        if 0 < target <= size_bc:
            return target
        return None


def decode_instruction(word: int) -> Instruction:
    """Split an instruction word into its opcode and operand fields."""
    op = word & 0xFF
    a = (word >> 8) & 0xFF
    c = (word >> 16) & 0xFF
    b = (word >> 24) & 0xFF
    d = (word >> 16) & 0xFFFF
    jmp_addr = ((word & 0xFFFFFFFF) >> 16) - JUMP_BIAS if op == OP_JMP else None
    return Instruction(op=op, a=a, b=b, c=c, d=d, name=opcode_name(op), jmp_addr=jmp_addr)


@dataclass
class Constant:
    """A constant of a prototype, with a short textual description."""

    constant_str: str
    file_offset: int
    type: Optional[KgcType] = None
    data: Optional[bytes] = None
    value: Optional[int] = None
    id: int = 0

    @property
    def string_len(self) -> int:
        return len(self.data) if self.data is not None else 0


def read_ktabk(reader: Reader) -> Union[None, bool, int, tuple[int, int], bytes]:
    """Read one constant-table key or value."""
    tp = reader.read_uleb128()
    if tp >= KtabType.STR:
        return reader.read_block(tp - KtabType.STR)
    if tp == KtabType.INT:
        return reader.read_uleb128()
    if tp == KtabType.NUM:
        low = reader.read_uleb128()
        high = reader.read_uleb128()
        return (low, high)
    if tp == KtabType.TRUE:
        return True
    if tp == KtabType.FALSE:
        return False
    return None


def read_kgc(reader: Reader) -> Constant:
    """Read one garbage-collected constant."""
    tp = reader.read_uleb128()
    offset = reader.pos

    if tp >= KgcType.STR:
        data = reader.read_block(tp - KgcType.STR)
        return Constant("STRING", offset, KgcType.STR, data=data)

    if tp == KgcType.TAB:
        array_len = reader.read_uleb128()
        hash_len = reader.read_uleb128()
        for _ in range(array_len):
            read_ktabk(reader)
        for _ in range(hash_len):
            read_ktabk(reader)
            read_ktabk(reader)
        return Constant("TABLE", offset, KgcType.TAB)

    if tp == KgcType.CHILD:
        return Constant("CHILD", offset, KgcType.CHILD)

    low = reader.read_uleb128()
    high = reader.read_uleb128()
    value = (low << 32) | high
    if tp == KgcType.COMPLEX:
        ilow = reader.read_uleb128()
        ihigh = reader.read_uleb128()
        return Constant("INT128", offset, KgcType.COMPLEX, value=(ilow << 32) | ihigh)
    return Constant("INT64", offset, KgcType.I64, value=value)


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def read_kn(reader: Reader, index: int) -> Constant:
    """Read one numeric constant."""
    offset = reader.pos
    is64 = reader.peek_byte() & 1
    low = reader.read_uleb128_33()
    if is64:
        high = reader.read_uleb128()
        value = (low << 32) | high
        text = f"{index}\tINT64<{value}>"
    else:
        value = low
        text = f"{index}\tINT32<{_as_int32(low)}>"
    return Constant(text, offset, value=value, id=index)


@dataclass
class Proto:
    """A function prototype with its instructions and constants."""

    file_offset: int
    proto_len: int
    id: int
    flags: int
    params_count: int
    frame_size: int
    size_uv: int
    size_kgc: int
    size_kn: int
    size_bc: int
    instructions: list[Instruction] = field(default_factory=list)
    upvalues: list[int] = field(default_factory=list)
    kgc: list[Constant] = field(default_factory=list)
    kn: list[Constant] = field(default_factory=list)

    @property
    def constants_count(self) -> int:
        return self.size_kgc + self.size_kn


def read_proto(reader: Reader, proto_id: int, flags: int) -> Optional[Proto]:
    """Read one prototype; return None at the terminating zero length."""
    proto_len = reader.read_uleb128()
    if not proto_len:
        return None

    pflags = reader.read_byte()
    params_count = reader.read_byte()
    frame_size = reader.read_byte()
    size_uv = reader.read_byte()
    size_kgc = reader.read_uleb128()
    size_kn = reader.read_uleb128()
    size_bc = reader.read_uleb128()
    start = reader.pos

    stripped = bool(flags & BCDUMP_F_STRIP)
    size_dbg = 0
    if not stripped:
        size_dbg = reader.read_uleb128()
        if size_dbg:
            reader.read_uleb128()  # first line
            reader.read_uleb128()  # number of lines

    code = struct.unpack(f"<{size_bc}I", reader.read_block(size_bc * 4))
    upvalues = list(struct.unpack(f"<{size_uv}H", reader.read_block(size_uv * 2)))

    kgc = []
    for index in range(size_kgc):
        constant = read_kgc(reader)
        constant.id = index
        kgc.append(constant)
    kn = [read_kn(reader, index) for index in range(size_kn)]

    if not stripped:
        reader.read_block(size_dbg)

    instructions = [
        replace(decode_instruction(word), pc=pc, file_offset=start + (pc - 1) * 4)
        for pc, word in enumerate(code, start=1)
    ]
    reader.pc = 1

    return Proto(
        file_offset=start,
        proto_len=proto_len,
        id=proto_id,
        flags=pflags,
        params_count=params_count,
        frame_size=frame_size,
        size_uv=size_uv,
        size_kgc=size_kgc,
        size_kn=size_kn,
        size_bc=size_bc,
        instructions=instructions,
        upvalues=upvalues,
        kgc=kgc,
        kn=kn,
    )


@dataclass
class LuaBytecode:
    """A parsed bytecode dump."""

    version: int
    flags: int
    chunk_name: Optional[bytes] = None
    protos: list[Proto] = field(default_factory=list)

    @property
    def protos_count(self) -> int:
        return len(self.protos)

    @property
    def stripped(self) -> bool:
        return bool(self.flags & BCDUMP_F_STRIP)

    def proto(self, proto_id: int) -> Proto:
        """Return the prototype with the given id."""
        for proto in self.protos:
            if proto.id == proto_id:
                return proto
        raise KeyError(proto_id)


def parse_bytecode(data: bytes) -> LuaBytecode:
    """Parse a complete bytecode dump held in memory."""
    reader = Reader(data)
    if not reader.check_header():
        raise BytecodeError("not a LuaJIT bytecode file")

    version = reader.read_byte()
    if version != SUPPORTED_VERSION:
        raise BytecodeError(f"only bytecode version {SUPPORTED_VERSION} is supported, got {version}")

    flags = reader.read_uleb128()
    reader.flags = flags

    chunk_name = None
    if not flags & BCDUMP_F_STRIP:
        chunk_name = reader.read_block(reader.read_uleb128())

    result = LuaBytecode(version=version, flags=flags, chunk_name=chunk_name)
    proto_id = 0
    while not reader.at_end():
        proto = read_proto(reader, proto_id, flags)
        if proto is not None:
            result.protos.append(proto)
        proto_id += 1
    return result


def load_bytecode(path: Union[str, os.PathLike]) -> LuaBytecode:
    """Read and parse a bytecode file."""
    return parse_bytecode(read_file(path).data)