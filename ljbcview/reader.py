"""Byte-level reader for LuaJIT bytecode dumps."""

from __future__ import annotations

import os
from typing import Union

HEADER_MAGIC = b"\x1bLJ"
MAX_SIZE = (1 << 64) - 1
_DWORD_MASK = 0xFFFFFFFF


class BytecodeError(ValueError):
    """Raised when bytecode data is truncated or malformed."""


class Reader:
    """Sequential reader over an in-memory bytecode dump."""

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0
        self.flags = 0
        self.pc = 1

    @property
    def size(self) -> int:
        return len(self.data)

    def at_end(self) -> bool:
        """Return True once every byte has been consumed."""
        return self.pos >= len(self.data)

    def peek_byte(self) -> int:
        """Return the next byte without consuming it."""
        if self.at_end():
            raise BytecodeError(f"unexpected end of data at offset {self.pos}")
        return self.data[self.pos]

    def read_byte(self) -> int:
        """Consume and return one byte."""
        value = self.peek_byte()
        self.pos += 1
        return value

    def read_varint(self, limit: int) -> int:
        """Read a big-endian base-128 integer that must not exceed ``limit``."""
        guard = limit >> 7
        value = 0
        while True:
            byte = self.read_byte()
            if value > guard:
                raise BytecodeError(f"integer overflow at offset {self.pos - 1}")
            value = (value << 7) | (byte & 0x7F)
            if not byte & 0x80:
                return value

    def read_size(self) -> int:
        """Read a big-endian base-128 size value."""
        return self.read_varint(MAX_SIZE)

    def read_block(self, size: int) -> bytes:
        """Consume and return ``size`` raw bytes."""
        if size < 0:
            raise BytecodeError(f"negative block size {size}")
        end = self.pos + size
        if end > len(self.data):
            raise BytecodeError(
                f"block of {size} bytes at offset {self.pos} runs past end of data"
            )
        block = self.data[self.pos:end]
        self.pos = end
        return block

    def read_uleb128(self) -> int:
        """Read an unsigned LEB128 value truncated to 32 bits."""
        value = self.read_byte()
        if value >= 0x80:
            value &= 0x7F
            shift = 7
            while True:
                byte = self.read_byte()
                value |= (byte & 0x7F) << shift
                shift += 7
                if byte < 0x80:
                    break
        return value & _DWORD_MASK

    def read_uleb128_33(self) -> int:
        """Read a 33-bit LEB128 value whose lowest bit of the first byte is a tag."""
        value = self.read_byte() >> 1
        if value >= 0x40:
            value &= 0x3F
            shift = 6
            while True:
                byte = self.read_byte()
                value |= (byte & 0x7F) << shift
                shift += 7
                if byte < 0x80:
                    break
        return value & _DWORD_MASK

    def check_header(self) -> bool:
        """Check the dump signature and skip past it."""
        valid = self.data[:3] == HEADER_MAGIC
        self.pos += 3
        return valid


def read_file(path: Union[str, os.PathLike]) -> Reader:
    """Load a whole file into a new Reader."""
    with open(path, "rb") as stream:
        return Reader(stream.read())