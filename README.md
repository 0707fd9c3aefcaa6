# ljbcview

A text viewer for LuaJIT bytecode dumps, such as the files that `luajit -b`
produces. It checks the file header and walks every function prototype. For
one selected prototype it lists the constants, the decoded instructions and
the header fields, each with its file offset. For `JMP` instructions it
resolves the destination program counter.

Only bytecode format version 2 is supported. A file that does not start
with the `\x1bLJ` signature is rejected. A file that ends in the middle of a
value is also rejected.

## Installation

```
pip install .
```

## Command line

```
ljbcview path/to/chunk.luac
ljbcview path/to/chunk.luac --proto 3
```

The command prints these parts, in order:

- a title line
- the chunk name, when the dump is not stripped
- the version, the flags and the number of prototypes
- a table of all prototypes, with the selected one marked by `>`
- the selected prototype's constants, its instructions and its header details

`-p` / `--proto` picks the prototype by id. The default is 0.

The command exits with status 1 in these cases:

- no arguments are given
- the file cannot be read
- the data is not a valid version-2 dump
- no prototype has the requested id

## Library use

```python
from ljbcview.bytecode import load_bytecode
from ljbcview.formatting import format_constants, format_instructions

bytecode = load_bytecode("chunk.luac")
proto = bytecode.proto(0)
print("\n".join(format_constants(proto)))
print("\n".join(format_instructions(proto)))
```

### Parsing (`ljbcview.bytecode`)

- `parse_bytecode(data)` does the same work as `load_bytecode`, for bytes already in memory.
- Both return a `LuaBytecode`. It holds `version`, `flags`, `chunk_name` and a list of `Proto` objects.
- `LuaBytecode.proto(id)` raises `KeyError` for an unknown id.
- Malformed input raises `ljbcview.reader.BytecodeError`, which is a subclass of `ValueError`.
- A `Proto` carries its `instructions` (as `Instruction`), `upvalues`, `kgc` and `kn` constants (as `Constant`), and its header sizes.
- `decode_instruction(word)` splits a 32-bit instruction word into its opcode and its A/B/C/D operands.
- `opcode_name(op)` gives the mnemonic of an opcode, or `UNKNOWN` when the opcode is out of range.
- `Instruction.jump_target(size_bc)` gives the target pc of a `JMP` that lands inside the prototype, and `None` otherwise.

### Text output (`ljbcview.formatting`)

- `format_protos`, `format_constants`, `format_instructions` and `format_proto_details` each return a list of text lines.
- `string_normalize(data)` replaces every byte that is not an ASCII letter or digit with `.`.
- `bin_str_to_hex(data)` renders bytes as upper-case hex.
- `arrow_segments(...)` computes the line segments of a bracket-shaped jump arrow with its arrowhead. It only returns coordinates and draws nothing.

### Low-level reading (`ljbcview.reader`)

- `Reader` decodes the ULEB128 variants that the format uses.
- `read_file(path)` loads a whole file into a `Reader`.

### Entry point (`ljbcview.cli`)

- `render(bytecode, selected)` builds the same text that the command prints, without the title line.

## What it does not do

- It is a console tool only. There is no graphical window, no mouse selection, no scrolling view and no drawn jump arrows.
- The constants listing shows the garbage-collected constants (strings, tables, child prototypes and 64-bit integers).
- The numeric constants are parsed into `Proto.kn` but are not printed.
- The contents of constant tables are read past but not kept.
- Debug information is skipped.

## Running the tests

```
pip install .[test]
pytest
```