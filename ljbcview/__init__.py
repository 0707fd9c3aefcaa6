"""Reader and text viewer for LuaJIT 2.0 bytecode files."""

__version__ = "0.1.0"
__all__ = ["bytecode", "cli", "formatting", "reader"]