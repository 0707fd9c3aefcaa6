[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ljbcview"
version = "0.1.0"
description = "Inspect LuaJIT 2.0 bytecode files: prototypes, constants and instructions"
requires-python = ">=3.10"
dependencies = []
keywords = ["luajit", "lua", "bytecode", "disassembler", "reverse-engineering"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ljbcview = "ljbcview.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ljbcview"]

[tool.pytest.ini_options]
addopts = "-ra"
