"""gomockery: generate testify mocks for Go interfaces."""

from __future__ import annotations

from . import errors
from .generator import GeneratorOptions, generate_mock
from .render import render
from .scan import parse_file, scan_files
from .walk import generate_mocks

__all__ = [
    "GeneratorOptions",
    "errors",
    "generate_mock",
    "generate_mocks",
    "parse_file",
    "render",
    "scan_files",
]
