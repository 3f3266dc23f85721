from __future__ import annotations

import os
import re
from pathlib import Path

_CASE_BOUNDARY_RE = re.compile(r"(.)([A-Z])")


def default_output_dir() -> Path:
    """Return the default directory mocks are written to.

    Override with `GOMOCKERY_OUTPUT`.
    """
    override = os.environ.get("GOMOCKERY_OUTPUT")
    if override:
        return Path(override)
    return Path("mocks")


def case_name(name: str, case: str) -> str:
    """Apply the output file casing convention to an interface name."""
    if case == "underscore":
        return _CASE_BOUNDARY_RE.sub(r"\1_\2", name).lower()
    return name


def mock_file_path(*, iface_path: str | Path, name: str, case: str, output: Path, in_package: bool) -> Path:
    """Destination file for the mock of interface `name`.

    In-package mocks go beside the declaring file as `mock_<name>.go`; others go to
    `<output>/<name>.go`.
    """
    cased = case_name(name, case)
    if in_package:
        return Path(iface_path).parent / f"mock_{cased}.go"
    return Path(output) / f"{cased}.go"


def output_package_name(output: Path) -> str:
    """Package clause for out-of-package mocks: the output directory's base name."""
    return Path(output).resolve().name
