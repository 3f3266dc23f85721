from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .config import RunConfig
from .errors import GenerationError, GoMockeryError, SinkError
from .generator import GeneratorOptions, generate_mock, write_mock
from .model import Interface
from .paths import mock_file_path
from .scan import ScannedFile, scan_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    interface: Interface
    # Destination file; None when written to stdout or when generation failed.
    path: Path | None = None
    error: GoMockeryError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class GenerationReport:
    results: list[GenerationResult] = field(default_factory=list)
    skipped_files: list[ScannedFile] = field(default_factory=list)

    @property
    def generated(self) -> list[GenerationResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[GenerationResult]:
        return [r for r in self.results if not r.ok]

    @property
    def matched(self) -> bool:
        """Whether any interface matched the name filter, successful or not."""
        return bool(self.results)


def find_go_files(root: Path, *, recursive: bool) -> list[Path]:
    """Go source files under `root` in name order, sub-directories depth first.

    Entries whose name starts with `.` are skipped.
    """
    try:
        entries = sorted(Path(root).iterdir(), key=lambda p: p.name)
    except OSError:
        return []

    out: list[Path] = []
    for p in entries:
        if p.name.startswith("."):
            continue
        if p.is_dir():
            if recursive:
                out.extend(find_go_files(p, recursive=True))
            continue
        if p.suffix == ".go":
            out.append(p)
    return out


def generate_mocks(
    config: RunConfig,
    *,
    stdout: BinaryIO | None = None,
    env: dict[str, str] | None = None,
) -> GenerationReport:
    """Generate mocks for every interface under `config.root` matching the filter.

    A failure for one interface is recorded in the report and never stops the
    others. With an exact name the run stops after the first match.
    """
    report = GenerationReport()
    files = find_go_files(config.root, recursive=config.walk_recursive)
    name_filter = config.name_filter
    opts = config.generator_options()

    for sf in scan_files(files, env=env):
        if sf.error:
            logger.info("skipping %s: %s", sf.path, sf.error)
            report.skipped_files.append(sf)
            continue
        for iface in sf.interfaces:
            if not name_filter.search(iface.name):
                continue
            report.results.append(generate_one(iface, config=config, opts=opts, stdout=stdout))
            if config.limit_one:
                return report
    return report


def generate_one(
    iface: Interface,
    *,
    config: RunConfig,
    opts: GeneratorOptions,
    stdout: BinaryIO | None = None,
) -> GenerationResult:
    if config.to_stdout:
        try:
            write_mock(iface, opts, stdout or sys.stdout.buffer)
        except (GenerationError, SinkError) as e:
            logger.debug("mock generation failed for %s", iface.name, exc_info=True)
            return GenerationResult(interface=iface, error=e)
        return GenerationResult(interface=iface)

    path = mock_file_path(
        iface_path=iface.path,
        name=iface.name,
        case=config.case,
        output=config.output,
        in_package=config.in_package,
    )
    try:
        data = generate_mock(iface, opts).encode("utf-8")
    except GenerationError as e:
        logger.debug("mock generation failed for %s", iface.name, exc_info=True)
        return GenerationResult(interface=iface, error=e)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        err = SinkError(f"{iface.name}: unable to create output file {path}: {e}")
        return GenerationResult(interface=iface, error=err)
    return GenerationResult(interface=iface, path=path)
