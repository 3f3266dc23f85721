from __future__ import annotations

import argparse
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .generator import GeneratorOptions
from .paths import default_output_dir, output_package_name

REGEX_METADATA_CHARS = "\\.+*?()|[]{}^$"

CASES = ("camel", "underscore")


@dataclass(frozen=True)
class RunConfig:
    # Interface name, or a regular expression when it contains metacharacters.
    name: str = ""
    all_interfaces: bool = False
    to_stdout: bool = False
    output: Path = field(default_factory=default_output_dir)
    root: Path = Path(".")
    recursive: bool = False
    in_package: bool = False
    case: str = "camel"
    note: str | None = None

    def __post_init__(self) -> None:
        if self.name and self.all_interfaces:
            raise ConfigError("Specify --name or --all, but not both")
        if not self.name and not self.all_interfaces:
            raise ConfigError("Use --name to specify the name of the interface or --all for all interfaces found")
        if self.case not in CASES:
            raise ConfigError(f"unknown case {self.case!r} (expected one of: {', '.join(CASES)})")
        if self.is_pattern:
            try:
                re.compile(self.name)
            except re.error as e:
                raise ConfigError("Invalid regular expression provided to --name") from e

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "RunConfig":
        output = Path(args.output) if args.output else default_output_dir()
        return cls(
            name=args.name or "",
            all_interfaces=bool(args.all),
            to_stdout=bool(args.print),
            output=output,
            root=Path(args.dir),
            recursive=bool(args.recursive),
            in_package=bool(args.inpkg),
            case=args.case,
            note=args.note or None,
        )

    @property
    def is_pattern(self) -> bool:
        return any(c in REGEX_METADATA_CHARS for c in self.name)

    @property
    def name_filter(self) -> re.Pattern[str]:
        if self.all_interfaces:
            return re.compile(".*")
        if self.is_pattern:
            return re.compile(self.name)
        return re.compile(f"^{re.escape(self.name)}$")

    @property
    def limit_one(self) -> bool:
        """An exact name stops the run after the first generated mock."""
        return bool(self.name) and not self.is_pattern

    @property
    def walk_recursive(self) -> bool:
        return self.all_interfaces or self.recursive

    def generator_options(self) -> GeneratorOptions:
        package = "mocks" if self.to_stdout else output_package_name(self.output)
        return GeneratorOptions(package=package, in_package=self.in_package, note=self.note)
