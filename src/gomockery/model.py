from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class ChanDir(str, Enum):
    SEND = "send"  # chan<- T
    RECV = "recv"  # <-chan T
    BOTH = "both"  # chan T


@dataclass(frozen=True)
class Named:
    name: str
    qualifier: str | None = None


@dataclass(frozen=True)
class Pointer:
    elem: "TypeExpr"


@dataclass(frozen=True)
class Slice:
    elem: "TypeExpr"


@dataclass(frozen=True)
class Array:
    # Length exactly as written in source (`2`, `0x10`, `N*2`, ...).
    length: str
    elem: "TypeExpr"


@dataclass(frozen=True)
class Map:
    key: "TypeExpr"
    value: "TypeExpr"


@dataclass(frozen=True)
class Chan:
    dir: ChanDir
    elem: "TypeExpr"


@dataclass(frozen=True)
class Func:
    params: tuple["Param", ...] = ()
    results: tuple["Result", ...] = ()


@dataclass(frozen=True)
class InterfaceLit:
    """An inline `interface{...}` type."""

    methods: tuple["Method", ...] = ()


@dataclass(frozen=True)
class Elided:
    """Same type as the preceding parameter of the group (`a, b string`)."""


@dataclass(frozen=True)
class Unsupported:
    """A type shape outside the renderable grammar, kept with its source text."""

    text: str


TypeExpr = Union[Named, Pointer, Slice, Array, Map, Chan, Func, InterfaceLit, Elided, Unsupported]


@dataclass(frozen=True)
class Param:
    name: str | None
    type: TypeExpr
    variadic: bool = False


@dataclass(frozen=True)
class Result:
    name: str | None
    type: TypeExpr


@dataclass(frozen=True)
class Method:
    name: str
    params: tuple[Param, ...] = ()
    results: tuple[Result, ...] = ()


@dataclass(frozen=True)
class Import:
    path: str
    name: str | None = None  # explicit alias from the import spec

    @property
    def qualifier(self) -> str:
        """Identifier the importing file uses to refer to this package."""
        if self.name:
            return self.name
        return default_package_name(self.path)


@dataclass(frozen=True)
class Interface:
    name: str
    path: str
    methods: tuple[Method, ...] = ()
    package: str = ""
    # Import path of the declaring package; empty when it could not be determined.
    import_path: str = ""
    imports: tuple[Import, ...] = ()
    # Source text of the type parameter list for generic interfaces.
    type_params: str = ""

    @property
    def exported(self) -> bool:
        return self.name[:1].isupper()


def default_package_name(import_path: str) -> str:
    """Best-effort package name for an unaliased import path.

    Handles major-version suffix directories (`.../foo/v2`) and gopkg.in style
    paths (`gopkg.in/yaml.v3`).
    """
    parts = [p for p in import_path.split("/") if p]
    if not parts:
        return ""
    last = parts[-1]
    if len(parts) > 1 and last[:1] == "v" and last[1:].isdigit():
        last = parts[-2]
    if import_path.startswith("gopkg.in/") and ".v" in last:
        last = last.split(".v", 1)[0]
    if last.startswith("go-"):
        last = last[3:]
    return last.replace("-", "_").replace(".", "_")
