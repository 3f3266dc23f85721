"""Render type expressions back to Go source text."""

from __future__ import annotations

from typing import Iterable, Sequence

from .errors import UnsupportedTypeError
from .model import (
    Array,
    Chan,
    ChanDir,
    Elided,
    Func,
    InterfaceLit,
    Map,
    Named,
    Param,
    Pointer,
    Result,
    Slice,
    TypeExpr,
    Unsupported,
)


# Go predeclared type identifiers; these are never package-qualified.
PREDECLARED_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "comparable",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)


def resolve_elided(items: Sequence[Param | Result]) -> list[TypeExpr]:
    """Return the concrete type of each item of one parameter (or result) group.

    An `Elided` type takes the type of the nearest preceding item.
    """
    out: list[TypeExpr] = []
    last: TypeExpr | None = None
    for i, item in enumerate(items):
        t = item.type
        if isinstance(t, Elided):
            if last is None:
                name = item.name or f"#{i}"
                raise UnsupportedTypeError(f"{name}: elided type with no preceding type")
            t = last
        out.append(t)
        last = t
    return out


def render(expr: TypeExpr, *, local_package: str | None = None) -> str:
    """Render `expr` as Go source.

    With `local_package` set, unqualified non-predeclared names are qualified with
    it (used when the mock lives outside the declaring package).
    """
    if isinstance(expr, Named):
        if expr.qualifier:
            return f"{expr.qualifier}.{expr.name}"
        if local_package and expr.name not in PREDECLARED_TYPES:
            return f"{local_package}.{expr.name}"
        return expr.name
    if isinstance(expr, Pointer):
        return "*" + render(expr.elem, local_package=local_package)
    if isinstance(expr, Slice):
        return "[]" + render(expr.elem, local_package=local_package)
    if isinstance(expr, Array):
        if not expr.length:
            raise UnsupportedTypeError("array type without a length")
        return f"[{expr.length}]" + render(expr.elem, local_package=local_package)
    if isinstance(expr, Map):
        key = render(expr.key, local_package=local_package)
        value = render(expr.value, local_package=local_package)
        return f"map[{key}]{value}"
    if isinstance(expr, Chan):
        inner = render(expr.elem, local_package=local_package)
        if expr.dir == ChanDir.SEND:
            return f"chan<- {inner}"
        if expr.dir == ChanDir.RECV:
            return f"<-chan {inner}"
        # `chan <-chan T` would parse as `chan<- (chan T)`.
        if isinstance(expr.elem, Chan) and expr.elem.dir == ChanDir.RECV:
            return f"chan ({inner})"
        return f"chan {inner}"
    if isinstance(expr, Func):
        return "func" + render_signature(expr.params, expr.results, local_package=local_package)
    if isinstance(expr, InterfaceLit):
        if not expr.methods:
            return "interface{}"
        parts = [
            m.name + render_signature(m.params, m.results, local_package=local_package)
            for m in expr.methods
        ]
        return "interface{ " + "; ".join(parts) + " }"
    if isinstance(expr, Elided):
        raise UnsupportedTypeError("elided type outside of a parameter list")
    if isinstance(expr, Unsupported):
        raise UnsupportedTypeError(f"unsupported type expression: {expr.text}")
    raise UnsupportedTypeError(f"unknown type expression: {expr!r}")


def render_param_types(params: Sequence[Param], *, local_package: str | None = None) -> list[str]:
    """Render the types of one parameter list, variadic element written as `...T`."""
    types = resolve_elided(params)
    out: list[str] = []
    for i, (p, t) in enumerate(zip(params, types)):
        s = render(t, local_package=local_package)
        if p.variadic:
            if i != len(params) - 1:
                raise UnsupportedTypeError(f"{p.name or f'#{i}'}: only the final parameter may be variadic")
            s = "..." + s
        out.append(s)
    return out


def render_result_types(results: Sequence[Result], *, local_package: str | None = None) -> list[str]:
    return [render(t, local_package=local_package) for t in resolve_elided(results)]


def render_signature(
    params: Sequence[Param], results: Sequence[Result], *, local_package: str | None = None
) -> str:
    """Render `(P1, P2) R` / `(P1) (R1, R2)` without parameter or result names."""
    s = "(" + ", ".join(render_param_types(params, local_package=local_package)) + ")"
    rs = render_result_types(results, local_package=local_package)
    if len(rs) == 1:
        s += " " + rs[0]
    elif rs:
        s += " (" + ", ".join(rs) + ")"
    return s


def is_error(expr: TypeExpr) -> bool:
    return isinstance(expr, Named) and expr.qualifier is None and expr.name == "error"


def is_reference_like(expr: TypeExpr) -> bool:
    """Whether a value of this type may be nil.

    Named types are treated as values except the predeclared `any`; the
    declaration behind a name is not resolved.
    """
    if isinstance(expr, (Pointer, Slice, Array, Map, Chan, Func, InterfaceLit)):
        return True
    if isinstance(expr, Named):
        return expr.qualifier is None and expr.name == "any"
    raise UnsupportedTypeError(f"cannot classify type expression: {expr!r}")


def collect_qualifiers(expr: TypeExpr) -> list[str]:
    """Package qualifiers referenced anywhere in `expr`, in first-seen order."""
    seen: list[str] = []
    _collect(expr, seen)
    return seen


def _collect(expr: TypeExpr, seen: list[str]) -> None:
    if isinstance(expr, Named):
        if expr.qualifier and expr.qualifier not in seen:
            seen.append(expr.qualifier)
    elif isinstance(expr, (Pointer, Slice, Array, Chan)):
        _collect(expr.elem, seen)
    elif isinstance(expr, Map):
        _collect(expr.key, seen)
        _collect(expr.value, seen)
    elif isinstance(expr, Func):
        _collect_all((p.type for p in expr.params), seen)
        _collect_all((r.type for r in expr.results), seen)
    elif isinstance(expr, InterfaceLit):
        for m in expr.methods:
            _collect_all((p.type for p in m.params), seen)
            _collect_all((r.type for r in m.results), seen)


def _collect_all(exprs: Iterable[TypeExpr], seen: list[str]) -> None:
    for e in exprs:
        _collect(e, seen)
