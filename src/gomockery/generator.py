from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from .errors import GenerationError, SinkError
from .model import Import, Interface, Method
from .render import (
    collect_qualifiers,
    is_error,
    is_reference_like,
    render_param_types,
    render_result_types,
    resolve_elided,
)

MOCK_IMPORT = "github.com/stretchr/testify/mock"


@dataclass(frozen=True)
class GeneratorOptions:
    # Package clause used for out-of-package mocks.
    package: str = "mocks"
    # Generate into the interface's own package (`mock_<name>.go` beside it).
    in_package: bool = False
    # Free-form text emitted as a comment block before the package clause.
    note: str | None = None


def mock_type_name(iface: Interface, opts: GeneratorOptions) -> str:
    if opts.in_package and not iface.exported:
        return "mock" + iface.name[:1].upper() + iface.name[1:]
    return iface.name


def generate_prologue_note(note: str | None) -> str:
    if not note:
        return ""
    # CLI users pass multi-line notes as a literal `\n`.
    lines = [f"// {ln}".rstrip() for ln in note.replace("\\n", "\n").splitlines()]
    return "\n".join(lines) + "\n\n"


def collect_imports(iface: Interface) -> list[Import]:
    """Imports referenced by the interface's method signatures.

    Returned in the declaring file's import order, without duplicates, the mock
    framework, or the declaring package itself.
    """
    wanted: list[str] = []
    for m in iface.methods:
        for item in (*m.params, *m.results):
            for q in collect_qualifiers(item.type):
                if q not in wanted:
                    wanted.append(q)

    by_qualifier: dict[str, Import] = {}
    for imp in iface.imports:
        by_qualifier.setdefault(imp.qualifier, imp)

    for q in wanted:
        if q not in by_qualifier:
            raise GenerationError(f"{iface.name}: package qualifier {q!r} is not imported by {iface.path}")

    out: list[Import] = []
    for imp in iface.imports:
        if imp.qualifier not in wanted or imp in out:
            continue
        if imp.path == MOCK_IMPORT or imp.path == iface.import_path:
            continue
        out.append(imp)
    return out


def generate_prologue(iface: Interface, opts: GeneratorOptions) -> str:
    lines: list[str] = []
    if opts.in_package:
        if not iface.package:
            raise GenerationError(f"{iface.name}: package name of {iface.path} is unknown")
        lines.append(f"package {iface.package}")
        lines.append("")
    else:
        if not iface.import_path:
            raise GenerationError(f"{iface.name}: unable to figure out import path for package of {iface.path}")
        lines.append(f"package {opts.package}")
        lines.append("")
        lines.append(f'import "{iface.import_path}"')
    lines.append(f'import "{MOCK_IMPORT}"')
    lines.append("")

    imports = collect_imports(iface)
    for imp in imports:
        if imp.name:
            lines.append(f'import {imp.name} "{imp.path}"')
        else:
            lines.append(f'import "{imp.path}"')
    if imports:
        lines.append("")
    return "\n".join(lines) + "\n"


def generate_body(iface: Interface, opts: GeneratorOptions) -> str:
    """Struct declaration plus the five generated functions per method."""
    if iface.type_params:
        raise GenerationError(f"{iface.name}: generic interfaces are not supported ({iface.type_params})")

    recv = mock_type_name(iface, opts)
    local_package = None if opts.in_package else (iface.package or None)

    lines = [
        f"type {recv} struct {{",
        "\tmock.Mock",
        "}",
        "",
    ]
    for m in iface.methods:
        try:
            lines.extend(_method_lines(m, recv=recv, local_package=local_package))
        except GenerationError as e:
            raise type(e)(f"{iface.name}.{m.name}: {e}") from e
    return "\n".join(lines) + "\n"


def generate_mock(iface: Interface, opts: GeneratorOptions) -> str:
    """Generate the complete mock source file for `iface`."""
    return generate_prologue_note(opts.note) + generate_prologue(iface, opts) + generate_body(iface, opts)


def write_mock(iface: Interface, opts: GeneratorOptions, sink: BinaryIO) -> None:
    # Generate fully before touching the sink.
    data = generate_mock(iface, opts).encode("utf-8")
    try:
        sink.write(data)
        sink.flush()
    except OSError as e:
        raise SinkError(f"{iface.name}: failed to write mock: {e}") from e


def _arg_names(m: Method) -> list[str]:
    names: list[str] = []
    for i, p in enumerate(m.params):
        # `_` cannot be forwarded as a value.
        if p.name and p.name != "_":
            names.append(p.name)
        else:
            names.append(f"_a{i}")
    return names


def _check_method(m: Method) -> None:
    if not m.name:
        raise GenerationError("method without a name")
    for p in m.params[:-1]:
        if p.variadic:
            raise GenerationError(f"parameter {p.name or '?'} is variadic but not last")


def _method_lines(m: Method, *, recv: str, local_package: str | None) -> list[str]:
    _check_method(m)
    names = _arg_names(m)
    ptypes = render_param_types(m.params, local_package=local_package)
    rtypes = render_result_types(m.results, local_package=local_package)

    loose_params = ", ".join(f"{n} interface{{}}" for n in names)
    typed_params = ", ".join(f"{n} {t}" for n, t in zip(names, ptypes))
    on_args = "".join(f", {n}" for n in names)
    any_args = "".join(", mock.Anything" for _ in names)

    # Result names are dropped; the body declares `ret` and `r0..rN` itself.
    if len(rtypes) == 1:
        results_sig = " " + rtypes[0]
    elif rtypes:
        results_sig = " (" + ", ".join(rtypes) + ")"
    else:
        results_sig = ""

    lines = [
        f"func (m *{recv}) Name_{m.name}() string {{",
        f'\treturn "{m.name}"',
        "}",
        f"func (m *{recv}) MockOn_{m.name}({loose_params}) *mock.Call {{",
        f'\treturn m.Mock.On("{m.name}"{on_args})',
        "}",
        f"func (m *{recv}) MockOnTyped_{m.name}({typed_params}) *mock.Call {{",
        f'\treturn m.Mock.On("{m.name}"{on_args})',
        "}",
        f"func (m *{recv}) MockOnAny_{m.name}() *mock.Call {{",
        f'\treturn m.Mock.On("{m.name}"{any_args})',
        "}",
        f"func (m *{recv}) {m.name}({typed_params}){results_sig} {{",
    ]

    call_args = ", ".join(names)
    if not rtypes:
        lines.append(f"\tm.Called({call_args})")
        lines.append("}")
        return lines

    lines.append(f"\tret := m.Called({call_args})")
    lines.append("")

    rf_params = ", ".join(ptypes)
    forward = ", ".join(n + "..." if p.variadic else n for n, p in zip(names, m.params))
    result_exprs = resolve_elided(m.results)
    for i, (expr, rt) in enumerate(zip(result_exprs, rtypes)):
        lines.append(f"\tvar r{i} {rt}")
        lines.append(f"\tif rf, ok := ret.Get({i}).(func({rf_params}) {rt}); ok {{")
        lines.append(f"\t\tr{i} = rf({forward})")
        lines.append("\t} else {")
        if is_error(expr):
            lines.append(f"\t\tr{i} = ret.Error({i})")
        elif is_reference_like(expr):
            lines.append(f"\t\tif ret.Get({i}) != nil {{")
            lines.append(f"\t\t\tr{i} = ret.Get({i}).({rt})")
            lines.append("\t\t}")
        else:
            lines.append(f"\t\tr{i} = ret.Get({i}).({rt})")
        lines.append("\t}")
        lines.append("")

    lines.append("\treturn " + ", ".join(f"r{i}" for i in range(len(rtypes))))
    lines.append("}")
    return lines
