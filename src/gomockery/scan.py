from __future__ import annotations

import json
import logging
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from .errors import ExtractionError, InterfaceNotFoundError, ToolchainError
from .model import (
    Array,
    Chan,
    ChanDir,
    Elided,
    Func,
    Import,
    Interface,
    InterfaceLit,
    Map,
    Method,
    Named,
    Param,
    Pointer,
    Result,
    Slice,
    TypeExpr,
    Unsupported,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannedFile:
    path: str
    interfaces: list[Interface] = field(default_factory=list)
    # Set when the file could not be parsed; such files are skipped.
    error: str | None = None


def scan_files(paths: Sequence[Path], *, env: dict[str, str] | None = None) -> list[ScannedFile]:
    """Extract interface declarations from Go source files.

    Parsing is done by a small Go program using `go/parser`, so the result follows
    the Go grammar exactly. All files are handled by one scanner process.
    """
    if not paths:
        return []

    with tempfile.TemporaryDirectory(prefix="gomockery-goscan-") as td:
        scan_dir = Path(td)
        (scan_dir / "go.mod").write_text(
            "\n".join(
                [
                    "module gomockery.goscan",
                    "",
                    "go 1.18",
                    "",
                ]
            ),
            encoding="utf-8",
        )
        (scan_dir / "main.go").write_text(_scanner_go_source(), encoding="utf-8")

        stdin = "".join(f"{Path(p).resolve()}\n" for p in paths)
        try:
            proc = subprocess.run(
                ["go", "run", "."],
                cwd=str(scan_dir),
                env=env,
                input=stdin.encode("utf-8"),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolchainError(
                "Go toolchain not found (`go` is missing from PATH). "
                "Install Go and ensure `go` is available on PATH."
            ) from e

        if proc.returncode != 0:
            stderr = (proc.stderr or b"").decode("utf-8", errors="replace")
            raise ExtractionError(f"go scan failed\n{stderr}")

        return decode_scan_output(proc.stdout or b"")


def parse_file(path: Path, *, env: dict[str, str] | None = None) -> list[Interface]:
    """Interfaces declared in a single file; raises if the file cannot be parsed."""
    scanned = scan_files([path], env=env)
    if not scanned:
        return []
    sf = scanned[0]
    if sf.error:
        raise ExtractionError(f"{sf.path}: {sf.error}")
    return sf.interfaces


def find_interface(interfaces: Sequence[Interface], name: str) -> Interface:
    for iface in interfaces:
        if iface.name == name:
            return iface
    raise InterfaceNotFoundError(f"interface {name} not found")


def decode_scan_output(raw: bytes) -> list[ScannedFile]:
    text = raw.decode("utf-8", errors="replace")
    # The toolchain may print notices before the payload.
    start = text.find("{")
    if start < 0:
        raise ExtractionError(f"failed to parse go scan output\n{text}")
    try:
        obj = json.loads(text[start:])
    except Exception as e:  # noqa: BLE001
        raise ExtractionError(f"failed to parse go scan output: {e}\n{text}") from e

    out: list[ScannedFile] = []
    for item in obj.get("files") or []:
        if not isinstance(item, dict) or not isinstance(item.get("path"), str):
            continue
        path = item["path"]
        if item.get("error"):
            out.append(ScannedFile(path=path, error=str(item["error"])))
            continue
        try:
            interfaces = _decode_file(path, item)
        except (ExtractionError, KeyError, TypeError, ValueError) as e:
            out.append(ScannedFile(path=path, error=f"malformed scan result: {e}"))
            continue
        out.append(ScannedFile(path=path, interfaces=interfaces))
    return out


def _decode_file(path: str, item: dict[str, Any]) -> list[Interface]:
    package = str(item.get("package") or "")
    import_path = str(item.get("import_path") or "")
    imports = tuple(
        Import(path=imp["path"], name=imp.get("name") or None)
        for imp in item.get("imports") or []
    )

    raw = [x for x in item.get("interfaces") or [] if isinstance(x, dict)]
    declared: dict[str, dict[str, Any]] = {x["name"]: x for x in raw}

    out: list[Interface] = []
    for x in raw:
        methods = _flatten_methods(path, x, declared, visiting=(x["name"],))
        out.append(
            Interface(
                name=x["name"],
                path=path,
                methods=tuple(methods),
                package=package,
                import_path=import_path,
                imports=imports,
                type_params=str(x.get("type_params") or ""),
            )
        )
    return out


def _flatten_methods(
    path: str,
    decl: dict[str, Any],
    declared: dict[str, dict[str, Any]],
    *,
    visiting: tuple[str, ...],
) -> list[Method]:
    methods = [_decode_method(m) for m in decl.get("methods") or []]
    for embed in decl.get("embeds") or []:
        name = embed.get("name") if embed.get("kind") == "named" else None
        if name and not embed.get("qualifier") and name in declared and name not in visiting:
            inner = _flatten_methods(path, declared[name], declared, visiting=(*visiting, name))
            methods.extend(inner)
            continue
        if name == "error" and not embed.get("qualifier") and name not in declared:
            methods.append(Method("Error", (), (Result(None, Named("string")),)))
            continue
        shown = embed.get("text") or ".".join(x for x in (embed.get("qualifier"), name) if x)
        logger.warning("%s: embedded %s in %s is not expanded", path, shown or "?", decl["name"])

    seen: set[str] = set()
    unique: list[Method] = []
    for m in methods:
        if m.name in seen:
            continue
        seen.add(m.name)
        unique.append(m)
    return unique


def _decode_method(obj: dict[str, Any]) -> Method:
    return Method(
        name=obj["name"],
        params=_decode_params(obj.get("params")),
        results=_decode_results(obj.get("results")),
    )


def _decode_params(fields: list[dict[str, Any]] | None) -> tuple[Param, ...]:
    out: list[Param] = []
    for f in fields or []:
        t = _decode_type(f.get("type"))
        variadic = bool(f.get("variadic"))
        # `a, b T` is one field; later names take the elided type.
        names = f.get("names") or [None]
        for i, n in enumerate(names):
            out.append(Param(name=n, type=t if i == 0 else Elided(), variadic=variadic))
    return tuple(out)


def _decode_results(fields: list[dict[str, Any]] | None) -> tuple[Result, ...]:
    out: list[Result] = []
    for f in fields or []:
        t = _decode_type(f.get("type"))
        names = f.get("names") or [None]
        for i, n in enumerate(names):
            out.append(Result(name=n, type=t if i == 0 else Elided()))
    return tuple(out)


def _decode_type(obj: Any) -> TypeExpr:
    if not isinstance(obj, dict):
        raise ExtractionError(f"malformed type expression: {obj!r}")
    kind = obj.get("kind")
    if kind == "named":
        return Named(name=obj["name"], qualifier=obj.get("qualifier") or None)
    if kind == "pointer":
        return Pointer(elem=_decode_type(obj.get("elem")))
    if kind == "slice":
        return Slice(elem=_decode_type(obj.get("elem")))
    if kind == "array":
        return Array(length=str(obj.get("len") or ""), elem=_decode_type(obj.get("elem")))
    if kind == "map":
        return Map(key=_decode_type(obj.get("key")), value=_decode_type(obj.get("value")))
    if kind == "chan":
        return Chan(dir=ChanDir(obj.get("dir") or "both"), elem=_decode_type(obj.get("elem")))
    if kind == "func":
        return Func(params=_decode_params(obj.get("params")), results=_decode_results(obj.get("results")))
    if kind == "interface":
        return InterfaceLit(methods=tuple(_decode_method(m) for m in obj.get("methods") or []))
    if kind == "unsupported":
        return Unsupported(text=str(obj.get("text") or ""))
    raise ExtractionError(f"unknown type kind: {kind!r}")


def _scanner_go_source() -> str:
    # Keep this file stdlib-only so `go run` doesn't need network access.
    return r'''
package main

import (
	"bufio"
	"bytes"
	"encoding/json"
	"fmt"
	"go/ast"
	"go/parser"
	"go/token"
	"os"
	"os/exec"
	"path/filepath"
	"strconv"
	"strings"
)

type outType struct {
	Kind      string      `json:"kind"`
	Qualifier string      `json:"qualifier,omitempty"`
	Name      string      `json:"name,omitempty"`
	Len       string      `json:"len,omitempty"`
	Dir       string      `json:"dir,omitempty"`
	Elem      *outType    `json:"elem,omitempty"`
	Key       *outType    `json:"key,omitempty"`
	Value     *outType    `json:"value,omitempty"`
	Params    []outField  `json:"params,omitempty"`
	Results   []outField  `json:"results,omitempty"`
	Methods   []outMethod `json:"methods,omitempty"`
	Text      string      `json:"text,omitempty"`
}

type outField struct {
	Names    []string `json:"names"`
	Type     *outType `json:"type"`
	Variadic bool     `json:"variadic,omitempty"`
}

type outMethod struct {
	Name    string     `json:"name"`
	Params  []outField `json:"params"`
	Results []outField `json:"results"`
}

type outInterface struct {
	Name       string      `json:"name"`
	TypeParams string      `json:"type_params,omitempty"`
	Methods    []outMethod `json:"methods"`
	Embeds     []*outType  `json:"embeds,omitempty"`
}

type outImport struct {
	Name string `json:"name,omitempty"`
	Path string `json:"path"`
}

type outFile struct {
	Path       string         `json:"path"`
	Error      string         `json:"error,omitempty"`
	Package    string         `json:"package,omitempty"`
	ImportPath string         `json:"import_path,omitempty"`
	Imports    []outImport    `json:"imports,omitempty"`
	Interfaces []outInterface `json:"interfaces,omitempty"`
}

type outObj struct {
	Files []outFile `json:"files"`
}

type scanner struct {
	fset        *token.FileSet
	src         []byte
	importPaths map[string]string
}

func main() {
	s := &scanner{importPaths: map[string]string{}}
	out := outObj{Files: []outFile{}}

	in := bufio.NewScanner(os.Stdin)
	in.Buffer(make([]byte, 0, 64*1024), 1024*1024)
	for in.Scan() {
		path := strings.TrimSpace(in.Text())
		if path == "" {
			continue
		}
		out.Files = append(out.Files, s.scanFile(path))
	}
	if err := in.Err(); err != nil {
		fmt.Fprintln(os.Stderr, err.Error())
		os.Exit(1)
	}

	enc := json.NewEncoder(os.Stdout)
	enc.SetEscapeHTML(false)
	if err := enc.Encode(out); err != nil {
		fmt.Fprintln(os.Stderr, err.Error())
		os.Exit(1)
	}
}

func (s *scanner) scanFile(path string) outFile {
	out := outFile{Path: path}
	src, err := os.ReadFile(path)
	if err != nil {
		out.Error = err.Error()
		return out
	}
	fset := token.NewFileSet()
	af, err := parser.ParseFile(fset, path, src, 0)
	if err != nil {
		out.Error = err.Error()
		return out
	}
	s.fset = fset
	s.src = src

	out.Package = af.Name.Name
	out.ImportPath = s.importPath(filepath.Dir(path))
	for _, imp := range af.Imports {
		p, err := strconv.Unquote(imp.Path.Value)
		if err != nil {
			continue
		}
		oi := outImport{Path: p}
		if imp.Name != nil {
			oi.Name = imp.Name.Name
		}
		out.Imports = append(out.Imports, oi)
	}

	for _, decl := range af.Decls {
		gd, ok := decl.(*ast.GenDecl)
		if !ok || gd.Tok != token.TYPE {
			continue
		}
		for _, spec := range gd.Specs {
			ts, ok := spec.(*ast.TypeSpec)
			if !ok || ts.Name == nil {
				continue
			}
			it, ok := ts.Type.(*ast.InterfaceType)
			if !ok {
				continue
			}
			methods, embeds := s.methods(it)
			oi := outInterface{Name: ts.Name.Name, Methods: methods, Embeds: embeds}
			if ts.TypeParams != nil {
				oi.TypeParams = s.text(ts.TypeParams)
			}
			out.Interfaces = append(out.Interfaces, oi)
		}
	}
	return out
}

func (s *scanner) methods(it *ast.InterfaceType) ([]outMethod, []*outType) {
	methods := []outMethod{}
	embeds := []*outType{}
	if it.Methods == nil {
		return methods, embeds
	}
	for _, f := range it.Methods.List {
		if ft, ok := f.Type.(*ast.FuncType); ok && len(f.Names) > 0 {
			for _, n := range f.Names {
				methods = append(methods, outMethod{
					Name:    n.Name,
					Params:  s.fields(ft.Params),
					Results: s.fields(ft.Results),
				})
			}
			continue
		}
		embeds = append(embeds, s.convert(f.Type))
	}
	return methods, embeds
}

func (s *scanner) fields(fl *ast.FieldList) []outField {
	out := []outField{}
	if fl == nil {
		return out
	}
	for _, f := range fl.List {
		names := []string{}
		for _, n := range f.Names {
			names = append(names, n.Name)
		}
		typ := f.Type
		variadic := false
		if el, ok := typ.(*ast.Ellipsis); ok {
			variadic = true
			typ = el.Elt
		}
		out = append(out, outField{Names: names, Type: s.convert(typ), Variadic: variadic})
	}
	return out
}

func (s *scanner) convert(e ast.Expr) *outType {
	switch t := e.(type) {
	case *ast.Ident:
		return &outType{Kind: "named", Name: t.Name}
	case *ast.SelectorExpr:
		if x, ok := t.X.(*ast.Ident); ok {
			return &outType{Kind: "named", Qualifier: x.Name, Name: t.Sel.Name}
		}
	case *ast.StarExpr:
		return &outType{Kind: "pointer", Elem: s.convert(t.X)}
	case *ast.ArrayType:
		if t.Len == nil {
			return &outType{Kind: "slice", Elem: s.convert(t.Elt)}
		}
		return &outType{Kind: "array", Len: s.text(t.Len), Elem: s.convert(t.Elt)}
	case *ast.MapType:
		return &outType{Kind: "map", Key: s.convert(t.Key), Value: s.convert(t.Value)}
	case *ast.ChanType:
		dir := "both"
		switch t.Dir {
		case ast.SEND:
			dir = "send"
		case ast.RECV:
			dir = "recv"
		}
		return &outType{Kind: "chan", Dir: dir, Elem: s.convert(t.Value)}
	case *ast.FuncType:
		return &outType{Kind: "func", Params: s.fields(t.Params), Results: s.fields(t.Results)}
	case *ast.InterfaceType:
		methods, embeds := s.methods(t)
		if len(embeds) > 0 {
			break
		}
		return &outType{Kind: "interface", Methods: methods}
	case *ast.ParenExpr:
		return s.convert(t.X)
	}
	return &outType{Kind: "unsupported", Text: s.text(e)}
}

func (s *scanner) text(n ast.Node) string {
	start := s.fset.Position(n.Pos()).Offset
	end := s.fset.Position(n.End()).Offset
	if start < 0 || end > len(s.src) || start > end {
		return ""
	}
	return string(s.src[start:end])
}

func (s *scanner) importPath(dir string) string {
	if p, ok := s.importPaths[dir]; ok {
		return p
	}
	p := ""
	cmd := exec.Command("go", "list", "-e", "-f", "{{.ImportPath}}", ".")
	cmd.Dir = dir
	var buf bytes.Buffer
	cmd.Stdout = &buf
	if err := cmd.Run(); err == nil {
		p = strings.TrimSpace(buf.String())
	}
	if p == "" || p == "." || strings.HasPrefix(p, "_") {
		p = gopathImportPath(dir)
	}
	s.importPaths[dir] = p
	return p
}

func gopathImportPath(dir string) string {
	abs, err := filepath.Abs(dir)
	if err != nil {
		return ""
	}
	gopath := os.Getenv("GOPATH")
	if gopath == "" {
		home, _ := os.UserHomeDir()
		gopath = filepath.Join(home, "go")
	}
	for _, root := range filepath.SplitList(gopath) {
		rel, err := filepath.Rel(filepath.Join(root, "src"), abs)
		if err == nil && rel != "." && !strings.HasPrefix(rel, "..") {
			return filepath.ToSlash(rel)
		}
	}
	return ""
}
'''
