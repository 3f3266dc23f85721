from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from gomockery.errors import ExtractionError, InterfaceNotFoundError, ToolchainError
from gomockery.model import (
    Array,
    Chan,
    ChanDir,
    Elided,
    Func,
    Import,
    InterfaceLit,
    Method,
    Named,
    Pointer,
    Result,
    Slice,
    Unsupported,
)


def _named(name, qualifier=None):  # noqa: ANN001
    t = {"kind": "named", "name": name}
    if qualifier:
        t["qualifier"] = qualifier
    return t


def _field(type_, *names, variadic=False):  # noqa: ANN001
    return {"names": list(names), "type": type_, "variadic": variadic}


def _payload() -> dict:
    return {
        "files": [
            {
                "path": "/go/src/example.com/fixtures/requester.go",
                "package": "fixtures",
                "import_path": "example.com/fixtures",
                "imports": [{"path": "net/http"}, {"name": "h2", "path": "golang.org/x/net/http2"}],
                "interfaces": [
                    {
                        "name": "Requester",
                        "methods": [
                            {
                                "name": "Get",
                                "params": [_field(_named("string"), "path", "url")],
                                "results": [_field(_named("Response", "http")), _field(_named("error"))],
                            },
                            {
                                "name": "Input",
                                "params": [],
                                "results": [_field({"kind": "chan", "dir": "send", "elem": _named("bool")})],
                            },
                        ],
                    },
                    {
                        "name": "Closer",
                        "methods": [{"name": "Close", "params": [], "results": [_field(_named("error"))]}],
                    },
                    {
                        "name": "RequestCloser",
                        "methods": [
                            {
                                "name": "Do",
                                "params": [
                                    _field(_named("string"), "format"),
                                    _field({"kind": "interface"}, "args", variadic=True),
                                ],
                                "results": [],
                            }
                        ],
                        "embeds": [_named("Closer"), _named("Reader", "io")],
                    },
                ],
            },
            {"path": "/go/src/example.com/fixtures/broken.go", "error": "broken.go:1:1: expected 'package'"},
        ]
    }


def test_decode_scan_output_builds_model():
    from gomockery.scan import decode_scan_output

    files = decode_scan_output(json.dumps(_payload()).encode("utf-8"))
    assert [f.path for f in files] == [
        "/go/src/example.com/fixtures/requester.go",
        "/go/src/example.com/fixtures/broken.go",
    ]

    ok, broken = files
    assert ok.error is None
    assert broken.error is not None and broken.interfaces == []

    req = ok.interfaces[0]
    assert req.name == "Requester"
    assert req.package == "fixtures"
    assert req.import_path == "example.com/fixtures"
    assert req.imports == (Import("net/http"), Import("golang.org/x/net/http2", name="h2"))
    assert req.imports[1].qualifier == "h2"

    get = req.methods[0]
    assert [(p.name, p.type) for p in get.params] == [("path", Named("string")), ("url", Elided())]
    assert [r.type for r in get.results] == [Named("Response", "http"), Named("error")]
    assert req.methods[1].results[0].type == Chan(ChanDir.SEND, Named("bool"))


def test_decode_flattens_same_file_embeds(caplog):
    from gomockery.scan import decode_scan_output

    with caplog.at_level("WARNING", logger="gomockery.scan"):
        files = decode_scan_output(json.dumps(_payload()).encode("utf-8"))

    rc = files[0].interfaces[2]
    assert [m.name for m in rc.methods] == ["Do", "Close"]
    assert rc.methods[0].params[1].variadic is True
    assert rc.methods[0].params[1].type == InterfaceLit()
    assert "io.Reader" in caplog.text


def test_decode_embed_cycles_terminate():
    from gomockery.scan import decode_scan_output

    payload = {
        "files": [
            {
                "path": "/x/a.go",
                "package": "a",
                "interfaces": [
                    {"name": "A", "methods": [{"name": "M", "params": [], "results": []}], "embeds": [_named("B")]},
                    {"name": "B", "methods": [{"name": "M", "params": [], "results": []}], "embeds": [_named("A")]},
                ],
            }
        ]
    }
    (f,) = decode_scan_output(json.dumps(payload).encode("utf-8"))
    assert [m.name for m in f.interfaces[0].methods] == ["M"]


def test_decode_nested_types():
    from gomockery.scan import decode_scan_output

    func_t = {
        "kind": "func",
        "params": [_field({"kind": "slice", "elem": _named("int")})],
        "results": [_field({"kind": "array", "len": "N*2", "elem": {"kind": "pointer", "elem": _named("T")}}, "a", "b")],
    }
    payload = {
        "files": [
            {
                "path": "/x/a.go",
                "package": "a",
                "interfaces": [
                    {
                        "name": "A",
                        "methods": [
                            {
                                "name": "M",
                                "params": [
                                    _field(func_t, "f"),
                                    _field({"kind": "unsupported", "text": "struct{}"}, "s"),
                                ],
                                "results": [],
                            }
                        ],
                    }
                ],
            }
        ]
    }
    (f,) = decode_scan_output(json.dumps(payload).encode("utf-8"))
    params = f.interfaces[0].methods[0].params
    fn = params[0].type
    assert isinstance(fn, Func)
    assert fn.params[0].type == Slice(Named("int"))
    assert fn.results[0].type == Array("N*2", Pointer(Named("T")))
    assert fn.results[1].type == Elided()
    assert params[1].type == Unsupported("struct{}")


def test_decode_unknown_kind_marks_file_as_failed():
    from gomockery.scan import decode_scan_output

    payload = {
        "files": [
            {
                "path": "/x/a.go",
                "package": "a",
                "interfaces": [
                    {
                        "name": "A",
                        "methods": [{"name": "M", "params": [_field({"kind": "tuple"}, "x")], "results": []}],
                    }
                ],
            }
        ]
    }
    (f,) = decode_scan_output(json.dumps(payload).encode("utf-8"))
    assert f.error is not None
    assert "tuple" in f.error


def test_decode_tolerates_toolchain_noise_before_payload():
    from gomockery.scan import decode_scan_output

    raw = b"\x88\x00go: downloading nothing\n" + json.dumps({"files": []}).encode("utf-8")
    assert decode_scan_output(raw) == []


def test_decode_rejects_garbage():
    from gomockery.scan import decode_scan_output

    with pytest.raises(ExtractionError):
        decode_scan_output(b"panic: boom")
    with pytest.raises(ExtractionError):
        decode_scan_output(b"{not json")


def test_scan_files_feeds_paths_on_stdin(monkeypatch, tmp_path: Path):
    from gomockery.scan import scan_files

    seen = {}

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        seen["cmd"] = cmd
        seen["input"] = kwargs["input"]
        assert (Path(kwargs["cwd"]) / "main.go").exists()
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout=json.dumps(_payload()).encode("utf-8"), stderr=b"")

    monkeypatch.setattr(subprocess, "run", fake_run)

    src = tmp_path / "requester.go"
    src.write_text("package fixtures\n", encoding="utf-8")
    files = scan_files([src])

    assert seen["cmd"] == ["go", "run", "."]
    assert seen["input"] == f"{src.resolve()}\n".encode("utf-8")
    assert len(files) == 2


def test_scan_files_without_paths_does_not_run_go(monkeypatch):
    from gomockery.scan import scan_files

    def fake_run(*args, **kwargs):  # noqa: ANN001
        raise AssertionError("should not run")

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert scan_files([]) == []


def test_scan_missing_go_raises_toolchain_error(monkeypatch, tmp_path: Path):
    from gomockery.scan import scan_files

    def fake_run(*args, **kwargs):  # noqa: ANN001
        raise FileNotFoundError("go")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ToolchainError, match=r"Go toolchain not found"):
        scan_files([tmp_path / "a.go"])


def test_scan_process_failure_raises_extraction_error(monkeypatch, tmp_path: Path):
    from gomockery.scan import scan_files

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(args=cmd, returncode=1, stdout=b"", stderr=b"build failed")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ExtractionError, match="build failed"):
        scan_files([tmp_path / "a.go"])


def test_parse_file_raises_for_unparseable_file(monkeypatch, tmp_path: Path):
    from gomockery.scan import parse_file

    payload = {"files": [{"path": str(tmp_path / "a.go"), "error": "expected 'package'"}]}

    def fake_run(cmd, **kwargs):  # noqa: ANN001
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout=json.dumps(payload).encode("utf-8"), stderr=b"")

    monkeypatch.setattr(subprocess, "run", fake_run)

    with pytest.raises(ExtractionError, match="expected 'package'"):
        parse_file(tmp_path / "a.go")


def test_find_interface():
    from gomockery.scan import decode_scan_output, find_interface

    (ok, _broken) = decode_scan_output(json.dumps(_payload()).encode("utf-8"))
    assert find_interface(ok.interfaces, "Closer").name == "Closer"
    with pytest.raises(InterfaceNotFoundError, match="Missing"):
        find_interface(ok.interfaces, "Missing")


def test_decode_expands_embedded_error():
    from gomockery.scan import decode_scan_output

    payload = {
        "files": [
            {
                "path": "/x/a.go",
                "package": "a",
                "interfaces": [
                    {
                        "name": "Failure",
                        "methods": [{"name": "Code", "params": [], "results": [_field(_named("int"))]}],
                        "embeds": [_named("error")],
                    },
                ],
            }
        ]
    }
    (f,) = decode_scan_output(json.dumps(payload).encode("utf-8"))
    (iface,) = f.interfaces
    assert [m.name for m in iface.methods] == ["Code", "Error"]
    assert iface.methods[1] == Method("Error", (), (Result(None, Named("string")),))


def test_scanner_import_path_lookup_tolerates_broken_siblings():
    from gomockery.scan import _scanner_go_source

    assert 'exec.Command("go", "list", "-e", "-f", "{{.ImportPath}}", ".")' in _scanner_go_source()
