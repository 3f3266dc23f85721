from __future__ import annotations

from pathlib import Path

import gomockery
from gomockery.scan import find_interface


def main() -> None:
    # Requires the Go toolchain on PATH: interfaces are extracted with go/parser.
    #
    # Equivalent CLI:
    #   gomockery --name Requester --dir ./fixtures --print
    src = Path(__file__).resolve().parent / "fixtures" / "requester.go"
    iface = find_interface(gomockery.parse_file(src), "Requester")

    # Out-of-package mock (package clause `mocks`, imports the declaring package).
    print(gomockery.generate_mock(iface, gomockery.GeneratorOptions(package="mocks")))

    # Same mock generated into the declaring package.
    print(gomockery.generate_mock(iface, gomockery.GeneratorOptions(in_package=True, note="Code generated by gomockery.")))


if __name__ == "__main__":
    main()
