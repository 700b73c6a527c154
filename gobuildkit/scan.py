"""Collect the imports of the Go files in a directory or file list."""

from __future__ import annotations

import os
from string import hexdigits
from typing import Iterable, Mapping

from gobuildkit.buildtags import match_file, should_build
from gobuildkit.readimports import ImportReadError, read_imports

_SIMPLE_ESCAPES = {
    "a": 7,
    "b": 8,
    "f": 12,
    "n": 10,
    "r": 13,
    "t": 9,
    "v": 11,
    "\\": 92,
    '"': 34,
}
_OCTAL = "01234567"
_HEX_WIDTH = {"x": 2, "u": 4, "U": 8}


class NoGoFilesError(Exception):
    """Raised when no Go source file passes the filters."""

    def __init__(self, message: str = "no Go source files") -> None:
        super().__init__(message)


def _unquote(literal: str) -> str | None:
    """Decode a Go string literal, or return None if it is not valid."""
    if len(literal) < 2 or literal[0] != literal[-1]:
        return None
    quote, body = literal[0], literal[1:-1]
    if quote == "`":
        if "`" in body:
            return None
        return body.replace("\r", "")
    if quote != '"' or "\n" in body:
        return None

    out = bytearray()
    i = 0
    while i < len(body):
        c = body[i]
        if c == '"':
            return None
        if c != "\\":
            out += c.encode("utf-8", "surrogateescape")
            i += 1
            continue
        i += 1
        if i >= len(body):
            return None
        escape = body[i]
        i += 1
        if escape in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[escape])
        elif escape in _HEX_WIDTH:
            width = _HEX_WIDTH[escape]
            digits = body[i : i + width]
            if len(digits) != width or not all(d in hexdigits for d in digits):
                return None
            i += width
            value = int(digits, 16)
            if escape == "x":
                out.append(value)
            else:
                if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                    return None
                out += chr(value).encode("utf-8")
        elif escape in _OCTAL:
            digits = body[i - 1 : i + 2]
            if len(digits) != 3 or not all(d in _OCTAL for d in digits):
                return None
            value = int(digits, 8)
            if value > 255:
                return None
            out.append(value)
            i += 2
        else:
            return None
    return out.decode("utf-8", "surrogateescape")


def scan_dir(
    directory: str | os.PathLike, tags: Mapping[str, bool] | None
) -> tuple[list[str], list[str]]:
    """Return the sorted imports and test imports of the Go files in directory.

    Files are filtered by name and by their build constraints.
    """
    tags = tags or {}
    directory = os.fspath(directory)
    with os.scandir(directory) as entries:
        names = sorted(
            entry.name
            for entry in entries
            if entry.is_file(follow_symlinks=False)
            and not entry.name.startswith("_")
            and entry.name.endswith(".go")
            and match_file(entry.name, tags)
        )
    files = [os.path.join(directory, name) for name in names]
    return _scan_files(files, tags, explicit_files=False)


def scan_files(
    files: Iterable[str | os.PathLike], tags: Mapping[str, bool] | None
) -> tuple[list[str], list[str]]:
    """Return the sorted imports and test imports of the given files.

    Build constraints are not applied, except that files importing "C"
    are left out unless the cgo tag is set.
    """
    return _scan_files(files, tags or {}, explicit_files=True)


def _scan_files(
    files: Iterable[str | os.PathLike],
    tags: Mapping[str, bool],
    explicit_files: bool,
) -> tuple[list[str], list[str]]:
    imports: set[str] = set()
    test_imports: set[str] = set()
    num_files = 0
    for file in files:
        name = os.fspath(file)
        with open(name, "rb") as stream:
            try:
                data, quoted = read_imports(stream, False)
            except (ImportReadError, OSError) as exc:
                raise ImportReadError(f"reading {name}: {exc}") from exc

        # import "C" implies the cgo tag, even for explicitly listed files.
        if '"C"' in quoted and not tags.get("cgo") and not tags.get("*"):
            continue
        if not explicit_files and not should_build(data, tags):
            continue

        num_files += 1
        target = test_imports if name.endswith("_test.go") else imports
        for literal in quoted:
            path = _unquote(literal)
            if path is not None:
                target.add(path)

    if num_files == 0:
        raise NoGoFilesError()
    return sorted(imports), sorted(test_imports)