"""Build constraints: '// +build' lines and GOOS/GOARCH file-name suffixes."""

from __future__ import annotations

import unicodedata
from typing import Iterator, Mapping

_GOOS_LIST = (
    "aix android darwin dragonfly freebsd hurd illumos ios js linux nacl "
    "netbsd openbsd plan9 solaris windows zos"
)
_UNIX_LIST = (
    "aix android darwin dragonfly freebsd hurd illumos ios linux netbsd "
    "openbsd solaris"
)
_GOARCH_LIST = (
    "386 amd64 amd64p32 arm armbe arm64 arm64be loong64 mips mipsle mips64 "
    "mips64le mips64p32 mips64p32le ppc ppc64 ppc64le riscv riscv64 s390 "
    "s390x sparc sparc64 wasm"
)

KNOWN_OS = frozenset(_GOOS_LIST.split())
UNIX_OS = frozenset(_UNIX_LIST.split())
KNOWN_ARCH = frozenset(_GOARCH_LIST.split())

Tags = Mapping[str, bool]


def _lines(content: bytes) -> Iterator[tuple[bytes, int]]:
    """Yield each '\\n'-terminated line and the offset just past it."""
    pos = 0
    while pos < len(content):
        newline = content.find(b"\n", pos)
        if newline < 0:
            yield content[pos:], len(content)
            return
        yield content[pos:newline], newline + 1
        pos = newline + 1


def should_build(content: bytes, tags: Tags | None) -> bool:
    """Report whether the '// +build' lines in the file's header accept tags.

    Only the leading run of '//' comments and blank lines counts, and it
    must be followed by a blank line. If tags["*"] is true, every tag but
    "ignore" counts as both present and absent.
    """
    tags = tags or {}
    content = bytes(content)

    end = 0
    for line, offset in _lines(content):
        line = line.strip()
        if not line:
            end = offset
            continue
        if not line.startswith(b"//"):
            break

    allowed = True
    for line, _ in _lines(content[:end]):
        line = line.strip()
        if not line.startswith(b"//"):
            continue
        line = line[2:].strip()
        if not line.startswith(b"+"):
            continue
        fields = line.decode("utf-8", errors="replace").split()
        if fields[0] == "+build":
            if not any(_match_tags(tok, tags) for tok in fields[1:]):
                allowed = False
    return allowed


def _match_tags(name: str, tags: Tags) -> bool:
    if not name:
        return False
    if "," in name:
        head, rest = name.split(",", 1)
        first = _match_tags(head, tags)
        second = _match_tags(rest, tags)
        return first and second
    if name.startswith("!!"):
        return False
    if name.startswith("!"):
        return len(name) > 1 and _match_tag(name[1:], tags, False)
    return _match_tag(name, tags, True)


def _valid_tag_char(c: str) -> bool:
    return c.isalpha() or unicodedata.category(c) == "Nd" or c in "_."


def _match_tag(name: str, tags: Tags, want: bool) -> bool:
    if not all(_valid_tag_char(c) for c in name):
        return False
    if tags.get("*") and name and name != "ignore":
        return True
    have = bool(tags.get(name))
    if name == "linux":
        have = have or bool(tags.get("android"))
    return have == want


def match_file(name: str, tags: Tags | None) -> bool:
    """Report whether a GOOS/GOARCH suffix in the file name matches tags.

    Recognised forms are name_GOOS.*, name_GOARCH.*, name_GOOS_GOARCH.*
    and the same followed by _test. If tags["*"] is true, every file matches.
    """
    tags = tags or {}
    if tags.get("*"):
        return True
    name = name.split(".", 1)[0]
    underscore = name.find("_")
    if underscore < 0:
        return True
    parts = name[underscore:].split("_")
    if parts and parts[-1] == "test":
        parts = parts[:-1]
    if len(parts) >= 2 and parts[-2] in KNOWN_OS and parts[-1] in KNOWN_ARCH:
        return bool(tags.get(parts[-2])) and bool(tags.get(parts[-1]))
    if parts and parts[-1] in KNOWN_OS:
        return bool(tags.get(parts[-1]))
    if parts and parts[-1] in KNOWN_ARCH:
        return bool(tags.get(parts[-1]))
    return True