"""Read the leading comments or the import block of a Go source file."""

from __future__ import annotations

from typing import IO, Any

_CHUNK = 1 << 12
_SPACE = frozenset(b" \f\t\r\n;")
_LOOP_LIMIT = 10000


class ImportReadError(Exception):
    """Raised when a file header cannot be read; data holds what was read."""

    def __init__(self, message: str, data: bytes = b"") -> None:
        super().__init__(message)
        self.data = bytes(data)


class ImportSyntaxError(ImportReadError):
    """Raised when the package clause or import block is malformed."""

    def __init__(self, message: str = "syntax error", data: bytes = b"") -> None:
        super().__init__(message, data)


class NulInInputError(ImportReadError):
    """Raised when the input holds a NUL byte."""

    def __init__(self, message: str = "unexpected NUL in input", data: bytes = b"") -> None:
        super().__init__(message, data)


def _is_ident(c: int) -> bool:
    return (
        ord("A") <= c <= ord("Z")
        or ord("a") <= c <= ord("z")
        or ord("0") <= c <= ord("9")
        or c == ord("_")
        or c >= 0x80
    )


class _ImportReader:
    def __init__(self, stream: IO[Any]) -> None:
        self._read = stream.read
        self._chunk = b""
        self._pos = 0
        self.buf = bytearray()
        self.peek = 0
        self.err: BaseException | None = None
        self.eof = False
        self._nerr = 0

    def _raw_byte(self) -> int | None:
        if self._pos >= len(self._chunk):
            chunk = self._read(_CHUNK)
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            if not chunk:
                return None
            self._chunk = bytes(chunk)
            self._pos = 0
        c = self._chunk[self._pos]
        self._pos += 1
        return c

    def syntax_error(self) -> None:
        if self.err is None:
            self.err = ImportSyntaxError()

    def read_byte(self) -> int:
        try:
            c = self._raw_byte()
        except OSError as exc:
            if self.err is None:
                self.err = exc
            return 0
        if c is None:
            self.eof = True
            return 0
        self.buf.append(c)
        if c == 0:
            if self.err is None:
                self.err = NulInInputError()
            return 0
        return c

    def peek_byte(self, skip_space: bool) -> int:
        if self.err is not None:
            self._nerr += 1
            if self._nerr > _LOOP_LIMIT:
                raise RuntimeError("import reader looping")
            return 0

        # A peek left by peek_byte(False) may need skipping here.
        c = self.peek
        if c == 0:
            c = self.read_byte()
        while self.err is None and not self.eof:
            if skip_space:
                # Semicolons never matter for this reader; treat them as space.
                if c in _SPACE:
                    c = self.read_byte()
                    continue
                if c == ord("/"):
                    c = self.read_byte()
                    if c == ord("/"):
                        while c != ord("\n") and self.err is None and not self.eof:
                            c = self.read_byte()
                    elif c == ord("*"):
                        c1 = 0
                        while (c != ord("*") or c1 != ord("/")) and self.err is None:
                            if self.eof:
                                self.syntax_error()
                            c, c1 = c1, self.read_byte()
                    else:
                        self.syntax_error()
                    c = self.read_byte()
                    continue
            break
        self.peek = c
        return c

    def next_byte(self, skip_space: bool) -> int:
        c = self.peek_byte(skip_space)
        self.peek = 0
        return c

    def read_keyword(self, keyword: bytes) -> None:
        self.peek_byte(True)
        for expected in keyword:
            if self.next_byte(False) != expected:
                self.syntax_error()
                return
        if _is_ident(self.peek_byte(False)):
            self.syntax_error()

    def read_ident(self) -> None:
        if not _is_ident(self.peek_byte(True)):
            self.syntax_error()
            return
        while _is_ident(self.peek_byte(False)):
            self.peek = 0

    def _save(self, start: int, imports: list[str]) -> None:
        imports.append(bytes(self.buf[start:]).decode("utf-8", "surrogateescape"))

    def read_string(self, imports: list[str]) -> None:
        quote = self.next_byte(True)
        if quote == ord("`"):
            start = len(self.buf) - 1
            while self.err is None:
                if self.next_byte(False) == ord("`"):
                    self._save(start, imports)
                    break
                if self.eof:
                    self.syntax_error()
        elif quote == ord('"'):
            start = len(self.buf) - 1
            while self.err is None:
                c = self.next_byte(False)
                if c == ord('"'):
                    self._save(start, imports)
                    break
                if self.eof or c == ord("\n"):
                    self.syntax_error()
                if c == ord("\\"):
                    self.next_byte(False)
        else:
            self.syntax_error()

    def read_import(self, imports: list[str]) -> None:
        c = self.peek_byte(True)
        if c == ord("."):
            self.peek = 0
        elif _is_ident(c):
            self.read_ident()
        self.read_string(imports)

    def raise_error(self, data: bytes) -> None:
        err = self.err
        if err is None:
            return
        if isinstance(err, ImportReadError):
            err.data = data
        raise err


def read_comments(f: IO[Any]) -> bytes:
    """Return the leading block of comments and blank space of a file."""
    reader = _ImportReader(f)
    reader.peek_byte(True)
    if reader.err is None and not reader.eof:
        # Stopped on a non-space byte, which is not part of the comments.
        del reader.buf[-1]
    data = bytes(reader.buf)
    reader.raise_error(data)
    return data


def read_imports(f: IO[Any], report_syntax_error: bool) -> tuple[bytes, list[str]]:
    """Read a Go file up to the end of its imports.

    Returns the bytes read and the import paths as quoted in the source.
    A syntax error is raised only if report_syntax_error is true; otherwise
    the whole file is read and returned.
    """
    reader = _ImportReader(f)
    imports: list[str] = []

    reader.read_keyword(b"package")
    reader.read_ident()
    while reader.peek_byte(True) == ord("i"):
        reader.read_keyword(b"import")
        if reader.peek_byte(True) == ord("("):
            reader.next_byte(False)
            while reader.peek_byte(True) != ord(")") and reader.err is None:
                reader.read_import(imports)
            reader.next_byte(False)
        else:
            reader.read_import(imports)

    # Stopping before EOF means one byte too many was read; drop it.
    if reader.err is None and not reader.eof:
        return bytes(reader.buf[:-1]), imports

    if isinstance(reader.err, ImportSyntaxError) and not report_syntax_error:
        reader.err = None
        while reader.err is None and not reader.eof:
            reader.read_byte()

    data = bytes(reader.buf)
    reader.raise_error(data)
    return data, imports