"""A build artifact cache backed by a directory tree."""

from __future__ import annotations

import contextlib
import errno
import hashlib
import os
import re
import time
from dataclasses import dataclass
from typing import BinaryIO, Callable

from gobuildkit.cachehash import HASH_SIZE, debug_flags, reverse_hash

HEX_SIZE = HASH_SIZE * 2
# "v1 <hex id> <hex out> <size padded to 20> <unixnano padded to 20>\n"
ENTRY_SIZE = 2 + 1 + HEX_SIZE + 1 + HEX_SIZE + 1 + 20 + 1 + 20 + 1

# mtimes are refreshed at most once per MTIME_INTERVAL; the cache is
# scanned at most once per TRIM_INTERVAL; entries unused for TRIM_LIMIT
# are removed by a scan.
MTIME_INTERVAL = 3600
TRIM_INTERVAL = 24 * 3600
TRIM_LIMIT = 5 * 24 * 3600

_CHUNK = 1 << 16
_INT_RE = re.compile(rb"[+-]?[0-9]+")
_HEX_RE = re.compile(rb"[0-9a-fA-F]{%d}" % HEX_SIZE)
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


class CacheMiss(LookupError):
    """Raised when a cache entry is not found or is unusable."""

    def __init__(self, message: str = "cache entry not found") -> None:
        super().__init__(message)


class CacheVerifyError(RuntimeError):
    """Raised in verify mode when a put disagrees with the stored entry."""


@dataclass(frozen=True)
class Entry:
    """An action entry: the output id, its size and when it was written."""

    output_id: bytes
    size: int
    time_ns: int


def _as_id(value: bytes) -> bytes:
    data = bytes(value)
    if len(data) != HASH_SIZE:
        raise ValueError(f"cache id must be {HASH_SIZE} bytes, got {len(data)}")
    return data


def _parse_int(text: bytes) -> int | None:
    if not _INT_RE.fullmatch(text):
        return None
    number = int(text)
    if not _INT64_MIN <= number <= _INT64_MAX:
        return None
    return number


def _sha256_stream(stream: BinaryIO) -> bytes:
    hasher = hashlib.sha256()
    for chunk in iter(lambda: stream.read(_CHUNK), b""):
        hasher.update(chunk)
    return hasher.digest()


class Cache:
    """A cache of action entries and output files in a directory.

    Several processes on one machine may share a directory; they may
    duplicate work but will not corrupt the cache.
    """

    def __init__(
        self,
        directory: str | os.PathLike,
        now: Callable[[], float] | None = None,
    ) -> None:
        directory = os.fspath(directory)
        if not os.path.isdir(directory):
            os.stat(directory)
            raise NotADirectoryError(errno.ENOTDIR, "not a directory", directory)
        for i in range(256):
            os.makedirs(os.path.join(directory, f"{i:02x}"), exist_ok=True)
        self.directory = directory
        self.now: Callable[[], float] = now if now is not None else time.time
        self._log_file = open(os.path.join(directory, "log.txt"), "ab", buffering=0)

    def __enter__(self) -> Cache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the cache log."""
        self._log_file.close()

    def _file_name(self, digest: bytes, key: str) -> str:
        return os.path.join(self.directory, f"{digest[0]:02x}", f"{digest.hex()}-{key}")

    def _log(self, message: str) -> None:
        self._log_file.write(f"{int(self.now())} {message}\n".encode())

    def _miss(self, action_id: bytes) -> CacheMiss:
        self._log(f"miss {action_id.hex()}")
        return CacheMiss()

    def get(self, action_id: bytes) -> Entry:
        """Return the entry for an action id, or raise CacheMiss.

        Finding an entry does not guarantee that its output file still exists.
        """
        if debug_flags.verify:
            raise CacheMiss()
        return self._get(action_id)

    def _get(self, action_id: bytes) -> Entry:
        action_id = _as_id(action_id)
        name = self._file_name(action_id, "a")
        try:
            with open(name, "rb") as stream:
                raw = stream.read(ENTRY_SIZE + 1)
        except OSError:
            raise self._miss(action_id) from None
        entry = self._parse_entry(action_id, raw)
        if entry is None:
            raise self._miss(action_id)
        self._log(f"get {action_id.hex()}")
        self._used(name)
        return entry

    @staticmethod
    def _parse_entry(action_id: bytes, raw: bytes) -> Entry | None:
        if len(raw) != ENTRY_SIZE:
            return None
        h = HEX_SIZE
        if (
            raw[0:3] != b"v1 "
            or raw[3 + h : 4 + h] != b" "
            or raw[4 + 2 * h : 5 + 2 * h] != b" "
            or raw[25 + 2 * h : 26 + 2 * h] != b" "
            or raw[ENTRY_SIZE - 1 :] != b"\n"
        ):
            return None
        eid = raw[3 : 3 + h]
        eout = raw[4 + h : 4 + 2 * h]
        esize = raw[5 + 2 * h : 25 + 2 * h]
        etime = raw[26 + 2 * h : 46 + 2 * h]
        if not _HEX_RE.fullmatch(eid) or bytes.fromhex(eid.decode()) != action_id:
            return None
        if not _HEX_RE.fullmatch(eout):
            return None
        size = _parse_int(esize.lstrip(b" "))
        if size is None or size < 0:
            return None
        stamp = _parse_int(etime.lstrip(b" "))
        if stamp is None:
            return None
        return Entry(bytes.fromhex(eout.decode()), size, stamp)

    def get_file(self, action_id: bytes) -> tuple[str, Entry]:
        """Return the name of the output file for an action id and its entry."""
        entry = self.get(action_id)
        name = self.output_file(entry.output_id)
        try:
            actual = os.stat(name).st_size
        except OSError:
            raise CacheMiss() from None
        if actual != entry.size:
            raise CacheMiss()
        return name, entry

    def get_bytes(self, action_id: bytes) -> tuple[bytes, Entry]:
        """Return the output bytes for an action id and its entry."""
        entry = self.get(action_id)
        try:
            with open(self.output_file(entry.output_id), "rb") as stream:
                data = stream.read()
        except OSError:
            data = b""
        if hashlib.sha256(data).digest() != entry.output_id:
            raise CacheMiss()
        return data, entry

    def output_file(self, output_id: bytes) -> str:
        """Return the name of the file holding the output with this id."""
        name = self._file_name(_as_id(output_id), "d")
        self._used(name)
        return name

    def _used(self, file: str) -> None:
        now = self.now()
        try:
            if now - os.stat(file).st_mtime < MTIME_INTERVAL:
                return
        except OSError:
            pass
        with contextlib.suppress(OSError):
            os.utime(file, (now, now))

    def _touch(self, file: str) -> None:
        now = self.now()
        with contextlib.suppress(OSError):
            os.utime(file, (now, now))

    def trim(self) -> None:
        """Remove old entries that are unlikely to be used again."""
        now = self.now()
        trim_file = os.path.join(self.directory, "trim.txt")
        try:
            with open(trim_file, "rb") as stream:
                last = _parse_int(stream.read().strip())
        except OSError:
            last = None
        if last is not None and now - last < TRIM_INTERVAL:
            return

        cutoff = now - TRIM_LIMIT - MTIME_INTERVAL
        for i in range(256):
            self._trim_subdir(os.path.join(self.directory, f"{i:02x}"), cutoff)

        with contextlib.suppress(OSError):
            with open(trim_file, "w", encoding="ascii") as stream:
                stream.write(str(int(now)))

    @staticmethod
    def _trim_subdir(subdir: str, cutoff: float) -> None:
        try:
            names = os.listdir(subdir)
        except OSError:
            return
        for name in names:
            if not name.endswith(("-a", "-d")):
                continue
            path = os.path.join(subdir, name)
            with contextlib.suppress(OSError):
                if os.stat(path).st_mtime < cutoff:
                    os.remove(path)

    def _put_index_entry(
        self, action_id: bytes, output_id: bytes, size: int, allow_verify: bool
    ) -> None:
        action_id = _as_id(action_id)
        output_id = _as_id(output_id)
        entry = (
            f"v1 {action_id.hex()} {output_id.hex()} {size:20d} {time.time_ns():20d}\n"
        ).encode()
        if debug_flags.verify and allow_verify:
            try:
                old = self._get(action_id)
            except CacheMiss:
                pass
            else:
                if old.output_id != output_id or old.size != size:
                    raise CacheVerifyError(
                        "internal cache error: cache verify failed: "
                        f"id={action_id.hex()} changed:<<<\n{reverse_hash(action_id)}\n>>>\n"
                        f"old: {output_id.hex()} {size}\n"
                        f"new: {old.output_id.hex()} {old.size}"
                    )
        name = self._file_name(action_id, "a")
        try:
            with open(name, "wb") as stream:
                stream.write(entry)
        except OSError:
            with contextlib.suppress(OSError):
                os.remove(name)
            raise
        self._touch(name)
        self._log(f"put {action_id.hex()} {output_id.hex()} {size}")

    def put(self, action_id: bytes, file: BinaryIO) -> tuple[bytes, int]:
        """Store a seekable file's content as the output for an action id.

        The file is read twice and must not change in between.
        Returns the output id and size.
        """
        return self._put(action_id, file, True)

    def put_no_verify(self, action_id: bytes, file: BinaryIO) -> tuple[bytes, int]:
        """Like put, but never checked against the stored entry in verify mode."""
        return self._put(action_id, file, False)

    def put_bytes(self, action_id: bytes, data: bytes) -> None:
        """Store data as the output for an action id."""
        from io import BytesIO

        self.put(action_id, BytesIO(bytes(data)))

    def _put(self, action_id: bytes, file: BinaryIO, allow_verify: bool) -> tuple[bytes, int]:
        action_id = _as_id(action_id)
        file.seek(0)
        hasher = hashlib.sha256()
        size = 0
        for chunk in iter(lambda: file.read(_CHUNK), b""):
            hasher.update(chunk)
            size += len(chunk)
        output_id = hasher.digest()
        self._copy_file(file, output_id, size)
        self._put_index_entry(action_id, output_id, size, allow_verify)
        return output_id, size

    def _copy_file(self, file: BinaryIO, output_id: bytes, size: int) -> None:
        name = self._file_name(output_id, "d")
        try:
            existing: int | None = os.stat(name).st_size
        except OSError:
            existing = None
        if existing == size:
            try:
                with open(name, "rb") as stream:
                    if _sha256_stream(stream) == output_id:
                        return
            except OSError:
                pass

        flags = os.O_RDWR | os.O_CREAT | getattr(os, "O_BINARY", 0)
        if existing is not None and existing > size:
            flags |= os.O_TRUNC
        dest = os.fdopen(os.open(name, flags, 0o666), "r+b")
        try:
            if size == 0:
                # Only one zero-length file exists, so its content is right.
                return
            try:
                dest.write(self._stage_copy(file, dest, output_id, size))
                dest.flush()
            except Exception:
                with contextlib.suppress(OSError):
                    dest.truncate(0)
                raise
        finally:
            try:
                dest.close()
            except OSError:
                with contextlib.suppress(OSError):
                    os.remove(name)
                raise
        self._touch(name)

    @staticmethod
    def _stage_copy(file: BinaryIO, dest: BinaryIO, output_id: bytes, size: int) -> bytes:
        """Copy all but the last byte and check the hash; return the last byte."""
        file.seek(0)
        hasher = hashlib.sha256()
        remaining = size - 1
        while remaining:
            chunk = file.read(min(_CHUNK, remaining))
            if not chunk:
                raise EOFError("unexpected EOF")
            dest.write(chunk)
            hasher.update(chunk)
            remaining -= len(chunk)
        last = file.read(1)
        if not last:
            raise EOFError("unexpected EOF")
        hasher.update(last)
        if hasher.digest() != output_id:
            raise ValueError("file content changed underfoot")
        return last


def open_cache(directory: str | os.PathLike) -> Cache:
    """Open the cache in an existing directory."""
    return Cache(directory)