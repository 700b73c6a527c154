"""Salted hashing used to index the build cache, plus a memoised file hasher."""

from __future__ import annotations

import hashlib
import os
import platform
import sys
import threading
from dataclasses import dataclass

HASH_SIZE = 32
"""Number of bytes in a hash."""

# Added to the start of every hash made by new_hash, so that different
# interpreter versions never address the same action entries.
hash_salt: bytes = f"python{platform.python_version()}".encode()

_CHUNK = 1 << 16


@dataclass
class _DebugFlags:
    verify: bool = False
    debug_hash: bool = False
    debug_test: bool = False


debug_flags = _DebugFlags()
"""Debug switches read from the GODEBUG environment variable."""

_reverse_lock = threading.Lock()
_reverse: dict[bytes, str] = {}

_file_hash_lock = threading.Lock()
_file_hashes: dict[str, bytes] = {}


def init_env() -> _DebugFlags:
    """Read GODEBUG and update the debug switches; return them."""
    debug_flags.verify = False
    debug_flags.debug_hash = False
    for field in os.environ.get("GODEBUG", "").split(","):
        if field == "gocacheverify=1":
            debug_flags.verify = True
        elif field == "gocachehash=1":
            debug_flags.debug_hash = True
        elif field == "gocachetest=1":
            debug_flags.debug_test = True
    return debug_flags


def _debug(message: str) -> None:
    print(message, file=sys.stderr)


def _remember(digest: bytes, description: str) -> None:
    with _reverse_lock:
        _reverse[digest] = description


class Hash:
    """A running hash of the canonical kind used to index the cache."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._hasher = hashlib.sha256()
        self._record: bytearray | None = None
        if debug_flags.debug_hash:
            _debug(f"HASH[{name}]")
        self.write(hash_salt)
        if debug_flags.verify:
            self._record = bytearray()

    def write(self, data: bytes) -> int:
        """Add data to the hash and return the number of bytes taken."""
        data = bytes(data)
        if debug_flags.debug_hash:
            _debug(f"HASH[{self.name}]: {data!r}")
        if self._record is not None:
            self._record += data
        self._hasher.update(data)
        return len(data)

    def sum(self) -> bytes:
        """Return the digest of everything written so far."""
        digest = self._hasher.digest()
        if debug_flags.debug_hash:
            _debug(f"HASH[{self.name}]: {digest.hex()}")
        if self._record is not None:
            _remember(digest, bytes(self._record).decode("utf-8", errors="replace"))
        return digest


def new_hash(name: str) -> Hash:
    """Return a new salted hash; write data to it and then call sum."""
    return Hash(name)


def subkey(parent: bytes, desc: str) -> bytes:
    """Return an action id mixing a parent action id with a description."""
    hasher = hashlib.sha256()
    hasher.update(b"subkey:")
    hasher.update(bytes(parent))
    hasher.update(desc.encode())
    out = hasher.digest()
    if debug_flags.debug_hash:
        _debug(f"HASH subkey {bytes(parent).hex()} {desc!r} = {out.hex()}")
    if debug_flags.verify:
        _remember(out, f"subkey {bytes(parent).hex()} {desc!r}")
    return out


def reverse_hash(digest: bytes) -> str:
    """Return the recorded input of a hash made in verify mode, or ''."""
    with _reverse_lock:
        return _reverse.get(bytes(digest), "")


def file_hash(file: str | os.PathLike) -> bytes:
    """Return the SHA-256 of the named file, remembering it for later calls."""
    key = os.fspath(file)
    with _file_hash_lock:
        cached = _file_hashes.get(key)
    if cached is not None:
        return cached

    hasher = hashlib.sha256()
    try:
        with open(key, "rb") as stream:
            for chunk in iter(lambda: stream.read(_CHUNK), b""):
                hasher.update(chunk)
    except OSError as exc:
        if debug_flags.debug_hash:
            _debug(f"HASH {key}: {exc}")
        raise
    out = hasher.digest()
    if debug_flags.debug_hash:
        _debug(f"HASH {key}: {out.hex()}")
    set_file_hash(key, out)
    return out


def set_file_hash(file: str | os.PathLike, digest: bytes) -> None:
    """Set the hash that file_hash returns for file."""
    with _file_hash_lock:
        _file_hashes[os.fspath(file)] = bytes(digest)


init_env()