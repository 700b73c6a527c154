"""Hashes over directory trees and zip archives."""

from __future__ import annotations

import base64
import hashlib
import os
import posixpath
from typing import BinaryIO, Callable, Iterable
from zipfile import ZipFile

OpenFunc = Callable[[str], BinaryIO]
HashFunc = Callable[[Iterable[str], OpenFunc], str]

_CHUNK = 1 << 16


def hash1(files: Iterable[str], open_file: OpenFunc) -> str:
    """Return the "h1:" hash of the named files, opened with open_file."""
    summary = hashlib.sha256()
    for name in sorted(files):
        if "\n" in name:
            raise ValueError("filenames with newlines are not supported")
        file_sum = hashlib.sha256()
        with open_file(name) as stream:
            for chunk in iter(lambda: stream.read(_CHUNK), b""):
                file_sum.update(chunk)
        summary.update(f"{file_sum.hexdigest()}  {name}\n".encode())
    return "h1:" + base64.b64encode(summary.digest()).decode("ascii")


DEFAULT_HASH: HashFunc = hash1


def hash_dir(directory: str | os.PathLike, prefix: str, hash_func: HashFunc) -> str:
    """Hash every file below directory, naming each as prefix/relative-path."""
    directory = os.fspath(directory)
    files = dir_files(directory, prefix)

    def open_file(name: str) -> BinaryIO:
        rel = name[len(prefix):] if name.startswith(prefix) else name
        parts = [part for part in rel.split("/") if part]
        return open(os.path.join(directory, *parts), "rb")

    return hash_func(files, open_file)


def _walk(root: str, rel: str, out: list[str]) -> None:
    for name in sorted(os.listdir(root)):
        full = os.path.join(root, name)
        child = f"{rel}/{name}" if rel else name
        if os.path.isdir(full) and not os.path.islink(full):
            _walk(full, child, out)
        else:
            out.append(child)


def dir_files(directory: str | os.PathLike, prefix: str) -> list[str]:
    """List the files below directory in walk order, each under prefix."""
    root = os.path.normpath(os.fspath(directory))
    if not os.path.isdir(root):
        os.lstat(root)
        raise NotADirectoryError(root)
    rels: list[str] = []
    _walk(root, "", rels)
    slash_prefix = prefix.replace(os.sep, "/")
    if not slash_prefix:
        return rels
    return [posixpath.normpath(posixpath.join(slash_prefix, rel)) for rel in rels]


def hash_zip(zipfile: str | os.PathLike, hash_func: HashFunc) -> str:
    """Hash the members of a zip archive by their names in the archive."""
    with ZipFile(zipfile) as archive:
        members = {info.filename: info for info in archive.infolist()}
        names = [info.filename for info in archive.infolist()]

        def open_file(name: str) -> BinaryIO:
            info = members.get(name)
            if info is None:
                raise FileNotFoundError(f"file {name!r} not found in zip")
            return archive.open(info)

        return hash_func(names, open_file)