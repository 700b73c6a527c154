"""Locate and open the default build cache."""

from __future__ import annotations

import functools
import os
import sys

from gobuildkit.cache import Cache, open_cache

_README = """This directory holds cached build artifacts.
It is safe to delete it if it is getting too large.
"""


def _user_cache_dir() -> str:
    if sys.platform == "win32":
        local = os.environ.get("LocalAppData", "")
        if not local:
            raise OSError("%LocalAppData% is not defined")
        return local
    if sys.platform == "darwin":
        home = os.environ.get("HOME", "")
        if not home:
            raise OSError("$HOME is not defined")
        return home + "/Library/Caches"
    cache_home = os.environ.get("XDG_CACHE_HOME", "")
    if cache_home:
        return cache_home
    home = os.environ.get("HOME", "")
    if not home:
        raise OSError("neither $XDG_CACHE_HOME nor $HOME are defined")
    return home + "/.cache"


def _default_dir() -> tuple[str, bool]:
    """Return the effective cache directory and whether to show warnings."""
    directory = os.environ.get("GOCACHE", "")
    if directory:
        return directory, True
    try:
        base = _user_cache_dir()
    except OSError:
        return "off", True
    directory = os.path.normpath(os.path.join(base, "go-build"))
    # Probably a container run as a user without a home directory.
    show_warnings = directory != "/.cache/go-build"
    return directory, show_warnings


def default_dir() -> str:
    """Return the effective cache directory, or "off" if caching is disabled."""
    return _default_dir()[0]


@functools.lru_cache(maxsize=None)
def default_cache() -> Cache | None:
    """Return the default cache, or None if no cache should be used."""
    directory, show_warnings = _default_dir()
    if directory == "off":
        return None
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as exc:
        if show_warnings:
            print(
                f"go: disabling cache ({directory}) due to initialization failure: {exc}",
                file=sys.stderr,
            )
        return None
    readme = os.path.join(directory, "README")
    if not os.path.exists(readme):
        try:
            with open(readme, "w", encoding="utf-8") as stream:
                stream.write(_README)
        except OSError:
            pass
    try:
        return open_cache(directory)
    except OSError as exc:
        if show_warnings:
            print(
                f"go: disabling cache ({directory}) due to initialization failure: {exc}",
                file=sys.stderr,
            )
        return None