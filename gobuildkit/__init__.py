"""Build artifact cache, directory hashing, key ordering and Go import scanning."""

__version__ = "0.1.0"

__all__ = [
    "buildtags",
    "cache",
    "cachehash",
    "default",
    "dirhash",
    "fmtsort",
    "readimports",
    "scan",
]