# gobuildkit

A library of building blocks for build tools that work with Go-style source
trees. It has no dependencies beyond the standard library.

- `gobuildkit.cache`: a content-addressed build artifact cache kept in a
  directory on disk, which several processes on one machine may share.
- `gobuildkit.default`: finds the default cache directory and opens the
  shared cache.
- `gobuildkit.cachehash`: the salted SHA-256 hash used to build cache keys,
  plus memoised file hashing.
- `gobuildkit.dirhash`: `h1:` hashes over directory trees and zip archives.
- `gobuildkit.fmtsort`: a stable ordering for mapping keys of mixed kinds.
- `gobuildkit.buildtags`: `// +build` line and `_GOOS_GOARCH` file-name matching.
- `gobuildkit.readimports` and `gobuildkit.scan`: read the leading comments
  and import block of Go source files and collect a package's imports.

## Cache

```python
from gobuildkit.cache import open_cache, CacheMiss
from gobuildkit.cachehash import new_hash

cache = open_cache("/path/to/existing/dir")

h = new_hash("compile")
h.write(b"command line and inputs")
action_id = h.sum()

cache.put_bytes(action_id, b"artifact contents")
data, entry = cache.get_bytes(action_id)
print(entry.size, entry.output_id.hex())

try:
    cache.get(bytes(32))
except CacheMiss:
    print("not cached")

cache.trim()
cache.close()
```

`open_cache` needs a directory that already exists; it creates the 256
subdirectories and a `log.txt` that records every get, miss and put. A `Cache`
is also a context manager that closes the log on exit.

- `put(action_id, file)` and `put_no_verify(action_id, file)` store a seekable
  binary file and return `(output_id, size)`; `put_bytes` stores bytes.
- `get(action_id)` returns an `Entry` (`output_id`, `size`, `time_ns`) or
  raises `CacheMiss`. `get_file` returns the output file name with the entry;
  `get_bytes` returns the data with the entry, raising `CacheMiss` if the data
  no longer matches its hash. `output_file(output_id)` gives the file name.
- `trim()` removes entries whose modification time is more than five days and
  one hour old, and does so at most once a day (it records the time in
  `trim.txt`). Reading an entry refreshes its modification time if it is more
  than an hour old.

Action and output ids are 32-byte `bytes` values.

`default_dir()` from `gobuildkit.default` returns `$GOCACHE` if set, otherwise
`go-build` under the user cache directory, or `"off"` when none can be found.
`default_cache()` creates that directory, opens it once and returns the same
`Cache` on later calls, or `None` when caching is off or cannot be set up.

### Debug settings

The `GODEBUG` environment variable, read when `gobuildkit.cachehash` is
imported and again by `cachehash.init_env()`, takes comma-separated settings:

- `gocacheverify=1`: `get` always misses, and `put` raises `CacheVerifyError`
  if the stored entry for the action id records a different output.
  `put_no_verify` skips that check.
- `gocachehash=1`: every hash input and result is printed to standard error.

## Hashes

`new_hash(name)` returns a `Hash` salted with the running Python version;
`subkey(parent, desc)` derives an action id from a parent id and a
description. `file_hash(path)` returns the plain SHA-256 of a file and
remembers it; `set_file_hash(path, digest)` sets the remembered value.

## Directory hashes

```python
from gobuildkit.dirhash import dir_files, hash_dir, hash_zip, hash1

print(dir_files("path/to/module", "example.com/mod@v1.0.0"))
print(hash_dir("path/to/module", "example.com/mod@v1.0.0", hash1))
print(hash_zip("module.zip", hash1))
```

`hash1(files, open_file)` hashes files in sorted name order and raises
`ValueError` for a name containing a newline.

## Import scanning

```python
from gobuildkit.scan import scan_dir, scan_files, NoGoFilesError

imports, test_imports = scan_dir("path/to/package", {"linux": True, "amd64": True})
```

`scan_dir` reads the `.go` files in a directory whose names do not start with
`_` and whose `_GOOS`/`_GOARCH` suffixes and `// +build` lines match the tags.
`scan_files` reads the listed files without build-tag filtering. Both leave out
files that import `"C"` unless the `cgo` tag is set, return the sorted imports
and test imports, and raise `NoGoFilesError` when no file is left.

Passing `{"*": True}` as the tags treats every build constraint except
`ignore` as satisfiable, which collects every import a package could have.

The lower-level functions are `buildtags.should_build(content, tags)`,
`buildtags.match_file(name, tags)`, `readimports.read_comments(f)` and
`readimports.read_imports(f, report_syntax_error)`, which returns the bytes
read and the import paths as quoted in the source. Read failures raise
`ImportSyntaxError` or `NulInInputError`, both subclasses of `ImportReadError`.

## Stable map ordering

```python
from gobuildkit.fmtsort import compare, sort_map

ordered = sort_map({7: "bar", -3: "foo"})
print(ordered.items())  # [(-3, 'foo'), (7, 'bar')]
```

`compare(a, b)` returns -1, 0 or 1. NaN sorts below every other float, `None`
sorts lowest, and keys of different types are grouped by type.
`sort_map` returns `None` for anything that is not a mapping.

## What it does not do

This is a library only: it installs no command-line programs, runs no module
proxy server, and does not run the go command or build anything itself.

## Running the tests

```
pip install -e .[test]
pytest
```