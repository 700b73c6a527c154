import pytest

from gobuildkit import cachehash

HELLO_SUM = "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


@pytest.fixture
def no_salt(monkeypatch):
    monkeypatch.setattr(cachehash, "hash_salt", b"")


@pytest.fixture
def verify_mode(monkeypatch):
    monkeypatch.setenv("GODEBUG", "gocacheverify=1")
    cachehash.init_env()
    yield
    monkeypatch.delenv("GODEBUG")
    cachehash.init_env()


def test_hash(no_salt):
    h = cachehash.new_hash("alice")
    h.write(b"hello world")
    assert h.sum().hex() == HELLO_SUM


def test_hash_write_returns_length(no_salt):
    h = cachehash.Hash("bob")
    assert h.write(b"hello") == 5
    assert h.write(b" world") == 6
    assert h.sum().hex() == HELLO_SUM


def test_salt_changes_hash(monkeypatch):
    monkeypatch.setattr(cachehash, "hash_salt", b"salt")
    h = cachehash.new_hash("carol")
    h.write(b"hello world")
    assert h.sum().hex() != HELLO_SUM
    assert len(h.sum()) == cachehash.HASH_SIZE


def test_hash_file(tmp_path):
    path = tmp_path / "input.txt"
    path.write_text("hello world")
    assert cachehash.file_hash(path).hex() == HELLO_SUM


def test_file_hash_is_memoised(tmp_path):
    path = tmp_path / "memo.txt"
    path.write_text("hello world")
    first = cachehash.file_hash(path)
    path.write_text("something else")
    assert cachehash.file_hash(path) == first


def test_set_file_hash_overrides(tmp_path):
    path = tmp_path / "never-written.txt"
    digest = bytes(range(32))
    cachehash.set_file_hash(path, digest)
    assert cachehash.file_hash(path) == digest


def test_file_hash_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        cachehash.file_hash(tmp_path / "absent")


def test_subkey_deterministic_and_distinct():
    parent = bytes(32)
    a = cachehash.subkey(parent, "one")
    assert a == cachehash.subkey(parent, "one")
    assert a != cachehash.subkey(parent, "two")
    assert len(a) == cachehash.HASH_SIZE


def test_init_env_reads_godebug(monkeypatch):
    monkeypatch.setenv("GODEBUG", "x=1,gocacheverify=1")
    flags = cachehash.init_env()
    assert flags.verify is True
    assert flags.debug_hash is False
    monkeypatch.delenv("GODEBUG")
    assert cachehash.init_env().verify is False


def test_reverse_hash_records_input(no_salt, verify_mode):
    h = cachehash.new_hash("dave")
    h.write(b"abc")
    digest = h.sum()
    assert cachehash.reverse_hash(digest) == "abc"


def test_reverse_hash_records_subkey(verify_mode):
    parent = bytes([1]) + bytes(31)
    out = cachehash.subkey(parent, "desc")
    assert cachehash.reverse_hash(out).startswith("subkey " + parent.hex())


def test_reverse_hash_unknown():
    assert cachehash.reverse_hash(b"\xff" * 32) == ""