import pytest

from gobuildkit.readimports import ImportReadError
from gobuildkit.scan import NoGoFilesError, scan_dir, scan_files

IMPORT1_FILES = {
    "x.go": 'package x\n\nimport "import1"\n',
    "x1.go": (
        "//go:build blahblh && linux && !linux && windows && darwin\n"
        "// +build blahblh,linux,!linux,windows,darwin\n"
        "\n"
        "package x\n"
        "\n"
        'import "import4"\n'
    ),
    "x_darwin.go": 'package xxxx\n\nimport "import3"\n',
    "x_windows.go": 'package x\n\nimport "import2"\n',
}


@pytest.fixture
def import1(tmp_path):
    for name, text in IMPORT1_FILES.items():
        (tmp_path / name).write_text(text)
    return tmp_path


def test_scan_star(import1):
    imports, test_imports = scan_dir(import1, {"*": True})
    assert imports == ["import1", "import2", "import3", "import4"]
    assert test_imports == []


def test_scan_linux_only(import1):
    imports, _ = scan_dir(import1, {"linux": True})
    assert imports == ["import1"]


def test_scan_windows(import1):
    imports, _ = scan_dir(import1, {"windows": True})
    assert imports == ["import1", "import2"]


def test_scan_separates_test_imports(tmp_path):
    (tmp_path / "a.go").write_text('package a\n\nimport (\n\t"fmt"\n\t"os"\n)\n')
    (tmp_path / "a_test.go").write_text('package a\n\nimport "testing"\nimport "fmt"\n')
    imports, test_imports = scan_dir(tmp_path, None)
    assert imports == ["fmt", "os"]
    assert test_imports == ["fmt", "testing"]


def test_scan_ignores_underscore_and_non_go(tmp_path):
    (tmp_path / "a.go").write_text('package a\nimport "one"\n')
    (tmp_path / "_b.go").write_text('package a\nimport "two"\n')
    (tmp_path / "c.txt").write_text('package a\nimport "three"\n')
    imports, _ = scan_dir(tmp_path, {})
    assert imports == ["one"]


def test_cgo_files_skipped_without_tag(tmp_path):
    (tmp_path / "a.go").write_text('package a\nimport "one"\n')
    (tmp_path / "c.go").write_text('package a\nimport "C"\nimport "two"\n')
    assert scan_dir(tmp_path, {})[0] == ["one"]
    assert scan_dir(tmp_path, {"cgo": True})[0] == ["C", "one", "two"]


def test_scan_files_ignores_build_tags(import1):
    imports, _ = scan_files([import1 / "x1.go"], {})
    assert imports == ["import4"]


def test_scan_files_decodes_escapes_and_raw_strings(tmp_path):
    path = tmp_path / "a.go"
    path.write_text('package a\nimport (\n\t"\\u0041b"\n\t`raw/path`\n\t"bad\\q"\n)\n')
    imports, _ = scan_files([path], None)
    assert imports == ["Ab", "raw/path"]


def test_no_go_files(tmp_path):
    with pytest.raises(NoGoFilesError, match="no Go source files"):
        scan_dir(tmp_path, {})


def test_all_files_filtered_is_no_go_files(tmp_path):
    (tmp_path / "x_windows.go").write_text('package x\nimport "two"\n')
    with pytest.raises(NoGoFilesError):
        scan_dir(tmp_path, {"linux": True})


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_files([tmp_path / "nope.go"], {})


def test_read_error_names_file(tmp_path):
    path = tmp_path / "bad.go"
    path.write_bytes(b"package p\n\x00\n")
    with pytest.raises(ImportReadError, match="reading .*bad.go: unexpected NUL in input"):
        scan_files([path], {})


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_dir(tmp_path / "absent", {})