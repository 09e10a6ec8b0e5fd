import logging
from pathlib import Path

import pytest
import yaml

from packspec.plugin import discover_specifications, find_spec_files, get_target

# Load the plugin module directly even when the entry point is installed
PLUGIN_ARGS = ("-p", "no:packspec", "-p", "packspec.plugin")


def _write_spec(path: Path, entries: list, hooks: str | None = None) -> None:
    documents = [entries]
    if hooks is not None:
        documents.append({"py": hooks})
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump_all(documents, sort_keys=False), encoding="utf-8")


def test_find_default_file_before_directory(tmp_path: Path) -> None:
    _write_spec(tmp_path / "packspec.yml", [{"PACKAGE": "a"}])
    _write_spec(tmp_path / "packspec" / "b.yml", [{"PACKAGE": "b"}])

    assert find_spec_files(cwd=tmp_path) == [tmp_path / "packspec.yml"]


def test_find_default_directory(tmp_path: Path) -> None:
    _write_spec(tmp_path / "packspec" / "b.yml", [{"PACKAGE": "b"}])
    _write_spec(tmp_path / "packspec" / "a.yml", [{"PACKAGE": "a"}])
    (tmp_path / "packspec" / "notes.txt").write_text("ignored", encoding="utf-8")

    assert find_spec_files(cwd=tmp_path) == [
        tmp_path / "packspec" / "a.yml",
        tmp_path / "packspec" / "b.yml",
    ]


def test_find_explicit_paths(tmp_path: Path) -> None:
    _write_spec(tmp_path / "specs" / "one.yml", [{"PACKAGE": "a"}])

    assert find_spec_files("specs", cwd=tmp_path) == [tmp_path / "specs" / "one.yml"]
    assert find_spec_files(tmp_path / "specs" / "one.yml") == [tmp_path / "specs" / "one.yml"]
    assert find_spec_files("missing", cwd=tmp_path) == []
    assert find_spec_files(cwd=tmp_path) == []


def test_get_target(monkeypatch) -> None:
    monkeypatch.delenv("PACKSPEC_TARGET", raising=False)
    assert get_target() == "py"
    assert get_target("js") == "js"

    monkeypatch.setenv("PACKSPEC_TARGET", "rb")
    assert get_target() == "rb"
    assert get_target("js") == "js"


def test_discover_skips_non_matching_and_keeps_broken_files(tmp_path: Path, caplog) -> None:
    specs_dir = tmp_path / "packspec"
    _write_spec(specs_dir / "a.yml", [{"PACKAGE": "pkg"}, {"one": []}])
    _write_spec(specs_dir / "b.yml", [{"(js)PACKAGE": "jsonly"}, {"two": []}])
    _write_spec(specs_dir / "c.yml", [{"PACKAGE": "pkg"}, {"three": []}])
    _write_spec(specs_dir / "d.yml", [{"PACKAGE": "bad"}, {"a": 1, "b": 2}])
    (specs_dir / "e.yml").write_text("- PACKAGE: [unclosed\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="packspec.plugin"):
        specs = discover_specifications(cwd=tmp_path, target="py")

    assert [spec.package for spec in specs] == ["pkg", "bad", "e.yml"]
    assert [f.text for f in specs[0].features] == ['PACKAGE = "pkg"', "one()", "three()"]
    assert specs[0].sources == [specs_dir / "a.yml", specs_dir / "c.yml"]
    assert specs[0].error is None
    assert specs[1].error.startswith("MalformedFeature: ")
    assert specs[2].error.startswith(("ParserError: ", "ScannerError: "))
    assert specs[2].sources == [specs_dir / "e.yml"]
    warned = " ".join(record.getMessage() for record in caplog.records)
    assert "e.yml" in warned


def test_discover_for_other_target(tmp_path: Path) -> None:
    _write_spec(tmp_path / "packspec" / "b.yml", [{"(js)PACKAGE": "jsonly"}])

    specs = discover_specifications(cwd=tmp_path, target="js")

    assert [spec.package for spec in specs] == ["jsonly"]


def _write_implementation(pytester) -> None:
    pytester.makepyfile(textpkg="def to_upper(text):\n    return text.upper()\n")
    pytester.syspathinsert()


def test_pytest_plugin_runs_specifications(pytester) -> None:
    _write_implementation(pytester)
    _write_spec(pytester.path / "packspec.yml", [{"PACKAGE": "textpkg"}, {"toUpper": ["ok", {"==": "OK"}]}])
    _write_spec(pytester.path / "broken" / "spec.yml", [{"PACKAGE": "textpkg"}, {"toUpper": ["ok", {"==": "ok"}]}])
    pytester.makepyfile(test_specs="from packspec.test_packspec import test_specification\n")

    passing = pytester.runpytest(*PLUGIN_ARGS)
    failing = pytester.runpytest(*PLUGIN_ARGS, "--packspec-path=broken")

    passing.assert_outcomes(passed=1)
    failing.assert_outcomes(failed=1)
    failing.stdout.fnmatch_lines(['*x  toUpper("ok") == "ok"*'])


def test_pytest_plugin_reports_specification_errors(pytester) -> None:
    _write_implementation(pytester)
    _write_spec(pytester.path / "packspec.yml", [{"PACKAGE": "textpkg"}, {"X=": 1}, {"X=": 2}])
    pytester.makepyfile(test_specs="from packspec.test_packspec import test_specification\n")

    result = pytester.runpytest(*PLUGIN_ARGS)

    result.assert_outcomes(failed=1)
    result.stdout.fnmatch_lines(["*Specification error in textpkg: ConstantReassignment*"])


def test_pytest_plugin_fails_on_malformed_file(pytester) -> None:
    _write_implementation(pytester)
    _write_spec(pytester.path / "packspec" / "good.yml", [{"PACKAGE": "textpkg"}, {"toUpper": ["ok", {"==": "OK"}]}])
    _write_spec(pytester.path / "packspec" / "bad.yml", [{"PACKAGE": "otherpkg"}, {"==": 1}])
    pytester.makepyfile(test_specs="from packspec.test_packspec import test_specification\n")

    result = pytester.runpytest(*PLUGIN_ARGS)

    result.assert_outcomes(passed=1, failed=1)
    result.stdout.fnmatch_lines(["*Specification error in otherpkg: MalformedFeature*"])
