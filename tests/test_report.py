from packspec.packspec_types import FeatureStatus
from packspec.report import format_feature, format_run, format_specification, format_summary
from packspec.runner import FeatureResult, RunResult, SpecificationResult
from packspec.schema import parse_feature


def _result(entry, status: FeatureStatus, detail: str | None = None) -> FeatureResult:
    return FeatureResult(parse_feature(entry), status, error_detail=detail)


def test_format_feature_lines() -> None:
    assert format_feature(_result({"f": [1]}, FeatureStatus.PASSED)) == " +  f(1)"
    assert format_feature(_result({"f": [1]}, FeatureStatus.SKIPPED)) == " -  f(1)"
    assert format_feature(_result("Section", FeatureStatus.COMMENT)) == "\n #  Section\n"
    assert format_feature(
        _result({"f": [1, {"==": 2}]}, FeatureStatus.FAILED, "Assertion: 1 != 2")
    ) == " x  f(1) == 2\n    Assertion: 1 != 2"


def test_format_summary() -> None:
    passed = SpecificationResult(
        package="pkg",
        results=[_result({"f": []}, FeatureStatus.PASSED), _result({"g": []}, FeatureStatus.SKIPPED)],
        total_count=2,
        skipped_count=1,
    )
    failed = SpecificationResult(
        package="pkg",
        results=[_result({"f": []}, FeatureStatus.FAILED, "Exception: boom")],
        total_count=1,
    )
    aborted = SpecificationResult(package="pkg", error="InvalidPackage: nope")

    assert format_summary(passed) == " +  pkg: 1/1"
    assert format_summary(failed) == " x  pkg: 0/1"
    assert format_summary(aborted) == " !  pkg: specification error: InvalidPackage: nope"


def test_format_specification_and_run() -> None:
    spec = SpecificationResult(
        package="pkg", results=[_result({"f": []}, FeatureStatus.PASSED)], total_count=1
    )

    assert format_specification(spec) == " +  f()\n\n +  pkg: 1/1"
    assert format_run(RunResult([spec, spec])) == (
        " +  f()\n\n +  pkg: 1/1\n\n +  f()\n\n +  pkg: 1/1"
    )
