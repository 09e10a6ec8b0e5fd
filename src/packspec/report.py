"""Plain-text rendering of packspec results."""

from .packspec_types import FeatureStatus
from .runner import FeatureResult, RunResult, SpecificationResult

STATUS_GLYPHS = {
    FeatureStatus.PASSED: "+",
    FeatureStatus.FAILED: "x",
    FeatureStatus.SKIPPED: "-",
    FeatureStatus.COMMENT: "#",
}
ABORTED_GLYPH = "!"


def format_feature(result: FeatureResult) -> str:
    """One line per feature, plus an indented detail line on failure."""
    if result.status is FeatureStatus.COMMENT:
        return f"\n {STATUS_GLYPHS[result.status]}  {result.text}\n"
    line = f" {STATUS_GLYPHS[result.status]}  {result.text}"
    if result.error_detail:
        line += f"\n    {result.error_detail}"
    return line


def format_summary(result: SpecificationResult) -> str:
    """``package: passed/tested`` line, or the authoring error that aborted the run."""
    if result.error is not None:
        return f" {ABORTED_GLYPH}  {result.package}: specification error: {result.error}"
    glyph = STATUS_GLYPHS[FeatureStatus.PASSED if result.success else FeatureStatus.FAILED]
    return f" {glyph}  {result.package}: {result.passed_count}/{result.tested_count}"


def format_specification(result: SpecificationResult) -> str:
    """Full report of one specification."""
    lines = [format_feature(r) for r in result.results]
    lines.append("")
    lines.append(format_summary(result))
    return "\n".join(lines)


def format_run(result: RunResult) -> str:
    """Full report of a run, one block per specification."""
    return "\n\n".join(format_specification(spec) for spec in result.specifications)
