"""Execution engine for packspec specifications.

Runs parsed features against the live package under test, one at a time
and in document order, and judges every outcome.

Usage:
    from packspec import SpecRunner, parse_specification

    spec = parse_specification(open("packspec.yml").read())
    result = SpecRunner().run_specification(spec)
    print(result.package, result.success)
"""

import asyncio
import datetime
import importlib
import inspect
import json
import logging
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Callable

from .packspec_types import (
    ANY,
    ERROR,
    FeatureStatus,
    InvalidPackage,
    OperandKind,
    SpecificationError,
)
from .resolver import resolve_value
from .schema import Feature, Specification
from .scope import Scope

logger = logging.getLogger(__name__)

PackageLoader = Callable[[str], Any]


@dataclass
class ExecutionOutcome:
    """What executing a feature produced."""
    value: Any
    expected: Any = None
    exception: BaseException | None = None


@dataclass
class FeatureResult:
    """Judged outcome of one feature."""
    feature: Feature
    status: FeatureStatus
    outcome: Any = None
    error_detail: str | None = None

    @property
    def text(self) -> str:
        return self.feature.text

    @property
    def passed(self) -> bool:
        return self.status is not FeatureStatus.FAILED


@dataclass
class SpecificationResult:
    """Report of one specification run.

    ``error`` is set when the run aborted on an authoring error; such a
    result never passes, whatever its feature results say. ``scope`` is
    the Scope the features ran against, left as the last feature left it.
    """
    package: str
    results: list[FeatureResult] = field(default_factory=list)
    total_count: int = 0
    skipped_count: int = 0
    error: str | None = None
    scope: Scope | None = field(default=None, repr=False, compare=False)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.status is FeatureStatus.PASSED)

    @property
    def tested_count(self) -> int:
        return self.total_count - self.skipped_count

    @property
    def failed(self) -> list[FeatureResult]:
        return [r for r in self.results if r.status is FeatureStatus.FAILED]

    @property
    def success(self) -> bool:
        return self.error is None and not self.failed


@dataclass
class RunResult:
    """Report of a whole run."""
    specifications: list[SpecificationResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(spec.success for spec in self.specifications)


def is_error(value: Any) -> bool:
    """Check for the ERROR sentinel.

    Any string equal to "ERROR" counts, so an implementation legitimately
    returning that string can't be told apart from a raised exception.
    """
    return isinstance(value, str) and value == ERROR


def canonicalize(value: Any) -> Any:
    """Normalize a value for deep comparison.

    Tuples become lists, sentinels plain strings, and dates/times their
    ISO-8601 text (aware datetimes in UTC).
    """
    if isinstance(value, str):
        return str(value)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value.isoformat()
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    if isinstance(value, dict):
        return {canonicalize(key): canonicalize(item) for key, item in value.items()}
    return value


def _strict(value: Any) -> Any:
    """Tag booleans of a canonical value so that True != 1 and False != 0."""
    if isinstance(value, bool):
        return (bool, value)
    if isinstance(value, list):
        return [_strict(item) for item in value]
    if isinstance(value, dict):
        return {_strict(key): _strict(item) for key, item in value.items()}
    return value


def _to_json(value: Any) -> str:
    try:
        return json.dumps(canonicalize(value), ensure_ascii=False, default=repr)
    except (TypeError, ValueError):
        # Mappings with keys JSON can't hold
        return repr(value)


async def _drain(awaitable: Any) -> Any:
    return await awaitable


def _public_members(package: Any) -> dict[str, Any]:
    """Top-level names a loaded package contributes to the Scope."""
    if isinstance(package, dict):
        return dict(package)
    if isinstance(package, ModuleType) and hasattr(package, "__all__"):
        return {name: getattr(package, name) for name in package.__all__}
    return {name: getattr(package, name) for name in dir(package) if not name.startswith("_")}


class SpecRunner:
    """Executes packspec features against live packages.

    Args:
        loader: Turns a package name into the implementation under test.
            Defaults to ``importlib.import_module``.
        on_result: Called with each FeatureResult as soon as it is judged.
    """

    def __init__(
        self,
        loader: PackageLoader | None = None,
        on_result: Callable[[FeatureResult], None] | None = None,
    ):
        self.loader = loader or importlib.import_module
        self.on_result = on_result

    def build_scope(self, spec: Specification) -> Scope:
        """Load the package under test and build the initial Scope.

        The package's public members become top-level names, ``$import``
        loads further modules and hooks are bound as ``$name``.

        Raises:
            InvalidPackage: If the package can't be loaded
        """
        try:
            bindings = _public_members(self.loader(spec.package))
        except Exception as exc:
            raise InvalidPackage(f"Can't load package {spec.package!r}: {exc}") from exc
        bindings["$import"] = importlib.import_module

        scope = Scope(bindings)
        scope.install_hooks(spec.hooks)
        return scope

    def execute(self, feature: Feature, scope: Scope) -> ExecutionOutcome:
        """Perform a feature's operation.

        Never raises for failures of the implementation under test: they
        turn into the ERROR outcome with the exception attached.
        """
        try:
            expected = resolve_value(feature.expected, scope)
        except Exception as exc:
            return ExecutionOutcome(ERROR, feature.expected, exc)

        # Literal assignment
        if feature.property_path is None:
            return ExecutionOutcome(expected, expected)

        try:
            operand = scope.lookup(feature.property_path)
            if operand.kind is OperandKind.MISSING:
                raise LookupError(f"'{feature.property_path}' is not bound")
            if not feature.call:
                return ExecutionOutcome(operand.value, expected)

            args = resolve_value(feature.args, scope)
            kwargs = resolve_value(feature.kwargs, scope)
            if kwargs:
                args.append(kwargs)
            if operand.kind is OperandKind.VALUE:
                raise TypeError(f"'{feature.property_path}' is not callable")

            if operand.kind is OperandKind.CONSTRUCTIBLE:
                logger.debug("Constructing %s", feature.property_path)
            else:
                logger.debug("Calling %s", feature.property_path)
            # Attribute lookup already bound methods to their owner
            value = operand.value(*args)
            if inspect.isawaitable(value):
                value = asyncio.run(_drain(value))
        except Exception as exc:
            return ExecutionOutcome(ERROR, expected, exc)
        return ExecutionOutcome(value, expected)

    def compare(self, actual: Any, expected: Any) -> bool:
        """Judge an outcome against the expected value."""
        if expected is None or expected is ANY:
            return not is_error(actual)
        try:
            return bool(_strict(canonicalize(actual)) == _strict(canonicalize(expected)))
        except (TypeError, ValueError):
            # Values whose equality is not a plain bool (e.g. arrays)
            return False

    def run_feature(self, feature: Feature, scope: Scope) -> FeatureResult:
        """Execute, bind and judge one feature.

        Raises:
            ConstantReassignment: If the feature rebinds a bound constant
            InvalidAssignment: If the feature's binding target can't be set
        """
        if feature.is_comment:
            return FeatureResult(feature, FeatureStatus.COMMENT)
        if feature.skip:
            logger.debug("Skipped %s", feature.text)
            return FeatureResult(feature, FeatureStatus.SKIPPED)

        outcome = self.execute(feature, scope)
        if feature.assign:
            scope.assign(feature.assign, outcome.value)

        if self.compare(outcome.value, outcome.expected):
            logger.debug("Passed %s", feature.text)
            return FeatureResult(feature, FeatureStatus.PASSED, outcome.value)

        if outcome.exception is not None:
            exc = outcome.exception
            detail = f"Exception: {type(exc).__name__}: {exc}"
        else:
            detail = f"Assertion: {_to_json(outcome.value)} != {_to_json(outcome.expected)}"
        logger.debug("Failed %s (%s)", feature.text, detail)
        return FeatureResult(feature, FeatureStatus.FAILED, outcome.value, detail)

    def run_specification(self, spec: Specification) -> SpecificationResult:
        """Run every feature of a specification in document order.

        Every call builds a fresh Scope, so a specification can be run any
        number of times. Authoring errors abort the specification; the
        result carries the error and the features judged before it.
        """
        stats = spec.stats
        result = SpecificationResult(
            package=spec.package,
            total_count=stats.tests,
            skipped_count=stats.skipped,
        )
        if spec.error is not None:
            logger.warning("Specification %s failed to load: %s", spec.package, spec.error)
            result.error = spec.error
            return result

        try:
            result.scope = self.build_scope(spec)
            for feature in spec.features:
                feature_result = self.run_feature(feature, result.scope)
                result.results.append(feature_result)
                if self.on_result is not None:
                    self.on_result(feature_result)
        except SpecificationError as exc:
            logger.warning("Specification %s aborted: %s", spec.package, exc)
            result.error = f"{type(exc).__name__}: {exc}"
        return result

    def run(self, specs: list[Specification]) -> RunResult:
        """Run all specifications; a failure never stops the later ones."""
        run_result = RunResult()
        for spec in specs:
            run_result.specifications.append(self.run_specification(spec))
        return run_result
