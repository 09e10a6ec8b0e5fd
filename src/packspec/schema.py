"""YAML schema for packspec specifications.

Parses specification documents into Feature records. One file holds one
YAML document of entries, optionally followed by a hooks document (see
:mod:`packspec.hooks`).

BASIC EXAMPLE
=============

```yaml
- PACKAGE: mypackage
- Strings
- to_upper: [ok, {==: OK}]
- version==: 1.0.0
- parser=Parser: [{strict=: true}]
- parser.parse: ['1 + 1', {==: 2}]
- (!py)Only for other targets
- divide: [1, 0, {==: ERROR}]
```

ENTRY GRAMMAR
=============

A scalar entry is a comment (section heading). A mapping entry has exactly
one key; the key follows ``(filter)? (assign=)? property? (==)?``:

(filter)
    Tags naming the targets the entry applies to, separated by ``|``.
    A leading ``!`` inverts the test: ``(!py|rb)`` runs everywhere but on
    Python and Ruby. A comment's filter also applies to the features that
    follow it, up to the next comment.

assign=
    Dotted Scope path the outcome is bound to.

property
    Dotted Scope path of the operand. Its value is read unless the right
    side is a list, in which case it is called with that list.

==
    Trailing marker forcing a read even when the right side is a list.

Underscores in keys are folded camel-style: ``to_upper`` -> ``toUpper``.

CALL ARGUMENTS
==============

In a call list:
- ``{==: value}`` is the expected outcome
- ``{name=: value}`` is a keyword argument
- anything else is a positional argument
- ``{path: null}`` anywhere inside a value is a reference to a Scope path

EXPECTED VALUES
===============

- ``ERROR`` - the operation must raise
- ``ANY`` - any outcome but an error
- absent or null - any outcome but an error
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from .hooks import load_hooks
from .packspec_types import (
    ANY,
    DEFAULT_TARGET,
    ERROR,
    PACKAGE_KEY,
    MalformedFeature,
    Sentinel,
    SpecificationError,
)
from .resolver import Reference, tag_references
from .scope import camelize

_COMMENT_RE = re.compile(r"^(?:\((?P<filter>[^)]*)\))?(?P<comment>.*)$", re.DOTALL)
_FEATURE_RE = re.compile(
    r"^(?:\((?P<filter>[^)]*)\))?(?:(?P<assign>[^=]*)=)?(?P<property>[^=].*)?$"
)


@dataclass
class Feature:
    """One parsed entry of a specification document.

    Exactly one kind holds per feature: comment, value (literal assignment),
    read or call. ``args``/``kwargs`` are only populated for calls.
    """
    text: str = ""
    skip: bool = False
    comment: str | None = None
    assign: str | None = None
    property_path: str | None = None
    call: bool = False
    args: list[Any] = field(default_factory=list)
    kwargs: dict[str, Any] = field(default_factory=dict)
    expected: Any = None

    @property
    def is_comment(self) -> bool:
        return self.comment is not None

    @property
    def kind(self) -> str:
        """One of ``comment``, ``value``, ``read``, ``call``."""
        if self.is_comment:
            return "comment"
        if self.property_path is None:
            return "value"
        return "call" if self.call else "read"


@dataclass
class SpecStats:
    """Feature counts of a specification."""
    features: int = 0
    comments: int = 0
    tests: int = 0
    skipped: int = 0


@dataclass
class Specification:
    """All features declared for one package.

    ``error`` holds the authoring error that stopped the specification from
    loading; running such a specification aborts at once.
    """
    package: str
    features: list[Feature] = field(default_factory=list)
    hooks: dict[str, Callable[..., Any]] = field(default_factory=dict)
    sources: list[Path] = field(default_factory=list)
    error: str | None = None

    @property
    def stats(self) -> SpecStats:
        stats = SpecStats()
        for feature in self.features:
            stats.features += 1
            if feature.is_comment:
                stats.comments += 1
                continue
            stats.tests += 1
            if feature.skip:
                stats.skipped += 1
        return stats


def _filter_skips(tags: str | None, target: str) -> bool:
    """Decide whether a filter tag list excludes the target."""
    if tags is None:
        return False
    negate = tags.startswith("!")
    names = {name.strip() for name in tags.lstrip("!").split("|") if name.strip()}
    return target in names if negate else target not in names


def parse_feature(entry: Any, target: str = DEFAULT_TARGET) -> Feature:
    """Parse one document entry.

    Args:
        entry: Scalar string (comment) or single-key mapping
        target: Target identifier matched against filter tags

    Returns:
        Parsed Feature

    Raises:
        MalformedFeature: If the entry does not follow the grammar
    """
    if isinstance(entry, str):
        match = _COMMENT_RE.match(entry)
        comment = match.group("comment").strip()
        return Feature(
            text=comment,
            skip=_filter_skips(match.group("filter"), target),
            comment=comment,
        )

    if not isinstance(entry, dict) or len(entry) != 1:
        raise MalformedFeature(f"Feature must be a string or a single-key mapping: {entry!r}")
    left, right = next(iter(entry.items()))
    if not isinstance(left, str):
        raise MalformedFeature(f"Feature key must be a string: {left!r}")

    # Left side
    match = _FEATURE_RE.match(camelize(left))
    if match is None:
        raise MalformedFeature(f"Non-valid feature: {left!r}")
    skip = _filter_skips(match.group("filter"), target)
    assign = match.group("assign") or None
    property_path = match.group("property") or None
    if assign is not None:
        assign = assign.strip() or None
    if property_path is not None:
        property_path = property_path.strip() or None
    if not assign and not property_path:
        raise MalformedFeature(f"Non-valid feature: {left!r}")

    call = False
    if property_path is not None:
        if property_path.endswith("=="):
            property_path = property_path[:-2].strip()
            if not property_path:
                raise MalformedFeature(f"Non-valid feature: {left!r}")
        elif property_path == PACKAGE_KEY and assign is None:
            # Package declaration shorthand: ``PACKAGE: name``
            assign, property_path = PACKAGE_KEY, None
        else:
            call = isinstance(right, list)

    # Right side
    args: list[Any] = []
    kwargs: dict[str, Any] = {}
    expected = right
    if call:
        expected = None
        for item in right:
            if isinstance(item, dict) and len(item) == 1:
                key, value = next(iter(item.items()))
                if key == "==":
                    expected = value
                    continue
                if isinstance(key, str) and len(key) > 1 and key.endswith("="):
                    kwargs[key[:-1]] = tag_references(value)
                    continue
            args.append(tag_references(item))

    feature = Feature(
        skip=skip,
        assign=assign,
        property_path=property_path,
        call=call,
        args=args,
        kwargs=kwargs,
        expected=_tag_expected(expected),
    )
    feature.text = render_text(feature)
    return feature


def _tag_expected(value: Any) -> Any:
    if isinstance(value, str) and value in (ERROR.value, ANY.value):
        return Sentinel(value)
    return tag_references(value)


def render_value(value: Any) -> str:
    """Render a tagged value as a JSON-like literal.

    References render as their bare path and sentinels unquoted.
    """
    if isinstance(value, Reference):
        return value.path
    if isinstance(value, Sentinel):
        return value.value
    if isinstance(value, list):
        return "[" + ", ".join(render_value(item) for item in value) + "]"
    if isinstance(value, dict):
        pairs = ", ".join(
            f"{json.dumps(str(key), ensure_ascii=False)}: {render_value(item)}"
            for key, item in value.items()
        )
        return "{" + pairs + "}"
    return json.dumps(value, ensure_ascii=False, default=str)


def render_text(feature: Feature) -> str:
    """Canonical one-line rendering: ``assign = property(args, kw=kw) == expected``."""
    if feature.is_comment:
        return feature.comment

    if feature.property_path is None:
        return f"{feature.assign} = {render_value(feature.expected)}"

    text = feature.property_path
    if feature.call:
        items = [render_value(item) for item in feature.args]
        items.extend(f"{name}={render_value(item)}" for name, item in feature.kwargs.items())
        text = f"{text}({', '.join(items)})"
    if feature.assign:
        text = f"{feature.assign} = {text}"
    if feature.expected is not None:
        text = f"{text} == {render_value(feature.expected)}"
    return text


def parse_specification(
    text: str,
    target: str = DEFAULT_TARGET,
    source: Path | None = None,
) -> Specification | None:
    """Parse the text of one specification file.

    Once the file has declared its package, later problems (a malformed
    entry, broken YAML in the hooks document, hooks failing to load) don't
    raise: they are kept in ``Specification.error`` so the run reports the
    specification as aborted.

    Args:
        text: YAML text
        target: Target identifier matched against filter tags
        source: File the text was read from, for reporting

    Returns:
        Specification, or None if the file does not declare a package for
        this target (its first entry must be a non-skipped ``PACKAGE``
        assignment)

    Raises:
        yaml.YAMLError: If the first document is not valid YAML
    """
    documents = yaml.safe_load_all(text)
    entries = next(documents, None)
    if not isinstance(entries, list) or not entries:
        return None

    try:
        declaration = parse_feature(entries[0], target)
    except MalformedFeature:
        return None
    if (declaration.skip or declaration.assign != PACKAGE_KEY
            or declaration.property_path is not None):
        return None
    package = declaration.expected
    if not isinstance(package, str) or not package:
        return None

    spec = Specification(package=package, sources=[source] if source else [])
    try:
        # Features
        skip = False
        for entry in entries:
            feature = parse_feature(entry, target)
            if feature.is_comment:
                skip = feature.skip
            feature.skip = skip or feature.skip
            spec.features.append(feature)

        # Hooks
        hook_document = next(documents, None)
        if isinstance(hook_document, dict):
            hook_source = hook_document.get(target)
            if isinstance(hook_source, str):
                filename = f"{source}#hooks" if source else "<packspec hooks>"
                spec.hooks = load_hooks(hook_source, filename)
    except (yaml.YAMLError, SpecificationError) as exc:
        spec.error = f"{type(exc).__name__}: {exc}"
    return spec


def merge_specifications(specs: list[Specification]) -> list[Specification]:
    """Merge specifications naming the same package, keeping first-seen order.

    A merged specification keeps the first load error of its parts.
    """
    merged: dict[str, Specification] = {}
    for spec in specs:
        features = spec.features
        if spec.package not in merged:
            merged[spec.package] = Specification(package=spec.package)
        elif features and features[0].assign == PACKAGE_KEY:
            # PACKAGE is a constant, only the first declaration is kept
            features = features[1:]
        target = merged[spec.package]
        target.features.extend(features)
        target.hooks.update(spec.hooks)
        target.sources.extend(spec.sources)
        if target.error is None:
            target.error = spec.error
    return list(merged.values())
