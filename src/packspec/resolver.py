"""Reference markers and their resolution against a Scope.

A reference marker is a mapping with exactly one entry whose value is
null; its key is a dotted Scope path:

    check: [{x: null}]        # passes the value bound to ``x``

Markers are turned into :class:`Reference` nodes when a feature is parsed,
so later stages never have to re-guess which mappings are data. Resolution
happens right before a feature executes, which lets a reference point at a
binding made by an earlier feature of the same document.
"""

from dataclasses import dataclass
from typing import Any

from .scope import Scope, camelize


@dataclass(frozen=True)
class Reference:
    """Symbolic back-reference to a Scope path."""
    path: str

    def __str__(self) -> str:
        return self.path


def is_reference_marker(value: Any) -> bool:
    """Check the marker shape: one entry, string key, null value."""
    if not isinstance(value, dict) or len(value) != 1:
        return False
    key, item = next(iter(value.items()))
    return isinstance(key, str) and bool(key) and item is None


def tag_references(value: Any) -> Any:
    """Return a copy of a literal with every marker replaced by a Reference."""
    if is_reference_marker(value):
        return Reference(camelize(next(iter(value))))
    if isinstance(value, dict):
        return {key: tag_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [tag_references(item) for item in value]
    return value


def untag_references(value: Any) -> Any:
    """Turn Reference nodes back into their marker shape."""
    if isinstance(value, Reference):
        return {value.path: None}
    if isinstance(value, dict):
        return {key: untag_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [untag_references(item) for item in value]
    return value


def has_references(value: Any) -> bool:
    """Check whether a tagged value contains any Reference."""
    if isinstance(value, Reference):
        return True
    if isinstance(value, dict):
        return any(has_references(item) for item in value.values())
    if isinstance(value, list):
        return any(has_references(item) for item in value)
    return False


def resolve_value(value: Any, scope: Scope) -> Any:
    """Clone a tagged value substituting every Reference with its live value.

    Lists and mappings are rebuilt, so the result never aliases the parsed
    feature. The live values substituted in are not copied.

    Raises:
        LookupError: If a referenced path is not bound
    """
    if isinstance(value, Reference):
        return scope.get(value.path)
    if isinstance(value, dict):
        return {key: resolve_value(item, scope) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_value(item, scope) for item in value]
    return value
