"""Live name -> value environment a specification runs against.

A Scope holds the public members of the package under test plus every
binding made by ``name=`` features while the specification runs. Dotted
paths walk through nested mappings, sequences and object attributes:

    scope.get("parser.options.strict")
    scope.assign("result", 42)

Naming conventions:
- Segments whose first identifier character is upper-case are constants
  (once bound they can't be rebound) and, when callable, constructors.
- A ``$`` prefix marks engine-provided entries (``$import``, hooks).
- Feature keys are written camel-style; lookup falls back to the
  snake_case spelling so Python implementations keep their own names.
"""

import functools
import logging
import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .packspec_types import ConstantReassignment, InvalidAssignment, OperandKind

logger = logging.getLogger(__name__)

_MISSING = object()
_UNDERSCORE_RE = re.compile(r"_(.)")
_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def camelize(text: str) -> str:
    """Upper-case the letter following each underscore: ``to_upper`` -> ``toUpper``."""
    return _UNDERSCORE_RE.sub(lambda match: match.group(1).upper(), text)


def snakeize(name: str) -> str:
    """Inverse of :func:`camelize` for lower-case leading names."""
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def _identifier_start(name: str) -> str:
    """First character of ``name`` after any non-identifier marker prefix."""
    stripped = name.lstrip("$")
    return stripped[:1]


def is_constant_name(name: str) -> bool:
    """Check whether a path segment follows the constant convention."""
    if name.isdigit():
        return False
    first = _identifier_start(name)
    return first.isalpha() and first.isupper()


@dataclass
class Operand:
    """Result of a capability lookup on a Scope path."""
    kind: OperandKind
    owner: Any
    name: str
    value: Any = None


class Scope:
    """Ordered mapping of names to live values.

    Usage:
        scope = Scope({"toUpper": str.upper})
        operand = scope.lookup("toUpper")
        operand.kind  # OperandKind.CALLABLE
    """

    def __init__(self, bindings: Mapping[str, Any] | None = None):
        self._bindings: dict[str, Any] = dict(bindings or {})

    def __contains__(self, path: str) -> bool:
        try:
            self.get(path)
        except LookupError:
            return False
        return True

    def __iter__(self) -> Iterator[str]:
        return iter(self._bindings)

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"Scope({list(self._bindings)!r})"

    def names(self) -> list[str]:
        """Top-level names in binding order."""
        return list(self._bindings)

    def get(self, path: str) -> Any:
        """Return the value bound at a dotted path.

        Raises:
            LookupError: If any segment of the path is unbound
        """
        owner, name = self.locate(path)
        value = self._member(owner, name)
        if value is _MISSING:
            raise LookupError(f"'{path}' is not bound")
        return value

    def locate(self, path: str) -> tuple[Any, str]:
        """Walk a dotted path stopping one segment short.

        Returns:
            Tuple of (owner, leaf_name)

        Raises:
            LookupError: If an intermediate segment is unbound
        """
        if not path:
            raise LookupError("Empty path")
        names = path.split(".")
        owner: Any = self._bindings
        walked = []
        for name in names[:-1]:
            walked.append(name)
            owner = self._member(owner, name)
            if owner is _MISSING:
                raise LookupError(f"'{'.'.join(walked)}' is not bound")
        return owner, names[-1]

    def lookup(self, path: str) -> Operand:
        """Resolve a path into a tagged operand.

        Raises:
            LookupError: If an intermediate segment is unbound
        """
        owner, name = self.locate(path)
        value = self._member(owner, name)
        if value is _MISSING:
            return Operand(OperandKind.MISSING, owner, name)
        return Operand(self.classify(name, value), owner, name, value)

    @staticmethod
    def classify(name: str, value: Any) -> OperandKind:
        """Decide how a bound value is exercised when a feature calls it.

        Callables whose name starts upper-case are constructors, other
        callables are invoked bound to their owner. Constructing and
        invoking are the same plain call in Python; the two kinds only
        differ in how the executor logs the operation.
        """
        if not callable(value):
            return OperandKind.VALUE
        if is_constant_name(name):
            return OperandKind.CONSTRUCTIBLE
        return OperandKind.CALLABLE

    def assign(self, path: str, value: Any) -> None:
        """Bind a value at a dotted path.

        Raises:
            ConstantReassignment: If the leaf is a constant that is already bound
            InvalidAssignment: If an intermediate segment is unbound or the
                owner refuses the new value
        """
        try:
            owner, name = self.locate(path)
        except LookupError as exc:
            raise InvalidAssignment(path, str(exc)) from exc
        if is_constant_name(name) and self._member(owner, name, fallback=False) is not _MISSING:
            raise ConstantReassignment(path)

        try:
            if isinstance(owner, MutableMapping):
                owner[name] = value
            elif isinstance(owner, MutableSequence) and name.isdigit():
                owner[int(name)] = value
            else:
                setattr(owner, name, value)
        except (LookupError, AttributeError, TypeError) as exc:
            raise InvalidAssignment(path, f"{type(exc).__name__}: {exc}") from exc
        logger.debug("Bound %s = %r", path, value)

    def install_hooks(self, hooks: Mapping[str, Callable[..., Any]]) -> None:
        """Bind hook functions as ``$name`` with this scope as first argument."""
        for name, function in hooks.items():
            self._bindings[f"${name}"] = functools.partial(function, self)

    @staticmethod
    def _member(owner: Any, name: str, fallback: bool = True) -> Any:
        """Read one path segment from an owner, or ``_MISSING``."""
        candidates = [name]
        if fallback and _identifier_start(name).islower() and not name.startswith("$"):
            snake = snakeize(name)
            if snake != name:
                candidates.append(snake)

        for candidate in candidates:
            if isinstance(owner, Mapping):
                if candidate in owner:
                    return owner[candidate]
            elif (isinstance(owner, Sequence) and not isinstance(owner, (str, bytes))
                    and candidate.isdigit()):
                if int(candidate) < len(owner):
                    return owner[int(candidate)]
            else:
                try:
                    return getattr(owner, candidate)
                except AttributeError:
                    continue
        return _MISSING
