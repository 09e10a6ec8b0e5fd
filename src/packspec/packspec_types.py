"""Sentinels, status codes and error classes shared by packspec modules."""

from enum import Enum


# Target identifier matched against feature filter tags like ``(py|js)``
DEFAULT_TARGET = "py"

# Reserved key of the package declaration feature
PACKAGE_KEY = "PACKAGE"


class Sentinel(str, Enum):
    """Reserved expected-value markers.

    Members are strings so that a literal ``"ERROR"`` authored in a YAML
    document compares equal to the ``ERROR`` outcome of a failed call.
    """
    ERROR = "ERROR"
    ANY = "ANY"

    def __str__(self) -> str:
        return self.value


ERROR = Sentinel.ERROR
ANY = Sentinel.ANY


class FeatureStatus(Enum):
    """Outcome of a single feature."""
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    COMMENT = "comment"


class OperandKind(Enum):
    """What a Scope path resolves to, as seen by the executor."""
    VALUE = "value"                  # Plain value, read only
    CALLABLE = "callable"            # Invoked bound to its owner
    CONSTRUCTIBLE = "constructible"  # Called to produce a new instance
    MISSING = "missing"              # Nothing bound at the path


class PackspecError(Exception):
    """Base class for packspec errors."""
    pass


class SpecificationError(PackspecError):
    """The specification itself cannot be trusted.

    Raised for authoring mistakes. Never reported as a failed feature.
    """
    pass


class MalformedFeature(SpecificationError):
    """A document entry does not follow the feature grammar."""
    pass


class InvalidPackage(SpecificationError):
    """The package declaration is missing or cannot be loaded."""
    pass


class ConstantReassignment(SpecificationError):
    """An already bound constant was assigned again."""

    def __init__(self, name: str):
        super().__init__(f"Can't update the constant {name}")
        self.name = name


class InvalidAssignment(SpecificationError):
    """A ``name=`` target path can't be bound."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Can't assign {path}: {reason}")
        self.path = path
