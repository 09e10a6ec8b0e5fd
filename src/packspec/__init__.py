"""packspec: cross-implementation package specifications.

Runs a declarative YAML specification of a package's API against a live
Python implementation and reports a verdict per feature.

Quick Start:
    # packspec.yml
    - PACKAGE: mypackage
    - to_upper: [ok, {==: OK}]

    packspec packspec.yml

    # Or through pytest:
    pytest --pyargs packspec --packspec-path=packspec.yml

Programmatic Usage:
    from packspec import SpecRunner, discover_specifications

    specs = discover_specifications("packspec.yml")
    result = SpecRunner().run(specs)
    print(result.success)
"""

from .packspec_types import (
    ANY,
    ERROR,
    ConstantReassignment,
    FeatureStatus,
    InvalidAssignment,
    InvalidPackage,
    MalformedFeature,
    OperandKind,
    PackspecError,
    Sentinel,
    SpecificationError,
)
from .scope import Scope
from .resolver import Reference, resolve_value
from .schema import Feature, Specification, parse_feature, parse_specification
from .runner import FeatureResult, RunResult, SpecificationResult, SpecRunner
from .hooks import load_hooks
from .plugin import discover_specifications

__version__ = "0.1.0"

__all__ = [
    # Types
    "ANY",
    "ERROR",
    "Sentinel",
    "FeatureStatus",
    "OperandKind",
    # Errors
    "PackspecError",
    "SpecificationError",
    "MalformedFeature",
    "InvalidPackage",
    "ConstantReassignment",
    "InvalidAssignment",
    # Scope
    "Scope",
    "Reference",
    "resolve_value",
    # Schema
    "Feature",
    "Specification",
    "parse_feature",
    "parse_specification",
    # Runner
    "SpecRunner",
    "FeatureResult",
    "SpecificationResult",
    "RunResult",
    # Discovery
    "load_hooks",
    "discover_specifications",
]
