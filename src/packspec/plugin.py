"""Specification discovery and pytest integration.

Every discovered specification becomes one parametrized pytest test.

Usage as pytest plugin:
    # In your conftest.py:
    pytest_plugins = ["packspec.plugin"]

    # Or install the package and it auto-registers via entry point

Usage from command line:
    pytest --pyargs packspec --packspec-path=packspec/
"""

import logging
import os
from pathlib import Path

import pytest
import yaml

from .packspec_types import DEFAULT_TARGET
from .runner import SpecRunner
from .schema import Specification, merge_specifications, parse_specification

logger = logging.getLogger(__name__)

DEFAULT_FILE = "packspec.yml"
DEFAULT_DIR = "packspec"
PATH_ENV = "PACKSPEC_PATH"
TARGET_ENV = "PACKSPEC_TARGET"


def get_target(target: str | None = None) -> str:
    """Explicit target, else ``$PACKSPEC_TARGET``, else the default."""
    return target or os.environ.get(TARGET_ENV) or DEFAULT_TARGET


def find_spec_files(path: str | Path | None = None, cwd: Path | None = None) -> list[Path]:
    """Locate specification files.

    Args:
        path: File or directory. If None, looks for ``packspec.yml`` in
            the working directory, then ``packspec/*.yml``.
        cwd: Working directory (defaults to the process one)

    Returns:
        Sorted list of files (empty if nothing matches)
    """
    cwd = cwd or Path.cwd()
    if path is not None:
        path = Path(path)
        if not path.is_absolute():
            path = cwd / path
        if path.is_file():
            return [path]
        if path.is_dir():
            return sorted(path.glob("*.yml"))
        return []

    default_file = cwd / DEFAULT_FILE
    if default_file.is_file():
        return [default_file]
    return sorted((cwd / DEFAULT_DIR).glob("*.yml"))


def discover_specifications(
    path: str | Path | None = None,
    target: str | None = None,
    cwd: Path | None = None,
) -> list[Specification]:
    """Read and parse all specification files for a target.

    Files not declaring a package for the target are left out silently.
    A file that can't be read, or whose first document is not valid YAML,
    becomes an aborted specification named after the file, since the
    package it declares can't be known.

    Returns:
        Specifications merged by package, in discovery order
    """
    target = get_target(target)
    specs = []
    for spec_file in find_spec_files(path, cwd):
        try:
            spec = parse_specification(
                spec_file.read_text(encoding="utf-8"), target=target, source=spec_file
            )
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to load %s: %s", spec_file, e)
            specs.append(Specification(
                package=spec_file.name,
                sources=[spec_file],
                error=f"{type(e).__name__}: {e}",
            ))
            continue
        if spec is None:
            logger.debug("No %s package declared in %s", target, spec_file)
            continue
        specs.append(spec)
    return merge_specifications(specs)


def pytest_addoption(parser):
    """Add packspec command line options."""
    group = parser.getgroup("packspec")
    group.addoption(
        "--packspec-path",
        default=None,
        help=f"Specification file or directory (default: ${PATH_ENV}, "
             f"then {DEFAULT_FILE}, then {DEFAULT_DIR}/*.yml)",
    )
    group.addoption(
        "--packspec-target",
        default=None,
        help=f"Target identifier for filter tags (default: ${TARGET_ENV} or {DEFAULT_TARGET})",
    )


def _spec_path(config) -> str | None:
    return config.getoption("--packspec-path") or os.environ.get(PATH_ENV)


@pytest.fixture(scope="session")
def packspec_target(request) -> str:
    """Target identifier in effect for this session."""
    return get_target(request.config.getoption("--packspec-target"))


@pytest.fixture(scope="session")
def packspec_runner() -> SpecRunner:
    """Runner shared by all specification tests."""
    return SpecRunner()


def pytest_generate_tests(metafunc):
    """Parametrize ``packspec_spec`` with every discovered specification."""
    if "packspec_spec" in metafunc.fixturenames:
        config = metafunc.config
        specs = discover_specifications(
            _spec_path(config),
            target=config.getoption("--packspec-target"),
            cwd=Path(str(config.invocation_params.dir)),
        )
        ids = [spec.package for spec in specs]
        metafunc.parametrize("packspec_spec", specs, ids=ids)


@pytest.fixture
def packspec_spec():
    """Placeholder fixture for parametrized specifications.

    The actual value is provided by pytest_generate_tests.
    """
    pass


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "packspec: mark test as a packspec specification run"
    )
