"""pytest configuration for the packspec test-suite."""

import sys
from pathlib import Path

import pytest

# Add src to path for development (when not installed)
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from packspec.runner import SpecRunner  # noqa: E402

pytest_plugins = ["pytester"]


class Recorder:
    """Callable remembering every call it receives."""

    def __init__(self, result=None):
        self.calls = []
        self.result = result

    def __call__(self, *args):
        self.calls.append(args)
        return self.result


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_runner():
    """Build a SpecRunner whose package loader returns a fixed implementation."""

    def _make(implementation, **kwargs) -> SpecRunner:
        return SpecRunner(loader=lambda name: implementation, **kwargs)

    return _make
