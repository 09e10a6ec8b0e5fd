import pytest

from packspec.hooks import load_hooks
from packspec.packspec_types import SpecificationError


def test_load_hooks_collects_public_functions() -> None:
    source = (
        "from os.path import join\n"
        "import json\n"
        "LIMIT = 3\n"
        "def first(scope):\n"
        "    return 1\n"
        "def _helper(scope):\n"
        "    return 2\n"
        "def second(scope, value):\n"
        "    return _helper(scope) + value\n"
    )

    hooks = load_hooks(source)

    assert list(hooks) == ["first", "second"]
    assert hooks["second"](None, 1) == 3


def test_load_hooks_empty_source() -> None:
    assert load_hooks("") == {}


def test_load_hooks_syntax_error() -> None:
    with pytest.raises(SpecificationError, match="broken.yml"):
        load_hooks("def nope(:\n", filename="broken.yml")


def test_load_hooks_runtime_error() -> None:
    with pytest.raises(SpecificationError):
        load_hooks("raise RuntimeError('during import')\n")
