"""Per-target extension functions ("hooks") carried by specification files.

A specification file may contain a second YAML document with Python source
under the target key:

    ---
    py: |
      def reverse(scope, text):
          return text[::-1]

Every public function defined by that source is installed in the Scope as
``$reverse``, called with the Scope as its first argument:

    - $reverse: [abc, {==: cba}]

The source runs unsandboxed with the full privileges of the process as
soon as the file is parsed, so only load specification files you would
run as code.
"""

import inspect
import logging
from typing import Any, Callable

from .packspec_types import SpecificationError

logger = logging.getLogger(__name__)

HOOKS_MODULE_NAME = "packspec_hooks"


def load_hooks(source: str, filename: str = "<packspec hooks>") -> dict[str, Callable[..., Any]]:
    """Execute hook source and collect the functions it defines.

    Args:
        source: Python source code
        filename: Name used in tracebacks

    Returns:
        Dict mapping function names to functions, in definition order

    Raises:
        SpecificationError: If the source fails to compile or execute

    Note:
        This is plain ``exec``: the source can do anything the calling
        process can.
    """
    namespace: dict[str, Any] = {"__name__": HOOKS_MODULE_NAME}
    try:
        code = compile(source, filename, "exec")
        exec(code, namespace)
    except Exception as exc:
        raise SpecificationError(f"Failed to load hooks from {filename}: {exc}") from exc

    hooks = {}
    for name, value in namespace.items():
        if name.startswith("_"):
            continue
        # Skip helpers imported into the hook source
        if inspect.isfunction(value) and value.__module__ == HOOKS_MODULE_NAME:
            hooks[name] = value
    logger.debug("Loaded hooks from %s: %s", filename, ", ".join(hooks) or "none")
    return hooks
