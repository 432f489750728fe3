"""Load plugin classes named by ``[<path>,]<type>`` arguments."""

from __future__ import annotations

import importlib.util
import inspect
from collections.abc import Mapping
from pathlib import Path
from typing import TypeVar

from xharness.arguments import PluginReference

T = TypeVar("T")


class PluginLoadError(Exception):
    """Raised when a plugin cannot be located or does not satisfy its contract."""


def resolve_plugin_type(
    reference: PluginReference,
    base_type: type[T],
    builtins: Mapping[str, type[T]],
) -> type[T]:
    """Return the class a reference points to.

    Without a path the type name is looked up among ``builtins``. With a path the
    Python file is imported and the named class must subclass ``base_type``.
    """
    if reference.path is None:
        try:
            return builtins[reference.type_name]
        except KeyError as exc:
            known = ", ".join(sorted(builtins)) or "none"
            raise PluginLoadError(
                f"Unknown {base_type.__name__} '{reference.type_name}'. Known types: {known}"
            ) from exc
    return _load_from_file(reference.path, reference.type_name, base_type)


def _load_from_file(path: Path, type_name: str, base_type: type[T]) -> type[T]:
    if not path.is_file():
        raise PluginLoadError(f"Failed to find plugin file at {path}")
    spec = importlib.util.spec_from_file_location(f"xharness_plugin_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"Cannot import plugin file {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:  # pylint: disable=broad-except
        raise PluginLoadError(f"Failed to import plugin file {path}: {exc}") from exc
    candidate = getattr(module, type_name, None)
    if not inspect.isclass(candidate) or not issubclass(candidate, base_type):
        raise PluginLoadError(
            f"Type '{type_name}' in {path} is not a {base_type.__name__}"
        )
    return candidate
