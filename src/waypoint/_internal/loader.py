"""Class lookup by name — registry, import string, namespace, directory.

Shared by controller resolution and string middleware references.
Lookup order:

1. an explicit registry (``{"UserController": UserController}``)
2. an import string, ``"package.module:Class"`` or ``"package.module.Class"``
3. ``<namespace>.<Name>`` where *namespace* is an importable module or package
4. ``<path>/<Name>.py``, loaded from disk, expected to define ``Name``

Usage::

    cls = load_class("UserController", namespace="myapp.controllers")
"""

import importlib
import importlib.util
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any


def load_class(
    name: str,
    *,
    registry: Mapping[str, type] | None = None,
    namespace: str | None = None,
    path: str | Path | None = None,
) -> type | None:
    """Return the class called *name*, or ``None`` when no source has it."""
    if registry and name in registry:
        return registry[name]

    found = _from_import_string(name)
    if found is not None:
        return found

    if namespace:
        found = _from_namespace(namespace, name)
        if found is not None:
            return found

    if path:
        return _from_directory(Path(path), name)
    return None


def _from_import_string(name: str) -> type | None:
    if ":" in name:
        module_path, _, attr = name.partition(":")
    elif "." in name:
        module_path, _, attr = name.rpartition(".")
    else:
        return None
    try:
        module = importlib.import_module(module_path)
    except ImportError:
        return None
    return _class_attr(module, attr)


def _from_namespace(namespace: str, name: str) -> type | None:
    try:
        module = importlib.import_module(namespace)
    except ImportError:
        return None
    found = _class_attr(module, name)
    if found is not None:
        return found
    # A package holding one module per class: myapp.controllers.UserController
    try:
        submodule = importlib.import_module(f"{namespace}.{name}")
    except ImportError:
        return None
    return _class_attr(submodule, name)


def _from_directory(directory: Path, name: str) -> type | None:
    file = directory / f"{name}.py"
    if not file.is_file():
        return None
    module_name = f"_waypoint_loaded.{directory.name}.{name}"
    module = sys.modules.get(module_name)
    if module is None:
        spec = importlib.util.spec_from_file_location(module_name, file)
        if spec is None or spec.loader is None:
            return None
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            del sys.modules[module_name]
            raise
    return _class_attr(module, name)


def _class_attr(module: Any, attr: str) -> type | None:
    value = getattr(module, attr, None)
    return value if isinstance(value, type) else None
