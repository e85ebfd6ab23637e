# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""pyrollback configuration: packaged defaults, a YAML file and env var overrides.

Every key lives under ``pyrollback``::

    pyrollback:
      transaction:
        events_enabled: false

and can be overridden from the environment by upper-casing the path below
``pyrollback`` and joining it with underscores, e.g.
``PYROLLBACK_TRANSACTION_EVENTS_ENABLED=false``.
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import yaml  # type: ignore[import-untyped]
from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")

_PREFIX_ATTR = "__pyrollback_config_prefix__"
_ENV_PREFIX = "PYROLLBACK_"
_DEFAULTS_FILE = "pyrollback-defaults.yaml"


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Mark a dataclass as bindable to the configuration section at *prefix*.

    Usage:
        @config_properties(prefix="pyrollback.transaction")
        @dataclass
        class TransactionProperties:
            events_enabled: bool = True
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def env_key(key: str) -> str:
    """Return the environment variable that overrides the config *key*."""
    path = key.removeprefix("pyrollback.")
    return _ENV_PREFIX + path.upper().replace(".", "_").replace("-", "_")


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


class Config:
    """Read-only view over nested configuration data.

    :meth:`get` checks the environment (see :func:`env_key`) before *data*.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> Config:
        """Load the packaged defaults overlaid with the YAML file at *path*.

        A *path* that does not exist is skipped, so the file stays optional.
        """
        resource = importlib.resources.files("pyrollback.resources").joinpath(_DEFAULTS_FILE)
        data = yaml.safe_load(resource.read_text(encoding="utf-8")) or {}

        if path is not None and Path(path).exists():
            with open(path, encoding="utf-8") as f:
                data = _merge(data, yaml.safe_load(f) or {})
        return cls(data)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at the dot-separated *key*, or *default*."""
        override = os.environ.get(env_key(key))
        if override is not None:
            return override

        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Return the mapping stored at *prefix*, or an empty dict."""
        section = self.get(prefix)
        return dict(section) if isinstance(section, dict) else {}

    def bind(self, config_cls: type[T]) -> T:
        """Build a ``@config_properties`` dataclass from its section.

        Field values are validated by pydantic, so ``"false"`` coming from an
        environment variable binds to ``False`` on a ``bool`` field.  Missing
        keys keep the dataclass defaults.

        Raises:
            ValueError: If *config_cls* is not decorated, or a value does not
                fit its field type.
        """
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        values: dict[str, Any] = {}
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            value = self.get(f"{prefix}.{field.name}")
            if value is not None:
                values[field.name] = value

        try:
            return TypeAdapter(config_cls).validate_python(values)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration under '{prefix}' for {config_cls.__name__}:\n{exc}") from exc
