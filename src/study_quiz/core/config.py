"""TOML layers for study-quiz settings.

Settings are described by a table of defaults (nested dicts of scalars).
A TOML file is a *layer* over that table: it may only name keys the
defaults already define, and a nested table may only replace a nested
table. :func:`read_layer` returns a fresh merged table and leaves the
defaults untouched so callers can keep a module-level template.
"""

from __future__ import annotations

import copy
import os
import tempfile
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Mapping

__all__ = [
    "ConfigTable",
    "TomlConfigError",
    "load_toml",
    "overlay",
    "read_layer",
    "write_template",
]

ConfigTable = Dict[str, Any]


class TomlConfigError(RuntimeError):
    """Raised when a TOML layer cannot be read or does not fit its table."""


def load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc
    except OSError as exc:
        raise TomlConfigError(f"Cannot read config {path}: {exc}") from exc


def overlay(
    defaults: Mapping[str, Any], layer: Mapping[str, Any]
) -> ConfigTable:
    """Return ``defaults`` with ``layer`` applied on top.

    Every unknown key in ``layer`` is reported in a single error, using
    dotted names such as ``session.speed``.
    """

    merged = copy.deepcopy(dict(defaults))
    unknown: List[str] = []
    _apply(merged, layer, (), unknown)
    if unknown:
        names = ", ".join(f"'{name}'" for name in unknown)
        noun = "key" if len(unknown) == 1 else "keys"
        raise TomlConfigError(f"Unknown configuration {noun} {names}.")
    return merged


def _apply(
    target: ConfigTable,
    layer: Mapping[str, Any],
    prefix: tuple[str, ...],
    unknown: List[str],
) -> None:
    for key, value in layer.items():
        dotted = ".".join((*prefix, key))
        if key not in target:
            unknown.append(dotted)
            continue
        if isinstance(target[key], dict):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    f"Expected table for '{dotted}', found "
                    f"{type(value).__name__}."
                )
            _apply(target[key], value, (*prefix, key), unknown)
        else:
            target[key] = value


def read_layer(path: Path, defaults: Mapping[str, Any]) -> ConfigTable:
    """Load the TOML file at ``path`` as a layer over ``defaults``."""

    return overlay(defaults, load_toml(path))


def write_template(path: Path, text: str, *, overwrite: bool = False) -> Path:
    """Atomically write ``text`` to ``path`` with owner-only permissions."""

    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise TomlConfigError(f"Cannot write config {path}: {exc}") from exc
    return path
