"""Shared helpers for study-quiz commands."""

from __future__ import annotations

from .config import (
    ConfigTable,
    TomlConfigError,
    load_toml,
    overlay,
    read_layer,
    write_template,
)
from .config_templates import (
    ConfigTemplate,
    ConfigTemplateError,
    get_template,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "ConfigTable",
    "TomlConfigError",
    "load_toml",
    "overlay",
    "read_layer",
    "write_template",
    "ConfigTemplate",
    "ConfigTemplateError",
    "get_template",
    "JsonLogFormatter",
    "configure_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "ensure_workspace",
]
