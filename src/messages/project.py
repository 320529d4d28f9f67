"""Inlang project discovery and settings parsing."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MARKER_PATH = "project.inlang/settings.json"
LANGUAGE_TAG = "{languageTag}"
DEFAULT_PATH_PATTERN = "./messages/{languageTag}.json"

COMMON_PATH_PATTERNS = (
    "./messages/{languageTag}.json",
    "./src/messages/{languageTag}.json",
    "./locales/{languageTag}.json",
    "./i18n/{languageTag}.json",
)


class ProjectSettings(BaseModel):
    """The parts of an inlang ``settings.json`` needed for previews."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_locale: str = Field(alias="baseLocale")
    locales: tuple[str, ...]
    path_pattern: str = Field(default=DEFAULT_PATH_PATTERN, alias="pathPattern")


def _is_readable_file(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def find_project_root(
    start_path: str | Path, marker: str = DEFAULT_MARKER_PATH
) -> Path | None:
    """Walk upward from ``start_path`` to the first directory holding ``marker``.

    The walk starts at the directory containing ``start_path`` (or at
    ``start_path`` itself when it is a directory) and stops once the
    filesystem root has been checked.
    """
    path = Path(start_path).expanduser().resolve()
    current = path if path.is_dir() else path.parent

    while True:
        if _is_readable_file(current / marker):
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def message_path(root: str | Path, pattern: str, locale: str) -> Path:
    """Return the message file for ``locale`` under ``root``."""
    relative_path = pattern.replace(LANGUAGE_TAG, locale)
    if relative_path.startswith("./"):
        relative_path = relative_path[2:]
    return Path(root) / relative_path


def _first_pattern(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item:
                return item
    return None


def _configured_path_pattern(settings: dict[str, Any]) -> str | None:
    plugins = settings.get("plugin")
    if isinstance(plugins, list):
        for plugin in plugins:
            if isinstance(plugin, dict):
                pattern = _first_pattern(plugin.get("pathPattern"))
                if pattern:
                    return pattern

    # Module settings keyed by plugin id, e.g. "plugin.inlang.messageFormat".
    for key, value in settings.items():
        if key.startswith("plugin.") and isinstance(value, dict):
            pattern = _first_pattern(value.get("pathPattern"))
            if pattern:
                return pattern

    return _first_pattern(settings.get("pathPattern"))


def _probe_path_pattern(root: Path, base_locale: str) -> str | None:
    for pattern in COMMON_PATH_PATTERNS:
        if message_path(root, pattern, base_locale).is_file():
            return pattern
    return None


def load_settings(
    root: str | Path, marker: str = DEFAULT_MARKER_PATH
) -> ProjectSettings | None:
    """Load project settings, or None when the project cannot be used."""
    root = Path(root)
    settings_path = root / marker

    try:
        content = settings_path.read_bytes()
    except OSError as exc:
        logger.warning("Cannot read inlang settings %s: %s", settings_path, exc)
        return None

    try:
        raw = orjson.loads(content)
    except orjson.JSONDecodeError as exc:
        logger.error("Failed to parse inlang settings %s: %s", settings_path, exc)
        return None

    if not isinstance(raw, dict):
        logger.error("Inlang settings %s is not a JSON object", settings_path)
        return None

    base_locale = raw.get("baseLocale")
    path_pattern = _configured_path_pattern(raw)
    if path_pattern is None:
        probe_locale = base_locale if isinstance(base_locale, str) else "en"
        path_pattern = _probe_path_pattern(root, probe_locale)

    if base_locale is None or raw.get("locales") is None:
        logger.warning("Inlang settings missing baseLocale or locales: %s", settings_path)
        return None

    try:
        return ProjectSettings(
            base_locale=base_locale,
            locales=raw["locales"],
            path_pattern=path_pattern or DEFAULT_PATH_PATTERN,
        )
    except ValidationError as exc:
        logger.warning("Invalid inlang settings %s: %s", settings_path, exc)
        return None


__all__ = [
    "COMMON_PATH_PATTERNS",
    "DEFAULT_MARKER_PATH",
    "DEFAULT_PATH_PATTERN",
    "ProjectSettings",
    "find_project_root",
    "load_settings",
    "message_path",
]
