"""Inlang project settings and message tables."""

from messages.loader import (
    FlatMessageMap,
    extract_pattern_value,
    flatten,
    load_messages,
)
from messages.project import (
    DEFAULT_MARKER_PATH,
    ProjectSettings,
    find_project_root,
    load_settings,
    message_path,
)

__all__ = [
    "DEFAULT_MARKER_PATH",
    "FlatMessageMap",
    "ProjectSettings",
    "extract_pattern_value",
    "find_project_root",
    "flatten",
    "load_messages",
    "load_settings",
    "message_path",
]
