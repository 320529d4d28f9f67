"""Message file loading and normalization into flat key -> text maps.

Inlang message files come in several shapes: plain ``{"key": "text"}``
maps, nested objects, ``{"value": pattern}`` wrappers and variant arrays.
Everything is flattened to dotted keys and a single display string. For
variant arrays only the first variant is kept.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import orjson

from messages.project import message_path

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

FlatMessageMap = dict[str, str]

REFERENCE_PART_TYPES = frozenset(
    {"variable", "VariableReference", "variable-reference", "expression"}
)


def _reference_name(part: dict[str, Any]) -> str:
    name = part.get("name")
    if isinstance(name, str) and name:
        return name

    arg = part.get("arg")
    if isinstance(arg, dict):
        arg = arg.get("name")
    if isinstance(arg, str) and arg:
        return arg
    return "?"


def extract_pattern_value(value: Any) -> str:
    """Render an inlang pattern as display text, variables as ``{name}``."""
    if isinstance(value, str):
        return value

    if isinstance(value, list):
        parts: list[str] = []
        for part in value:
            if isinstance(part, dict):
                part_type = part.get("type")
                if part_type == "text" and part.get("value") is not None:
                    parts.append(str(part["value"]))
                elif part_type in REFERENCE_PART_TYPES:
                    parts.append("{" + _reference_name(part) + "}")
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)

    return str(value)


def _has_value(node: dict[str, Any]) -> bool:
    return node.get("value") is not None


def flatten(node: Any, prefix: str = "") -> FlatMessageMap:
    """Flatten a parsed message document into ``{dotted.key: text}``.

    Unsupported values (numbers, booleans, null, empty containers) are
    skipped rather than reported.
    """
    result: FlatMessageMap = {}
    if not isinstance(node, dict):
        return result

    for key, value in node.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)

        if isinstance(value, str):
            result[full_key] = value
        elif isinstance(value, list):
            if not value:
                continue
            first = value[0]
            if isinstance(first, dict) and _has_value(first):
                result[full_key] = extract_pattern_value(first["value"])
            elif isinstance(first, str):
                result[full_key] = first
        elif isinstance(value, dict):
            if _has_value(value):
                result[full_key] = extract_pattern_value(value["value"])
            else:
                result.update(flatten(value, full_key))

    return result


def read_message_file(path: Path) -> Any | None:
    """Parse one message file; None when it is missing or malformed."""
    try:
        content = path.read_bytes()
    except OSError as exc:
        logger.debug("Message file not readable %s: %s", path, exc)
        return None

    try:
        return orjson.loads(content)
    except orjson.JSONDecodeError as exc:
        logger.error("Failed to parse messages %s: %s", path, exc)
        return None


def load_messages(root: str | Path, pattern: str, locale: str) -> FlatMessageMap:
    """Load and flatten the message file of ``locale``.

    A missing file is not an error and yields an empty map, which renders as
    "locale not loaded".
    """
    document = read_message_file(message_path(root, pattern, locale))
    if document is None:
        return {}
    return flatten(document)


__all__ = [
    "FlatMessageMap",
    "extract_pattern_value",
    "flatten",
    "load_messages",
    "read_message_file",
]
