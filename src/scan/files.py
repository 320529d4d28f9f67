"""Discovery of source files that may contain message references."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

SOURCE_SUFFIXES = frozenset(
    {".js", ".mjs", ".cjs", ".jsx", ".ts", ".mts", ".cts", ".tsx", ".svelte"}
)

SKIPPED_DIRS = frozenset({"node_modules", ".git", ".svelte-kit", "dist", "build"})


def is_source_file(path: Path) -> bool:
    """Return True for file types where ``m.key()`` references are expected."""
    return path.suffix.lower() in SOURCE_SUFFIXES


def _should_include_file(
    path: Path,
    directory: Path,
    gitignore_matches: Callable[[str], bool] | None,
) -> bool:
    """Check if a file should be included based on all filtering rules."""
    if not path.is_file() or path.is_symlink():
        return False

    if not is_source_file(path):
        return False

    if not _is_within_root(path, directory):
        return False

    try:
        rel_path = path.relative_to(directory)
    except ValueError:
        return False

    if any(part in SKIPPED_DIRS for part in rel_path.parts[:-1]):
        return False

    return gitignore_matches is None or not gitignore_matches(str(path))


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _build_gitignore_matcher(root: Path) -> Callable[[str], bool] | None:
    gitignore_path = root / ".gitignore"
    if gitignore_path.is_file() and not gitignore_path.is_symlink():
        return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
    return None


def find_source_files(directory: Path) -> Iterator[Path]:
    """Find all supported source files in a directory, respecting .gitignore.

    Yields:
        Path objects sorted lexicographically by relative path.
    """
    gitignore_matches = _build_gitignore_matcher(directory)

    matched_files = [
        path
        for path in directory.rglob("*")
        if _should_include_file(path, directory, gitignore_matches)
    ]

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())

    yield from matched_files


__all__ = ["SOURCE_SUFFIXES", "find_source_files", "is_source_file"]
