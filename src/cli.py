"""Command-line interface for lazy-watson."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

import orjson

from messages.project import DEFAULT_MARKER_PATH, find_project_root
from options.config import ConfigError, load_config, load_config_file
from render.annotations import missing_locales_for
from scan.files import find_source_files
from scan.references import scan_text
from session.host import InMemoryHost
from session.preview import PreviewSession
from session.watch import PollingWatcher

if TYPE_CHECKING:
    from options.config import PreviewOptions


class ProjectError(Exception):
    """Raised when the given path cannot be previewed."""


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Options file (default: lazy-watson.toml in the project root)",
    )
    parser.add_argument(
        "--locale",
        default=None,
        help="Locale to display (default: the project's base locale)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lazy-watson")
    subparsers = parser.add_subparsers(dest="command", required=True)

    annotate_parser = subparsers.add_parser(
        "annotate", help="Show the translation next to every message reference"
    )
    annotate_parser.add_argument("path", help="Source file or directory")
    annotate_parser.add_argument(
        "--json", action="store_true", help="Emit annotations as JSON"
    )
    _add_common_options(annotate_parser)

    hover_parser = subparsers.add_parser(
        "hover", help="Show a key's translations in every locale"
    )
    hover_parser.add_argument("path", help="Source file")
    hover_parser.add_argument("line", type=int, help="Line number (1-based)")
    hover_parser.add_argument("column", type=int, help="Column number (1-based)")
    _add_common_options(hover_parser)

    check_parser = subparsers.add_parser(
        "check", help="Report references whose key is missing in some locale"
    )
    check_parser.add_argument("path", help="Source file or directory")
    _add_common_options(check_parser)

    watch_parser = subparsers.add_parser(
        "watch", help="Annotate, then re-annotate whenever message files change"
    )
    watch_parser.add_argument("path", help="Source file or directory")
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=0.5,
        help="Seconds between file polls (default: 0.5)",
    )
    watch_parser.add_argument(
        "--max-polls",
        type=int,
        default=None,
        help="Stop after this many polls (default: run until interrupted)",
    )
    _add_common_options(watch_parser)

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_options(path: Path, config: str | None) -> PreviewOptions:
    if config is not None:
        return load_config_file(Path(config).expanduser().resolve())
    base = path if path.is_dir() else path.parent
    root = find_project_root(path, DEFAULT_MARKER_PATH) or base
    return load_config(root)


def _source_files(path: Path) -> list[Path]:
    if path.is_dir():
        return list(find_source_files(path))
    return [path]


def _display_path(path: str | Path) -> str:
    path = Path(path)
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _open_session(
    path: Path, options: PreviewOptions, locale: str | None
) -> tuple[PreviewSession, InMemoryHost, list[int]]:
    host = InMemoryHost()
    session = PreviewSession(host, options, watcher=PollingWatcher())

    buffers = []
    for file_path in _source_files(path):
        buffer_id = host.open_buffer(file_path)
        if session.attach(buffer_id):
            buffers.append(buffer_id)

    if not session.project_detected:
        msg = f"No inlang project found for {path}"
        raise ProjectError(msg)

    if locale is not None and not session.select_locale(locale):
        msg = f"Unknown locale: {locale}"
        raise ProjectError(msg)

    return session, host, buffers


def _print_annotations(
    session: PreviewSession, host: InMemoryHost, buffers: list[int], *, as_json: bool
) -> None:
    records = []
    for buffer_id in buffers:
        path = _display_path(host.buffer_path(buffer_id))
        for annotation in host.annotations(buffer_id, session.namespace):
            if as_json:
                records.append(
                    {
                        "path": path,
                        "line": annotation.line + 1,
                        "column": annotation.column,
                        "key": annotation.key,
                        "status": annotation.status,
                        "text": annotation.text,
                        "missing_locales": list(annotation.missing_locales),
                    }
                )
            else:
                sys.stdout.write(
                    f"{path}:{annotation.line + 1}: {annotation.key}{annotation.text}\n"
                )

    if as_json:
        payload = orjson.dumps(records, option=orjson.OPT_INDENT_2)
        sys.stdout.write(payload.decode("utf-8") + "\n")


def _handle_annotate(path: Path, args: argparse.Namespace) -> int:
    options = _load_options(path, args.config)
    session, host, buffers = _open_session(path, options, args.locale)
    _print_annotations(session, host, buffers, as_json=args.json)
    return 0


def _handle_hover(path: Path, args: argparse.Namespace) -> int:
    options = _load_options(path, args.config)
    session, host, buffers = _open_session(path, options, args.locale)
    if not buffers:
        sys.stderr.write(f"error: unsupported file type: {path}\n")
        return 2

    buffer_id = buffers[0]
    host.set_cursor(buffer_id, args.line - 1, args.column - 1)
    if not session.show_hover(buffer_id) or host.panel is None:
        sys.stderr.write(f"No message reference at {args.line}:{args.column}\n")
        return 1

    for line in host.panel.lines:
        sys.stdout.write(f"{line}\n")
    return 0


def _handle_check(path: Path, args: argparse.Namespace) -> int:
    options = _load_options(path, args.config)
    session, host, buffers = _open_session(path, options, args.locale)

    missing_count = 0
    for buffer_id in buffers:
        display = _display_path(host.buffer_path(buffer_id))
        for match in scan_text(host.buffer_text(buffer_id), options.receiver):
            missing = missing_locales_for(
                match.key, session.state.messages, session.state.locales
            )
            if missing:
                missing_count += 1
                sys.stdout.write(
                    f"{display}:{match.line + 1}:{match.col_start + 1}: "
                    f"{match.key} missing in {', '.join(missing)}\n"
                )

    return 1 if missing_count else 0


def _handle_watch(path: Path, args: argparse.Namespace) -> int:
    options = _load_options(path, args.config)
    session, host, buffers = _open_session(path, options, args.locale)
    assert isinstance(session.watcher, PollingWatcher)

    _print_annotations(session, host, buffers, as_json=False)
    polls = 0
    try:
        while args.max_polls is None or polls < args.max_polls:
            time.sleep(args.interval)
            polls += 1
            changed = session.watcher.poll()
            if changed:
                sys.stdout.write("--\n")
                _print_annotations(session, host, buffers, as_json=False)
    except KeyboardInterrupt:
        pass
    finally:
        session.close()
    return 0


_HANDLERS = {
    "annotate": _handle_annotate,
    "hover": _handle_hover,
    "check": _handle_check,
    "watch": _handle_watch,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    path = Path(args.path).expanduser().resolve()
    if not path.exists():
        sys.stderr.write(f"error: no such file or directory: {path}\n")
        return 2

    try:
        return _HANDLERS[args.command](path, args)
    except ConfigError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2
    except ProjectError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
