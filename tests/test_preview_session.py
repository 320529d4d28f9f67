from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

import pytest

from options.config import HoverOptions, PreviewOptions
from render.annotations import render_annotations
from session.host import InMemoryHost
from session.preview import PreviewSession
from session.timers import LoopScheduler
from session.watch import PollingWatcher

FIXTURE_PROJECT = Path(__file__).parent / "fixtures" / "mini_project"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms / 1000


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    shutil.copytree(FIXTURE_PROJECT, root)
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def host() -> InMemoryHost:
    return InMemoryHost()


@pytest.fixture
def watcher() -> PollingWatcher:
    return PollingWatcher()


@pytest.fixture
def session(
    host: InMemoryHost, clock: FakeClock, watcher: PollingWatcher
) -> PreviewSession:
    return PreviewSession(
        host, PreviewOptions(), scheduler=LoopScheduler(clock), watcher=watcher
    )


def _texts(host: InMemoryHost, session: PreviewSession, buffer_id: int) -> list[str]:
    return [
        f"{a.key}{a.text}" for a in host.annotations(buffer_id, session.namespace)
    ]


def _rewrite(path: Path, content: dict) -> None:
    # Grow the file so (mtime_ns, size) changes even on coarse clocks.
    path.write_text(json.dumps(content, indent=4) + "\n" * 8, encoding="utf-8")


def test_end_to_end_single_reference(tmp_path: Path, host: InMemoryHost) -> None:
    root = tmp_path / "app"
    (root / "project.inlang").mkdir(parents=True)
    (root / "project.inlang" / "settings.json").write_text(
        json.dumps(
            {
                "baseLocale": "en",
                "locales": ["en", "de"],
                "pathPattern": "./messages/{languageTag}.json",
            }
        ),
        encoding="utf-8",
    )
    (root / "messages").mkdir()
    (root / "messages" / "en.json").write_text('{"hello": "Hello"}', encoding="utf-8")
    (root / "messages" / "de.json").write_text("{}", encoding="utf-8")
    source = root / "main.ts"
    source.write_text("const g = m.hello()", encoding="utf-8")

    session = PreviewSession(host)
    buffer_id = host.open_buffer(source)
    assert session.attach(buffer_id)

    [annotation] = host.annotations(buffer_id, session.namespace)
    assert annotation.status == "resolved"
    assert annotation.segments[0].text == ' -> "Hello"'
    assert annotation.missing_locales == ("de",)
    assert (annotation.line, annotation.column) == (0, 19)


def test_attach_discovers_project_and_renders(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")

    assert session.attach(buffer_id)

    assert session.state.project_root == project.resolve()
    assert session.state.current_locale == "en"
    assert set(session.state.messages) == {"en", "de", "fr"}
    assert session.state.messages["fr"] == {}
    assert _texts(host, session, buffer_id) == [
        'hello -> "Hello"  X fr',
        'greeting -> "Hi {name}"  X de, fr',
        'nav.home -> "Home"  X fr',
        "does_not_exist -> [missing key]  X en, de, fr",
    ]


def test_attach_ignores_unsupported_files(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "messages" / "en.json")

    assert not session.attach(buffer_id)
    assert session.state.project_root is None


def test_no_project_renders_nothing(
    tmp_path: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    source = tmp_path / "orphan.ts"
    source.write_text("m.hello()", encoding="utf-8")
    buffer_id = host.open_buffer(source)

    assert session.attach(buffer_id)
    assert not session.project_detected
    assert host.annotations(buffer_id, session.namespace) == []


def test_settings_without_locales_disable_rendering(
    project: Path,
    host: InMemoryHost,
    session: PreviewSession,
    caplog: pytest.LogCaptureFixture,
) -> None:
    _rewrite(project / "project.inlang" / "settings.json", {"baseLocale": "en"})
    buffer_id = host.open_buffer(project / "src" / "app.ts")

    with caplog.at_level(logging.WARNING):
        session.attach(buffer_id)

    assert session.state.project_root == project.resolve()
    assert session.state.settings is None
    assert host.annotations(buffer_id, session.namespace) == []
    assert any("missing baseLocale or locales" in r.getMessage() for r in caplog.records)


def test_fixed_settings_picked_up_by_refresh(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    settings_path = project / "project.inlang" / "settings.json"
    original = json.loads(settings_path.read_text(encoding="utf-8"))
    _rewrite(settings_path, {"baseLocale": "en"})
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    _rewrite(settings_path, original)
    session.refresh()

    assert session.project_detected
    assert len(host.annotations(buffer_id, session.namespace)) == 4


def test_text_changes_are_debounced(
    project: Path, host: InMemoryHost, session: PreviewSession, clock: FakeClock
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    renders: list[int] = []
    original_update = session.update_buffer

    def counting_update(target: object) -> None:
        renders.append(1)
        original_update(target)

    session.update_buffer = counting_update  # type: ignore[method-assign]

    host.set_text(buffer_id, "m.hello()")
    session.on_text_changed(buffer_id)
    clock.advance(100)
    session.scheduler.run_due()  # type: ignore[attr-defined]
    session.on_text_changed(buffer_id)
    clock.advance(100)
    session.scheduler.run_due()  # type: ignore[attr-defined]

    assert renders == []

    clock.advance(60)
    session.scheduler.run_due()  # type: ignore[attr-defined]

    assert renders == [1]
    assert _texts(host, session, buffer_id) == ['hello -> "Hello"  X fr']


def test_detach_cancels_pending_update(
    project: Path, host: InMemoryHost, session: PreviewSession, clock: FakeClock
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    host.set_text(buffer_id, "")
    session.on_text_changed(buffer_id)
    session.detach(buffer_id)
    clock.advance(1000)

    assert session.scheduler.run_due() == 0  # type: ignore[attr-defined]
    assert len(host.annotations(buffer_id, session.namespace)) == 4


def test_toggle_clears_and_restores(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    assert session.toggle() is False
    assert host.annotations(buffer_id, session.namespace) == []

    assert session.toggle() is True
    assert len(host.annotations(buffer_id, session.namespace)) == 4


def test_disabled_session_attaches_without_rendering(
    project: Path, host: InMemoryHost
) -> None:
    session = PreviewSession(host, PreviewOptions(enabled=False))
    buffer_id = host.open_buffer(project / "src" / "app.ts")

    session.attach(buffer_id)

    assert host.annotations(buffer_id, session.namespace) == []
    session.enable()
    assert len(host.annotations(buffer_id, session.namespace)) == 4


def test_select_locale_switches_display(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    assert session.select_locale("de")

    assert _texts(host, session, buffer_id)[0] == 'hello -> "Hallo"  X fr'
    assert session.locale_choices() == [
        ("en", "en (base)"),
        ("de", "de (current)"),
        ("fr", "fr"),
    ]


def test_select_locale_without_messages_shows_locale_not_loaded(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    session.select_locale("fr")

    statuses = {a.status for a in host.annotations(buffer_id, session.namespace)}
    assert statuses == {"missing_locale"}


def test_select_locale_loads_uncached_locale(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    session.state.messages = {"en": session.state.messages["en"]}

    session.select_locale("de")

    assert session.state.messages["de"]["hello"] == "Hallo"


def test_select_unknown_locale_rejected(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    session.attach(host.open_buffer(project / "src" / "app.ts"))

    assert not session.select_locale("jp")
    assert session.state.current_locale == "en"


def test_message_file_change_reloads_one_locale(
    project: Path,
    host: InMemoryHost,
    session: PreviewSession,
    watcher: PollingWatcher,
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    en_before = session.state.messages["en"]

    _rewrite(
        project / "messages" / "de.json",
        {"hello": "Hallo", "greeting": "Hi", "does_not_exist": "x", "nav": {"home": "H"}},
    )
    changed = watcher.poll()

    assert changed == [project.resolve() / "messages" / "de.json"]
    assert session.state.messages["en"] is en_before
    assert _texts(host, session, buffer_id)[1] == 'greeting -> "Hi {name}"  X fr'


def test_settings_change_reloads_project(
    project: Path,
    host: InMemoryHost,
    session: PreviewSession,
    watcher: PollingWatcher,
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    _rewrite(
        project / "project.inlang" / "settings.json",
        {
            "baseLocale": "en",
            "locales": ["en", "de"],
            "pathPattern": "./messages/{languageTag}.json",
        },
    )
    watcher.poll()

    assert session.state.locales == ("en", "de")
    assert set(session.state.messages) == {"en", "de"}
    assert _texts(host, session, buffer_id)[0] == 'hello -> "Hello"'


def test_refresh_replaces_cached_maps(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    stale = session.state.messages

    (project / "messages" / "fr.json").write_text('{"hello": "Bonjour"}', encoding="utf-8")
    session.refresh()

    assert session.state.messages is not stale
    assert session.state.messages["fr"] == {"hello": "Bonjour"}
    assert _texts(host, session, buffer_id)[0] == 'hello -> "Hello"'


def test_key_at_cursor(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    host.set_cursor(buffer_id, 2, 16)
    assert session.key_at_cursor(buffer_id) == "hello"

    host.set_cursor(buffer_id, 2, 2)
    assert session.key_at_cursor(buffer_id) is None


def test_show_hover_opens_panel(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    host.set_cursor(buffer_id, 4, 15)

    assert session.show_hover(buffer_id)

    assert host.panel is not None
    assert host.panel.lines[0] == "  nav.home"
    assert host.panel.lines[2:5] == (
        '  en: "Home"',
        '  de: "Startseite"',
        "  fr: ⚠ [missing]",
    )


def test_cursor_hold_opens_hover_after_delay(
    project: Path, host: InMemoryHost, session: PreviewSession, clock: FakeClock
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    host.set_cursor(buffer_id, 2, 14)

    session.on_cursor_hold(buffer_id)
    clock.advance(299)
    session.scheduler.run_due()  # type: ignore[attr-defined]
    assert host.panel is None

    clock.advance(2)
    session.scheduler.run_due()  # type: ignore[attr-defined]
    assert host.panel is not None
    assert host.panel.key == "hello"

    session.on_cursor_moved(buffer_id)
    assert host.panel is None


def test_cursor_move_cancels_pending_hover(
    project: Path, host: InMemoryHost, session: PreviewSession, clock: FakeClock
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    host.set_cursor(buffer_id, 2, 14)

    session.on_cursor_hold(buffer_id)
    session.on_cursor_moved(buffer_id)
    clock.advance(1000)

    assert session.scheduler.run_due() == 0  # type: ignore[attr-defined]
    assert host.panel is None


def test_hover_disabled_by_options(project: Path, host: InMemoryHost, clock: FakeClock) -> None:
    session = PreviewSession(
        host,
        PreviewOptions(hover=HoverOptions(enabled=False)),
        scheduler=LoopScheduler(clock),
    )
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)
    host.set_cursor(buffer_id, 2, 14)

    session.on_cursor_hold(buffer_id)
    clock.advance(1000)

    assert session.scheduler.run_due() == 0  # type: ignore[attr-defined]


def test_inline_rejection_falls_back_to_end_of_line(
    project: Path, host: InMemoryHost, session: PreviewSession
) -> None:
    buffer_id = host.open_buffer(project / "src" / "app.ts")
    session.attach(buffer_id)

    # Stale matches against a shortened line cannot be placed inline.
    annotations = session.annotations_for(buffer_id)
    host.set_text(buffer_id, "\n\nconst")
    render_annotations(host, buffer_id, session.namespace, annotations[:1])

    [placed] = host.annotations(buffer_id, session.namespace)
    assert (placed.placement, placed.line, placed.column) == ("eol", 2, 0)
