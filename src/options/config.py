from __future__ import annotations

from pathlib import Path

import tomllib
from pydantic import BaseModel, ConfigDict, Field

from messages.project import DEFAULT_MARKER_PATH
from scan.references import DEFAULT_RECEIVER

CONFIG_FILENAME = "lazy-watson.toml"


class _Options(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class VirtualTextOptions(_Options):
    """Appearance of the inline annotations."""

    prefix: str = Field(default=" -> ", description="Text placed before every value")
    highlight_resolved: str = Field(
        default="Comment",
        alias="highlightResolved",
        description="Style tag for resolved translations",
    )
    highlight_missing_key: str = Field(
        default="DiagnosticError",
        alias="highlightMissingKey",
        description="Style tag when the key is absent from the current locale",
    )
    highlight_missing_locale: str = Field(
        default="DiagnosticWarn",
        alias="highlightMissingLocale",
        description="Style tag when the current locale has no messages at all",
    )
    max_length: int = Field(
        default=50,
        ge=4,
        alias="maxLength",
        description="Longest value shown before truncating with an ellipsis",
    )
    show_missing: bool = Field(
        default=True,
        alias="showMissing",
        description="Append the list of locales lacking the key",
    )
    missing_prefix: str = Field(
        default="  X ",
        alias="missingPrefix",
        description="Text placed before the missing locale list",
    )
    highlight_missing_locales: str = Field(
        default="DiagnosticError",
        alias="highlightMissingLocales",
        description="Style tag for the missing locale list",
    )


class HoverOptions(_Options):
    """Multi-locale hover preview."""

    enabled: bool = Field(default=True, description="Show the preview on cursor hold")
    delay_ms: int = Field(
        default=300,
        ge=0,
        alias="delayMs",
        description="Idle time before the preview opens",
    )


class PreviewOptions(_Options):
    """Configuration for translation previews."""

    enabled: bool = Field(default=True, description="Render annotations on attach")
    debounce_ms: int = Field(
        default=150,
        ge=0,
        alias="debounceMs",
        description="Delay that coalesces bursts of edits into one render",
    )
    virtual_text: VirtualTextOptions = Field(
        default_factory=VirtualTextOptions,
        alias="virtualText",
    )
    hover: HoverOptions = Field(default_factory=HoverOptions)
    project_marker_path: str = Field(
        default=DEFAULT_MARKER_PATH,
        min_length=1,
        alias="projectMarkerPath",
        description="Settings file, relative to the project root, marking a project",
    )
    receiver: str = Field(
        default=DEFAULT_RECEIVER,
        pattern=r"^[A-Za-z_$][A-Za-z0-9_$]*$",
        description="Identifier the message functions are accessed through",
    )


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def load_config_file(config_path: Path) -> PreviewOptions:
    """Load options from an explicit TOML file."""
    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        msg = f"Cannot read {config_path}: {e}"
        raise ConfigError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return PreviewOptions.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e


def load_config(root: Path) -> PreviewOptions:
    """Load configuration from lazy-watson.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return PreviewOptions()

    return load_config_file(config_path)
