"""Preview options and their TOML loader."""

from options.config import (
    CONFIG_FILENAME,
    ConfigError,
    HoverOptions,
    PreviewOptions,
    VirtualTextOptions,
    load_config,
    load_config_file,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "HoverOptions",
    "PreviewOptions",
    "VirtualTextOptions",
    "load_config",
    "load_config_file",
]
