from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir as _uc

APP_NAME = "pyhyprconfig"
HOME_ENV = "HYPRCONFIG_HOME"

# ---------------------------------------------------------------------------
# Tool directories
# ---------------------------------------------------------------------------

def user_config_dir(app_name: str = APP_NAME) -> Path:
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return Path(_uc(appname=app_name)).resolve()


def config_file() -> Path:
    return user_config_dir() / "config.toml"

# ---------------------------------------------------------------------------
# Hyprland configuration
# ---------------------------------------------------------------------------

def xdg_config_home() -> Path:
    env = os.getenv("XDG_CONFIG_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config"


def default_hyprland_config() -> Path:
    return xdg_config_home() / "hypr" / "hyprland.conf"


def candidate_hyprland_configs() -> list[Path]:
    """Return the locations searched for ``hyprland.conf``, in order."""
    candidates = [
        default_hyprland_config(),
        Path("/etc/hypr/hyprland.conf"),
        Path.home() / ".config" / "hypr" / "hyprland.conf",
    ]
    seen: list[Path] = []
    for path in candidates:
        if path not in seen:
            seen.append(path)
    return seen
