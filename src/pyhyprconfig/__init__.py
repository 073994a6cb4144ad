from .cache import CommandCache
from .client import HyprClient
from .config import AppConfig, save_hyprland_options
from .errors import CommandError, ConfigValidationError, FileError, HyprConfigError
from .file_io import FileOperationConfig, FileOperations
from .hyprctl import HyprCtl, HyprlandKeybind
from .recovery import RecoveryContext, run_with_recovery

__all__ = [
    "AppConfig",
    "CommandCache",
    "CommandError",
    "ConfigValidationError",
    "FileError",
    "FileOperationConfig",
    "FileOperations",
    "HyprClient",
    "HyprConfigError",
    "HyprCtl",
    "HyprlandKeybind",
    "RecoveryContext",
    "run_with_recovery",
    "save_hyprland_options",
]
