"""Application settings stored as TOML in the user config directory."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from .cache import CommandCache
from .client import HyprClient
from .conffile import update_config_content
from .errors import ConfigValidationError
from .file_io import FileOperationConfig, FileOperations
from .hyprctl import DEFAULT_BINARY, DEFAULT_TIMEOUT_MS, HyprCtl
from .paths import candidate_hyprland_configs, config_file, default_hyprland_config

logger = logging.getLogger("pyhyprconfig.config")

FILE_OPERATIONS_TABLE = "file_operations"

HEADER = (
    "pyhyprconfig settings",
    "Edit freely; unknown keys are ignored.",
)


def _check_type(key: str, value: Any, expected: type) -> Any:
    if expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif isinstance(value, expected):
        return value
    raise ConfigValidationError(
        key, f"expected {expected.__name__}, got {type(value).__name__}"
    )


def _field_types(cls) -> dict[str, type]:
    types = {"bool": bool, "int": int, "float": float, "str": str, "Path": str}
    out: dict[str, type] = {}
    for f in fields(cls):
        annotation = f.type if isinstance(f.type, str) else f.type.__name__
        if annotation in types:
            out[f.name] = types[annotation]
    return out


def _file_operations_from(table: Mapping[str, Any]) -> FileOperationConfig:
    if not isinstance(table, Mapping):
        raise ConfigValidationError(FILE_OPERATIONS_TABLE, "expected a table")
    types = _field_types(FileOperationConfig)
    values = {
        key: _check_type(f"{FILE_OPERATIONS_TABLE}.{key}", table[key], types[key])
        for key in types
        if key in table
    }
    return FileOperationConfig(**values)


@dataclass
class AppConfig:
    hyprland_config_path: Path = field(default_factory=default_hyprland_config)
    backup_enabled: bool = True
    auto_save: bool = False
    hyprctl_binary: str = DEFAULT_BINARY
    command_timeout_ms: int = DEFAULT_TIMEOUT_MS
    option_ttl: float = 30.0
    bulk_ttl: float = 60.0
    file_operations: FileOperationConfig = field(default_factory=FileOperationConfig)

    # ----- conversion -----

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppConfig":
        """Build settings from parsed TOML, ignoring unknown keys."""
        types = _field_types(cls)
        values: dict[str, Any] = {}
        for key, expected in types.items():
            if key in data:
                values[key] = _check_type(key, data[key], expected)
        if "hyprland_config_path" in values:
            values["hyprland_config_path"] = Path(values["hyprland_config_path"]).expanduser()
        if FILE_OPERATIONS_TABLE in data:
            values["file_operations"] = _file_operations_from(data[FILE_OPERATIONS_TABLE])
        return cls(**values)

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name == FILE_OPERATIONS_TABLE:
                continue
            value = getattr(self, f.name)
            data[f.name] = str(value) if isinstance(value, Path) else value
        data[FILE_OPERATIONS_TABLE] = {
            f.name: getattr(self.file_operations, f.name)
            for f in fields(self.file_operations)
        }
        return data

    def to_toml(self, existing: str = "") -> str:
        """Render as TOML, updating *existing* text so its comments survive."""
        doc = tomlkit.parse(existing) if existing.strip() else tomlkit.document()
        if not existing.strip():
            for line in HEADER:
                doc.add(tomlkit.comment(line))
        data = self.to_mapping()
        table_values = data.pop(FILE_OPERATIONS_TABLE)
        for key, value in data.items():
            doc[key] = value
        table = doc.get(FILE_OPERATIONS_TABLE)
        if table is None:
            table = tomlkit.table()
            table.update(table_values)
            doc[FILE_OPERATIONS_TABLE] = table
        else:
            for key, value in table_values.items():
                table[key] = value
        return tomlkit.dumps(doc)

    # ----- persistence -----

    @classmethod
    async def load(
        cls, path: str | Path | None = None, *, files: FileOperations | None = None
    ) -> "AppConfig":
        """Read settings from *path*; a missing file is created with defaults."""
        path = Path(path) if path is not None else config_file()
        files = files or FileOperations()
        text = await files.read_to_string(path)
        if not text.strip():
            config = cls()
            logger.info("writing default settings to %s", path)
            await config.save(path, files=files)
            return config
        try:
            data = tomlkit.parse(text).unwrap()
        except TOMLKitError as exc:
            raise ConfigValidationError(str(path), f"invalid TOML: {exc}") from exc
        return cls.from_mapping(data)

    async def save(
        self, path: str | Path | None = None, *, files: FileOperations | None = None
    ) -> Path:
        path = Path(path) if path is not None else config_file()
        files = files or FileOperations(self.file_operation_config())
        existing = await files.read_to_string(path)
        try:
            rendered = self.to_toml(existing)
        except TOMLKitError:
            logger.warning("existing settings at %s are not valid TOML; rewriting", path)
            rendered = self.to_toml()
        await files.write_to_file(path, rendered)
        return path

    # ----- derived objects -----

    def file_operation_config(self) -> FileOperationConfig:
        if self.backup_enabled:
            return self.file_operations
        return replace(self.file_operations, create_backup=False)

    def file_ops(self) -> FileOperations:
        return FileOperations(self.file_operation_config())

    def create_client(self) -> HyprClient:
        ctl = HyprCtl(self.hyprctl_binary, timeout_ms=self.command_timeout_ms)
        cache = CommandCache(self.option_ttl, self.bulk_ttl)
        return HyprClient(ctl, cache)

    def resolve_hyprland_config(self) -> Path:
        if self.hyprland_config_path.exists():
            return self.hyprland_config_path
        for candidate in candidate_hyprland_configs():
            if candidate.exists():
                return candidate
        return self.hyprland_config_path


async def save_hyprland_options(
    app_config: AppConfig,
    options: Mapping[str, str],
    files: FileOperations | None = None,
) -> Path:
    """Write *options* into the Hyprland config file and return its path."""
    files = files or app_config.file_ops()
    path = app_config.resolve_hyprland_config()
    current = await files.read_to_string(path)
    await files.write_to_file(path, update_config_content(current, options))
    logger.info("saved %d option(s) to %s", len(options), path)
    return path
