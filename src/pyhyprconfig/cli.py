from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

from .config import AppConfig, save_hyprland_options
from .errors import HyprConfigError
from .paths import candidate_hyprland_configs, config_file, user_config_dir

DEBUG_ENV = "HYPRCONFIG_DEBUG"
LOG_FORMAT = "%(levelname)s:%(name)s:%(message)s"

logger = logging.getLogger("pyhyprconfig.cli")


def configure_logging(verbose: bool = False) -> None:
    root = logging.getLogger("pyhyprconfig")
    if not (verbose or os.environ.get(DEBUG_ENV)) or root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


async def _settings(args: argparse.Namespace) -> AppConfig:
    return await AppConfig.load(args.config)


# ---------------------------------------------------------------------------
# Live commands
# ---------------------------------------------------------------------------


async def cmd_get(args: argparse.Namespace) -> int:
    client = (await _settings(args)).create_client()
    print(await client.get_option(args.name))
    return 0


async def cmd_set(args: argparse.Namespace) -> int:
    settings = await _settings(args)
    client = settings.create_client()
    await client.set_option(args.name, args.value)
    if args.save or settings.auto_save:
        path = await save_hyprland_options(settings, {args.name: args.value})
        print(f"saved to {path}")
    return 0


async def cmd_binds(args: argparse.Namespace) -> int:
    client = (await _settings(args)).create_client()
    binds = await client.get_binds()
    if args.as_json:
        print(json.dumps([asdict(b) for b in binds], indent=2))
    else:
        for bind in binds:
            print(bind.to_config_line())
    return 0


async def cmd_rules(args: argparse.Namespace) -> int:
    client = (await _settings(args)).create_client()
    fetch = {
        "window": client.get_window_rules,
        "layer": client.get_layer_rules,
        "workspace": client.get_workspace_rules,
    }[args.kind]
    for rule in await fetch():
        print(rule)
    return 0


async def cmd_reload(args: argparse.Namespace) -> int:
    client = (await _settings(args)).create_client()
    await client.reload()
    return 0


async def cmd_version(args: argparse.Namespace) -> int:
    client = (await _settings(args)).create_client()
    print(await client.get_version())
    return 0


# ---------------------------------------------------------------------------
# File commands
# ---------------------------------------------------------------------------


async def cmd_paths(args: argparse.Namespace) -> int:
    settings = await _settings(args)
    data = {
        "user_config": user_config_dir(),
        "settings_file": Path(args.config) if args.config else config_file(),
        "hyprland_config": settings.resolve_hyprland_config(),
    }
    candidates = candidate_hyprland_configs()
    if args.as_json:
        out = {k: str(v) for k, v in data.items()}
        out["candidates"] = [str(p) for p in candidates]
        print(json.dumps(out))
    else:
        for k, v in data.items():
            print(f"{k}: {v}")
        for path in candidates:
            print(f"candidate: {path}")
    return 0


async def cmd_backup(args: argparse.Namespace) -> int:
    files = (await _settings(args)).file_ops()
    print(await files.create_backup(args.path))
    return 0


async def cmd_write(args: argparse.Namespace) -> int:
    files = (await _settings(args)).file_ops()
    if args.source is not None:
        content = await files.read_to_string(args.source, missing_ok=False)
    else:
        content = sys.stdin.read()
    await files.write_to_file(args.path, content)
    return 0


async def config_show(args: argparse.Namespace) -> int:
    settings = await _settings(args)
    sys.stdout.write(settings.to_toml())
    return 0


async def config_init(args: argparse.Namespace) -> int:
    settings = await _settings(args)
    print(await settings.save(args.config))
    return 0


def build_parser(prog: str = "pyhyprconfig") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Hyprland configuration helper.")
    parser.add_argument("--config", type=Path, default=None, help="Settings file to use")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_get = subparsers.add_parser("get", help="Read a live option")
    p_get.add_argument("name")
    p_get.set_defaults(func=cmd_get)

    p_set = subparsers.add_parser("set", help="Change a live option")
    p_set.add_argument("name")
    p_set.add_argument("value")
    p_set.add_argument("--save", action="store_true", help="Also write hyprland.conf")
    p_set.set_defaults(func=cmd_set)

    p_binds = subparsers.add_parser("binds", help="List active keybinds")
    p_binds.add_argument("--json", dest="as_json", action="store_true")
    p_binds.set_defaults(func=cmd_binds)

    p_rules = subparsers.add_parser("rules", help="List rules")
    p_rules.add_argument("kind", choices=["window", "layer", "workspace"])
    p_rules.set_defaults(func=cmd_rules)

    subparsers.add_parser("reload", help="Reload the compositor config").set_defaults(
        func=cmd_reload
    )
    subparsers.add_parser("version", help="Show the compositor version").set_defaults(
        func=cmd_version
    )

    p_paths = subparsers.add_parser("paths", help="Show configuration paths")
    p_paths.add_argument("--json", dest="as_json", action="store_true")
    p_paths.set_defaults(func=cmd_paths)

    p_backup = subparsers.add_parser("backup", help="Create a timestamped backup")
    p_backup.add_argument("path", type=Path)
    p_backup.set_defaults(func=cmd_backup)

    p_write = subparsers.add_parser("write", help="Durably write a file")
    p_write.add_argument("path", type=Path)
    p_write.add_argument("--from", dest="source", type=Path, default=None)
    p_write.set_defaults(func=cmd_write)

    p_config = subparsers.add_parser("config", help="Manage pyhyprconfig settings")
    sp_config = p_config.add_subparsers(dest="config_cmd", required=True)
    sp_config.add_parser("show", help="Print effective settings").set_defaults(
        func=config_show
    )
    sp_config.add_parser("init", help="Write the settings file").set_defaults(
        func=config_init
    )

    return parser


def exit_code_for(error: HyprConfigError) -> int:
    """Return 2 when the compositor is unreachable, 1 otherwise."""
    suggests_down = getattr(error, "suggests_backend_down", False)
    return 2 if suggests_down else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 1
    try:
        return int(asyncio.run(func(args)))
    except HyprConfigError as exc:
        logger.debug("command failed", exc_info=True)
        print(exc.user_message(), file=sys.stderr)
        return exit_code_for(exc)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
