"""Thin asynchronous wrapper around the ``hyprctl`` control-plane binary.

:class:`HyprCtl` spawns one process per call under a wall-clock deadline and
turns its loosely structured text output into Python values.  The parsing
helpers are module level so they can be exercised without a running
compositor.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shlex
from dataclasses import dataclass, field

from .errors import (
    BackendNotRunningError,
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
    ExecutionFailedError,
    InvalidOptionError,
    ParseError,
)

logger = logging.getLogger("pyhyprconfig.hyprctl")

DEFAULT_BINARY = "hyprctl"
DEFAULT_TIMEOUT_MS = 5000

OPTION_PREFIXES = ("int: ", "float: ", "str: ", "custom type: ", "vec2: ", "color: ")
STATUS_PREFIX = "set: "

# modifier name -> X11 modmask bit, in display order
MODIFIER_BITS = (("SUPER", 64), ("ALT", 8), ("CTRL", 4), ("SHIFT", 1))

BIND_FIELDS = ("modmask", "key", "dispatcher", "arg")
_BIND_TYPE_RE = re.compile(r"^bind[a-z]*$")

OPTION_CATALOGUE: dict[str, tuple[str, ...]] = {
    "general": (
        "general:gaps_in",
        "general:gaps_out",
        "general:border_size",
        "general:col.active_border",
        "general:col.inactive_border",
        "general:resize_on_border",
        "general:extend_border_grab_area",
        "general:hover_icon_on_border",
    ),
    "input": (
        "input:kb_layout",
        "input:kb_variant",
        "input:kb_model",
        "input:kb_options",
        "input:kb_rules",
        "input:follow_mouse",
        "input:mouse_refocus",
        "input:sensitivity",
        "input:accel_profile",
        "input:natural_scroll",
    ),
    "decoration": (
        "decoration:rounding",
        "decoration:blur:enabled",
        "decoration:blur:size",
        "decoration:blur:passes",
        "decoration:drop_shadow",
        "decoration:shadow_range",
        "decoration:shadow_render_power",
        "decoration:col.shadow",
        "decoration:dim_inactive",
        "decoration:dim_strength",
    ),
    "animations": ("animations:enabled",),
    "gestures": (
        "gestures:workspace_swipe",
        "gestures:workspace_swipe_fingers",
        "gestures:workspace_swipe_distance",
        "gestures:workspace_swipe_invert",
        "gestures:workspace_swipe_min_speed_to_force",
        "gestures:workspace_swipe_cancel_ratio",
        "gestures:workspace_swipe_create_new",
        "gestures:workspace_swipe_forever",
    ),
    "misc": (
        "misc:disable_hyprland_logo",
        "misc:disable_splash_rendering",
        "misc:mouse_move_enables_dpms",
        "misc:key_press_enables_dpms",
        "misc:always_follow_on_dnd",
        "misc:layers_hog_keyboard_focus",
        "misc:animate_manual_resizes",
        "misc:animate_mouse_windowdragging",
        "misc:disable_autoreload",
        "misc:enable_swallow",
        "misc:swallow_regex",
    ),
}


@dataclass
class HyprlandKeybind:
    modifiers: list[str] = field(default_factory=list)
    key: str = ""
    dispatcher: str = ""
    args: str | None = None
    bind_type: str = "bind"

    def to_config_line(self) -> str:
        """Return the ``hyprland.conf`` line declaring this bind."""
        mods = " + ".join(self.modifiers)
        args = f", {self.args}" if self.args else ""
        return f"{self.bind_type} = {mods}, {self.key}, {self.dispatcher}{args}"

    def to_keyword_value(self) -> str:
        """Return the value passed to ``hyprctl keyword <bind_type>``."""
        parts = [" ".join(self.modifiers), self.key, self.dispatcher]
        if self.args:
            parts.append(self.args)
        return ",".join(parts)

    def display_string(self) -> str:
        mods = f"{' + '.join(self.modifiers)} + " if self.modifiers else ""
        args = f" [{self.args}]" if self.args else ""
        return f"{mods}{self.key} → {self.dispatcher}{args}"


# ---------------------------------------------------------------------------
# Output parsing
# ---------------------------------------------------------------------------


def decode_modmask(mask: int) -> list[str]:
    """Return modifier names for *mask*; unknown bits are ignored."""
    return [name for name, bit in MODIFIER_BITS if mask & bit]


def parse_option_value(output: str, command: str) -> str:
    """Extract the value from ``hyprctl getoption`` output."""
    lines = [line.lstrip() for line in output.splitlines()]
    if any(line.strip().lower() == "no such option" for line in lines):
        raise InvalidOptionError(command.rsplit(" ", 1)[-1], command=command)
    for line in lines:
        for prefix in OPTION_PREFIXES:
            if line.startswith(prefix):
                return line[len(prefix):].rstrip()
    for line in lines:
        if line.strip() and not line.startswith(STATUS_PREFIX):
            return line.strip()
    raise ParseError(command, "no option value in output")


def parse_binds(output: str) -> list[HyprlandKeybind]:
    """Parse the block format printed by ``hyprctl binds``.

    Blocks without both ``key`` and ``dispatcher`` are dropped.
    """
    binds: list[HyprlandKeybind] = []
    bind_type: str | None = None
    fields: dict[str, str] = {}

    def flush() -> None:
        if bind_type is None or not fields.get("key") or not fields.get("dispatcher"):
            return
        try:
            mask = int(fields.get("modmask", "0") or 0)
        except ValueError:
            mask = 0
        binds.append(
            HyprlandKeybind(
                modifiers=decode_modmask(mask),
                key=fields["key"],
                dispatcher=fields["dispatcher"],
                args=fields.get("arg") or None,
                bind_type=bind_type,
            )
        )

    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue
        if ":" not in line and _BIND_TYPE_RE.match(line):
            flush()
            bind_type = line
            fields = {}
            continue
        if bind_type is None:
            continue
        name, sep, value = line.partition(":")
        if sep and name.strip() in BIND_FIELDS:
            fields[name.strip()] = value.strip()
    flush()
    return binds


def parse_window_rules(output: str, command: str = "hyprctl clients -j") -> list[str]:
    """Derive window-rule selectors from ``hyprctl clients -j``."""
    try:
        clients = json.loads(output) if output.strip() else []
    except json.JSONDecodeError as exc:
        raise ParseError(command, f"invalid JSON: {exc}") from exc
    if not isinstance(clients, list):
        raise ParseError(command, "expected a JSON array of clients")
    rules: set[str] = set()
    for client in clients:
        if not isinstance(client, dict):
            continue
        cls = client.get("class")
        if isinstance(cls, str) and cls:
            rules.add(f"class:^({cls})$")
        title = client.get("title")
        if isinstance(title, str) and len(title) > 3:
            rules.add(f"title:^({title})$")
    return sorted(rules)


def parse_layer_rules(output: str) -> list[str]:
    names: set[str] = set()
    for raw in output.splitlines():
        _, sep, rest = raw.partition("namespace: ")
        name = rest.split(",", 1)[0].strip()
        if sep and name:
            names.add(name)
    return sorted(f"layerrule = blur, {name}" for name in names)


def parse_workspace_rules(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class HyprCtl:
    """Run ``hyprctl`` subcommands with a deadline.

    When the deadline passes the child process is killed and reaped before
    :class:`~pyhyprconfig.errors.CommandTimeoutError` is raised.
    """

    def __init__(
        self, binary: str = DEFAULT_BINARY, *, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> None:
        self.binary = binary
        self.timeout_ms = timeout_ms

    def command_line(self, *args: str) -> str:
        return shlex.join([self.binary, *args])

    async def run(self, *args: str, timeout_ms: int | None = None) -> str:
        """Run ``hyprctl *args`` and return its decoded stdout."""
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        command = self.command_line(*args)
        logger.debug("running %s (timeout %dms)", command, timeout_ms)
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(command) from exc
        except OSError as exc:
            raise ExecutionFailedError(command, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            await self._terminate(proc)
            raise CommandTimeoutError(command, timeout_ms) from None
        except BaseException:
            # cancelled while waiting; do not leave the child behind
            await self._terminate(proc)
            raise

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if "HYPRLAND_INSTANCE_SIGNATURE" in out + err:
            raise BackendNotRunningError(command)
        if proc.returncode != 0:
            raise ExecutionFailedError(command, err or out)
        return out

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()

    async def _keyword(self, *args: str) -> None:
        out = await self.run("keyword", *args)
        reply = out.strip()
        if reply and reply.lower() != "ok":
            raise ExecutionFailedError(self.command_line("keyword", *args), reply)

    # ----- queries -----

    async def get_option(self, name: str, *, timeout_ms: int | None = None) -> str:
        out = await self.run("getoption", name, timeout_ms=timeout_ms)
        return parse_option_value(out, self.command_line("getoption", name))

    async def get_all_options(self) -> dict[str, str]:
        """Query every option in :data:`OPTION_CATALOGUE`; failures are omitted.

        If no option could be read at all the last error is raised instead of
        returning an empty mapping.
        """
        options: dict[str, str] = {}
        last_error: CommandError | None = None
        for names in OPTION_CATALOGUE.values():
            for name in names:
                try:
                    options[name] = await self.get_option(name)
                except CommandError as exc:
                    logger.warning("failed to get option %s: %s", name, exc)
                    last_error = exc
        if not options and last_error is not None:
            raise last_error
        return options

    async def get_binds(self) -> list[HyprlandKeybind]:
        return parse_binds(await self.run("binds"))

    async def get_window_rules(self) -> list[str]:
        out = await self.run("clients", "-j")
        return parse_window_rules(out, self.command_line("clients", "-j"))

    async def get_layer_rules(self) -> list[str]:
        return parse_layer_rules(await self.run("layers"))

    async def get_workspace_rules(self) -> list[str]:
        return parse_workspace_rules(await self.run("workspacerules"))

    async def get_version(self) -> str:
        return (await self.run("version")).strip()

    async def is_running(self) -> bool:
        try:
            await self.run("version")
        except CommandError:
            return False
        return True

    # ----- mutations -----

    async def set_option(self, name: str, value: str) -> None:
        await self._keyword(name, value)

    async def add_keybind(self, bind: HyprlandKeybind) -> None:
        await self._keyword(bind.bind_type, bind.to_keyword_value())

    async def remove_keybind(self, modifiers: list[str], key: str) -> None:
        await self._keyword("unbind", f"{' '.join(modifiers)},{key}")

    async def add_window_rule(self, rule: str) -> None:
        await self._keyword("windowrule", rule)

    async def add_layer_rule(self, rule: str) -> None:
        await self._keyword("layerrule", rule)

    async def add_workspace_rule(self, rule: str) -> None:
        await self._keyword("workspace", rule)

    async def reload(self) -> None:
        await self.run("reload")

    async def dispatch(self, *args: str) -> None:
        await self.run("dispatch", *args)
