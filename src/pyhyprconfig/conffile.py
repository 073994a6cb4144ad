"""Reading and patching ``hyprland.conf`` text."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

INDENT = "    "


@dataclass
class ParsedKeybind:
    bind_type: str
    modifiers: str
    key: str
    dispatcher: str
    args: str
    original_line: str


@dataclass
class HyprlandConfigFile:
    keybinds: list[ParsedKeybind] = field(default_factory=list)
    window_rules: list[str] = field(default_factory=list)
    layer_rules: list[str] = field(default_factory=list)
    workspace_rules: list[str] = field(default_factory=list)
    options: dict[str, str] = field(default_factory=dict)


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split *text* on *sep* outside of ``()`` and ``[]`` groups."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in text:
        if ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        if ch in "([":
            depth += 1
        elif ch in ")]":
            depth -= 1
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def parse_keybind_line(line: str) -> ParsedKeybind | None:
    bind_type, sep, body = line.partition("=")
    if not sep:
        return None
    parts = split_top_level(body.strip())
    if len(parts) < 3:
        return None
    return ParsedKeybind(
        bind_type=bind_type.strip(),
        modifiers=parts[0],
        key=parts[1],
        dispatcher=parts[2],
        args=", ".join(parts[3:]),
        original_line=line,
    )


def parse_config(text: str) -> HyprlandConfigFile:
    parsed = HyprlandConfigFile()
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("bind"):
            keybind = parse_keybind_line(line)
            if keybind is not None:
                parsed.keybinds.append(keybind)
        elif line.startswith("windowrule"):
            parsed.window_rules.append(line)
        elif line.startswith("layerrule"):
            parsed.layer_rules.append(line)
        elif line.startswith("blurls"):
            _, sep, layer = line.partition("=")
            if sep and layer.strip():
                parsed.layer_rules.append(f"layerrule = blur, {layer.strip()}")
        elif line.startswith("workspace"):
            parsed.workspace_rules.append(line)
        elif "=" in line and " " not in line:
            key, _, value = line.partition("=")
            parsed.options[key] = value
    return parsed


def _scan(lines: list[str]) -> tuple[dict[str, int], list[tuple[int, str]]]:
    """Return closing-brace indexes per block path and every assignment's full name."""
    stack: list[str] = []
    ends: dict[str, int] = {}
    assignments: list[tuple[int, str]] = []
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.endswith("{"):
            stack.append(stripped[:-1].strip())
            continue
        if stripped.startswith("}"):
            if stack:
                ends.setdefault(":".join(stack), i)
                stack.pop()
            continue
        key, sep, _ = stripped.partition("=")
        if sep:
            assignments.append((i, ":".join([*stack, key.strip()])))
    return ends, assignments


def update_config_content(text: str, options: Mapping[str, str]) -> str:
    """Return *text* with *options* (``section:name`` -> value) applied.

    Existing assignments are rewritten in place; missing ones are added to
    their section block, or to a new block at the end when the section is
    absent.
    """
    lines = text.splitlines()
    ends, assignments = _scan(lines)
    applied: set[str] = set()

    for i, option in assignments:
        if option not in options:
            continue
        line = lines[i]
        indent = line[: len(line) - len(line.lstrip())]
        key = line.strip().partition("=")[0].strip()
        lines[i] = f"{indent}{key} = {options[option]}"
        applied.add(option)

    inserts: dict[int, list[str]] = {}
    appends: list[str] = []
    for option, value in options.items():
        if option in applied:
            continue
        section, _, name = option.rpartition(":")
        if section in ends:
            depth = section.count(":") + 1
            inserts.setdefault(ends[section], []).append(f"{INDENT * depth}{name} = {value}")
        elif section and ":" not in section:
            if lines or appends:
                appends.append("")
            appends.extend([f"{section} {{", f"{INDENT}{name} = {value}", "}"])
        else:
            appends.append(f"{option} = {value}")

    for index in sorted(inserts, reverse=True):
        lines[index:index] = inserts[index]
    lines.extend(appends)

    result = "\n".join(lines)
    if text.endswith("\n") or not text:
        result += "\n"
    return result
