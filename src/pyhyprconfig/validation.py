from __future__ import annotations

from .errors import ConfigValidationError

BOOL_WORDS = {"true", "false", "1", "0", "yes", "no"}
COLOR_PREFIXES = ("rgb(", "rgba(", "#")


def validate_option(name: str, value: str) -> None:
    """Raise :class:`ConfigValidationError` if *value* is unsuitable for *name*.

    Rules are picked by substring of the option name, first match wins.
    """
    if any(part in name for part in ("gaps_", "border_size", "rounding")):
        try:
            number = int(value)
        except ValueError:
            raise ConfigValidationError(name, "must be a valid integer") from None
        if number < 0:
            raise ConfigValidationError(name, "must be non-negative")
        return
    if "opacity" in name or "sensitivity" in name:
        try:
            number = float(value)
        except ValueError:
            raise ConfigValidationError(name, "must be a valid decimal number") from None
        if "opacity" in name and not 0.0 <= number <= 1.0:
            raise ConfigValidationError(name, "opacity must be between 0.0 and 1.0")
        return
    if "enabled" in name or "disable_" in name:
        if value.lower() not in BOOL_WORDS:
            raise ConfigValidationError(name, "must be true/false, 1/0, or yes/no")
        return
    if "col." in name:
        if not value.startswith(COLOR_PREFIXES):
            raise ConfigValidationError(
                name, "must be a valid color (rgb(), rgba(), or #hex)"
            )
        return
    if not value.strip():
        raise ConfigValidationError(name, "value cannot be empty")


def validate_keybind(line: str) -> None:
    """Validate a ``bind = MODS, KEY, DISPATCHER[, ARGS]`` config line."""
    if not line.startswith("bind"):
        raise ConfigValidationError("bind", "must start with 'bind', 'binde', 'bindm', etc.")
    _, sep, body = line.partition("=")
    parts = [p.strip() for p in body.split(",")]
    if not sep or len(parts) < 3:
        raise ConfigValidationError(
            "bind", "must have format: bind = MODIFIERS, KEY, DISPATCHER, ARGS"
        )
    if not parts[1]:
        raise ConfigValidationError("bind", "key cannot be empty")
    if not parts[2]:
        raise ConfigValidationError("bind", "dispatcher cannot be empty")


def _validate_rule(kind: str, line: str, pattern: str) -> None:
    if not line.startswith(kind):
        raise ConfigValidationError(kind, f"must start with '{kind}'")
    if "=" not in line or "," not in line:
        raise ConfigValidationError(kind, f"must have format: {kind} = RULE, {pattern}")


def validate_window_rule(line: str) -> None:
    _validate_rule("windowrule", line, "WINDOW_PATTERN")


def validate_layer_rule(line: str) -> None:
    _validate_rule("layerrule", line, "LAYER_PATTERN")
