"""Simple pub-sub helper used to announce live configuration changes."""
from __future__ import annotations

from collections.abc import Callable

_callbacks: dict[str, list[Callable]] = {}


def on(event: str, fn: Callable) -> None:
    """Register *fn* to be called when *event* is emitted."""
    _callbacks.setdefault(event, []).append(fn)


def off(event: str, fn: Callable) -> None:
    handlers = _callbacks.get(event, [])
    if fn in handlers:
        handlers.remove(fn)


def emit(event: str, *args, **kwargs) -> None:
    """Emit *event*, calling all subscribed callbacks."""
    for fn in list(_callbacks.get(event, [])):
        fn(*args, **kwargs)


def clear() -> None:
    _callbacks.clear()
