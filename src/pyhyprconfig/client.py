from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from . import events
from .cache import BulkSlot, CacheStats, CommandCache
from .errors import HyprConfigError
from .hyprctl import HyprCtl, HyprlandKeybind
from .recovery import Backoff, RecoveryContext, run_with_recovery
from .validation import (
    validate_keybind,
    validate_layer_rule,
    validate_option,
    validate_window_rule,
)

logger = logging.getLogger("pyhyprconfig.client")

T = TypeVar("T")

# Served when an option cannot be read from the compositor; first substring
# match on the option name wins.
OPTION_DEFAULTS: tuple[tuple[str, str], ...] = (
    ("gaps_in", "5"),
    ("gaps_out", "20"),
    ("border_size", "2"),
    ("rounding", "10"),
    ("col.active_border", "rgba(33ccffee)"),
    ("col.inactive_border", "rgba(595959aa)"),
    ("sensitivity", "0.0"),
    ("kb_layout", "us"),
    ("follow_mouse", "1"),
    ("blur:size", "8"),
    ("blur:passes", "1"),
    ("animations:enabled", "true"),
    ("workspace_swipe_fingers", "3"),
)


def default_option_value(name: str) -> str | None:
    for fragment, value in OPTION_DEFAULTS:
        if fragment in name:
            return value
    return None


class Backend(Protocol):
    async def get_option(self, name: str) -> str: ...
    async def get_all_options(self) -> dict[str, str]: ...
    async def get_binds(self) -> list[HyprlandKeybind]: ...
    async def get_window_rules(self) -> list[str]: ...
    async def get_layer_rules(self) -> list[str]: ...
    async def get_workspace_rules(self) -> list[str]: ...
    async def get_version(self) -> str: ...
    async def is_running(self) -> bool: ...
    async def set_option(self, name: str, value: str) -> None: ...
    async def add_keybind(self, bind: HyprlandKeybind) -> None: ...
    async def remove_keybind(self, modifiers: list[str], key: str) -> None: ...
    async def add_window_rule(self, rule: str) -> None: ...
    async def add_layer_rule(self, rule: str) -> None: ...
    async def add_workspace_rule(self, rule: str) -> None: ...
    async def dispatch(self, *args: str) -> None: ...
    async def reload(self) -> None: ...


class HyprClient:
    """Cached, retrying access to the live Hyprland configuration.

    Reads go through :class:`CommandCache` first and are retried with
    exponential backoff on transient failures.  Every successful mutation
    clears the whole cache.
    """

    def __init__(
        self,
        ctl: Backend | None = None,
        cache: CommandCache | None = None,
        *,
        max_retries: int = 3,
        retry_delay_ms: int = 100,
        use_defaults: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.ctl = ctl if ctl is not None else HyprCtl()
        self.cache = cache if cache is not None else CommandCache()
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.use_defaults = use_defaults
        self._sleep = sleep

    def _context(self, operation: str) -> RecoveryContext:
        return RecoveryContext(operation).with_retry(self.max_retries, self.retry_delay_ms)

    async def _fetch(self, operation: str, attempt: Callable[[], Awaitable[T]]) -> T:
        return await run_with_recovery(
            self._context(operation),
            attempt,
            backoff=Backoff.EXPONENTIAL,
            sleep=self._sleep,
        )

    # ----- reads -----

    async def get_option(self, name: str) -> str:
        cached = await self.cache.get_option(name)
        if cached is not None:
            return cached

        generation = await self.cache.generation()
        defaulted = False

        def _default(error: Exception) -> str:
            nonlocal defaulted
            value = default_option_value(name)
            if value is None:
                raise error
            defaulted = True
            logger.warning("using default %s=%s: %s", name, value, error)
            return value

        context = self._context(f"get option {name}")
        if self.use_defaults:
            context.with_fallback("use built-in default value")
        value = await run_with_recovery(
            context,
            lambda: self.ctl.get_option(name),
            backoff=Backoff.EXPONENTIAL,
            fallback=_default,
            sleep=self._sleep,
        )
        if not defaulted:
            await self.cache.put_option(name, value, generation=generation)
        return value

    async def _bulk(self, slot: BulkSlot, attempt: Callable[[], Awaitable[T]]) -> T:
        return await self.cache.get_or_fetch_bulk(
            slot, lambda: self._fetch(f"get {slot.value}", attempt)
        )

    async def get_all_options(self) -> dict[str, str]:
        return await self._bulk(BulkSlot.ALL_OPTIONS, self.ctl.get_all_options)

    async def get_binds(self) -> list[HyprlandKeybind]:
        return await self._bulk(BulkSlot.BINDS, self.ctl.get_binds)

    async def get_window_rules(self) -> list[str]:
        return await self._bulk(BulkSlot.WINDOW_RULES, self.ctl.get_window_rules)

    async def get_layer_rules(self) -> list[str]:
        return await self._bulk(BulkSlot.LAYER_RULES, self.ctl.get_layer_rules)

    async def get_workspace_rules(self) -> list[str]:
        return await self._bulk(BulkSlot.WORKSPACE_RULES, self.ctl.get_workspace_rules)

    # ----- writes -----

    async def _mutated(self) -> None:
        await self.cache.clear()
        events.emit("cache_cleared")

    async def set_option(self, name: str, value: str) -> None:
        validate_option(name, value)
        await self.ctl.set_option(name, value)
        await self._mutated()
        events.emit("option_set", name, value)

    async def add_keybind(self, bind: HyprlandKeybind) -> None:
        validate_keybind(bind.to_config_line())
        await self.ctl.add_keybind(bind)
        await self._mutated()

    async def remove_keybind(self, modifiers: list[str], key: str) -> None:
        await self.ctl.remove_keybind(modifiers, key)
        await self._mutated()

    async def add_window_rule(self, rule: str) -> None:
        validate_window_rule(f"windowrule = {rule}")
        await self.ctl.add_window_rule(rule)
        await self._mutated()

    async def add_layer_rule(self, rule: str) -> None:
        validate_layer_rule(f"layerrule = {rule}")
        await self.ctl.add_layer_rule(rule)
        await self._mutated()

    async def add_workspace_rule(self, rule: str) -> None:
        await self.ctl.add_workspace_rule(rule)
        await self._mutated()

    async def dispatch(self, *args: str) -> None:
        await self.ctl.dispatch(*args)
        await self._mutated()

    async def reload(self) -> None:
        await self.ctl.reload()
        await self._mutated()

    # ----- uncached -----

    async def get_version(self) -> str:
        return await self.ctl.get_version()

    async def is_running(self) -> bool:
        try:
            return await self.ctl.is_running()
        except HyprConfigError:
            return False

    async def clear_cache(self) -> None:
        await self.cache.clear()

    async def get_cache_stats(self) -> CacheStats:
        return await self.cache.stats()
