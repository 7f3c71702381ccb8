"""Lifecycle registry for ordered startup and shutdown hooks.

Hooks are registered with a decorator. A function whose name starts with
``shutdown`` (or ends with ``_shutdown``) is the shutdown half of the
hook with the same name; anything else is a startup hook.

Startup runs hooks so that every ``requires`` entry has already run,
breaking ties by ``startup_order``. Shutdown runs only the hooks whose
startup completed, in reverse order. A failing startup hook aborts
startup; a failing shutdown hook is logged and the rest still run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

HookFunc = Callable[..., Awaitable[None]]


class LifecycleHook:
    """A named startup or shutdown coroutine with ordering metadata."""

    def __init__(self, name: str, func: HookFunc, order: int, requires: list[str]) -> None:
        self.name = name
        self.func = func
        self.startup_order = order
        self.requires = requires
        # What starts first stops last
        self.shutdown_order = 1000 - order
        self.started = False

    async def execute(self, **kwargs: Any) -> None:
        await self.func(**kwargs)
        self.started = True

    def __repr__(self) -> str:
        return f"LifecycleHook(name={self.name!r}, order={self.startup_order})"


class LifecycleRegistry:
    """Registry of application lifecycle hooks.

    Example:
        registry = LifecycleRegistry()

        @registry.register(name="messaging", startup_order=20, requires=["core"])
        async def startup_messaging(app, rabbit_settings, **kwargs) -> None:
            ...

        @registry.register(name="messaging")
        async def shutdown_messaging(app, **kwargs) -> None:
            ...

        await registry.startup(app=app, rabbit_settings=settings)
        await registry.shutdown(app=app, rabbit_settings=settings)
    """

    def __init__(self) -> None:
        self._startup_hooks: dict[str, LifecycleHook] = {}
        self._shutdown_hooks: dict[str, LifecycleHook] = {}

    @property
    def startup_hooks(self) -> dict[str, LifecycleHook]:
        return dict(self._startup_hooks)

    @property
    def shutdown_hooks(self) -> dict[str, LifecycleHook]:
        return dict(self._shutdown_hooks)

    def register(
        self,
        name: str,
        startup_order: int = 50,
        requires: list[str] | None = None,
    ) -> Callable[[HookFunc], HookFunc]:
        """Register a lifecycle hook.

        Args:
            name: Hook name, shared by the startup and shutdown halves.
            startup_order: Lower runs first. Shutdown order is the inverse.
            requires: Hooks that must have started before this one.

        Raises:
            ValueError: If the same half of ``name`` is registered twice.
        """

        def decorator(func: HookFunc) -> HookFunc:
            func_name = func.__name__.lower()
            is_shutdown = func_name.startswith("shutdown") or func_name.endswith("_shutdown")
            hooks = self._shutdown_hooks if is_shutdown else self._startup_hooks
            if name in hooks:
                phase = "Shutdown" if is_shutdown else "Startup"
                raise ValueError(f"{phase} hook '{name}' already registered")

            hooks[name] = LifecycleHook(name, func, startup_order, list(requires or []))
            return func

        return decorator

    def _resolve_startup_order(self) -> list[str]:
        """Order startup hooks by dependencies, then by ``startup_order``.

        Raises:
            ValueError: On a missing dependency or a dependency cycle.
        """
        for name, hook in self._startup_hooks.items():
            for dep in hook.requires:
                if dep not in self._startup_hooks:
                    raise ValueError(f"Hook '{name}' requires '{dep}' but it's not registered")

        ordered: list[str] = []
        pending = sorted(
            self._startup_hooks, key=lambda n: (self._startup_hooks[n].startup_order, n)
        )
        while pending:
            ready = [
                name
                for name in pending
                if all(dep in ordered for dep in self._startup_hooks[name].requires)
            ]
            if not ready:
                raise ValueError(f"Circular dependency detected among: {', '.join(pending)}")
            # Take one at a time so a lower-order hook unlocked by this one goes next
            name = ready[0]
            ordered.append(name)
            pending.remove(name)
        return ordered

    def _resolve_shutdown_order(self) -> list[str]:
        started = [
            name
            for name, hook in self._startup_hooks.items()
            if hook.started and name in self._shutdown_hooks
        ]
        return sorted(started, key=lambda n: self._shutdown_hooks[n].shutdown_order, reverse=True)

    async def startup(self, **kwargs: Any) -> None:
        """Run every startup hook; the first failure propagates."""
        for name in self._resolve_startup_order():
            hook = self._startup_hooks[name]
            try:
                logger.debug("Starting %s...", name)
                await hook.execute(**kwargs)
                logger.debug("Started %s", name)
            except Exception as e:
                logger.error("Failed to start %s: %s", name, e, exc_info=True)
                raise

    async def shutdown(self, **kwargs: Any) -> None:
        """Run shutdown hooks for started components, continuing past failures."""
        for name in self._resolve_shutdown_order():
            try:
                logger.debug("Shutting down %s...", name)
                await self._shutdown_hooks[name].execute(**kwargs)
                logger.debug("Shut down %s", name)
            except Exception as e:
                logger.warning("Error shutting down %s: %s", name, e, exc_info=True)
            finally:
                self._startup_hooks[name].started = False

    def clear(self) -> None:
        """Forget all hooks (tests)."""
        self._startup_hooks.clear()
        self._shutdown_hooks.clear()


lifespan_registry = LifecycleRegistry()

__all__ = ["LifecycleHook", "LifecycleRegistry", "lifespan_registry"]
