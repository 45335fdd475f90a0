"""Command handler registry."""

from __future__ import annotations

from collections.abc import Callable, Iterator

from ..protocols import CommandHandler


class HandlerRegistry:
    """Maps case-folded command names to handlers.

    ``register`` works directly or as a decorator::

        @registry.register("ping")
        def ping(invocation, session):
            return "Pong!"
    """

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}

    def register(
        self, name: str, handler: CommandHandler | None = None
    ) -> Callable[[CommandHandler], CommandHandler] | CommandHandler:
        key = name.casefold()
        if handler is not None:
            self._handlers[key] = handler
            return handler

        def decorator(func: CommandHandler) -> CommandHandler:
            self._handlers[key] = func
            return func

        return decorator

    def unregister(self, name: str) -> None:
        self._handlers.pop(name.casefold(), None)

    def get(self, name: str) -> CommandHandler | None:
        return self._handlers.get(name.casefold())

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._handlers)
