"""Awaitable handle over one shared computation."""

import asyncio
from collections.abc import Callable, Coroutine, Generator
from typing import Any, Generic, TypeVar

T = TypeVar("T")


def _retrieve_exception(task: asyncio.Task) -> None:
    # an abandoned value may fail without ever being awaited
    if not task.cancelled():
        task.exception()


class Deferred(Generic[T]):
    """Deferred body value.

    The computation is scheduled as soon as the handle is created inside a
    running event loop, or on first await otherwise. Every awaiter shares
    the same task, so the body is never decoded twice.
    """

    __slots__ = ("_factory", "_task")

    def __init__(self, factory: Callable[[], Coroutine[Any, Any, T]]) -> None:
        self._factory = factory
        self._task: asyncio.Task[T] | None = None
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._start()

    def _start(self) -> asyncio.Task[T]:
        if self._task is None:
            self._task = asyncio.ensure_future(self._factory())
            self._task.add_done_callback(_retrieve_exception)
        return self._task

    def __await__(self) -> Generator[Any, None, T]:
        return self._start().__await__()

    def started(self) -> bool:
        return self._task is not None

    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def __repr__(self) -> str:
        state = "done" if self.done() else "running" if self.started() else "pending"
        return f"Deferred({state})"
