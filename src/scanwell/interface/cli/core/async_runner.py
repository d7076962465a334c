"""Async execution for click commands.

click expects synchronous callables; the scan engine is async end to end.
``async_command`` bridges the two with one ``asyncio.run`` per invocation.
"""

import asyncio
import functools
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

T = TypeVar("T")
P = ParamSpec("P")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion on a fresh event loop.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Raises:
        RuntimeError: When called from inside a running event loop
        Any exception raised by the coroutine is propagated
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("run_async() cannot be called from a running event loop")


def async_command(
    f: Callable[P, Coroutine[Any, Any, T]],
) -> Callable[P, T]:
    """Decorator that wraps async functions for click commands.

    Usage:
        @click.command()
        @async_command
        async def scan(path: str) -> None:
            result = await orchestrator.execute(Path(path))
            console.print(result)
    """

    @functools.wraps(f)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return run_async(f(*args, **kwargs))

    return wrapper
