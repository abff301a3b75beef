"""
Helpers shared by the public meteodb functions.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .sync import AsyncSyncBridge

R = TypeVar("R")


def _annotated_client_class(async_fn: Callable[..., Any]) -> Optional[type]:
    param = inspect.signature(async_fn).parameters.get("client")
    if param is None:
        return None
    return AsyncSyncBridge.extract_client_class(param.annotation)


def add_sync_version(
    async_fn: Callable[..., Awaitable[R]],
) -> Callable[..., Awaitable[R]]:
    """
    Give a coroutine function a blocking ``.sync`` twin.

    Calling ``fn.sync(...)`` drives ``fn`` on a private event loop. If ``fn``
    declares a ``client`` argument annotated with a client class and the
    caller leaves it out, a client of that class is opened for the call and
    closed when the call returns.

    Example:
        >>> frame = get_station_data.sync("10637", "daily", period=2023)
    """
    client_class = _annotated_client_class(async_fn)

    def run_blocking(*args: Any, **kwargs: Any) -> R:
        temporary = client_class if kwargs.get("client") is None else None
        return AsyncSyncBridge.run_async(
            async_fn, args=args, kwargs=kwargs, client_class=temporary
        )

    run_blocking.__name__ = f"{async_fn.__name__}_sync"
    run_blocking.__qualname__ = f"{async_fn.__qualname__}.sync"
    run_blocking.__doc__ = f"Blocking form of :func:`{async_fn.__module__}.{async_fn.__name__}`."
    async_fn.sync = run_blocking  # type: ignore[attr-defined]
    return async_fn
