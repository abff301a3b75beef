"""
Running meteodb's async API from synchronous code.

Functions decorated with :func:`meteodb.utils.add_sync_version` expose a
``.sync`` attribute backed by :class:`AsyncSyncBridge`:

    # Async
    async with MeteoClient() as client:
        frame = await get_station_data("10637", "daily", client=client)

    # Sync
    frame = get_station_data.sync("10637", "daily")
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union, get_args, get_origin

R = TypeVar("R")


class AsyncSyncBridge:
    """Runs coroutines to completion on a fresh event loop."""

    @staticmethod
    def run_async(
        async_fn: Callable[..., Awaitable[R]],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        client_class: Optional[type] = None,
    ) -> R:
        """Run an async function synchronously.

        Args:
            async_fn: Async function to run
            args: Positional arguments for the function
            kwargs: Keyword arguments for the function
            client_class: Client type to open for the call when no client is passed

        Returns:
            Result of running the async function

        Raises:
            RuntimeError: If called from within a running event loop
        """
        kwargs = dict(kwargs or {})

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "Cannot use sync version from within a running asyncio event loop. "
                "Await the async version instead."
            )

        async def _call() -> R:
            if client_class is None:
                return await async_fn(*args, **kwargs)
            async with client_class() as temp_client:
                kwargs["client"] = temp_client
                return await async_fn(*args, **kwargs)

        return asyncio.run(_call())

    @staticmethod
    def extract_client_class(annotation: Any) -> Optional[type]:
        """Extract the client class from a type annotation.

        Handles ``Optional[X]``, ``Union[X, None]`` and plain ``X``.
        """
        if annotation is None or annotation is inspect.Parameter.empty:
            return None

        if get_origin(annotation) is Union:
            for arg in get_args(annotation):
                if arg is not type(None) and isinstance(arg, type):
                    return arg
            return None

        if isinstance(annotation, type):
            return annotation
        return None
