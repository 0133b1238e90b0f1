import asyncio
from collections.abc import Callable

from anyio import from_thread


def schedule_on_loop(callback: Callable[[], None]) -> bool:
    """Schedule a callback to run ASAP on the host event loop.

    Works from the loop's own thread and from anyio worker threads. Returns
    False when no loop is reachable, in which case the caller is responsible
    for running the callback itself (e.g. an explicit flush checkpoint).
    """
    try:
        loop = asyncio.get_running_loop()
        loop.call_soon_threadsafe(callback)
        return True
    except RuntimeError:
        pass

    def _call_soon():
        asyncio.get_running_loop().call_soon(callback)

    try:
        from_thread.run_sync(_call_soon)
        return True
    except RuntimeError:
        return False
