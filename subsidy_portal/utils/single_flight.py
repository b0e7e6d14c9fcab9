"""
In-process request deduplication for service instances
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional


class SingleFlight:
    """
    Runs at most one call per key at a time.

    A caller arriving while a call for the same key is outstanding awaits
    that call's result instead of issuing a second request. Scoped to the
    owning instance and the running event loop only.
    """

    def __init__(self):
        self._inflight: Dict[Hashable, asyncio.Future] = {}

    def busy(self, key: Hashable = None) -> bool:
        return key in self._inflight

    @property
    def any_busy(self) -> bool:
        return bool(self._inflight)

    async def run(self, key: Optional[Hashable], func: Callable[[], Awaitable[Any]]) -> Any:
        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            result = await func()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unjoined failure is not reported as unhandled
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._inflight.pop(key, None)


class InFlightCounter:
    """Counts overlapping operations without serializing them"""

    def __init__(self):
        self._count = 0

    @property
    def active(self) -> bool:
        return self._count > 0

    def __enter__(self):
        self._count += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        self._count -= 1
        return False
