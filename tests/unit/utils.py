"""Shared gateways and loop helpers for storyboard tests."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional, Tuple

from storyboard_fanout.adapters.stub_adapter import ONE_PIXEL_PNG_B64

SCENES = [f"scene {idx}" for idx in range(1, 9)]
STYLE = "Documentary photograph"


class GatedRenderer:
    """Renderer whose calls stay in flight until the test settles them.

    With ``hold`` set to False calls return ``payload`` immediately.
    """

    def __init__(self, *, payload: str = ONE_PIXEL_PNG_B64, hold: bool = True) -> None:
        self.payload = payload
        self.hold = hold
        self.calls: List[Tuple[str, str]] = []
        self._futures: List[Optional[asyncio.Future[str]]] = []

    async def render(self, description: str, style: str) -> str:
        self.calls.append((description, style))
        if not self.hold:
            self._futures.append(None)
            await asyncio.sleep(0)
            return self.payload
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return await future

    def resolve(self, index: int, payload: Optional[str] = None) -> None:
        future = self._futures[index]
        assert future is not None and not future.done()
        future.set_result(payload if payload is not None else self.payload)

    def reject(self, index: int, exc: Exception) -> None:
        future = self._futures[index]
        assert future is not None and not future.done()
        future.set_exception(exc)


async def spin(predicate: Callable[[], Any], *, attempts: int = 200) -> None:
    """Yield to the loop until ``predicate()`` is truthy."""

    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def flush(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
