"""Bridges blocking conversion calls into request handlers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")


async def run_sync(func: Callable[P, R], /, *args: P.args, **kwargs: P.kwargs) -> R:
    """Run a router call on a worker thread so the event loop keeps serving uploads."""

    return await asyncio.to_thread(func, *args, **kwargs)


__all__ = ["run_sync"]
