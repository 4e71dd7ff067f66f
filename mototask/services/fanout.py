"""
Bounded fan-out/join over blob operations.

Every item runs to completion. Failures are returned as tagged results and
never cancel their siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

K = TypeVar("K")
T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[K, T]):
    key: K
    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    keys: Iterable[K],
    func: Callable[[K], Awaitable[T]],
    limit: int | None = None,
) -> list[Settled[K, T]]:
    """Run `func` for every key, at most `limit` at a time, and collect results in order."""
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def _run(key: K) -> Settled[K, T]:
        try:
            if semaphore is None:
                value = await func(key)
            else:
                async with semaphore:
                    value = await func(key)
        except Exception as exc:
            return Settled(key, error=exc)
        return Settled(key, value=value)

    return list(await asyncio.gather(*(_run(k) for k in keys)))
