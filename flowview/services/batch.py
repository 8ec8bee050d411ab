"""Chunked, concurrent query dispatch with fail-fast merging."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Sequence, TypeVar

from ..errors import AggregateFailure, InvalidArgument, QueryErrorKind, RemoteQueryError

logger = logging.getLogger(__name__)

K = TypeVar("K")
R = TypeVar("R")

DEFAULT_CHUNK_SIZE = 20
DEFAULT_MAX_CONCURRENCY = 32


def chunk(items: Sequence[K], size: int) -> list[list[K]]:
    """Split ``items`` into consecutive groups of at most ``size``.

    An empty input yields a single empty group.
    """
    if isinstance(size, bool) or not isinstance(size, int) or size < 1:
        raise InvalidArgument(f"Chunk size must be a positive integer, got {size!r}")
    if not items:
        return [[]]
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchAggregator:
    """Runs one query per chunk concurrently and merges the results.

    At most ``max_concurrency`` group queries are in flight at once. The first
    group to fail (lowest group index among failures seen) aborts the whole
    batch: the remaining groups are cancelled and their results discarded.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        if chunk_size < 1:
            raise InvalidArgument(f"chunk_size must be at least 1, got {chunk_size}")
        if max_concurrency < 1:
            raise InvalidArgument(
                f"max_concurrency must be at least 1, got {max_concurrency}"
            )
        self.chunk_size = chunk_size
        self.max_concurrency = max_concurrency

    async def _run_groups(
        self,
        groups: list[list[K]],
        query_fn: Callable[[list[K]], Awaitable[R]],
    ) -> list[R]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(index: int, group: list[K]) -> R:
            async with semaphore:
                logger.debug("Dispatching group %d (%d keys)", index, len(group))
                return await query_fn(group)

        tasks = [
            asyncio.ensure_future(run(index, group)) for index, group in enumerate(groups)
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)

            failures = [
                (index, task.exception())
                for index, task in enumerate(tasks)
                if task.done() and not task.cancelled() and task.exception() is not None
            ]
            if failures:
                index, error = failures[0]
                if isinstance(error, RemoteQueryError):
                    logger.warning("Group %d of %d failed: %s", index, len(groups), error)
                    raise AggregateFailure(error, index) from error
                raise error  # type: ignore[misc]

            return [task.result() for task in tasks]
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def aggregate_map(
        self,
        keys: Sequence[K],
        query_fn: Callable[[list[K]], Awaitable[Mapping[Any, Any]]],
    ) -> dict[Any, Any]:
        """Disjoint union of the mappings returned for each chunk of ``keys``."""
        groups = chunk(keys, self.chunk_size)
        results = await self._run_groups(groups, query_fn)

        merged: dict[Any, Any] = {}
        for index, result in enumerate(results):
            if not isinstance(result, Mapping):
                error = RemoteQueryError(
                    QueryErrorKind.DECODE,
                    f"Expected a mapping, got {type(result).__name__}",
                )
                raise AggregateFailure(error, index) from error
            merged.update(result)
        return merged

    async def aggregate_list(
        self,
        keys: Sequence[K],
        query_fn: Callable[[list[K]], Awaitable[Sequence[Any]]],
    ) -> list[Any]:
        """Concatenation of the lists returned for each chunk, in group order."""
        groups = chunk(keys, self.chunk_size)
        results = await self._run_groups(groups, query_fn)

        merged: list[Any] = []
        for index, result in enumerate(results):
            if isinstance(result, (str, bytes, Mapping)) or not isinstance(result, Sequence):
                error = RemoteQueryError(
                    QueryErrorKind.DECODE,
                    f"Expected a list, got {type(result).__name__}",
                )
                raise AggregateFailure(error, index) from error
            merged.extend(result)
        return merged
