"""Unit tests for chunking and batched aggregation."""
from __future__ import annotations

import asyncio

import pytest

from flowview.errors import AggregateFailure, InvalidArgument, QueryErrorKind, RemoteQueryError
from flowview.services.batch import BatchAggregator, chunk


class TestChunk:
    @pytest.mark.parametrize("size", [1, 2, 3, 7, 20])
    def test_partition_law(self, size: int) -> None:
        items = list(range(17))
        groups = chunk(items, size)
        assert [x for g in groups for x in g] == items
        assert all(len(g) <= size for g in groups)
        assert all(len(g) == size for g in groups[:-1])
        assert groups[-1]

    def test_exact_multiple(self) -> None:
        assert chunk([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_remainder_in_last_group(self) -> None:
        assert [len(g) for g in chunk(list(range(45)), 20)] == [20, 20, 5]

    def test_empty_input_yields_one_empty_group(self) -> None:
        # Kept for compatibility with the existing query flows.
        assert chunk([], 20) == [[]]

    @pytest.mark.parametrize("size", [0, -1, 1.5, True])
    def test_invalid_size_rejected(self, size: object) -> None:
        with pytest.raises(InvalidArgument):
            chunk([1, 2], size)  # type: ignore[arg-type]


class TestAggregatorInit:
    def test_invalid_limits_rejected(self) -> None:
        with pytest.raises(InvalidArgument):
            BatchAggregator(chunk_size=0)
        with pytest.raises(InvalidArgument):
            BatchAggregator(max_concurrency=0)


class TestAggregateMap:
    @pytest.mark.asyncio
    async def test_union_of_disjoint_groups(self) -> None:
        aggregator = BatchAggregator(chunk_size=2)

        async def query(group: list[int]) -> dict[int, str]:
            await asyncio.sleep(0.01 if group[0] == 0 else 0)
            return {k: f"v{k}" for k in group}

        merged = await aggregator.aggregate_map([0, 1, 2, 3, 4], query)
        assert merged == {0: "v0", 1: "v1", 2: "v2", 3: "v3", 4: "v4"}

    @pytest.mark.asyncio
    async def test_groups_dispatched_concurrently(self) -> None:
        aggregator = BatchAggregator(chunk_size=1)
        started = 0
        all_started = asyncio.Event()

        async def query(group: list[int]) -> dict[int, int]:
            nonlocal started
            started += 1
            if started == 3:
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=1)
            return {group[0]: group[0]}

        merged = await aggregator.aggregate_map([1, 2, 3], query)
        assert merged == {1: 1, 2: 2, 3: 3}

    @pytest.mark.asyncio
    async def test_concurrency_cap(self) -> None:
        aggregator = BatchAggregator(chunk_size=1, max_concurrency=2)
        in_flight = 0
        peak = 0

        async def query(group: list[int]) -> dict[int, int]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return {group[0]: group[0]}

        merged = await aggregator.aggregate_map(list(range(6)), query)
        assert len(merged) == 6
        assert peak == 2

    @pytest.mark.asyncio
    async def test_fail_fast_wraps_first_error(self) -> None:
        aggregator = BatchAggregator(chunk_size=1)
        error = RemoteQueryError(QueryErrorKind.EXECUTION, "boom")

        async def query(group: list[int]) -> dict[int, int]:
            if group[0] == 1:
                raise error
            return {group[0]: group[0]}

        with pytest.raises(AggregateFailure) as exc_info:
            await aggregator.aggregate_map([0, 1, 2], query)

        assert exc_info.value.error is error
        assert exc_info.value.group_index == 1
        assert exc_info.value.kind is QueryErrorKind.EXECUTION
        assert exc_info.value.__cause__ is error

    @pytest.mark.asyncio
    async def test_failure_cancels_in_flight_groups(self) -> None:
        aggregator = BatchAggregator(chunk_size=1)
        cancelled = asyncio.Event()
        never = asyncio.Event()

        async def query(group: list[int]) -> dict[int, int]:
            if group[0] == 0:
                raise RemoteQueryError(QueryErrorKind.TRANSPORT, "down")
            try:
                await never.wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return {}

        with pytest.raises(AggregateFailure):
            await asyncio.wait_for(aggregator.aggregate_map([0, 1], query), timeout=1)
        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_non_mapping_response_is_decode_failure(self) -> None:
        aggregator = BatchAggregator(chunk_size=5)

        async def query(group: list[int]) -> list[int]:
            return group

        with pytest.raises(AggregateFailure) as exc_info:
            await aggregator.aggregate_map([1, 2], query)  # type: ignore[arg-type]
        assert exc_info.value.kind is QueryErrorKind.DECODE

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates_unwrapped(self) -> None:
        aggregator = BatchAggregator(chunk_size=1)

        async def query(group: list[int]) -> dict[int, int]:
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await aggregator.aggregate_map([1], query)


class TestAggregateList:
    @pytest.mark.asyncio
    async def test_concatenates_in_group_order(self) -> None:
        aggregator = BatchAggregator(chunk_size=2)

        async def query(group: list[int]) -> list[int]:
            # Earlier groups finish last.
            await asyncio.sleep(0.01 * (10 - group[0]) / 10)
            return [x * 10 for x in group]

        merged = await aggregator.aggregate_list([1, 2, 3, 4, 5], query)
        assert merged == [10, 20, 30, 40, 50]

    @pytest.mark.asyncio
    async def test_empty_keys_dispatch_one_empty_group(self) -> None:
        aggregator = BatchAggregator()
        seen: list[list[int]] = []

        async def query(group: list[int]) -> list[int]:
            seen.append(group)
            return []

        assert await aggregator.aggregate_list([], query) == []
        assert seen == [[]]
