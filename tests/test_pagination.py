from __future__ import annotations

import asyncio

import pytest

from cios_file_storage import pagination
from cios_file_storage.errors import CancellationError, TransportError
from cios_file_storage.models import Node, NodeList
from cios_file_storage.options import NodeQuery


class _FakeBucket:
    """In-memory listing endpoint that honours the page ceiling like the server."""

    def __init__(self, total: int, *, fail_on_call: int | None = None) -> None:
        self.total = total
        self.fail_on_call = fail_on_call
        self.calls: list[tuple[int, int]] = []

    async def __call__(self, bucket_id: str, query: NodeQuery) -> NodeList:
        assert query.limit is not None
        self.calls.append((query.offset, query.limit))
        if self.fail_on_call == len(self.calls):
            raise TransportError(method="GET", url=f"/buckets/{bucket_id}/nodes", status_code=500)
        count = max(0, min(self.total - query.offset, pagination.PAGE_CEILING, query.limit))
        nodes = [Node(id=str(query.offset + i)) for i in range(count)]
        return NodeList(nodes=nodes, total=self.total)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("wanted", "offset", "expected_calls", "expected_count"),
    [
        (999, 0, [(0, 999)], 999),
        (1500, 0, [(0, 1000), (1000, 500)], 1500),
        (2001, 0, [(0, 1000), (1000, 1000), (2000, 1)], 2001),
        (3501, 0, [(0, 1000), (1000, 1000), (2000, 1000), (3000, 501)], 3500),
        (2001, 20, [(20, 1000), (1020, 1000), (2020, 1)], 2001),
    ],
)
async def test_list_up_to_page_plan(wanted, offset, expected_calls, expected_count) -> None:
    fetch = _FakeBucket(3500)
    result = await pagination.list_up_to(
        fetch, "test", NodeQuery().with_limit(wanted).with_offset(offset)
    )
    assert fetch.calls == expected_calls
    assert len(result.nodes) == expected_count
    assert result.total == 3500
    assert [n.id for n in result.nodes[:2]] == [str(offset), str(offset + 1)]
    assert result.nodes[-1].id == str(offset + expected_count - 1)


@pytest.mark.asyncio
async def test_list_up_to_never_exceeds_ceiling() -> None:
    fetch = _FakeBucket(10_000)
    result = await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(7_777))
    assert len(result.nodes) == 7_777
    assert max(limit for _, limit in fetch.calls) == pagination.PAGE_CEILING
    assert len(fetch.calls) == 8


@pytest.mark.asyncio
async def test_list_up_to_zero_makes_no_call() -> None:
    fetch = _FakeBucket(3500)
    result = await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(0))
    assert result == NodeList()
    assert fetch.calls == []


@pytest.mark.asyncio
async def test_list_up_to_without_limit_drains_everything() -> None:
    fetch = _FakeBucket(2500)
    result = await pagination.list_up_to(fetch, "test", NodeQuery())
    assert len(result.nodes) == 2500
    assert fetch.calls == [(0, 1000), (1000, 1000), (2000, 1000)]


@pytest.mark.asyncio
async def test_list_up_to_stops_on_short_page() -> None:
    async def fetch(bucket_id: str, query: NodeQuery) -> NodeList:
        # Reports a large total but only ever returns three nodes.
        calls.append(query.offset)
        return NodeList(nodes=[Node(id=str(i)) for i in range(3)], total=5000)

    calls: list[int] = []
    result = await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(2000))
    assert calls == [0]
    assert len(result.nodes) == 3


@pytest.mark.asyncio
async def test_list_up_to_trusts_latest_total() -> None:
    totals = iter([3000, 1500])

    async def fetch(bucket_id: str, query: NodeQuery) -> NodeList:
        assert query.limit is not None
        nodes = [Node(id=str(query.offset + i)) for i in range(query.limit)]
        return NodeList(nodes=nodes, total=next(totals))

    result = await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(3000))
    assert len(result.nodes) == 2000
    assert result.total == 1500


@pytest.mark.asyncio
async def test_list_all_with_page_size_one() -> None:
    fetch = _FakeBucket(50)
    result = await pagination.list_all(fetch, "test", NodeQuery().with_limit(1))
    assert len(result.nodes) == 50
    assert len(fetch.calls) == 50
    assert fetch.calls[-1] == (49, 1)


@pytest.mark.asyncio
async def test_list_all_drains_large_collection() -> None:
    fetch = _FakeBucket(3500)
    result = await pagination.list_all(fetch, "test", NodeQuery().with_limit(1))
    assert len(result.nodes) == 3500
    assert [n.id for n in result.nodes] == [str(i) for i in range(3500)]


@pytest.mark.asyncio
async def test_list_all_caps_page_size_hint() -> None:
    fetch = _FakeBucket(2500)
    result = await pagination.list_all(fetch, "test", NodeQuery().with_limit(5000).with_offset(100))
    assert len(result.nodes) == 2400
    assert fetch.calls == [(100, 1000), (1100, 1000), (2100, 1000)]


@pytest.mark.asyncio
async def test_list_all_stops_on_empty_page() -> None:
    fetch = _FakeBucket(10)
    result = await pagination.list_all(fetch, "test", NodeQuery().with_offset(20))
    assert result.nodes == []
    assert fetch.calls == [(20, 1000)]


@pytest.mark.asyncio
async def test_list_all_failure_keeps_partial_result() -> None:
    fetch = _FakeBucket(2500, fail_on_call=2)
    with pytest.raises(TransportError) as excinfo:
        await pagination.list_all(fetch, "test", NodeQuery())
    partial = excinfo.value.partial
    assert partial is not None
    assert len(partial.nodes) == 1000
    assert partial.total == 2500
    assert len(fetch.calls) == 2


@pytest.mark.asyncio
async def test_list_up_to_failure_on_first_page_has_empty_partial() -> None:
    fetch = _FakeBucket(2500, fail_on_call=1)
    with pytest.raises(TransportError) as excinfo:
        await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(10))
    assert excinfo.value.partial == NodeList()


@pytest.mark.asyncio
async def test_cancel_before_first_page() -> None:
    fetch = _FakeBucket(100)
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(CancellationError) as excinfo:
        await pagination.list_all(fetch, "test", NodeQuery(), cancel=cancel)
    assert fetch.calls == []
    assert excinfo.value.partial == NodeList()


@pytest.mark.asyncio
async def test_cancel_between_pages_returns_collected_nodes() -> None:
    cancel = asyncio.Event()
    inner = _FakeBucket(3000)

    async def fetch(bucket_id: str, query: NodeQuery) -> NodeList:
        page = await inner(bucket_id, query)
        cancel.set()
        return page

    with pytest.raises(CancellationError) as excinfo:
        await pagination.list_up_to(fetch, "test", NodeQuery().with_limit(3000), cancel=cancel)
    assert len(inner.calls) == 1
    partial = excinfo.value.partial
    assert partial is not None
    assert len(partial.nodes) == 1000
    assert partial.total == 3000


@pytest.mark.asyncio
async def test_list_one_page_is_a_single_call() -> None:
    fetch = _FakeBucket(3500)
    result = await pagination.list_one_page(fetch, "test", NodeQuery().with_limit(10).with_offset(5))
    assert fetch.calls == [(5, 10)]
    assert len(result.nodes) == 10
    assert result.total == 3500


@pytest.mark.asyncio
async def test_list_one_page_honours_cancel() -> None:
    fetch = _FakeBucket(3500)
    cancel = asyncio.Event()
    cancel.set()
    with pytest.raises(CancellationError) as excinfo:
        await pagination.list_one_page(fetch, "test", NodeQuery().with_limit(10), cancel=cancel)
    assert fetch.calls == []
    assert excinfo.value.bucket_id == "test"
    assert excinfo.value.partial == NodeList()
