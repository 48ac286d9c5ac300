"""Exhaustive listing over the page-capped node listing endpoint.

The server returns at most ``PAGE_CEILING`` nodes per call, reports a live
``total`` with every page and may return short pages at any time. The helpers
here turn one logical request into a sequence of page fetches:

* ``list_up_to`` fetches up to ``query.limit`` nodes, asking for the largest
  page the server allows each time.
* ``list_all`` drains everything from ``query.offset``, using ``query.limit``
  as the per-call page size.
* ``list_one_page`` is a single call, for callers paging by hand.

Pages are fetched strictly in sequence because each offset depends on how many
nodes the previous page actually returned. If a fetch fails, the error is
re-raised with ``partial`` set to what was collected before it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .errors import CancellationError, StorageError
from .models import Node, NodeList
from .options import NodeQuery

logger = logging.getLogger(__name__)

PAGE_CEILING = 1000

PageFetcher = Callable[[str, NodeQuery], Awaitable[NodeList]]


def _raise_if_cancelled(
    cancel: asyncio.Event | None, bucket_id: str, nodes: list[Node], total: int
) -> None:
    if cancel is not None and cancel.is_set():
        raise CancellationError(bucket_id=bucket_id, partial=NodeList(nodes=nodes, total=total))


async def _fetch(
    fetch: PageFetcher, bucket_id: str, query: NodeQuery, nodes: list[Node], total: int
) -> NodeList:
    logger.debug(
        "Fetching nodes of bucket %s: offset=%s limit=%s", bucket_id, query.offset, query.limit
    )
    try:
        return await fetch(bucket_id, query)
    except StorageError as exc:
        exc.partial = NodeList(nodes=nodes, total=total)
        raise


async def list_one_page(
    fetch: PageFetcher,
    bucket_id: str,
    query: NodeQuery,
    *,
    cancel: asyncio.Event | None = None,
) -> NodeList:
    _raise_if_cancelled(cancel, bucket_id, [], 0)
    return await _fetch(fetch, bucket_id, query, [], 0)


async def list_up_to(
    fetch: PageFetcher,
    bucket_id: str,
    query: NodeQuery,
    *,
    cancel: asyncio.Event | None = None,
) -> NodeList:
    """Fetch at most ``query.limit`` nodes starting at ``query.offset``.

    Returns fewer nodes, without error, when the collection is smaller. An
    unset limit means "everything" and is handed to ``list_all``.
    """
    if query.limit is None:
        return await list_all(fetch, bucket_id, query, cancel=cancel)

    wanted = query.limit
    nodes: list[Node] = []
    cursor = query.offset
    total = 0
    while len(nodes) < wanted:
        _raise_if_cancelled(cancel, bucket_id, nodes, total)
        page_limit = min(PAGE_CEILING, wanted - len(nodes))
        page = await _fetch(fetch, bucket_id, query.page(cursor, page_limit), nodes, total)
        batch = page.nodes[:page_limit]
        nodes.extend(batch)
        # The latest total wins, even if it shrank since the previous page.
        total = page.total
        cursor += len(batch)
        if len(batch) < page_limit or cursor >= total:
            break
    return NodeList(nodes=nodes, total=total)


async def list_all(
    fetch: PageFetcher,
    bucket_id: str,
    query: NodeQuery,
    *,
    cancel: asyncio.Event | None = None,
) -> NodeList:
    """Fetch every node from ``query.offset`` to the end of the collection.

    ``query.limit`` is only a page size here; it is capped at ``PAGE_CEILING``
    and defaults to it when unset.
    """
    page_size = query.limit if query.limit is not None and query.limit > 0 else PAGE_CEILING
    page_size = min(page_size, PAGE_CEILING)

    nodes: list[Node] = []
    cursor = query.offset
    total = 0
    while True:
        _raise_if_cancelled(cancel, bucket_id, nodes, total)
        page = await _fetch(fetch, bucket_id, query.page(cursor, page_size), nodes, total)
        nodes.extend(page.nodes)
        total = page.total
        cursor += len(page.nodes)
        if not page.nodes or cursor >= total:
            break
    return NodeList(nodes=nodes, total=total)
