"""FastMCP server definition (tools + resources)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from mcp.server.fastmcp import Context, FastMCP

from .models import Node, NodeList
from .options import NodeQuery
from .settings import Settings
from .storage_client import FileStorageClient


@dataclass(slots=True)
class AppContext:
    settings: Settings
    storage: FileStorageClient


def _build_query(
    *,
    limit: int | None,
    offset: int,
    name: str,
    parent_node_id: str,
    is_directory: bool | None,
    order_by: str,
    order: str,
) -> NodeQuery:
    return (
        NodeQuery()
        .with_limit(limit)
        .with_offset(offset)
        .with_name(name)
        .with_parent_node_id(parent_node_id)
        .with_is_directory(is_directory)
        .with_order_by(order_by)
        .with_order(order)
    )


def create_mcp_server(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> FastMCP:
    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[AppContext]:
        storage = FileStorageClient(
            base_url=str(settings.storage_url),
            token=settings.access_token,
            timeout_seconds=settings.http_timeout_seconds,
            transport=transport,
        )
        try:
            yield AppContext(settings=settings, storage=storage)
        finally:
            await storage.aclose()

    mcp = FastMCP(
        "File Storage",
        instructions=(
            "Browse and manage file and directory nodes in file storage buckets. "
            "Use nodes_list for a single page, nodes_list_up_to for the first N nodes "
            "and nodes_list_all to drain a bucket."
        ),
        lifespan=lifespan,
        stateless_http=True,
        json_response=True,
    )

    @mcp.resource("file-storage-node://{bucket_id}/{node_id}")
    async def read_node_resource(bucket_id: str, node_id: str, ctx: Context) -> str:
        """Describe a node as a short text block."""
        app: AppContext = ctx.request_context.lifespan_context
        node = await app.storage.get_node(bucket_id, node_id)
        kind = "directory" if node.is_directory else "file"
        lines = [f"# {node.name or '(unnamed)'}", "", f"- id: {node.id}", f"- type: {kind}"]
        if node.parent_node_id:
            lines.append(f"- parent: {node.parent_node_id}")
        if node.file is not None and node.file.size is not None:
            lines.append(f"- size: {node.file.size}")
        return "\n".join(lines)

    @mcp.tool()
    async def nodes_list(
        bucket_id: str,
        ctx: Context,
        limit: int | None = None,
        offset: int = 0,
        name: str = "",
        parent_node_id: str = "",
        is_directory: bool | None = None,
        order_by: str = "",
        order: str = "",
    ) -> NodeList:
        """List a single page of nodes, for manual pagination."""
        app: AppContext = ctx.request_context.lifespan_context
        query = _build_query(
            limit=limit,
            offset=offset,
            name=name,
            parent_node_id=parent_node_id,
            is_directory=is_directory,
            order_by=order_by,
            order=order,
        )
        return await app.storage.list_one_page(bucket_id, query)

    @mcp.tool()
    async def nodes_list_up_to(
        bucket_id: str,
        limit: int,
        ctx: Context,
        offset: int = 0,
        name: str = "",
        parent_node_id: str = "",
        is_directory: bool | None = None,
        order_by: str = "",
        order: str = "",
    ) -> NodeList:
        """List up to `limit` nodes, fetching as many pages as needed."""
        app: AppContext = ctx.request_context.lifespan_context
        query = _build_query(
            limit=limit,
            offset=offset,
            name=name,
            parent_node_id=parent_node_id,
            is_directory=is_directory,
            order_by=order_by,
            order=order,
        )
        return await app.storage.list_up_to(bucket_id, query)

    @mcp.tool()
    async def nodes_list_all(
        bucket_id: str,
        ctx: Context,
        page_size: int | None = None,
        offset: int = 0,
        name: str = "",
        parent_node_id: str = "",
        is_directory: bool | None = None,
        order_by: str = "",
        order: str = "",
    ) -> NodeList:
        """List every matching node from `offset` onwards."""
        app: AppContext = ctx.request_context.lifespan_context
        query = _build_query(
            limit=page_size,
            offset=offset,
            name=name,
            parent_node_id=parent_node_id,
            is_directory=is_directory,
            order_by=order_by,
            order=order,
        )
        return await app.storage.list_all(bucket_id, query)

    @mcp.tool()
    async def nodes_get(bucket_id: str, node_id: str, ctx: Context) -> Node:
        """Get a single node by id."""
        app: AppContext = ctx.request_context.lifespan_context
        return await app.storage.get_node(bucket_id, node_id)

    @mcp.tool()
    async def nodes_create(
        bucket_id: str,
        name: str,
        ctx: Context,
        parent_node_id: str | None = None,
    ) -> Node | None:
        """Create a directory node."""
        app: AppContext = ctx.request_context.lifespan_context
        return await app.storage.create_node(bucket_id, name, parent_node_id)

    @mcp.tool()
    async def nodes_delete(bucket_id: str, node_id: str, ctx: Context) -> dict[str, Any]:
        """Delete a node."""
        app: AppContext = ctx.request_context.lifespan_context
        await app.storage.delete_node(bucket_id, node_id)
        return {"deleted": True, "id": node_id}

    @mcp.tool()
    async def nodes_rename(bucket_id: str, node_id: str, name: str, ctx: Context) -> Node | None:
        """Rename a node."""
        app: AppContext = ctx.request_context.lifespan_context
        return await app.storage.rename_node(bucket_id, node_id, name)

    @mcp.tool()
    async def nodes_copy(
        bucket_id: str,
        node_id: str,
        ctx: Context,
        dest_bucket_id: str | None = None,
        parent_node_id: str | None = None,
    ) -> Node | None:
        """Copy a node, optionally into another bucket and/or directory."""
        app: AppContext = ctx.request_context.lifespan_context
        if dest_bucket_id is None and parent_node_id is None:
            raise ValueError("At least one of 'dest_bucket_id' or 'parent_node_id' must be provided")
        return await app.storage.copy_node(bucket_id, node_id, dest_bucket_id, parent_node_id)

    @mcp.tool()
    async def nodes_move(
        bucket_id: str,
        node_id: str,
        ctx: Context,
        dest_bucket_id: str | None = None,
        parent_node_id: str | None = None,
    ) -> Node | None:
        """Move a node to another directory and/or bucket."""
        app: AppContext = ctx.request_context.lifespan_context
        if dest_bucket_id is None and parent_node_id is None:
            raise ValueError("At least one of 'dest_bucket_id' or 'parent_node_id' must be provided")
        return await app.storage.move_node(bucket_id, node_id, dest_bucket_id, parent_node_id)

    return mcp
