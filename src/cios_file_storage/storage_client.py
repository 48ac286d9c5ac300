"""Async client for the file storage API."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from pydantic import ValidationError

from . import pagination
from .errors import DecodingError, TransportError
from .models import Node, NodeList, SingleNode
from .options import NodeQuery

API_PREFIX = "/v2/file_storage"


class FileStorageClient:
    """Thin wrapper around the file storage REST API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> FileStorageClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        method = method.upper()
        url_path = path if path.startswith("/") else f"/{path}"

        try:
            resp = await self._client.request(method, url_path, params=params, json=json_body)
        except httpx.HTTPError as exc:
            raise TransportError(method=method, url=url_path, response_text=str(exc)) from exc

        if resp.status_code >= 400:
            raise TransportError(
                method=method,
                url=str(resp.request.url),
                status_code=resp.status_code,
                response_text=(resp.text or "").strip(),
            )

        # DELETE, and some edits, answer with an empty body.
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as exc:
            raise DecodingError(
                method=method, url=str(resp.request.url), detail=str(exc)
            ) from exc
        if not isinstance(data, dict):
            raise DecodingError(
                method=method,
                url=str(resp.request.url),
                detail=f"Unexpected JSON type: {type(data).__name__}",
            )
        return data

    @staticmethod
    def _nodes_path(bucket_id: str, *parts: str) -> str:
        return "/".join((f"{API_PREFIX}/buckets/{bucket_id}/nodes", *parts))

    @staticmethod
    def _decode_node(method: str, path: str, raw: dict[str, Any]) -> Node:
        try:
            return SingleNode.model_validate(raw).node
        except ValidationError as exc:
            raise DecodingError(method=method, url=path, detail=str(exc)) from exc

    async def _edit_node(self, path: str, payload: dict[str, Any]) -> Node | None:
        # Edits may be acknowledged with an empty 2xx body.
        raw = await self.request_json("POST", path, json_body=payload)
        if not raw:
            return None
        return self._decode_node("POST", path, raw)

    async def fetch_page(self, bucket_id: str, query: NodeQuery) -> NodeList:
        """Perform one listing call; the caller keeps ``query.limit`` within the page ceiling."""
        path = self._nodes_path(bucket_id)
        raw = await self.request_json("GET", path, params=query.to_params())
        try:
            return NodeList.model_validate(raw)
        except ValidationError as exc:
            raise DecodingError(method="GET", url=path, detail=str(exc)) from exc

    async def list_one_page(
        self, bucket_id: str, query: NodeQuery, *, cancel: asyncio.Event | None = None
    ) -> NodeList:
        return await pagination.list_one_page(self.fetch_page, bucket_id, query, cancel=cancel)

    async def list_up_to(
        self, bucket_id: str, query: NodeQuery, *, cancel: asyncio.Event | None = None
    ) -> NodeList:
        return await pagination.list_up_to(self.fetch_page, bucket_id, query, cancel=cancel)

    async def list_all(
        self, bucket_id: str, query: NodeQuery, *, cancel: asyncio.Event | None = None
    ) -> NodeList:
        return await pagination.list_all(self.fetch_page, bucket_id, query, cancel=cancel)

    async def get_node(self, bucket_id: str, node_id: str) -> Node:
        path = self._nodes_path(bucket_id, node_id)
        return self._decode_node("GET", path, await self.request_json("GET", path))

    async def create_node(
        self, bucket_id: str, name: str, parent_node_id: str | None = None
    ) -> Node | None:
        """Create a directory node, at the bucket root unless a parent is given."""
        payload: dict[str, Any] = {"name": name}
        if parent_node_id is not None:
            payload["parent_node_id"] = parent_node_id
        return await self._edit_node(self._nodes_path(bucket_id), payload)

    async def delete_node(self, bucket_id: str, node_id: str) -> None:
        await self.request_json("DELETE", self._nodes_path(bucket_id, node_id))

    async def rename_node(self, bucket_id: str, node_id: str, name: str) -> Node | None:
        return await self._edit_node(
            self._nodes_path(bucket_id, node_id, "rename"), {"name": name}
        )

    async def copy_node(
        self,
        bucket_id: str,
        node_id: str,
        dest_bucket_id: str | None = None,
        parent_node_id: str | None = None,
    ) -> Node | None:
        return await self._edit_node(
            self._nodes_path(bucket_id, node_id, "copy"),
            _edit_body(dest_bucket_id, parent_node_id),
        )

    async def move_node(
        self,
        bucket_id: str,
        node_id: str,
        dest_bucket_id: str | None = None,
        parent_node_id: str | None = None,
    ) -> Node | None:
        return await self._edit_node(
            self._nodes_path(bucket_id, node_id, "move"),
            _edit_body(dest_bucket_id, parent_node_id),
        )


def _edit_body(dest_bucket_id: str | None, parent_node_id: str | None) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if dest_bucket_id is not None:
        payload["dest_bucket_id"] = dest_bucket_id
    if parent_node_id is not None:
        payload["parent_node_id"] = parent_node_id
    return payload
