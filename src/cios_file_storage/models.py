"""Structured models for file storage nodes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class NodeFile(BaseModel):
    model_config = ConfigDict(extra="allow")

    size: int | None = None
    checksum: str | None = None
    version: str | None = None


class Node(BaseModel):
    """A file or directory entry within a bucket."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
    key: str | None = None
    parent_node_id: str | None = None
    is_directory: bool = False
    created_at: str | None = None
    created_by: str | None = None
    updated_at: str | None = None
    updated_by: str | None = None
    file: NodeFile | None = None


class NodeList(BaseModel):
    """One listing page, or the concatenation of several.

    ``total`` is the server's count of matching nodes as reported by the most
    recent page.
    """

    nodes: list[Node] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class SingleNode(BaseModel):
    node: Node
