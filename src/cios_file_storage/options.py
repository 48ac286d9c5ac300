"""Query options for the node listing endpoint."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any


def _encode_bool(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True, slots=True)
class NodeQuery:
    """Immutable listing parameters.

    Every setter returns a new query, so a base query can be shared and
    specialised without copying. A field only reaches the wire when it differs
    from its zero value; the server reads an absent parameter as "no filter".
    """

    limit: int | None = None
    offset: int = 0
    is_directory: bool | None = None
    name: str = ""
    order_by: str = ""
    order: str = ""
    parent_node_id: str = ""

    def with_limit(self, limit: int | None) -> NodeQuery:
        return replace(self, limit=limit)

    def with_offset(self, offset: int) -> NodeQuery:
        return replace(self, offset=offset)

    def with_is_directory(self, is_directory: bool | None) -> NodeQuery:
        return replace(self, is_directory=is_directory)

    def with_name(self, name: str) -> NodeQuery:
        return replace(self, name=name)

    def with_order_by(self, order_by: str) -> NodeQuery:
        return replace(self, order_by=order_by)

    def with_order(self, order: str) -> NodeQuery:
        return replace(self, order=order)

    def with_parent_node_id(self, parent_node_id: str) -> NodeQuery:
        return replace(self, parent_node_id=parent_node_id)

    def page(self, offset: int, limit: int) -> NodeQuery:
        """Same filters, positioned at a single page."""
        return replace(self, offset=offset, limit=limit)

    def to_params(self) -> list[tuple[str, str]]:
        rows: tuple[tuple[str, Any, Any, Callable[[Any], str]], ...] = (
            ("limit", self.limit or 0, 0, str),
            ("offset", self.offset, 0, str),
            ("is_directory", self.is_directory, None, _encode_bool),
            ("name", self.name, "", str),
            ("order_by", self.order_by, "", str),
            ("order", self.order, "", str),
            ("parent_node_id", self.parent_node_id, "", str),
        )
        return [(key, encode(value)) for key, value, zero, encode in rows if value != zero]
