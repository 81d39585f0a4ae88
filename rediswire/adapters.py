"""Adapters that turn parsed RESP3 nodes into Python values."""

from __future__ import annotations

import re
import types
from collections import deque
from typing import Any, Callable, Optional, Union, get_args, get_origin

from .resp3 import (
    ErrorCode,
    Node,
    ProtocolError,
    Type,
    element_multiplicity,
    ignore_response,
    is_aggregate,
    parse_uint,
)

__all__ = [
    "IgnoreAdapter",
    "SimpleAdapter",
    "SetAdapter",
    "MapAdapter",
    "ListAdapter",
    "ArrayAdapter",
    "OptionalAdapter",
    "NodeAdapter",
    "NodesAdapter",
    "TupleAdapter",
    "from_bulk",
    "parse_double",
    "adapt",
]

_DOUBLE = re.compile(
    r"[+-]?(?:inf(?:inity)?|nan|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)",
    re.IGNORECASE,
)

_ERRORS = {
    Type.SIMPLE_ERROR: ErrorCode.RESP3_SIMPLE_ERROR,
    Type.BLOB_ERROR: ErrorCode.RESP3_BLOB_ERROR,
    Type.NULL: ErrorCode.RESP3_NULL,
}


def parse_double(value: str) -> float:
    """Parse the floating point number at the start of ``value``."""
    match = _DOUBLE.match(value)
    if match is None:
        raise ProtocolError(ErrorCode.NOT_A_DOUBLE, value)
    return float(match.group())


def from_bulk(kind: Callable[[str], Any], value: str) -> Any:
    """Convert the text of a simple node into an instance of ``kind``.

    ``int`` takes an unsigned decimal, ``bool`` is true when the value
    starts with ``t``; any other kind is called with the text.
    """
    if kind is bool:
        return value[:1] == "t"
    if kind is int:
        return parse_uint(value.encode("utf-8", "surrogateescape"))
    if kind is float:
        return parse_double(value)
    if kind is str:
        return value
    if kind is bytes:
        return value.encode("utf-8", "surrogateescape")
    return kind(value)


def _raise_on_error(node: Node) -> None:
    code = _ERRORS.get(node.data_type)
    if code is not None:
        raise ProtocolError(code, node.value)


class IgnoreAdapter:
    """Discards the response, failing only on server errors."""

    result = None

    def __call__(self, node: Node) -> None:
        ignore_response(node)


class SimpleAdapter:
    """Reads a response of a simple (non aggregate) type."""

    def __init__(self, kind: Callable[[str], Any]) -> None:
        self.kind = kind
        self.result: Any = None

    def __call__(self, node: Node) -> None:
        _raise_on_error(node)
        if is_aggregate(node.data_type):
            raise ProtocolError(ErrorCode.EXPECTS_RESP3_SIMPLE_TYPE)
        value = from_bulk(self.kind, node.value)
        # Strings accumulate so that streamed string parts are joined.
        if self.kind in (str, bytes) and self.result is not None:
            self.result += value
        else:
            self.result = value


class SetAdapter:
    """Reads a RESP3 set into a Python set."""

    def __init__(self, kind: Callable[[str], Any]) -> None:
        self.kind = kind
        self.result: set = set()

    def __call__(self, node: Node) -> None:
        _raise_on_error(node)
        if is_aggregate(node.data_type):
            if node.data_type is not Type.SET:
                raise ProtocolError(ErrorCode.EXPECTS_RESP3_SET)
            return
        if node.depth < 1:
            raise ProtocolError(ErrorCode.EXPECTS_RESP3_SET)
        self.result.add(from_bulk(self.kind, node.value))


class MapAdapter:
    """Reads a RESP3 map (or attribute) into a dict."""

    def __init__(self, key_kind: Callable[[str], Any], value_kind: Callable[[str], Any]) -> None:
        self.key_kind = key_kind
        self.value_kind = value_kind
        self.result: dict = {}
        self._on_key = True
        self._current: Any = None

    def __call__(self, node: Node) -> None:
        _raise_on_error(node)
        if is_aggregate(node.data_type):
            if element_multiplicity(node.data_type) != 2:
                raise ProtocolError(ErrorCode.EXPECTS_RESP3_MAP)
            return
        if node.depth < 1:
            raise ProtocolError(ErrorCode.EXPECTS_RESP3_MAP)
        if self._on_key:
            self._current = from_bulk(self.key_kind, node.value)
            self.result[self._current] = None
        else:
            self.result[self._current] = from_bulk(self.value_kind, node.value)
        self._on_key = not self._on_key


class ListAdapter:
    """Collects every simple element of a response into a list.

    Aggregate headers are skipped, so nested aggregates are flattened
    and a lone simple value becomes a one element list.
    """

    def __init__(self, kind: Callable[[str], Any]) -> None:
        self.kind = kind
        self.result = self._new_result()

    def _new_result(self):
        return []

    def _check_simple(self, node: Node) -> None:
        """Hook for subclasses that restrict where simple values may appear."""

    def __call__(self, node: Node) -> None:
        _raise_on_error(node)
        if is_aggregate(node.data_type):
            return
        self._check_simple(node)
        self.result.append(from_bulk(self.kind, node.value))


class _DequeAdapter(ListAdapter):
    """Collects aggregate elements into a deque; top-level simple values fail."""

    def _new_result(self):
        return deque()

    def _check_simple(self, node: Node) -> None:
        if node.depth < 1:
            raise ProtocolError(ErrorCode.EXPECTS_RESP3_AGGREGATE)


class ArrayAdapter:
    """Reads a flat aggregate whose element count must equal ``size``."""

    def __init__(self, kind: Callable[[str], Any], size: int) -> None:
        self.kind = kind
        self.size = size
        self.result: list = [None] * size
        self._index = -1

    def __call__(self, node: Node) -> None:
        _raise_on_error(node)
        if is_aggregate(node.data_type):
            if self._index != -1:
                raise ProtocolError(ErrorCode.NESTED_AGGREGATE_NOT_SUPPORTED)
            if self.size != node.aggregate_size * element_multiplicity(node.data_type):
                raise ProtocolError(ErrorCode.INCOMPATIBLE_SIZE)
        else:
            if self._index == -1:
                raise ProtocolError(ErrorCode.EXPECTS_RESP3_AGGREGATE)
            self.result[self._index] = from_bulk(self.kind, node.value)
        self._index += 1


class OptionalAdapter:
    """Wraps another adapter; a null response leaves the result as None."""

    def __init__(self, inner: Any) -> None:
        self.inner = inner
        self._has_value = False

    @property
    def result(self) -> Any:
        return self.inner.result if self._has_value else None

    def __call__(self, node: Node) -> None:
        if node.data_type is Type.NULL:
            return
        self._has_value = True
        self.inner(node)


class NodeAdapter:
    """Stores the last node received, then fails if it is an error or null."""

    def __init__(self) -> None:
        self.result: Optional[Node] = None

    def __call__(self, node: Node) -> None:
        self.result = node
        _raise_on_error(node)


class NodesAdapter:
    """Stores every node of the response, errors included."""

    def __init__(self) -> None:
        self.result: list[Node] = []

    def __call__(self, node: Node) -> None:
        self.result.append(node)


class TupleAdapter:
    """Hands each element of a top-level aggregate to its own adapter."""

    def __init__(self, *args: Any) -> None:
        self.adapters = list(args)
        self._index = 0
        self._aggregate_size = 0

    @property
    def result(self) -> tuple:
        return tuple(adapter.result for adapter in self.adapters)

    def _count(self, node: Node) -> None:
        if node.depth == 1:
            if is_aggregate(node.data_type):
                self._aggregate_size = element_multiplicity(node.data_type) * node.aggregate_size
            else:
                self._index += 1
            return
        self._aggregate_size -= 1
        if self._aggregate_size == 0:
            self._index += 1

    def __call__(self, node: Node) -> None:
        if node.depth == 0:
            real_size = node.aggregate_size * element_multiplicity(node.data_type)
            if real_size != len(self.adapters):
                raise ProtocolError(ErrorCode.INCOMPATIBLE_SIZE)
            return
        self.adapters[self._index](node)
        self._count(node)


def _element_kind(spec: Any) -> Callable[[str], Any]:
    if spec is None or get_origin(spec) is not None or not isinstance(spec, type):
        raise TypeError(f"unsupported element type: {spec!r}")
    return spec


def adapt(spec: Any = None) -> Any:
    """Build an adapter for a response described by a type annotation.

    ``None`` ignores the response; ``int``, ``str`` and other classes read
    a simple value; ``list[T]``, ``deque[T]``, ``set[T]``, ``dict[K, V]``,
    ``tuple[A, B, ...]`` and ``T | None`` read the matching structures;
    ``Node`` and ``list[Node]`` keep the raw nodes.
    """
    if spec is None or spec is type(None):
        return IgnoreAdapter()
    if spec is Node:
        return NodeAdapter()

    origin = get_origin(spec)
    args = get_args(spec)

    if origin is Union or origin is types.UnionType:
        rest = [a for a in args if a is not type(None)]
        if len(rest) == 1 and len(args) == 2:
            return OptionalAdapter(adapt(rest[0]))
        raise TypeError(f"unsupported union: {spec!r}")
    if origin is list:
        if len(args) != 1:
            raise TypeError("list needs exactly one element type")
        if args[0] is Node:
            return NodesAdapter()
        return ListAdapter(_element_kind(args[0]))
    if origin is deque:
        if len(args) != 1:
            raise TypeError("deque needs exactly one element type")
        return _DequeAdapter(_element_kind(args[0]))
    if origin in (set, frozenset):
        if len(args) != 1:
            raise TypeError("set needs exactly one element type")
        return SetAdapter(_element_kind(args[0]))
    if origin is dict:
        if len(args) != 2:
            raise TypeError("dict needs a key and a value type")
        return MapAdapter(_element_kind(args[0]), _element_kind(args[1]))
    if origin is tuple:
        if not args or Ellipsis in args:
            raise TypeError("tuple needs a fixed list of element types")
        return TupleAdapter(*(adapt(a) for a in args))
    if origin is None and isinstance(spec, type):
        return SimpleAdapter(spec)
    raise TypeError(f"unsupported response type: {spec!r}")