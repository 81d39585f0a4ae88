"""RESP3 wire types, an incremental parser and blocking/asyncio readers."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

__all__ = [
    "Type",
    "Node",
    "ErrorCode",
    "ProtocolError",
    "Parser",
    "to_type",
    "to_code",
    "element_multiplicity",
    "is_aggregate",
    "parse_uint",
    "ignore_response",
    "read",
    "async_read",
]

SEPARATOR = b"\r\n"
SIZE_MAX = 2**64 - 1
_RECV_SIZE = 4096


class Type(Enum):
    """RESP3 data types, valued by their wire prefix."""

    ARRAY = "*"
    PUSH = ">"
    SET = "~"
    MAP = "%"
    ATTRIBUTE = "|"
    SIMPLE_STRING = "+"
    SIMPLE_ERROR = "-"
    NUMBER = ":"
    DOUBLEAN = ","
    BOOLEAN = "#"
    BIG_NUMBER = "("
    NULL = "_"
    BLOB_ERROR = "!"
    VERBATIM_STRING = "="
    BLOB_STRING = "$"
    STREAMED_STRING_PART = ";"
    INVALID = ""


_AGGREGATES = frozenset({Type.ARRAY, Type.PUSH, Type.SET, Type.MAP, Type.ATTRIBUTE})
_PAIRED = frozenset({Type.MAP, Type.ATTRIBUTE})


class ErrorCode(Enum):
    """Reasons a response cannot be parsed or adapted."""

    INVALID_DATA_TYPE = "Invalid resp3 type."
    NOT_A_NUMBER = "Can't convert string to number."
    EXCEEEDS_MAX_NESTED_DEPTH = "Exceeds the maximum number of nested responses."
    UNEXPECTED_BOOL_VALUE = "Unexpected bool value."
    EMPTY_FIELD = "Expected field value is empty."
    EXPECTS_RESP3_SIMPLE_TYPE = "Expects a resp3 simple type."
    EXPECTS_RESP3_AGGREGATE = "Expects resp3 aggregate."
    EXPECTS_RESP3_MAP = "Expects resp3 map."
    EXPECTS_RESP3_SET = "Expects resp3 set."
    NESTED_AGGREGATE_NOT_SUPPORTED = "Nested aggregate not supported."
    RESP3_SIMPLE_ERROR = "Got RESP3 simple-error."
    RESP3_BLOB_ERROR = "Got RESP3 blob-error."
    INCOMPATIBLE_SIZE = "Aggregate container has incompatible size."
    NOT_A_DOUBLE = "Not a double."
    RESP3_NULL = "Got RESP3 null."
    NOT_CONNECTED = "Not connected."


class ProtocolError(Exception):
    """Raised when a RESP3 message is malformed or cannot be adapted."""

    def __init__(self, code: ErrorCode, detail: str = "") -> None:
        self.code = code
        self.detail = detail
        message = code.value if not detail else f"{code.value} {detail}"
        super().__init__(message)


@dataclass(frozen=True)
class Node:
    """One element of a RESP3 response as seen by an adapter."""

    data_type: Type
    aggregate_size: int
    depth: int
    value: str = ""


Adapter = Callable[[Node], None]


def to_type(code: Union[str, bytes, int]) -> Type:
    """Return the type whose wire prefix is ``code``, or ``Type.INVALID``."""
    if isinstance(code, int):
        code = chr(code)
    elif isinstance(code, (bytes, bytearray)):
        code = code.decode("latin-1")
    if len(code) != 1:
        return Type.INVALID
    try:
        return Type(code)
    except ValueError:
        return Type.INVALID


def to_code(data_type: Type) -> str:
    """Return the wire prefix of ``data_type``."""
    if data_type is Type.INVALID:
        raise ValueError("the invalid type has no wire code")
    return data_type.value


def element_multiplicity(data_type: Type) -> int:
    """Number of wire elements per logical element (two for maps)."""
    if not isinstance(data_type, Type):
        raise TypeError(f"expected a RESP3 type, got {data_type!r}")
    if data_type in _PAIRED:
        return 2
    return 1


def is_aggregate(data_type: Type) -> bool:
    """True for types that contain other elements."""
    return data_type in _AGGREGATES


_LEADING_DIGITS = re.compile(rb"[0-9]+")


def parse_uint(data: Union[bytes, str]) -> int:
    """Parse the unsigned decimal number at the start of ``data``."""
    if isinstance(data, str):
        data = data.encode("latin-1")
    match = _LEADING_DIGITS.match(data)
    if match is None:
        raise ProtocolError(ErrorCode.NOT_A_NUMBER)
    value = int(match.group())
    if value > SIZE_MAX:
        raise ProtocolError(ErrorCode.NOT_A_NUMBER)
    return value


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", "surrogateescape")


def ignore_response(node: Node) -> None:
    """Adapter that discards everything but fails on server errors."""
    if node.data_type is Type.SIMPLE_ERROR:
        raise ProtocolError(ErrorCode.RESP3_SIMPLE_ERROR, node.value)
    if node.data_type is Type.BLOB_ERROR:
        raise ProtocolError(ErrorCode.RESP3_BLOB_ERROR, node.value)


class Parser:
    """Incremental parser for a single RESP3 message.

    Lines (including the terminating CRLF) and, when :meth:`bulk` is not
    ``Type.INVALID``, bulk payloads of ``bulk_length() + 2`` bytes are
    fed to :meth:`consume`; every element is handed to the adapter.
    """

    MAX_EMBEDDED_DEPTH = 5

    def __init__(self, adapter: Adapter) -> None:
        self._adapter = adapter
        self._depth = 0
        # The first entry is a sentinel and must be greater than one.
        self._sizes = [2] + [0] * self.MAX_EMBEDDED_DEPTH
        self._bulk_length = SIZE_MAX
        self._bulk = Type.INVALID

    def _emit(self, data_type: Type, size: int, raw: bytes = b"") -> None:
        self._adapter(Node(data_type, size, self._depth, _decode(raw)))

    def _push_level(self, size: int) -> None:
        if self._depth == self.MAX_EMBEDDED_DEPTH:
            raise ProtocolError(ErrorCode.EXCEEEDS_MAX_NESTED_DEPTH)
        self._depth += 1
        self._sizes[self._depth] = size

    def consume(self, data: bytes) -> int:
        """Consume one line or bulk and return the number of bytes used."""
        data = bytes(data)
        if self._bulk is not Type.INVALID:
            n = self._bulk_length + 2
            if len(data) < n:
                raise ValueError(f"bulk needs {n} bytes, got {len(data)}")
            self._emit(self._bulk, 1, data[: self._bulk_length])
            self._bulk = Type.INVALID
            self._sizes[self._depth] -= 1
        else:
            n = len(data)
            if self._sizes[self._depth] != 0:
                self._consume_line(data, n)

        while self._sizes[self._depth] == 0:
            self._depth -= 1
            self._sizes[self._depth] -= 1

        return n

    def _consume_line(self, data: bytes, n: int) -> None:
        t = to_type(data[:1])
        if t is Type.STREAMED_STRING_PART:
            self._bulk_length = parse_uint(data[1 : n - 1])
            if self._bulk_length == 0:
                self._emit(Type.STREAMED_STRING_PART, 1)
                self._sizes[self._depth] = 0
            else:
                self._bulk = Type.STREAMED_STRING_PART
        elif t in (Type.BLOB_ERROR, Type.VERBATIM_STRING, Type.BLOB_STRING):
            if data[1:2] == b"?":
                # A streamed string is read as an aggregate of unbounded
                # length, terminated by a part of length zero.
                self._push_level(SIZE_MAX)
            else:
                self._bulk_length = parse_uint(data[1 : n - 1])
                self._bulk = t
        elif t is Type.BOOLEAN:
            if n == 3:
                raise ProtocolError(ErrorCode.EMPTY_FIELD)
            if data[1:2] not in (b"f", b"t"):
                raise ProtocolError(ErrorCode.UNEXPECTED_BOOL_VALUE)
            self._emit(t, 1, data[1 : n - 2])
            self._sizes[self._depth] -= 1
        elif t in (Type.DOUBLEAN, Type.BIG_NUMBER, Type.NUMBER):
            if n == 3:
                raise ProtocolError(ErrorCode.EMPTY_FIELD)
            self._emit(t, 1, data[1 : n - 2])
            self._sizes[self._depth] -= 1
        elif t in (Type.SIMPLE_ERROR, Type.SIMPLE_STRING):
            self._emit(t, 1, data[1 : n - 2])
            self._sizes[self._depth] -= 1
        elif t is Type.NULL:
            self._emit(Type.NULL, 1)
            self._sizes[self._depth] -= 1
        elif t in _AGGREGATES:
            length = parse_uint(data[1 : n - 1])
            self._emit(t, length)
            if length == 0:
                self._sizes[self._depth] -= 1
            else:
                self._push_level(length * element_multiplicity(t))
        else:
            raise ProtocolError(ErrorCode.INVALID_DATA_TYPE)

    def done(self) -> bool:
        """True once a complete message has been consumed."""
        return self._depth == 0 and self._bulk is Type.INVALID

    def bulk(self) -> Type:
        """Type of the bulk expected next, or ``Type.INVALID``."""
        return self._bulk

    def bulk_length(self) -> int:
        """Length of the bulk expected next."""
        return self._bulk_length


def _fill(sock, buffer: bytearray) -> None:
    chunk = sock.recv(_RECV_SIZE)
    if not chunk:
        raise EOFError("connection closed while reading a response")
    buffer += chunk


def read(sock, buffer: bytearray, adapter: Adapter = ignore_response) -> int:
    """Read one message from a blocking socket.

    ``buffer`` keeps bytes received beyond the message for the next call.
    Returns the number of bytes the message occupied.
    """
    parser = Parser(adapter)
    consumed = 0
    while True:
        if parser.bulk() is Type.INVALID:
            while (end := buffer.find(SEPARATOR)) < 0:
                _fill(sock, buffer)
            n = end + len(SEPARATOR)
        else:
            n = parser.bulk_length() + 2
            while len(buffer) < n:
                _fill(sock, buffer)
        n = parser.consume(bytes(buffer[:n]))
        del buffer[:n]
        consumed += n
        if parser.done():
            return consumed


async def async_read(reader: asyncio.StreamReader, adapter: Adapter = ignore_response) -> int:
    """Read one message from an asyncio stream; returns its size in bytes."""
    parser = Parser(adapter)
    consumed = 0
    while True:
        try:
            if parser.bulk() is Type.INVALID:
                chunk = await reader.readuntil(SEPARATOR)
            else:
                chunk = await reader.readexactly(parser.bulk_length() + 2)
        except asyncio.IncompleteReadError as exc:
            raise EOFError("connection closed while reading a response") from exc
        consumed += parser.consume(chunk)
        if parser.done():
            return consumed