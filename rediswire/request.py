"""Building pipelined Redis requests in RESP3 wire format."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .resp3 import Type, to_code

__all__ = ["RequestConfig", "Request", "to_bulk"]

_SEPARATOR = b"\r\n"
_PUSH_RESPONSE_COMMANDS = frozenset({"SUBSCRIBE", "PSUBSCRIBE", "UNSUBSCRIBE", "PUNSUBSCRIBE"})


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, bool):
        return b"1" if data else b"0"
    if isinstance(data, int):
        return str(data).encode()
    if isinstance(data, str):
        return data.encode()
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if hasattr(type(data), "__bytes__"):
        return bytes(data)
    raise TypeError(f"cannot serialize {type(data).__name__} as a bulk string")


def to_bulk(data: Any) -> bytes:
    """Serialize ``data`` as a RESP3 blob string."""
    raw = _as_bytes(data)
    return b"%s%d%s%s%s" % (to_code(Type.BLOB_STRING).encode(), len(raw), _SEPARATOR, raw, _SEPARATOR)


def _header(data_type: Type, size: int) -> bytes:
    return b"%s%d%s" % (to_code(data_type).encode(), size, _SEPARATOR)


def _is_pair(element: Any) -> bool:
    return isinstance(element, tuple) and len(element) == 2


@dataclass
class RequestConfig:
    """Options controlling how a connection treats a request."""

    cancel_on_connection_lost: bool = False
    coalesce: bool = True
    cancel_if_not_connected: bool = False
    retry: bool = True
    hello_with_priority: bool = True


@dataclass
class Request:
    """A pipeline of one or more Redis commands."""

    config: RequestConfig = field(default_factory=RequestConfig)
    _payload: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _commands: int = field(default=0, init=False, repr=False)
    _has_hello_priority: bool = field(default=False, init=False, repr=False)

    def size(self) -> int:
        """Number of commands that expect a response."""
        return self._commands

    def payload(self) -> bytes:
        """The serialized commands."""
        return bytes(self._payload)

    def has_hello_priority(self) -> bool:
        """True if the last command was HELLO and priority is enabled."""
        return self._has_hello_priority

    def clear(self) -> None:
        """Remove every command."""
        self._payload.clear()
        self._commands = 0

    def push(self, cmd: str, *args: Any) -> None:
        """Append ``cmd`` with each argument sent as one bulk string."""
        self._payload += _header(Type.ARRAY, 1 + len(args))
        self._payload += to_bulk(cmd)
        for arg in args:
            self._payload += to_bulk(arg)
        self._check_cmd(cmd)

    def push_range(self, cmd: str, *args: Any) -> None:
        """Append ``cmd`` with an optional key followed by a range.

        Called as ``push_range(cmd, range)`` or ``push_range(cmd, key, range)``.
        Mappings contribute their items; pairs contribute two bulks each.
        An empty range adds nothing.
        """
        if len(args) == 1:
            prefix, items = (), args[0]
        elif len(args) == 2:
            prefix, items = (args[0],), args[1]
        else:
            raise TypeError("push_range takes a range, optionally preceded by a key")
        if isinstance(items, (str, bytes, bytearray)):
            raise TypeError("push_range expects a collection, not a string")

        elements = list(items.items() if isinstance(items, Mapping) else items)
        if not elements:
            return

        count = sum(2 if _is_pair(e) else 1 for e in elements)
        self._payload += _header(Type.ARRAY, 1 + len(prefix) + count)
        self._payload += to_bulk(cmd)
        for key in prefix:
            self._payload += to_bulk(key)
        for element in elements:
            parts = element if _is_pair(element) else (element,)
            for part in parts:
                self._payload += to_bulk(part)
        self._check_cmd(cmd)

    def _check_cmd(self, cmd: str | bytes) -> None:
        name = cmd.decode() if isinstance(cmd, (bytes, bytearray)) else str(cmd)
        name = name.upper()
        if name not in _PUSH_RESPONSE_COMMANDS:
            self._commands += 1
        self._has_hello_priority = name == "HELLO" and self.config.hello_with_priority