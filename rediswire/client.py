"""A minimal RESP3 client that sends HELLO, PING and QUIT, plus output helpers."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import socket
import sys
from typing import Optional, Sequence

from .adapters import SimpleAdapter
from .request import Request
from .resp3 import Node, ProtocolError, async_read, element_multiplicity, read

__all__ = ["ping", "async_ping", "format_aggregate", "format_push", "main"]

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6379


def _ping_request() -> Request:
    req = Request()
    req.push("HELLO", 3)
    req.push("PING")
    req.push("QUIT")
    return req


def ping(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> str:
    """Send HELLO 3, PING and QUIT over a blocking socket; return the PING reply."""
    req = _ping_request()
    pong = SimpleAdapter(str)
    with socket.create_connection((host, port)) as sock:
        sock.sendall(req.payload())
        buffer = bytearray()
        read(sock, buffer)
        read(sock, buffer, pong)
        read(sock, buffer)
    return pong.result


async def async_ping(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> str:
    """Asynchronous counterpart of :func:`ping`."""
    req = _ping_request()
    pong = SimpleAdapter(str)
    reader, writer = await asyncio.open_connection(host, port)
    try:
        writer.write(req.payload())
        await writer.drain()
        await async_read(reader)
        await async_read(reader, pong)
        await async_read(reader)
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
    return pong.result


def format_aggregate(nodes: Sequence[Node]) -> str:
    """Render the elements of the aggregate headed by ``nodes[0]`` on one line."""
    if not nodes:
        return ""
    head = nodes[0]
    count = element_multiplicity(head.data_type) * head.aggregate_size
    return "".join(f"{node.value} " for node in nodes[1 : count + 1]) + "\n"


def format_push(nodes: Sequence[Node]) -> str:
    """Render a pub/sub push as its kind, channel and message."""
    return (
        f"Push type: {nodes[1].value}\n"
        f"Channel: {nodes[2].value}\n"
        f"Message: {nodes[3].value}\n"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Ping a server and print its reply."""
    parser = argparse.ArgumentParser(description="Send PING to a RESP3 server.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--async", dest="use_async", action="store_true",
                        help="use the asyncio client")
    args = parser.parse_args(argv)

    try:
        if args.use_async:
            reply = asyncio.run(async_ping(args.host, args.port))
        else:
            reply = ping(args.host, args.port)
    except (OSError, EOFError, ProtocolError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Ping: {reply}")
    return 0