# rediswire

`rediswire` speaks the Redis RESP3 wire protocol. It uses only the standard library.

The package has four modules:

- `rediswire.request` provides `Request` and `RequestConfig`, which build pipelined commands into one RESP3 payload, and `to_bulk`, which serialises a single value as a blob string.
- `rediswire.resp3` provides the RESP3 `Type` enum, the `Node` record, `ProtocolError` with its `ErrorCode`, and the incremental `Parser`. It also provides `read` and `async_read`, which pull one complete response from a blocking socket or an `asyncio.StreamReader`.
- `rediswire.adapters` provides response adapters that fill Python values from parsed nodes, and `adapt`, which builds an adapter from a type annotation.
- `rediswire.client` provides `ping` and `async_ping`, two helpers for printing nodes, and the `rediswire-ping` command.

## Installation

```
pip install rediswire
```

## Building requests

```python
from rediswire.request import Request

req = Request()
req.push("HELLO", 3)
req.push("SET", "key", "value", "EX", "2")
req.push_range("HSET", "key", {"key1": "value1", "key2": "value2"})
req.push("QUIT")

print(req.size())     # commands that expect a response
print(req.payload())  # the RESP3 bytes to write to the server
```

`push` sends each argument as one bulk string. Arguments are encoded as follows:

- Integers are written as their decimal text.
- `True` and `False` are written as `1` and `0`.
- `str` is encoded as UTF-8.
- Bytes-like objects are sent unchanged.

`push_range(cmd, range)` and `push_range(cmd, key, range)` append a command whose arguments come from a collection:

- A mapping contributes two bulks per entry.
- A 2-tuple element contributes two bulks.
- Any other element contributes one bulk.
- An empty range adds nothing.

`SUBSCRIBE`, `PSUBSCRIBE`, `UNSUBSCRIBE` and `PUNSUBSCRIBE` get their answers as pushes. They are not counted by `size()`. `has_hello_priority()` is true when the last command pushed was `HELLO` and `config.hello_with_priority` is set. `clear()` empties the request.

`RequestConfig` holds these flags, with their defaults:

| Flag | Default |
| --- | --- |
| `cancel_on_connection_lost` | `False` |
| `coalesce` | `True` |
| `cancel_if_not_connected` | `False` |
| `retry` | `True` |
| `hello_with_priority` | `True` |

Only `hello_with_priority` changes what `Request` itself does. The other flags are stored for use by a connection.

## Reading responses

```python
import socket

from rediswire.adapters import adapt
from rediswire.request import Request
from rediswire.resp3 import read

req = Request()
req.push("HELLO", 3)
req.push("PING")
req.push("QUIT")

with socket.create_connection(("127.0.0.1", 6379)) as sock:
    sock.sendall(req.payload())
    buffer = bytearray()
    read(sock, buffer, adapt(None))  # HELLO
    pong = adapt(str)
    read(sock, buffer, pong)         # PING
    read(sock, buffer, adapt(None))  # QUIT

print(pong.result)
```

Each call to `read` parses exactly one message and returns the number of bytes it took. Bytes received beyond that message stay in `buffer` for the next call. `async_read(reader, adapter)` does the same with an asyncio stream. Both functions raise `EOFError` if the connection closes in the middle of a message. If no adapter is given, `ignore_response` is used; it discards the message but raises on server errors.

## Adapters

`adapt(spec)` turns a type annotation into an adapter. After parsing, the value is available as the adapter's `result`.

| `spec` | Adapter | Result |
| --- | --- | --- |
| `None` | `IgnoreAdapter` | `None`; raises only on server errors |
| `int`, `str`, `float`, `bool`, `bytes`, any class | `SimpleAdapter` | a simple value; streamed string parts are joined |
| `list[T]` | `ListAdapter` | every simple element, with nested aggregates flattened |
| `deque[T]` | list-like, as a `deque` | a top-level simple value is an error |
| `set[T]` | `SetAdapter` | a RESP3 set |
| `dict[K, V]` | `MapAdapter` | a RESP3 map or attribute |
| `T \| None` or `Optional[T]` | `OptionalAdapter` | `None` when the server sends null |
| `tuple[A, B, ...]` | `TupleAdapter` | one adapter per element of a top-level aggregate, as for a pipeline answered with `EXEC` |
| `Node` | `NodeAdapter` | the last raw node |
| `list[Node]` | `NodesAdapter` | every raw node |

`ArrayAdapter(kind, size)` reads a flat aggregate that must have exactly `size` elements. It is built directly, not through `adapt`.

Values are converted by `from_bulk(kind, value)`:

- `int` reads an unsigned decimal.
- `bool` is true when the text starts with `t`.
- `float` uses `parse_double`.
- Any other kind is called with the text.

An adapter is any callable that takes a `Node`, so you can also write your own.

## Using the parser directly

```python
from rediswire.resp3 import Parser

nodes = []
parser = Parser(nodes.append)
parser.consume(b"*2\r\n")
parser.consume(b"$3\r\n")   # announces a bulk: parser.bulk_length() == 3
parser.consume(b"foo\r\n")  # the bulk payload plus CRLF
parser.consume(b":1\r\n")
assert parser.done()
```

Feed the parser one CRLF-terminated line at a time. When `bulk()` is not `Type.INVALID`, feed it `bulk_length() + 2` bytes instead. Aggregates may be nested up to five levels deep.

## Errors

Malformed data, server errors and responses of the wrong shape raise `ProtocolError`. Its `code` attribute is an `ErrorCode`, for example:

- `NOT_A_NUMBER`
- `INVALID_DATA_TYPE`
- `RESP3_SIMPLE_ERROR`
- `RESP3_BLOB_ERROR`
- `RESP3_NULL`
- `EXPECTS_RESP3_SIMPLE_TYPE`
- `INCOMPATIBLE_SIZE`
- `EXCEEEDS_MAX_NESTED_DEPTH`

For server errors, `detail` holds the server's message.

## Pinging a server

```python
from rediswire.client import ping

print(ping("127.0.0.1", 6379))
```

`async_ping` does the same with asyncio streams.

From the shell:

```
rediswire-ping --host 127.0.0.1 --port 6379
```

This sends `HELLO 3`, `PING` and `QUIT`, then prints `Ping: <reply>`. Add `--async` to use the asyncio client. On a connection or protocol error the command prints the error to stderr and exits with status 1.

`format_aggregate(nodes)` renders the elements of an aggregate on one line. `format_push(nodes)` renders a pub/sub push as its type, channel and message. Both take a list of nodes, such as one collected by `adapt(list[Node])`.

## What it does not do

`rediswire` has no connection manager. It does not provide any of the following:

- background reader and writer tasks that share one connection between many callers
- request queueing or coalescing
- delivery of server pushes to subscribers
- health checks, reconnection or Sentinel lookups
- TLS

It gives you the pieces to write requests and to parse responses on a socket you manage yourself.