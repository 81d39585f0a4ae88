import asyncio

import pytest

from rediswire.resp3 import (
    ErrorCode,
    Node,
    Parser,
    ProtocolError,
    Type,
    async_read,
    element_multiplicity,
    ignore_response,
    is_aggregate,
    parse_uint,
    read,
    to_code,
    to_type,
)


class FakeSocket:
    def __init__(self, data, chunk=1):
        self._data = data
        self._chunk = chunk

    def recv(self, size):
        n = min(size, self._chunk)
        out, self._data = self._data[:n], self._data[n:]
        return out


def collect(message, chunk=1):
    nodes = []
    buffer = bytearray()
    consumed = read(FakeSocket(message, chunk), buffer, nodes.append)
    return nodes, consumed, buffer


@pytest.mark.parametrize("t", [t for t in Type if t is not Type.INVALID])
def test_code_round_trip(t):
    assert to_type(to_code(t)) is t
    assert to_type(to_code(t).encode()[0]) is t


def test_unknown_code_is_invalid():
    assert to_type("?") is Type.INVALID
    assert to_type(b"") is Type.INVALID
    with pytest.raises(ValueError):
        to_code(Type.INVALID)


def test_multiplicity_and_aggregates():
    assert element_multiplicity(Type.MAP) == 2
    assert element_multiplicity(Type.ATTRIBUTE) == 2
    assert element_multiplicity(Type.ARRAY) == 1
    assert all(is_aggregate(t) for t in (Type.ARRAY, Type.PUSH, Type.SET, Type.MAP, Type.ATTRIBUTE))
    assert not is_aggregate(Type.BLOB_STRING)


def test_parse_uint_reads_leading_digits():
    assert parse_uint(b"123\r") == 123
    assert parse_uint("42") == 42


@pytest.mark.parametrize("data", [b"x", b"", b"\r", str(2**64).encode()])
def test_parse_uint_rejects(data):
    with pytest.raises(ProtocolError) as info:
        parse_uint(data)
    assert info.value.code is ErrorCode.NOT_A_NUMBER


def test_simple_string():
    nodes, consumed, buffer = collect(b"+PONG\r\n")
    assert nodes == [Node(Type.SIMPLE_STRING, 1, 0, "PONG")]
    assert consumed == len(b"+PONG\r\n")
    assert buffer == bytearray()


def test_array_with_blob_and_number_byte_by_byte():
    message = b"*2\r\n$5\r\nhello\r\n:42\r\n"
    nodes, consumed, _ = collect(message)
    assert [n.data_type for n in nodes] == [Type.ARRAY, Type.BLOB_STRING, Type.NUMBER]
    assert [n.value for n in nodes[1:]] == ["hello", "42"]
    assert nodes[0].aggregate_size == 2
    assert nodes[1].depth == nodes[2].depth == nodes[0].depth + 1
    assert consumed == len(message)


def test_blob_may_contain_separator():
    message = b"$4\r\na\r\nb\r\n"
    nodes, consumed, _ = collect(message, chunk=3)
    assert [n.value for n in nodes] == ["a\r\nb"]
    assert consumed == len(message)


def test_leftover_bytes_stay_in_buffer():
    first, second = b"+OK\r\n", b":7\r\n"
    buffer = bytearray()
    sock = FakeSocket(first + second, chunk=64)
    assert read(sock, buffer) == len(first)
    assert bytes(buffer) == second
    nodes = []
    assert read(sock, buffer, nodes.append) == len(second)
    assert nodes[0].value == "7"


def test_map_counts_key_and_value():
    message = b"%1\r\n+k\r\n+v\r\n"
    nodes, consumed, _ = collect(message)
    assert nodes[0].data_type is Type.MAP
    assert nodes[0].aggregate_size == 1
    assert [n.value for n in nodes[1:]] == ["k", "v"]
    assert consumed == len(message)


def test_empty_aggregate_and_null():
    nodes, _, _ = collect(b"*2\r\n*0\r\n_\r\n")
    assert [n.data_type for n in nodes] == [Type.ARRAY, Type.ARRAY, Type.NULL]
    assert nodes[1].aggregate_size == 0


def test_streamed_string():
    message = b"$?\r\n;4\r\nHell\r\n;5\r\no wor\r\n;0\r\n"
    nodes, consumed, _ = collect(message)
    assert all(n.data_type is Type.STREAMED_STRING_PART for n in nodes)
    assert "".join(n.value for n in nodes) == "Hello wor"
    assert consumed == len(message)


def test_boolean_and_double():
    nodes, _, _ = collect(b"*2\r\n#t\r\n,1.5\r\n")
    assert [n.value for n in nodes[1:]] == ["t", "1.5"]


def test_max_nesting_allowed():
    nodes, _, _ = collect(b"*1\r\n" * Parser.MAX_EMBEDDED_DEPTH + b":7\r\n")
    assert nodes[-1].depth == Parser.MAX_EMBEDDED_DEPTH


@pytest.mark.parametrize(
    "message, code",
    [
        (b"*1\r\n" * 6 + b":7\r\n", ErrorCode.EXCEEEDS_MAX_NESTED_DEPTH),
        (b"#x\r\n", ErrorCode.UNEXPECTED_BOOL_VALUE),
        (b"#\r\n", ErrorCode.EMPTY_FIELD),
        (b":\r\n", ErrorCode.EMPTY_FIELD),
        (b"?\r\n", ErrorCode.INVALID_DATA_TYPE),
        (b"*a\r\n", ErrorCode.NOT_A_NUMBER),
        (b"$x\r\n", ErrorCode.NOT_A_NUMBER),
    ],
)
def test_malformed_messages(message, code):
    with pytest.raises(ProtocolError) as info:
        collect(message)
    assert info.value.code is code


def test_ignore_response_raises_on_errors():
    with pytest.raises(ProtocolError) as info:
        read(FakeSocket(b"-ERR bad\r\n"), bytearray())
    assert info.value.code is ErrorCode.RESP3_SIMPLE_ERROR
    assert info.value.detail == "ERR bad"
    with pytest.raises(ProtocolError) as info:
        ignore_response(Node(Type.BLOB_ERROR, 1, 0, "oops"))
    assert info.value.code is ErrorCode.RESP3_BLOB_ERROR


def test_eof_midway():
    with pytest.raises(EOFError):
        read(FakeSocket(b"*2\r\n+a\r\n"), bytearray())


def test_parser_state_accessors():
    parser = Parser(lambda node: None)
    assert parser.done()
    assert parser.consume(b"*1\r\n") == len(b"*1\r\n")
    assert not parser.done()
    parser.consume(b"$3\r\n")
    assert parser.bulk() is Type.BLOB_STRING
    assert parser.bulk_length() == 3
    assert parser.consume(b"abc\r\n") == len(b"abc\r\n")
    assert parser.done()
    assert parser.bulk() is Type.INVALID


@pytest.mark.asyncio
async def test_async_read():
    message = b"*2\r\n$5\r\nhello\r\n+world\r\n"
    reader = asyncio.StreamReader()
    reader.feed_data(message)
    reader.feed_eof()
    nodes = []
    assert await async_read(reader, nodes.append) == len(message)
    assert [n.value for n in nodes[1:]] == ["hello", "world"]


@pytest.mark.asyncio
async def test_async_read_eof():
    reader = asyncio.StreamReader()
    reader.feed_data(b"$5\r\nhel")
    reader.feed_eof()
    with pytest.raises(EOFError):
        await async_read(reader)