import pytest

from rediswire.request import Request, RequestConfig, to_bulk


def test_single_arg():
    req = Request(RequestConfig())
    req.push("PING")
    assert req.payload() == b"*1\r\n$4\r\nPING\r\n"


def test_arg_int():
    req = Request()
    req.push("PING", 42)
    assert req.payload() == b"*2\r\n$4\r\nPING\r\n$2\r\n42\r\n"


def test_multiple_args():
    req = Request()
    req.push("SET", "key", "value", "EX", "2")
    assert req.payload() == b"*5\r\n$3\r\nSET\r\n$3\r\nkey\r\n$5\r\nvalue\r\n$2\r\nEX\r\n$1\r\n2\r\n"


CONTAINER_RESULT = (
    b"*6\r\n$4\r\nHSET\r\n$3\r\nkey\r\n$4\r\nkey1\r\n$6\r\nvalue1\r\n$4\r\nkey2\r\n$6\r\nvalue2\r\n"
)


def test_container_and_range():
    mapping = {"key1": "value1", "key2": "value2"}
    req1 = Request()
    req1.push_range("HSET", "key", mapping)
    assert req1.payload() == CONTAINER_RESULT

    req2 = Request()
    req2.push_range("HSET", "key", list(mapping.items()))
    assert req2.payload() == CONTAINER_RESULT


def test_range_without_key_matches_push():
    channels = ["channel1", "channel2", "channel3"]
    ranged = Request()
    ranged.push_range("SUBSCRIBE", channels)
    pushed = Request()
    pushed.push("SUBSCRIBE", *channels)
    assert ranged.payload() == pushed.payload()


def test_empty_range_adds_nothing():
    req = Request()
    req.push_range("HSET", "key", {})
    assert req.payload() == b""
    assert req.size() == 0


def test_push_range_argument_errors():
    req = Request()
    with pytest.raises(TypeError):
        req.push_range("HSET")
    with pytest.raises(TypeError):
        req.push_range("SADD", "key", "members")


def test_size_skips_push_commands():
    req = Request()
    req.push("HELLO", 3)
    req.push("PING")
    req.push("SUBSCRIBE", "channel")
    req.push("QUIT")
    assert req.size() == 3


def test_hello_priority_follows_last_command_and_config():
    req = Request()
    req.push("HELLO", 3)
    assert req.has_hello_priority()
    req.push("PING")
    assert not req.has_hello_priority()

    no_priority = Request(RequestConfig(hello_with_priority=False))
    no_priority.push("HELLO", 3)
    assert not no_priority.has_hello_priority()


def test_default_config():
    config = Request().config
    assert config == RequestConfig(
        cancel_on_connection_lost=False,
        coalesce=True,
        cancel_if_not_connected=False,
        retry=True,
        hello_with_priority=True,
    )


def test_clear():
    req = Request()
    req.push("PING")
    req.clear()
    assert req.payload() == b""
    assert req.size() == 0
    req.push("PING")
    assert req.payload() == b"*1\r\n$4\r\nPING\r\n"


def test_to_bulk_types():
    assert to_bulk("PING") == b"$4\r\nPING\r\n"
    assert to_bulk(42) == b"$2\r\n42\r\n"
    assert to_bulk(b"a\r\nb") == b"$4\r\na\r\nb\r\n"
    assert to_bulk("é").startswith(b"$%d\r\n" % len("é".encode()))


def test_to_bulk_uses_dunder_bytes():
    class Blob:
        def __bytes__(self):
            return b"value"

    assert to_bulk(Blob()) == to_bulk("value")


def test_to_bulk_rejects_unknown_types():
    with pytest.raises(TypeError):
        to_bulk(1.5)