"""
Tests for the TCP Connection Manager

Uses an in-process asyncio server for real socket behaviour and mock
streams for failure injection.
"""

import asyncio

import pytest

from groupchat import ConnectError, Endpoint, ReadError, TcpConnection, WriteError
from groupchat.connection import READ_CHUNK_SIZE

from mock_streams import MockReader, MockWriter


async def start_server(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, Endpoint("127.0.0.1", port)


async def stop_server(server):
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
async def test_connect_write_and_read_chunk():
    """Test a full exchange over a real socket."""
    received = asyncio.get_running_loop().create_future()

    async def handler(reader, writer):
        writer.write(b"GROUPS:General")
        await writer.drain()
        received.set_result(await reader.read(1024))
        writer.close()

    server, endpoint = await start_server(handler)
    connection = TcpConnection(endpoint)
    try:
        await connection.connect()
        assert connection.is_connected

        assert await connection.read_chunk() == b"GROUPS:General"
        await connection.write(b"[General] alice: hi")
        assert await asyncio.wait_for(received, 2) == b"[General] alice: hi"

        # Peer closed: orderly end-of-stream
        assert await connection.read_chunk() == b""
    finally:
        await connection.close()
        await stop_server(server)


@pytest.mark.asyncio
async def test_connect_refused_raises_connect_error():
    """Test that a refused connection surfaces as ConnectError."""

    async def handler(reader, writer):
        writer.close()

    server, endpoint = await start_server(handler)
    await stop_server(server)

    connection = TcpConnection(endpoint)
    with pytest.raises(ConnectError) as exc_info:
        await connection.connect()
    assert exc_info.value.endpoint == str(endpoint)
    assert isinstance(exc_info.value, ConnectionError)
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_close_unblocks_pending_read():
    """Test that closing locally ends a pending read with EOF."""
    done = asyncio.Event()

    async def handler(reader, writer):
        await reader.read(1024)
        writer.close()
        done.set()

    server, endpoint = await start_server(handler)
    connection = TcpConnection(endpoint)
    try:
        await connection.connect()
        pending = asyncio.ensure_future(connection.read_chunk())
        await asyncio.sleep(0.05)
        assert not pending.done()

        await connection.close()
        assert await asyncio.wait_for(pending, 2) == b""
        await asyncio.wait_for(done.wait(), 2)
    finally:
        await stop_server(server)


@pytest.mark.asyncio
async def test_close_is_idempotent():
    """Test that close can be called before connect and repeatedly."""
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    await connection.close()
    await connection.close()
    assert not connection.is_connected


@pytest.mark.asyncio
async def test_write_without_connection_fails():
    """Test that writing on a closed connection raises WriteError."""
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    with pytest.raises(WriteError):
        await connection.write(b"x")


@pytest.mark.asyncio
async def test_read_without_connection_fails():
    """Test that reading before connect raises ReadError."""
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    with pytest.raises(ReadError):
        await connection.read_chunk()


@pytest.mark.asyncio
async def test_write_error_is_wrapped():
    """Test that an OS error during write becomes WriteError."""
    reader = MockReader()
    writer = MockWriter(reader, fail_with=ConnectionResetError("reset"))
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    connection._set_test_mode(reader, writer)

    with pytest.raises(WriteError, match="reset"):
        await connection.write(b"data")


@pytest.mark.asyncio
async def test_read_error_is_wrapped():
    """Test that an OS error during read becomes ReadError."""
    reader = MockReader()
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    connection._set_test_mode(reader, MockWriter(reader))
    reader.fail(ConnectionResetError("peer reset"))

    with pytest.raises(ReadError, match="peer reset"):
        await connection.read_chunk()


@pytest.mark.asyncio
async def test_stream_factory_receives_endpoint():
    """Test the injected factory gets the host and port."""
    calls = []

    async def factory(host, port):
        calls.append((host, port))
        reader = MockReader()
        return reader, MockWriter(reader)

    connection = TcpConnection(Endpoint("chat.local", 6000), stream_factory=factory)
    await connection.connect()
    assert calls == [("chat.local", 6000)]
    assert connection.is_connected


@pytest.mark.asyncio
async def test_factory_os_error_becomes_connect_error():
    """Test DNS-style failures are reported as ConnectError."""

    async def factory(host, port):
        raise OSError("Name or service not known")

    connection = TcpConnection(Endpoint("nowhere.invalid", 1), stream_factory=factory)
    with pytest.raises(ConnectError, match="Name or service not known"):
        await connection.connect()


def test_set_test_mode_requires_streams():
    """Test the helper validates its arguments."""
    connection = TcpConnection(Endpoint("127.0.0.1", 5000))
    with pytest.raises(ValueError):
        connection._set_test_mode()


def test_default_chunk_size():
    """Test the historical read buffer size."""
    assert READ_CHUNK_SIZE == 1024
    assert TcpConnection(Endpoint("h", 1)).chunk_size == 1024
