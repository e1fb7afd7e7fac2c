"""Tests for ByteStream"""

import io
from unittest.mock import MagicMock

import pytest

from mountserve.exceptions import StorageException
from mountserve.storage.stream import ByteStream


def test_yields_chunks_until_exhausted():
    source = io.BytesIO(b'abcdefghij')
    stream = ByteStream(source, chunk_size=4)

    assert list(stream) == [b'abcd', b'efgh', b'ij']
    assert stream.closed
    assert source.closed


def test_is_single_pass():
    stream = ByteStream(io.BytesIO(b'data'), chunk_size=2)
    assert b''.join(stream) == b'data'
    assert list(stream) == []


def test_close_early_closes_source():
    source = io.BytesIO(b'x' * 100)
    stream = ByteStream(source, chunk_size=10)

    assert next(stream) == b'x' * 10
    stream.close()

    assert source.closed
    assert list(stream) == []


def test_context_manager_closes():
    source = io.BytesIO(b'payload')
    with ByteStream(source) as stream:
        assert stream.read(3) == b'pay'
    assert source.closed


def test_read_all_closes():
    stream = ByteStream(io.BytesIO(b'payload'))
    assert stream.read() == b'payload'
    assert stream.closed
    assert stream.read() == b''


def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        ByteStream(io.BytesIO(b''), chunk_size=0)


def test_source_errors_become_storage_errors():
    source = MagicMock()
    source.read.side_effect = OSError('Input/output error')
    stream = ByteStream(source, name='/srv/www/index.html')

    with pytest.raises(StorageException) as exc_info:
        next(stream)

    assert '/srv/www/index.html' in str(exc_info.value)
    assert stream.closed
    source.close.assert_called_once()


def test_configured_error_types_only():
    source = MagicMock()
    source.read.side_effect = KeyError('unexpected')
    stream = ByteStream(source, error_types=(OSError,))

    with pytest.raises(KeyError):
        stream.read()
