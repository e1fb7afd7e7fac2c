"""Lazy single-pass byte streams handed to callers of read_stream."""

from typing import BinaryIO, Iterator, Optional, Tuple, Type

from mountserve.exceptions import StorageException

DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteStream:
    """
    Lazy, finite, single-pass stream over a binary source.

    Iterating yields chunks of at most ``chunk_size`` bytes. The source is
    closed once it is exhausted or when the caller closes the stream early.
    A drained or closed stream cannot be restarted.

    Errors of ``error_types`` raised by the source while reading close the
    stream and surface as StorageException.
    """

    def __init__(self, source: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE,
                 size: Optional[int] = None, name: Optional[str] = None,
                 error_types: Tuple[Type[BaseException], ...] = (OSError,)):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._source = source
        self.chunk_size = chunk_size
        # Size reported by the backend when it is known up front
        self.size = size
        self.name = name
        self.error_types = error_types
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _read_source(self, size: int) -> bytes:
        try:
            return self._source.read() if size < 0 else self._source.read(size)
        except self.error_types as e:
            self.close()
            raise StorageException(f"Failed to read {self.name or 'stream'}: {e}") from e

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes (all remaining bytes when size < 0)."""
        if self._closed:
            return b''
        if size is None:
            size = -1
        data = self._read_source(size)
        if not data or size < 0:
            self.close()
        return data or b''

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration
        chunk = self._read_source(self.chunk_size)
        if not chunk:
            self.close()
            raise StopIteration
        return chunk

    def close(self):
        if not self._closed:
            self._closed = True
            self._source.close()

    def __enter__(self) -> 'ByteStream':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        state = 'closed' if self._closed else 'open'
        return f"<ByteStream {self.name or ''} {state} chunk_size={self.chunk_size} size={self.size}>"
