"""Base storage backend interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from mountserve.exceptions import PathTraversalException
from mountserve.storage.paths import ResolvedPath, with_index_document
from mountserve.storage.stream import ByteStream


@dataclass(frozen=True)
class FileMetadata:
    """Metadata of a stored file, produced fresh on every query."""
    size: int


class BaseStorageBackend(ABC):
    """Abstract base class for storage backends"""

    #: Scheme used in location strings, e.g. "fs"
    scheme = None

    def resolve(self, candidate: str) -> ResolvedPath:
        """
        Resolve a request path for this backend.

        Directory requests ('' or a trailing '/') map onto the index document.

        Raises:
            PathTraversalException if candidate escapes the backend base
        """
        return self._resolve(with_index_document(candidate))

    @abstractmethod
    def _resolve(self, candidate: str) -> ResolvedPath:
        pass

    @abstractmethod
    def read_stream(self, path: ResolvedPath) -> Optional[ByteStream]:
        """
        Open a file for reading.

        Args:
            path: Path resolved by this backend

        Returns:
            Lazy ByteStream, or None if nothing is stored at path

        Raises:
            StorageException for any failure other than not-found
        """
        pass

    @abstractmethod
    def metadata(self, path: ResolvedPath) -> Optional[FileMetadata]:
        """
        Look up file metadata.

        Returns:
            FileMetadata, or None if nothing is stored at path

        Raises:
            StorageException for any failure other than not-found
        """
        pass

    @property
    def requires_unmount(self) -> bool:
        """True when shutting down must unmount something first."""
        return False

    def close(self):
        """Release resources held by the backend."""
        pass

    def _check_resolved(self, path: ResolvedPath, base) -> ResolvedPath:
        if not isinstance(path, ResolvedPath):
            raise TypeError(f"Expected a ResolvedPath, got {type(path).__name__}")
        if path.base != base:
            raise PathTraversalException(f"Path {path} was not resolved against {base}")
        return path

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
