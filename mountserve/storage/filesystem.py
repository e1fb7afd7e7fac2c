"""Local filesystem storage backend."""

import os
import stat
from pathlib import Path
from typing import Optional, Union

from mountserve.exceptions import ConfigurationException, StorageException
from mountserve.storage.base import BaseStorageBackend, FileMetadata
from mountserve.storage.paths import ResolvedPath, resolve_path
from mountserve.storage.stream import ByteStream, DEFAULT_CHUNK_SIZE
from mountserve.utils.logger import get_logger

LOG = get_logger(__name__)


def canonical_base(base_path: Union[str, Path]) -> Path:
    """
    Create base_path if absent and return its canonical form.

    Raises:
        ConfigurationException if the directory cannot be created, resolved
        or read by the current user
    """
    path = Path(base_path).expanduser()
    try:
        path.mkdir(parents=True, exist_ok=True)
        canonical = path.resolve(strict=True)
    except OSError as e:
        raise ConfigurationException(f"Failed to prepare base directory {base_path}: {e}") from e

    if not canonical.is_dir():
        raise ConfigurationException(f"Base path {canonical} is not a directory")
    if not os.access(canonical, os.R_OK | os.X_OK):
        raise ConfigurationException(
            f"Path {canonical} cannot be read from by the current user"
        )
    return canonical


class FilesystemStorage(BaseStorageBackend):
    """Serves files from a local base directory."""

    scheme = 'fs'

    def __init__(self, base_path: Union[str, Path], chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.base_path = canonical_base(base_path)
        self.chunk_size = chunk_size
        LOG.info(f"Filesystem storage ready at {self.base_path}")

    def _resolve(self, candidate: str) -> ResolvedPath:
        return resolve_path(self.base_path, candidate)

    def read_stream(self, path: ResolvedPath) -> Optional[ByteStream]:
        full_path = self._check_resolved(path, self.base_path).path
        LOG.debug(f"Reading file at {full_path}")
        try:
            # O_NONBLOCK so a FIFO or device cannot block the open
            fd = os.open(full_path, os.O_RDONLY | os.O_NONBLOCK)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise StorageException(f"Failed to open {full_path}: {e}") from e

        try:
            st = os.fstat(fd)
            if not stat.S_ISREG(st.st_mode):
                os.close(fd)
                return None
            os.set_blocking(fd, True)
            handle = os.fdopen(fd, 'rb')
        except OSError as e:
            os.close(fd)
            raise StorageException(f"Failed to open {full_path}: {e}") from e
        return ByteStream(handle, chunk_size=self.chunk_size, size=st.st_size, name=str(full_path))

    def metadata(self, path: ResolvedPath) -> Optional[FileMetadata]:
        full_path = self._check_resolved(path, self.base_path).path
        LOG.debug(f"Reading metadata at {full_path}")
        try:
            st = os.stat(full_path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise StorageException(f"Failed to stat {full_path}: {e}") from e
        if not stat.S_ISREG(st.st_mode):
            return None
        return FileMetadata(size=st.st_size)

    def __repr__(self) -> str:
        return f"<FilesystemStorage base_path={self.base_path}>"
