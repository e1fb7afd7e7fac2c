"""Storage backend serving a directory mounted with sshfs."""

from typing import Optional

from mountserve.drivers.sshfs import SSHFSDriver
from mountserve.exceptions import StorageException
from mountserve.storage.base import FileMetadata
from mountserve.storage.filesystem import FilesystemStorage, canonical_base
from mountserve.storage.paths import ResolvedPath
from mountserve.storage.stream import ByteStream, DEFAULT_CHUNK_SIZE
from mountserve.utils.logger import get_logger

LOG = get_logger(__name__)


class SSHFSStorage(FilesystemStorage):
    """
    Filesystem storage over an sshfs mountpoint.

    Construction blocks until the driver has mounted the remote filesystem;
    a failed mount fails construction. Reads never trigger a mount.
    """

    scheme = 'sshfs'

    def __init__(self, driver: SSHFSDriver, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.driver = driver
        self.chunk_size = chunk_size
        self.base_path = canonical_base(driver.mountpoint)
        output = driver.mount()
        if output:
            LOG.debug(f"sshfs output: {output.strip()}")
        LOG.info(f"SSHFS storage ready at {self.base_path}")

    def _ensure_mounted(self):
        if not self.driver.is_active():
            raise StorageException(f"Remote filesystem at {self.base_path} is not mounted")

    def read_stream(self, path: ResolvedPath) -> Optional[ByteStream]:
        self._ensure_mounted()
        return super().read_stream(path)

    def metadata(self, path: ResolvedPath) -> Optional[FileMetadata]:
        self._ensure_mounted()
        return super().metadata(path)

    @property
    def requires_unmount(self) -> bool:
        return True

    def unmount(self) -> str:
        return self.driver.unmount()

    def close(self):
        self.driver.close()

    def __repr__(self) -> str:
        return f"<SSHFSStorage base_path={self.base_path} driver={self.driver!r}>"
