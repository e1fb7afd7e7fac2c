"""
Storage backends package.

The set of backends is closed: a location string selects exactly one of
``fs://<path>``, ``s3://<bucket>`` or ``sshfs://<mountpoint>``.
"""

from typing import Optional

from mountserve.config import ServeConfig
from mountserve.drivers.sshfs import SSHFSDriver
from mountserve.exceptions import ConfigurationException
from mountserve.models import MountConfig
from mountserve.storage.base import BaseStorageBackend, FileMetadata
from mountserve.storage.filesystem import FilesystemStorage, canonical_base
from mountserve.storage.paths import ResolvedPath, resolve_path, resolve_key
from mountserve.storage.s3 import S3Storage
from mountserve.storage.sshfs import SSHFSStorage
from mountserve.storage.stream import ByteStream
from mountserve.utils.logger import get_logger

LOG = get_logger(__name__)

LOCATION_FORMATS = {
    'fs': 'fs://path',
    's3': 's3://bucket',
    'sshfs': 'sshfs://mountpoint',
}


def _open_fs(target: str, config: ServeConfig) -> BaseStorageBackend:
    if not target:
        raise ConfigurationException("Filesystem path cannot be empty")
    return FilesystemStorage(target, chunk_size=config.read_chunk_size)


def _open_s3(target: str, config: ServeConfig) -> BaseStorageBackend:
    bucket = target.split('/')[0]
    if not bucket:
        raise ConfigurationException("S3 bucket name cannot be empty")
    return S3Storage(
        bucket,
        endpoint_url=config.s3_endpoint_url,
        region=config.s3_region,
        chunk_size=config.read_chunk_size,
    )


def _open_sshfs(target: str, config: ServeConfig) -> BaseStorageBackend:
    if not target:
        raise ConfigurationException("SSHFS mountpoint cannot be empty")
    mountpoint = canonical_base(target)
    mount_config = MountConfig.from_env(str(mountpoint), config.environ)
    driver = SSHFSDriver(
        mount_config,
        sshfs_bin=config.sshfs_bin,
        fusermount_bin=config.fusermount_bin,
        shell_bin=config.shell_bin,
        startup_timeout=config.mount_startup_timeout,
        unmount_timeout=config.unmount_timeout,
    )
    return SSHFSStorage(driver, chunk_size=config.read_chunk_size)


_OPENERS = {
    'fs': _open_fs,
    's3': _open_s3,
    'sshfs': _open_sshfs,
}


def open_backend(location: Optional[str], config: Optional[ServeConfig] = None) -> BaseStorageBackend:
    """
    Open the storage backend selected by location.

    Args:
        location: Scheme-prefixed location string
        config: Loaded configuration (defaults apply when omitted)

    Returns:
        A ready storage backend; for sshfs the remote filesystem is mounted

    Raises:
        ConfigurationException on an unknown, disabled or malformed location
        MountServeException subclasses when the backend cannot be prepared
    """
    config = config or ServeConfig()
    location = (location or '').strip()

    enabled = [scheme for scheme in _OPENERS if scheme in config.enabled_backends]
    if not enabled:
        raise ConfigurationException("No storage backends are enabled")

    scheme, sep, target = location.partition('://')
    if not sep or scheme not in enabled:
        valid = ', '.join(f"'{LOCATION_FORMATS[s]}'" for s in enabled)
        raise ConfigurationException(
            f"Invalid storage location '{location}'. Valid sources are: {valid}"
        )

    LOG.info(f"Opening {scheme} storage backend for {location}")
    return _OPENERS[scheme](target.strip(), config)


__all__ = [
    'BaseStorageBackend',
    'ByteStream',
    'FileMetadata',
    'FilesystemStorage',
    'ResolvedPath',
    'S3Storage',
    'SSHFSStorage',
    'open_backend',
    'resolve_key',
    'resolve_path',
]
