# mountserve/__init__.py
"""
mountserve Storage Library

Storage abstraction and remote-mount lifecycle manager for a static file
server. Content can come from a local directory, an S3 bucket, or a remote
directory mounted with sshfs.

Key Features:
- Uniform read/metadata operations over all backends
- Request path confinement (no traversal, no absolute paths)
- sshfs mount supervision with stdin password handoff and redacted logging
- Signal-driven unmount on shutdown

Example:
    >>> from mountserve import open_backend
    >>>
    >>> backend = open_backend('fs:///srv/www')
    >>> path = backend.resolve('')  # index.html
    >>> stream = backend.read_stream(path)
    >>> if stream is not None:
    ...     with stream:
    ...         body = b''.join(stream)
"""

from .exceptions import (
    MountServeException,
    ConfigurationException,
    PathTraversalException,
    StorageException,
    MissingDependencyException,
    MountException,
    AlreadyMountedException,
    MountFailedException,
    UnmountException,
    NotMountedException,
    UnmountFailedException,
)

from .config import ServeConfig

from .models import MountConfig, MountState

from .drivers import SSHFSDriver

from .storage import (
    BaseStorageBackend,
    ByteStream,
    FileMetadata,
    FilesystemStorage,
    ResolvedPath,
    S3Storage,
    SSHFSStorage,
    open_backend,
    resolve_path,
)

from .lifecycle import LifecycleController

__version__ = '1.0.0'
__license__ = 'Apache 2.0'

__all__ = [
    # Exceptions
    'MountServeException',
    'ConfigurationException',
    'PathTraversalException',
    'StorageException',
    'MissingDependencyException',
    'MountException',
    'AlreadyMountedException',
    'MountFailedException',
    'UnmountException',
    'NotMountedException',
    'UnmountFailedException',

    # Configuration and models
    'ServeConfig',
    'MountConfig',
    'MountState',

    # Mount supervision
    'SSHFSDriver',
    'LifecycleController',

    # Storage
    'BaseStorageBackend',
    'ByteStream',
    'FileMetadata',
    'FilesystemStorage',
    'ResolvedPath',
    'S3Storage',
    'SSHFSStorage',
    'open_backend',
    'resolve_path',

    # Version
    '__version__',
]


def get_version():
    """Get the current version of the package."""
    return __version__
