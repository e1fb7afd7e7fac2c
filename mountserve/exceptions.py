"""
Custom exceptions for mountserve
"""

from typing import Iterable


class MountServeException(Exception):
    """Base exception for mountserve"""
    pass


class ConfigurationException(MountServeException):
    """Exception raised for configuration errors"""
    pass


class PathTraversalException(MountServeException):
    """Exception raised when a request path escapes its base directory"""
    pass


class StorageException(MountServeException):
    """Exception raised when a storage backend fails to read or stat a path"""
    pass


class MissingDependencyException(MountServeException):
    """Exception raised when required external tools are not on PATH"""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            f"The following dependencies are missing or not in $PATH: {', '.join(self.missing)}"
        )


class MountException(MountServeException):
    """Exception raised during mount operations"""
    pass


class AlreadyMountedException(MountException):
    """Exception raised when mounting an already mounted filesystem"""

    def __init__(self, message: str = "Already mounted"):
        super().__init__(message)


class MountFailedException(MountException):
    """Exception raised when the mount tool reports a problem"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Mount failed: {reason}")


class UnmountException(MountServeException):
    """Exception raised during unmount operations"""
    pass


class NotMountedException(UnmountException):
    """Exception raised when unmounting a filesystem that is not mounted"""

    def __init__(self, message: str = "Not mounted"):
        super().__init__(message)


class UnmountFailedException(UnmountException):
    """Exception raised when the unmount tool reports a problem"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Unmount failed: {reason}")
