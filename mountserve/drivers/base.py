"""Base mount driver interface"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List


class BaseMountDriver(ABC):
    """Abstract base class for mount drivers"""

    @abstractmethod
    def missing_dependencies(self) -> List[str]:
        """
        Check the external tools this driver needs.

        Returns:
            Names of tools that are not on PATH, empty when all are present
        """
        pass

    @abstractmethod
    def mount(self) -> str:
        """
        Mount the remote filesystem.

        Returns:
            Output of the mount tool

        Raises:
            MissingDependencyException, AlreadyMountedException, MountFailedException
        """
        pass

    @abstractmethod
    def unmount(self) -> str:
        """
        Unmount the remote filesystem.

        Returns:
            Output of the unmount tool

        Raises:
            MissingDependencyException, NotMountedException, UnmountFailedException
        """
        pass

    @abstractmethod
    def is_mounted(self) -> bool:
        """
        Check if the remote filesystem is currently mounted.

        Returns:
            True if mounted, False otherwise
        """
        pass

    @abstractmethod
    def get_mount_info(self) -> Dict[str, Any]:
        """
        Get information about the mount.

        Returns:
            Dictionary with mount information
        """
        pass
