"""
Data models for remote mounts.
"""

import enum
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from mountserve.exceptions import ConfigurationException
from mountserve.utils.logger import get_logger
from mountserve.utils.validators import parse_option_list, validate_connection_string

LOG = get_logger(__name__)

VAR_CONNECTION_STRING = 'MOUNTSERVE_SSHFS_CONNECTION_STRING'
VAR_PASSWORD = 'MOUNTSERVE_SSHFS_PASSWORD'
VAR_OPTIONS = 'MOUNTSERVE_SSHFS_OPTIONS'
VAR_EXTRA_ARGS = 'MOUNTSERVE_SSHFS_ARGS'


class MountState(enum.Enum):
    """Lifecycle state of a supervised mount"""
    UNMOUNTED = 'unmounted'
    MOUNTED = 'mounted'


@dataclass(frozen=True)
class MountConfig:
    """
    Settings for one sshfs mount.

    The password is excluded from ``repr`` so the config can be logged as-is.
    """
    mountpoint: str
    connection_string: str
    password: Optional[str] = field(default=None, repr=False)
    options: Tuple[str, ...] = ()
    extra_args: str = ''

    @classmethod
    def from_env(cls, mountpoint: str,
                 environ: Optional[Mapping[str, str]] = None) -> 'MountConfig':
        """
        Build a MountConfig from environment variables.

        Args:
            mountpoint: Local directory the remote filesystem is mounted on
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            MountConfig instance

        Raises:
            ConfigurationException if the connection string is missing
        """
        environ = os.environ if environ is None else environ

        connection_string = environ.get(VAR_CONNECTION_STRING, '').strip()
        if not connection_string:
            raise ConfigurationException(
                f"{VAR_CONNECTION_STRING} environment variable is required"
            )
        if not validate_connection_string(connection_string):
            LOG.warning(f"Connection string '{connection_string}' does not look like [user@]host:[path]")

        return cls(
            mountpoint=mountpoint,
            connection_string=connection_string,
            password=environ.get(VAR_PASSWORD) or None,
            options=parse_option_list(environ.get(VAR_OPTIONS)),
            extra_args=environ.get(VAR_EXTRA_ARGS, ''),
        )
