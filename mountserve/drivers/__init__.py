"""Mount drivers package"""

from mountserve.drivers.base import BaseMountDriver
from mountserve.drivers.sshfs import SSHFSDriver

__all__ = ['BaseMountDriver', 'SSHFSDriver']
