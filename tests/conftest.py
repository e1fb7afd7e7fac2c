"""Shared fixtures for mountserve tests."""

import io
import subprocess
from unittest.mock import MagicMock

import pytest

from mountserve.drivers.sshfs import SSHFSDriver
from mountserve.models import MountConfig


@pytest.fixture
def which_all(mocker):
    """Every external tool is on PATH."""
    return mocker.patch(
        'mountserve.drivers.sshfs.shutil.which',
        side_effect=lambda name: f'/usr/bin/{name}'
    )


@pytest.fixture
def make_process():
    """Factory for fake sshfs Popen objects."""
    def factory(returncode=None, stdout=b'', stderr=b'', pid=4242):
        process = MagicMock()
        process.pid = pid
        process.poll.return_value = returncode
        process.returncode = returncode
        process.stdout = io.BytesIO(stdout)
        process.stderr = io.BytesIO(stderr)
        process.wait.return_value = 0
        return process
    return factory


@pytest.fixture
def ismount(mocker):
    """The mountpoint reports as mounted unless a test says otherwise."""
    return mocker.patch('mountserve.drivers.sshfs.os.path.ismount', return_value=True)


@pytest.fixture
def popen(mocker, make_process, ismount):
    """Patched Popen returning a still-running sshfs process."""
    return mocker.patch(
        'mountserve.drivers.sshfs.subprocess.Popen',
        return_value=make_process()
    )


@pytest.fixture
def run_cmd(mocker):
    """Patched subprocess.run used for fusermount."""
    return mocker.patch(
        'mountserve.drivers.sshfs.subprocess.run',
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout='', stderr='')
    )


@pytest.fixture
def mountpoint(tmp_path):
    path = tmp_path / 'mnt'
    path.mkdir()
    return path


@pytest.fixture
def mount_config(mountpoint):
    return MountConfig(
        mountpoint=str(mountpoint),
        connection_string='deploy@files.example.com:/srv/www',
    )


@pytest.fixture
def driver(mount_config, which_all, popen, run_cmd):
    """SSHFSDriver with all subprocess interaction mocked."""
    sshfs = SSHFSDriver(mount_config, startup_timeout=0)
    yield sshfs
    sshfs.close()
