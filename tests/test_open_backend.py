"""Tests for backend selection by location string"""

from unittest.mock import patch

import pytest

from mountserve.config import ServeConfig
from mountserve.exceptions import ConfigurationException
from mountserve.storage import FilesystemStorage, SSHFSStorage, open_backend


def test_filesystem_location(tmp_path):
    backend = open_backend(f'fs://{tmp_path}', ServeConfig(environ={}))

    assert isinstance(backend, FilesystemStorage)
    assert backend.base_path == tmp_path.resolve()
    assert not backend.requires_unmount


def test_chunk_size_from_config(tmp_path):
    backend = open_backend(f'fs://{tmp_path}', ServeConfig(read_chunk_size=512, environ={}))
    assert backend.chunk_size == 512


@patch('mountserve.storage.S3Storage')
def test_s3_location_uses_bucket(mock_s3):
    config = ServeConfig(s3_endpoint_url='http://minio:9000', s3_region='eu-west-1', environ={})

    backend = open_backend('s3://static-site/ignored/prefix', config)

    assert backend is mock_s3.return_value
    mock_s3.assert_called_once_with(
        'static-site',
        endpoint_url='http://minio:9000',
        region='eu-west-1',
        chunk_size=config.read_chunk_size,
    )


@pytest.mark.parametrize('location', [
    'ftp://example.com/files',
    '/srv/www',
    'fs:/srv/www',
    '',
    None,
])
def test_invalid_location(location):
    with pytest.raises(ConfigurationException) as exc_info:
        open_backend(location, ServeConfig(environ={}))
    assert 'Valid sources are' in str(exc_info.value)


def test_disabled_backend(tmp_path):
    config = ServeConfig(enabled_backends=['fs'], environ={})

    with pytest.raises(ConfigurationException) as exc_info:
        open_backend('s3://static-site', config)

    assert "'fs://path'" in str(exc_info.value)
    assert 's3://' not in str(exc_info.value).split('Valid sources are')[1]


def test_no_backends_enabled(tmp_path):
    with pytest.raises(ConfigurationException):
        open_backend(f'fs://{tmp_path}', ServeConfig(enabled_backends=[], environ={}))


def test_empty_bucket():
    with pytest.raises(ConfigurationException):
        open_backend('s3://', ServeConfig(environ={}))


def test_sshfs_requires_connection_string(tmp_path, popen):
    with pytest.raises(ConfigurationException):
        open_backend(f'sshfs://{tmp_path}', ServeConfig(environ={}))
    popen.assert_not_called()


def test_sshfs_location_mounts(tmp_path, which_all, popen, run_cmd):
    config = ServeConfig(
        sshfs_bin='sshfs3',
        mount_startup_timeout=0,
        environ={'MOUNTSERVE_SSHFS_CONNECTION_STRING': 'deploy@host:/srv/www'},
    )
    mountpoint = tmp_path / 'mnt'

    backend = open_backend(f'sshfs://{mountpoint}', config)
    try:
        assert isinstance(backend, SSHFSStorage)
        assert backend.requires_unmount
        assert mountpoint.is_dir()
        cmd = popen.call_args[0][0]
        assert cmd[:3] == ['sshfs3', 'deploy@host:/srv/www', str(mountpoint.resolve())]
    finally:
        backend.close()
