"""Tests for the mountserve CLI"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from mountserve.cli import cli


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'mountserve.conf'
    path.write_text('[mountserve]\n')
    return str(path)


@pytest.fixture
def runner(config_file):
    return CliRunner(env={'MOUNTSERVE_CONFIG_FILE': config_file})


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch('mountserve.cli.setup_logging') as mock_setup:
        yield mock_setup


@pytest.fixture
def site(tmp_path):
    base = tmp_path / 'site'
    base.mkdir()
    (base / 'index.html').write_bytes(b'<p>home</p>')
    return base


def invoke(runner, *args):
    return runner.invoke(cli, list(args), obj={})


def test_check_all_present(runner, which_all):
    result = invoke(runner, 'check')

    assert result.exit_code == 0
    assert '/usr/bin/fusermount' in result.output


def test_check_missing(runner):
    with patch('mountserve.drivers.sshfs.shutil.which', return_value=None):
        result = invoke(runner, 'check')

    assert result.exit_code == 1
    assert 'missing' in result.output


def test_stat(runner, site):
    result = invoke(runner, '--storage', f'fs://{site}', 'stat')

    assert result.exit_code == 0
    assert 'index.html' in result.output
    assert '11' in result.output


def test_stat_not_found(runner, site):
    result = invoke(runner, '--storage', f'fs://{site}', 'stat', 'missing.txt')
    assert result.exit_code == 1


def test_stat_traversal(runner, site):
    result = invoke(runner, '--storage', f'fs://{site}', 'stat', '../etc/passwd')
    assert result.exit_code == 1


def test_cat(runner, site):
    result = invoke(runner, '--storage', f'fs://{site}', 'cat', 'index.html')

    assert result.exit_code == 0
    assert result.stdout_bytes == b'<p>home</p>'


def test_missing_storage(runner):
    result = invoke(runner, 'stat')
    assert result.exit_code == 1


def test_invalid_storage(runner):
    result = invoke(runner, '--storage', 'ftp://example.com', 'stat')
    assert result.exit_code == 1


def test_storage_from_environment(config_file, site):
    runner = CliRunner(env={
        'MOUNTSERVE_CONFIG_FILE': config_file,
        'MOUNTSERVE_STORAGE': f'fs://{site}',
    })
    result = runner.invoke(cli, ['cat'], obj={})

    assert result.exit_code == 0
    assert result.stdout_bytes == b'<p>home</p>'


def test_log_options_passed_to_setup(runner, site, no_logging_setup):
    invoke(runner, '--storage', f'fs://{site}', '--log-level', 'DEBUG', '--json-logs', 'stat')

    args = no_logging_setup.call_args[0]
    assert args[0] == 'DEBUG'
    assert args[2] is True


@patch('mountserve.cli.LifecycleController')
def test_run_exits_with_shutdown_status(mock_controller, runner, site):
    mock_controller.return_value.wait.return_value = 1

    result = invoke(runner, '--storage', f'fs://{site}', 'run')

    assert result.exit_code == 1
    controller = mock_controller.return_value
    controller.install.assert_called_once()
    controller.restore.assert_called_once()
