"""
Command-line interface for mountserve
"""

import sys

import click
from tabulate import tabulate

from mountserve.config import ServeConfig
from mountserve.drivers.sshfs import locate_dependencies
from mountserve.exceptions import MountServeException
from mountserve.lifecycle import LifecycleController
from mountserve.storage import open_backend
from mountserve.utils.logger import get_logger, setup_logging

LOG = get_logger(__name__)


@click.group()
@click.option('--config', 'config_file', envvar='MOUNTSERVE_CONFIG_FILE', help='Path to INI config file')
@click.option('--storage', envvar='MOUNTSERVE_STORAGE',
              help='Storage location: fs://<path>, s3://<bucket> or sshfs://<mountpoint>')
@click.option('--log-level', envvar='MOUNTSERVE_LOG_LEVEL', help='Log level')
@click.option('--json-logs/--text-logs', default=None, help='Emit JSON log lines')
@click.pass_context
def cli(ctx, config_file, storage, log_level, json_logs):
    """mountserve storage and remote mount manager"""
    ctx.ensure_object(dict)
    try:
        config = ServeConfig.load(config_file)
    except MountServeException as e:
        click.secho(f"✗ {e}", fg='red', err=True)
        sys.exit(1)

    if storage:
        config.storage = storage
    if log_level:
        config.log_level = log_level
    if json_logs is not None:
        config.log_json = json_logs

    setup_logging(config.log_level, config.log_format, config.log_json)
    ctx.obj['config'] = config


def _open_configured_backend(config: ServeConfig):
    try:
        config.validate()
        return open_backend(config.storage, config)
    except MountServeException as e:
        LOG.error(f"Failed to open storage backend: {e}")
        click.secho(f"✗ {e}", fg='red', err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def check(ctx):
    """Check external tools needed for remote mounts"""
    config = ctx.obj['config']
    located = locate_dependencies([config.sshfs_bin, config.fusermount_bin, config.shell_bin])

    data = [
        [name, path or '-', '✓' if path else '✗ missing']
        for name, path in located.items()
    ]
    click.echo(tabulate(data, headers=['Tool', 'Path', 'Status'], tablefmt='grid'))

    missing = [name for name, path in located.items() if path is None]
    if missing:
        click.secho(f"✗ Missing dependencies: {', '.join(missing)}", fg='red', err=True)
        sys.exit(1)
    click.secho("✓ All dependencies present", fg='green')


@cli.command()
@click.pass_context
def run(ctx):
    """Open the storage backend and hold it until a termination signal"""
    config = ctx.obj['config']
    backend = _open_configured_backend(config)

    controller = LifecycleController(backend)
    controller.install()
    click.echo(f"Serving from {backend!r}, waiting for termination signal...")

    exit_code = controller.wait()
    controller.restore()
    sys.exit(exit_code)


@cli.command()
@click.argument('path', default='')
@click.pass_context
def stat(ctx, path):
    """Show metadata of PATH in the storage backend"""
    config = ctx.obj['config']
    backend = _open_configured_backend(config)
    try:
        resolved = backend.resolve(path)
        metadata = backend.metadata(resolved)
        if metadata is None:
            click.secho(f"✗ Not found: {path or '/'}", fg='red', err=True)
            sys.exit(1)
        data = [
            ['Path', path or '/'],
            ['Resolved', str(resolved)],
            ['Size', metadata.size],
        ]
        click.echo(tabulate(data, tablefmt='grid'))
    except MountServeException as e:
        click.secho(f"✗ {e}", fg='red', err=True)
        sys.exit(1)
    finally:
        backend.close()


@cli.command()
@click.argument('path', default='')
@click.pass_context
def cat(ctx, path):
    """Stream the contents of PATH to stdout"""
    config = ctx.obj['config']
    backend = _open_configured_backend(config)
    try:
        stream = backend.read_stream(backend.resolve(path))
        if stream is None:
            click.secho(f"✗ Not found: {path or '/'}", fg='red', err=True)
            sys.exit(1)
        out = click.get_binary_stream('stdout')
        with stream:
            for chunk in stream:
                out.write(chunk)
        out.flush()
    except MountServeException as e:
        click.secho(f"✗ {e}", fg='red', err=True)
        sys.exit(1)
    finally:
        backend.close()


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
