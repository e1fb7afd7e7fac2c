"""
SSHFS driver: supervises an external sshfs process for one mountpoint.
"""

import os
import shlex
import shutil
import subprocess
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

import psutil

from mountserve.drivers.base import BaseMountDriver
from mountserve.exceptions import (
    AlreadyMountedException,
    MissingDependencyException,
    MountFailedException,
    MountServeException,
    NotMountedException,
    UnmountFailedException,
)
from mountserve.models import MountConfig, MountState
from mountserve.utils.logger import RedactingFilter, get_logger, redact
from mountserve.utils.validators import parse_extra_args

LOG = get_logger(__name__)


def locate_dependencies(names: Iterable[str]) -> Dict[str, Optional[str]]:
    """Map each tool name to its location on PATH (None when absent)."""
    return {name: shutil.which(name) for name in names}


class SSHFSDriver(BaseMountDriver):
    """
    Driver for mounting a remote directory with sshfs.

    sshfs runs in the foreground (``-f``) as a child of this process for the
    lifetime of the mount. mount() returns once the mountpoint has become a
    mount with sshfs still alive; sshfs output is drained into the log by
    background threads.

    The mount state is guarded by a single lock held for the whole of
    mount() and unmount(), so an unmount never overlaps an unfinished mount
    and a second unmount observes UNMOUNTED.
    """

    SSHFS_BIN = 'sshfs'
    FUSERMOUNT_BIN = 'fusermount'
    SHELL_BIN = 'sh'

    # ConnectTimeout: give up connecting after 10 seconds
    # ro: read-only filesystem
    # ServerAliveInterval: keep-alive ping every 15 seconds
    # reconnect: reconnect automatically on disconnect
    DEFAULT_OPTIONS = ('ConnectTimeout=10', 'ro', 'ServerAliveInterval=15', 'reconnect')

    POLL_INTERVAL = 0.1

    def __init__(self, config: MountConfig,
                 sshfs_bin: str = SSHFS_BIN,
                 fusermount_bin: str = FUSERMOUNT_BIN,
                 shell_bin: str = SHELL_BIN,
                 startup_timeout: float = 15.0,
                 unmount_timeout: float = 10.0):
        """
        Initialize SSHFSDriver.

        Args:
            config: Mount settings
            sshfs_bin: sshfs executable
            fusermount_bin: Executable used to unmount
            shell_bin: Shell required on PATH alongside the mount tools
            startup_timeout: Seconds to wait for the mountpoint to become a mount
            unmount_timeout: Seconds to wait for the unmount tool and for
                sshfs to exit afterwards
        """
        self.config = config
        self.sshfs_bin = sshfs_bin
        self.fusermount_bin = fusermount_bin
        self.shell_bin = shell_bin
        self.startup_timeout = startup_timeout
        self.unmount_timeout = unmount_timeout

        self._state = MountState.UNMOUNTED
        self._lock = threading.Lock()
        self._process = None  # type: Optional[subprocess.Popen]
        self._output_threads = []  # type: List[threading.Thread]
        self._output_lock = threading.Lock()
        self._output = {'stdout': [], 'stderr': []}  # type: Dict[str, List[str]]
        self._capturing = False

        RedactingFilter.register(config.password)

    @property
    def mountpoint(self) -> str:
        return self.config.mountpoint

    @property
    def dependencies(self) -> List[str]:
        return [self.sshfs_bin, self.fusermount_bin, self.shell_bin]

    @property
    def state(self) -> MountState:
        with self._lock:
            return self._state

    def is_mounted(self) -> bool:
        with self._lock:
            return self._state is MountState.MOUNTED

    def missing_dependencies(self) -> List[str]:
        LOG.debug(f"Checking for missing dependencies from {self.dependencies}")
        located = locate_dependencies(self.dependencies)
        return [name for name, path in located.items() if path is None]

    def _redact(self, text: str) -> str:
        return redact(text, [self.config.password])

    def build_command(self) -> List[str]:
        """
        Compose the sshfs argument list.

        The password is never part of the arguments; when one is configured
        sshfs is told to read it from stdin instead.
        """
        cmd = [self.sshfs_bin, self.config.connection_string, self.mountpoint, '-f']
        for option in self.DEFAULT_OPTIONS:
            cmd.extend(['-o', option])
        for option in self.config.options:
            LOG.debug(f"Adding user provided option '-o {option}' to args")
            cmd.extend(['-o', option])
        if self.config.password:
            cmd.extend(['-o', 'password_stdin'])
        try:
            cmd.extend(parse_extra_args(self.config.extra_args))
        except ValueError as e:
            raise MountFailedException(self._redact(str(e)))
        return cmd

    def format_command(self, cmd: List[str]) -> str:
        """Printable form of cmd with secrets masked."""
        return self._redact(shlex.join(cmd))

    def mount(self) -> str:
        with self._lock:
            LOG.info(f"Mounting {self.config.connection_string} at {self.mountpoint}")

            missing = self.missing_dependencies()
            if missing:
                raise MissingDependencyException(missing)

            if self._state is not MountState.UNMOUNTED:
                raise AlreadyMountedException()

            if not os.path.isdir(self.mountpoint):
                raise MountFailedException(f"Path {self.mountpoint} does not exist")

            cmd = self.build_command()
            LOG.info(f"Executing: {self.format_command(cmd)}")

            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE if self.config.password else subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    start_new_session=True,  # keep terminal signals away from sshfs
                )
            except OSError as e:
                raise MountFailedException(
                    self._redact(f"Failed to spawn {self.sshfs_bin}: {e}")
                ) from e

            LOG.debug(f"sshfs process started with PID: {process.pid}")

            self._start_output_drain(process)
            if self.config.password:
                self._deliver_password(process)

            output = self._await_startup(process)

            self._process = process
            self._state = MountState.MOUNTED
            LOG.info(f"Successfully mounted filesystem at {self.mountpoint} (PID: {process.pid})")
            return output

    def _deliver_password(self, process: subprocess.Popen):
        LOG.debug("Writing sshfs password to process stdin")
        try:
            process.stdin.write(self.config.password.encode() + b'\n')
            process.stdin.flush()
        except BrokenPipeError:
            LOG.warning("sshfs closed its input before the password was written")
        finally:
            try:
                process.stdin.close()
            except BrokenPipeError:
                pass
        LOG.debug("Finished writing sshfs password")

    def _await_startup(self, process: subprocess.Popen) -> str:
        """
        Wait for the mountpoint to become a mount while sshfs keeps running.

        sshfs stays in the foreground, so exiting before the mount appears
        is a failure whatever its exit code. If the startup window passes
        without a mount, sshfs is stopped and the mount fails.

        Returns:
            sshfs output captured up to the moment the mount was confirmed
        """
        deadline = time.monotonic() + self.startup_timeout
        while True:
            returncode = process.poll()
            if returncode is not None:
                self._join_output_threads()
                reason = (self._captured('stderr').strip()
                          or f"{self.sshfs_bin} exited with code {returncode} before mounting")
                break
            if os.path.ismount(self.mountpoint):
                self._capturing = False
                return self._captured('stdout')
            if time.monotonic() >= deadline:
                self._stop_process(process)
                self._join_output_threads()
                reason = (self._captured('stderr').strip()
                          or f"{self.mountpoint} was not mounted within {self.startup_timeout} seconds")
                break
            time.sleep(self.POLL_INTERVAL)

        LOG.error(f"sshfs failed to start: {reason}")
        raise MountFailedException(reason)

    def _stop_process(self, process: subprocess.Popen):
        """Stop an sshfs child that never established its mount."""
        LOG.warning(f"Stopping sshfs process {process.pid}")
        try:
            process.terminate()
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait(timeout=5)
        except ProcessLookupError:
            # exited on its own in the meantime
            pass
        except subprocess.TimeoutExpired:
            LOG.error(f"sshfs process {process.pid} could not be reaped")

    def _captured(self, name: str) -> str:
        with self._output_lock:
            return ''.join(self._output[name])

    def _start_output_drain(self, process: subprocess.Popen):
        """
        Read sshfs output for as long as the process runs.

        Lines are kept while the mount is starting up and logged as they
        arrive. Each pipe is closed when sshfs closes its end.
        """
        def drain(stream, name):
            try:
                for line in iter(stream.readline, b''):
                    text = self._redact(line.decode('utf-8', errors='replace'))
                    if self._capturing:
                        with self._output_lock:
                            self._output[name].append(text)
                    if text.strip():
                        LOG.warning(f"sshfs {name}: {text.rstrip()}")
            finally:
                stream.close()
            if name == 'stderr' and self._state is MountState.MOUNTED:
                LOG.error(f"sshfs process {process.pid} exited while {self.mountpoint} was mounted")

        self._output = {'stdout': [], 'stderr': []}
        self._capturing = True
        self._output_threads = []
        for stream, name in ((process.stdout, 'stdout'), (process.stderr, 'stderr')):
            if stream is None:
                continue
            thread = threading.Thread(
                target=drain, args=(stream, name),
                name=f"sshfs-{name}-{process.pid}", daemon=True
            )
            thread.start()
            self._output_threads.append(thread)

    def unmount(self) -> str:
        with self._lock:
            LOG.info(f"Unmounting filesystem at {self.mountpoint}")

            missing = self.missing_dependencies()
            if missing:
                raise MissingDependencyException(missing)

            if self._state is not MountState.MOUNTED:
                raise NotMountedException()

            cmd = [self.fusermount_bin, '-u', self.mountpoint]
            LOG.info(f"Executing: {self.format_command(cmd)}")

            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    timeout=self.unmount_timeout
                )
            except subprocess.TimeoutExpired as e:
                raise UnmountFailedException(
                    f"{self.fusermount_bin} timed out after {self.unmount_timeout} seconds"
                ) from e
            except OSError as e:
                raise UnmountFailedException(
                    self._redact(f"Failed to run {self.fusermount_bin}: {e}")
                ) from e

            stderr = (result.stderr or '').strip()
            if result.returncode != 0 or stderr:
                reason = stderr or f"{self.fusermount_bin} exited with code {result.returncode}"
                LOG.error(f"Unmount failed: {self._redact(reason)}")
                raise UnmountFailedException(self._redact(reason))

            self._state = MountState.UNMOUNTED
            self._reap_process()
            LOG.info(f"Successfully unmounted filesystem at {self.mountpoint}")
            return self._redact(result.stdout or '')

    def _reap_process(self):
        """Wait for sshfs to exit after unmount, terminating it if it lingers."""
        process, self._process = self._process, None
        if process is None:
            return

        try:
            process.wait(timeout=self.unmount_timeout)
            LOG.debug(f"sshfs process {process.pid} exited")
        except subprocess.TimeoutExpired:
            LOG.warning(f"sshfs process {process.pid} still running after unmount, terminating")
            self._terminate_process(process.pid)
            try:
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                LOG.error(f"sshfs process {process.pid} could not be reaped")

        self._join_output_threads()

    def _join_output_threads(self):
        for thread in self._output_threads:
            thread.join(timeout=1)
        self._output_threads = []

    @staticmethod
    def _terminate_process(pid: int) -> bool:
        """Terminate pid, killing it if it does not exit in time."""
        try:
            proc = psutil.Process(pid)
            proc.terminate()
            try:
                proc.wait(timeout=10)
            except psutil.TimeoutExpired:
                LOG.warning(f"Process {pid} did not terminate, force killing")
                proc.kill()
                proc.wait(timeout=5)
            return True
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            LOG.warning(f"Permission denied to terminate process {pid}")
            return False

    @staticmethod
    def _is_process_alive(pid: int) -> bool:
        try:
            process = psutil.Process(pid)
            return process.is_running() and process.status() != psutil.STATUS_ZOMBIE
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    def get_mount_info(self) -> Dict[str, Any]:
        with self._lock:
            process = self._process
            info = {
                'mountpoint': self.mountpoint,
                'connection_string': self.config.connection_string,
                'state': self._state.value,
                'pid': process.pid if process else None,
                'alive': False,
            }
        if process is not None:
            info['alive'] = self._is_process_alive(process.pid)
        return info

    def is_active(self) -> bool:
        """
        Check that the mount is still live.

        Returns:
            True if the state is MOUNTED, sshfs is still running and the
            mountpoint is still a mount
        """
        with self._lock:
            process = self._process if self._state is MountState.MOUNTED else None
        if process is None or process.poll() is not None:
            return False
        return os.path.ismount(self.mountpoint)

    def close(self):
        """Best-effort unmount if still mounted, then forget the password."""
        if self.is_mounted():
            try:
                self.unmount()
            except MountServeException as e:
                LOG.warning(f"Best-effort unmount of {self.mountpoint} failed: {e}")
                return
        RedactingFilter.unregister(self.config.password)

    def __enter__(self) -> 'SSHFSDriver':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass

    def __repr__(self) -> str:
        return f"<SSHFSDriver {self.config.connection_string} at {self.mountpoint}>"
