"""
Signal-driven orderly shutdown.

Signal handlers only enqueue a shutdown request. A dedicated thread performs
the shutdown once: unmount (for backends holding a mount), then stop the
composed server, then publish the exit status.
"""

import queue
import signal
import threading
from typing import Dict, Iterable, Optional

from mountserve.exceptions import MountServeException
from mountserve.storage.base import BaseStorageBackend
from mountserve.utils.logger import get_logger

LOG = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

DEFAULT_SIGNALS = tuple(
    getattr(signal, name) for name in ('SIGINT', 'SIGTERM', 'SIGHUP', 'SIGQUIT')
    if hasattr(signal, name)
)


class LifecycleController:
    """
    Drives the unmount-then-exit sequence on termination signals.

    Args:
        backend: The active storage backend
        server: Optional object with a ``shutdown()`` method (for example a
            ``socketserver.BaseServer``) stopped after the unmount
        signals: Signals treated as termination requests
    """

    WAIT_INTERVAL = 0.5

    def __init__(self, backend: BaseStorageBackend, server=None,
                 signals: Optional[Iterable[int]] = None):
        self.backend = backend
        self.server = server
        self.signals = tuple(signals) if signals is not None else DEFAULT_SIGNALS
        self.exit_code = None  # type: Optional[int]

        self._requests = queue.Queue()
        self._done = threading.Event()
        self._previous_handlers = {}  # type: Dict[int, object]
        self._thread = None  # type: Optional[threading.Thread]

    def install(self):
        """
        Register signal handlers and start the shutdown thread.

        Must be called from the main thread, after the backend is ready
        (so a signal can never race an in-progress mount).
        """
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name='lifecycle-shutdown', daemon=True)
        self._thread.start()
        for signum in self.signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        LOG.debug(f"Shutdown handlers installed for {[signal.Signals(s).name for s in self.signals]}")

    def restore(self):
        """Reinstate the signal handlers that were active before install()."""
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers = {}

    def _handle_signal(self, signum, frame):
        self.request_shutdown(signum)

    def request_shutdown(self, signum: Optional[int] = None):
        """Ask for an orderly shutdown; repeated requests are ignored."""
        self._requests.put(signum)

    @property
    def finished(self) -> bool:
        return self._done.is_set()

    def _run(self):
        signum = self._requests.get()
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = 'shutdown request' if signum is None else f'signal {signum}'
        LOG.info(f"Received {name}, initiating shutdown...")
        try:
            self.exit_code = self.shutdown()
        except Exception as e:
            LOG.exception(f"Unexpected error during shutdown: {e}")
        finally:
            if self.exit_code is None:
                self.exit_code = EXIT_FAILURE
            self._done.set()

    def shutdown(self) -> int:
        """
        Run the shutdown sequence.

        Returns:
            Exit status: 0 on a clean or not-applicable unmount, 1 otherwise
        """
        exit_code = EXIT_SUCCESS

        if self.backend.requires_unmount:
            try:
                self.backend.unmount()
                LOG.info("Successfully unmounted filesystem")
            except MountServeException as e:
                LOG.error(f"Failed to unmount filesystem: {e}")
                exit_code = EXIT_FAILURE
        else:
            LOG.debug("Backend holds no mount, nothing to unmount")

        if self.server is not None:
            LOG.info("Stopping server")
            self.server.shutdown()

        return exit_code

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """
        Block until shutdown has completed.

        Returns:
            The exit status, or None if timeout elapsed first
        """
        if timeout is not None:
            self._done.wait(timeout)
            return self.exit_code
        # Short waits keep the main thread responsive to signal handlers
        while not self._done.wait(self.WAIT_INTERVAL):
            pass
        return self.exit_code
