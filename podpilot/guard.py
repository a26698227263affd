"""Scoped cleanup of managed pods around a CLI invocation."""
import signal
import threading

from .registry import terminate_all_managed

GUARDED_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None))
    if sig is not None
)


def _raise_exit(signum, frame):
    raise SystemExit(128 + signum)


class ExitGuard:
    """Terminates every managed pod when the guarded block exits.

    Covers normal return, exceptions, Ctrl-C, and SIGTERM/SIGHUP (turned
    into SystemExit so the ``with`` block unwinds). Pods left in the
    registry by an earlier crashed run are cleaned up too.
    """

    def __init__(self, client, registry, lifecycle=None):
        self.client = client
        self.registry = registry
        self.lifecycle = lifecycle
        self.released = False
        self._previous = {}

    def __enter__(self):
        # signal handlers can only be installed from the main thread
        if threading.current_thread() is threading.main_thread():
            self._previous[signal.SIGINT] = signal.getsignal(signal.SIGINT)
            for sig in GUARDED_SIGNALS:
                self._previous[sig] = signal.signal(sig, _raise_exit)
        return self

    def __exit__(self, exc_type, exc, tb):
        # a second Ctrl-C or SIGTERM must not cut bulk cleanup short
        for sig in self._previous:
            signal.signal(sig, signal.SIG_IGN)
        try:
            self.release()
        finally:
            for sig, handler in self._previous.items():
                if handler is not None:
                    signal.signal(sig, handler)
            self._previous = {}
        return False

    def release(self):
        """Cancel pending timers and bulk-terminate managed pods (once)."""
        if self.released:
            return 0
        self.released = True
        if self.lifecycle is not None:
            self.lifecycle.cancel_timers()
        if not self.registry.list():
            return 0
        return terminate_all_managed(self.client, self.registry)
