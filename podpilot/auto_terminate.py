"""Deferred, cancellable termination of a pod after a timeout."""
import threading
import time

from .errors import PodPilotError


class TerminationTimer:
    """Handle for one scheduled termination.

    Runs on a daemon thread that waits on an event, so cancel() returns
    promptly and an abandoned timer never keeps the process alive.
    """

    def __init__(self, pod_id, seconds, action):
        self.pod_id = pod_id
        self.seconds = seconds
        self.fire_at = time.time() + seconds
        self.fired = False
        self._action = action
        self._cancelled = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"auto-terminate-{pod_id}", daemon=True
        )

    def start(self):
        self._thread.start()
        return self

    def _run(self):
        if self._cancelled.wait(self.seconds):
            return
        self.fired = True
        self._action(self.pod_id)

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    @property
    def active(self):
        return self._thread.is_alive()

    def join(self, timeout=None):
        self._thread.join(timeout)


def terminate_if_present(client, registry, pod_id):
    """Terminate pod_id unless the provider no longer knows it."""
    try:
        if client.get(pod_id) is None:
            return False
        print(f"\nTimeout reached. Automatically terminating pod: {pod_id}")
        client.terminate(pod_id)
    except PodPilotError as e:
        print(f"\nWarning: auto-termination of pod {pod_id} failed: {e}")
        return False
    registry.unregister(pod_id)
    return True


def schedule_termination(client, registry, pod_id, minutes):
    """Start a timer that terminates pod_id after `minutes`."""
    timer = TerminationTimer(
        pod_id,
        minutes * 60,
        lambda pid: terminate_if_present(client, registry, pid),
    )
    return timer.start()
