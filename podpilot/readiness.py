"""Blocking wait loops for pod readiness and SSH reachability."""
import time

from .config import POLL_INTERVAL, RUNNING_TIMEOUT, SSH_TIMEOUT
from .errors import PodPilotError


class ReadinessPoller:
    """Polls a probe at a fixed interval until it passes or time runs out.

    ``sleep`` and ``clock`` are injectable so tests never wait.
    """

    def __init__(self, interval=POLL_INTERVAL, sleep=time.sleep, clock=time.monotonic):
        self.interval = interval
        self.sleep = sleep
        self.clock = clock

    def wait(self, probe, timeout):
        """Return True once probe() passes, False if timeout elapses first."""
        start = self.clock()
        while True:
            if probe():
                return True
            if self.clock() - start >= timeout:
                return False
            print(".", end="", flush=True)
            self.sleep(self.interval)

    def wait_for_running(self, client, pod_id, timeout=RUNNING_TIMEOUT):
        """Wait for the provider to report the pod as RUNNING."""
        print(f"Waiting for pod to become ready (timeout: {timeout} seconds)...",
              end="", flush=True)

        def probe():
            try:
                pod = client.get(pod_id)
            except PodPilotError:
                return False
            return pod is not None and pod.is_running

        ready = self.wait(probe, timeout)
        print(" ready!" if ready else "\nTimeout waiting for pod to become ready")
        return ready

    def wait_for_ssh(self, executor, pod_id, timeout=SSH_TIMEOUT):
        """Wait until a trivial command succeeds over SSH."""
        print("Waiting for SSH to become available...", end="", flush=True)
        reachable = self.wait(lambda: executor.probe(pod_id), timeout)
        print(" connected!" if reachable else "\nTimeout waiting for SSH")
        return reachable
