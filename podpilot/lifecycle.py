"""Ephemeral pod orchestration: create, wait, run, and always clean up."""
import time

from .auto_terminate import schedule_termination
from .config import RUNNING_TIMEOUT, SSH_TIMEOUT
from .errors import NotReadyError, PodPilotError, SshUnavailableError
from .models import WorkloadResult
from .readiness import ReadinessPoller
from .remote import RemoteExecutor


class PodLifecycle:
    """Runs workloads on freshly created pods.

    Order of operations for every workload:
    create -> register -> arm auto-termination -> wait RUNNING ->
    wait SSH -> action. The pod id is persisted before anything else so
    a crash mid-setup still leaves it discoverable for bulk cleanup.
    """

    def __init__(self, client, registry, executor=None, poller=None,
                 scheduler=schedule_termination, clock=time.time):
        self.client = client
        self.registry = registry
        self.executor = executor or RemoteExecutor(client)
        self.poller = poller or ReadinessPoller()
        self.scheduler = scheduler
        self.clock = clock
        self.timers = []

    def run_ephemeral_workload(self, spec, timeout_minutes, action,
                               running_timeout=RUNNING_TIMEOUT,
                               ssh_timeout=SSH_TIMEOUT):
        """Create a pod for ``spec`` and run ``action(pod_id)`` once it is reachable.

        Any PodPilotError carrying a pod id raised before the action
        returns tears that pod down before propagating. A non-zero exit
        code from the action is returned, not raised; that pod is left
        to the auto-termination timer.
        """
        pod = self.client.create(spec)
        pod_id = pod.id
        created_at = self.clock()
        self.registry.register(pod_id)

        try:
            timer = self.scheduler(self.client, self.registry, pod_id, timeout_minutes)
            self.timers.append(timer)

            if not self.poller.wait_for_running(self.client, pod_id, timeout=running_timeout):
                raise NotReadyError(pod_id)
            if not self.poller.wait_for_ssh(self.executor, pod_id, timeout=ssh_timeout):
                raise SshUnavailableError(pod_id)

            exit_code = action(pod_id)
        except PodPilotError as e:
            if e.pod_id:
                print(f"\nSetup failed: {e}")
                print(f"Terminating pod {e.pod_id} due to error")
                self.terminate_pod(e.pod_id)
            raise

        return WorkloadResult(
            pod_id=pod_id,
            exit_code=exit_code,
            auto_termination_at=int(created_at * 1000) + timeout_minutes * 60000,
            timer=timer,
        )

    def terminate_pod(self, pod_id):
        """Best-effort terminate; never raises. Returns True on success."""
        self.cancel_timers(pod_id)
        try:
            self.client.terminate(pod_id)
        except PodPilotError as e:
            print(f"Warning: termination error for pod {pod_id}: {e}")
            print("  Manually check: https://www.runpod.io/console/pods")
            return False
        self.registry.unregister(pod_id)
        return True

    def cancel_timers(self, pod_id=None):
        """Cancel outstanding auto-termination timers (all, or one pod's)."""
        for timer in self.timers:
            if pod_id is None or timer.pod_id == pod_id:
                timer.cancel()
        self.timers = [t for t in self.timers if not t.cancelled]
