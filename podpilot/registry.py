"""Persistent set of pods PodPilot is responsible for tearing down."""
import threading
from pathlib import Path

from .config import MANAGED_PODS_FILE, config_path, read_json, write_json


class ManagedPodRegistry:
    """Pod ids this tool created and has not yet terminated.

    Backed by a single JSON file. Every mutation rewrites the whole set
    (atomic rename) under a lock, so the main flow and auto-termination
    timers of one process never lose each other's updates. There is no
    locking across processes; two concurrent invocations can still race.
    """

    def __init__(self, path=None, config_dir=None):
        self.path = Path(path) if path else config_path(MANAGED_PODS_FILE, config_dir)
        self._lock = threading.Lock()

    def list(self):
        """Current set of managed pod ids; a missing or corrupt file is empty."""
        data = read_json(self.path, [])
        if not isinstance(data, list):
            return set()
        return {str(pod_id) for pod_id in data}

    def _save(self, pod_ids):
        write_json(self.path, sorted(pod_ids))

    def register(self, pod_id):
        """Add pod_id to the managed set and persist it."""
        with self._lock:
            pod_ids = self.list()
            pod_ids.add(pod_id)
            self._save(pod_ids)
        return pod_ids

    def unregister(self, pod_id):
        """Drop pod_id from the managed set; unknown ids are ignored."""
        with self._lock:
            pod_ids = self.list()
            pod_ids.discard(pod_id)
            self._save(pod_ids)
        return pod_ids

    def __contains__(self, pod_id):
        return pod_id in self.list()

    def __len__(self):
        return len(self.list())


def terminate_all_managed(client, registry):
    """Terminate every managed pod, carrying on past individual failures.

    Returns the number of pods attempted.
    """
    pod_ids = sorted(registry.list())
    if pod_ids:
        print(f"Cleaning up {len(pod_ids)} managed pod(s)...")
    for pod_id in pod_ids:
        try:
            client.terminate(pod_id)
        except Exception as e:
            print(f"  Warning: could not terminate {pod_id}: {e}")
            continue
        registry.unregister(pod_id)
    return len(pod_ids)
