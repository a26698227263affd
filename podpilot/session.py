"""Command implementations behind the podpilot CLI."""
import os

from . import config
from .errors import ApiError, NotFoundError, TransferError
from .lifecycle import PodLifecycle
from .models import ResourceSpec
from .pod_manager import RunPodClient
from .registry import ManagedPodRegistry, terminate_all_managed

REMOTE_TEST_DIR = "/workspace/tests"
REMOTE_TEST_FILE = "/workspace/test.py"


def format_uptime(seconds):
    if not seconds:
        return "N/A"
    return f"{seconds // 3600}h {(seconds % 3600) // 60:02d}m"


def truncate(text, width=30):
    text = text or ""
    if len(text) > width:
        return text[:width - 3] + "..."
    return text


def _scope_role(scopes):
    if isinstance(scopes, dict):
        return scopes.get("role", "member")
    return "member"


class Session:
    """One CLI invocation's view of the provider and the local state.

    Each public method backs one command and returns its exit code.
    """

    def __init__(self, client=None, registry=None, lifecycle=None, config_dir=None):
        self.config_dir = config_dir
        self.client = client or RunPodClient(config_dir=config_dir)
        self.registry = registry or ManagedPodRegistry(config_dir=config_dir)
        self.lifecycle = lifecycle or PodLifecycle(self.client, self.registry)

    @property
    def executor(self):
        return self.lifecycle.executor

    def _resolve(self, options, preset):
        settings = config.resolve_settings(options, preset, self.config_dir)
        return ResourceSpec.from_settings(settings), int(settings["timeout"])

    # ---------- Workloads on ephemeral pods ----------

    def run_test(self, path, options=None, preset=None):
        """Upload a test file or directory and run it on a new pod."""
        if not os.path.exists(path):
            print(f"Error: {path} does not exist")
            return 1
        spec, timeout = self._resolve(options, preset)
        is_dir = os.path.isdir(path)

        def action(pod_id):
            remote_path = REMOTE_TEST_DIR if is_dir else REMOTE_TEST_FILE
            self.executor.transfer_to(pod_id, path, remote_path)
            print("\nRunning tests...")
            if is_dir:
                cmd = f"cd {REMOTE_TEST_DIR} && python -m pytest -v"
            else:
                cmd = "cd /workspace && python test.py"
            return self.executor.execute(pod_id, cmd, stream=True).returncode

        result = self.lifecycle.run_ephemeral_workload(spec, timeout, action)
        print(f"\nTest execution completed with exit code: {result.exit_code}")
        return result.exit_code

    def run_exec(self, command, options=None, preset=None):
        """Run a shell command on a new pod."""
        spec, timeout = self._resolve(options, preset)

        def action(pod_id):
            print("\nExecuting command...")
            return self.executor.execute(pod_id, command, stream=True).returncode

        result = self.lifecycle.run_ephemeral_workload(spec, timeout, action)
        print(f"\nCommand execution completed with exit code: {result.exit_code}")
        return result.exit_code

    def run_shell(self, options=None, preset=None):
        """Open an interactive shell on a new pod."""
        spec, timeout = self._resolve(options, preset)

        def action(pod_id):
            print("\nStarting interactive shell. Type 'exit' to close session.")
            print(f"Pod ID: {pod_id}\n")
            return self.executor.open_interactive_session(pod_id)

        result = self.lifecycle.run_ephemeral_workload(spec, timeout, action)
        print("\nShell session ended.")
        print(f"Pod {result.pod_id} is managed and will be terminated on exit.")
        return result.exit_code

    # ---------- Pod management ----------

    def list_pods(self):
        pods = self.client.list()
        if not pods:
            print("No pods found.")
            return 0
        managed = self.registry.list()
        print(f"{'ID':<22} {'STATUS':<15} {'GPU(s)':<8} {'COST/HR':<10} "
              f"{'UPTIME':<8} IMAGE")
        print("-" * 80)
        for pod in pods:
            marker = " (managed)" if pod.id in managed else ""
            print(f"{pod.id:<22} {pod.desired_status or '':<15} {pod.gpu_count:<8d} "
                  f"${pod.cost_per_hr or 0.0:<9.2f} {format_uptime(pod.uptime_seconds):<8} "
                  f"{truncate(pod.image_name)}{marker}")
        return 0

    def catalog(self):
        gpu_types = self.client.list_gpu_types()
        if not gpu_types:
            print("Failed to retrieve GPU types.")
            return 1
        print(f"{'GPU TYPE':<30} {'VRAM (GB)':<12} {'SECURE':<8} {'ON-DEMAND':<14} "
              f"{'SPOT':<14} ID")
        print("-" * 90)
        for gpu in sorted(gpu_types, key=lambda g: g.on_demand_price or 0):
            print(f"{gpu.display_name:<30} {gpu.memory_in_gb:<12d} "
                  f"{'Yes' if gpu.secure_cloud else 'No':<8} "
                  f"${gpu.on_demand_price or 0.0:<13.2f} ${gpu.spot_price or 0.0:<13.2f} "
                  f"{gpu.id}")
        return 0

    def start(self, pod_id):
        try:
            pod = self.client.resume(pod_id)
        except (NotFoundError, ApiError) as e:
            print(f"Failed to start pod {pod_id}: {e}")
            return 1
        print(f"Pod started successfully. New status: {pod.desired_status}")
        print("Use 'podpilot list' to check its status.")
        return 0

    def stop(self, pod_id):
        try:
            self.client.stop(pod_id)
        except (NotFoundError, ApiError) as e:
            print(f"Failed to stop pod {pod_id}: {e}")
            return 1
        print("Pod stopped successfully.")
        print("The pod still exists and can be restarted with 'podpilot start'.")
        print("Note: You'll still be charged for storage while the pod is stopped.")
        return 0

    def kill(self, pod_id=None, all_managed=False, idle=False):
        if idle:
            print("Terminating all idle pods is not yet implemented.")
            return 1
        if all_managed:
            count = terminate_all_managed(self.client, self.registry)
            if count:
                print(f"Terminated {count} managed pod(s).")
            else:
                print("No managed pods.")
            return 0
        if not pod_id:
            print("Error: No pod ID specified")
            print("Usage: podpilot kill <pod-id> | --all-managed | --idle")
            return 1
        return 0 if self.lifecycle.terminate_pod(pod_id) else 1

    def transfer(self, pod_id, local_path, remote_path, direction="to"):
        try:
            if direction == "to":
                self.executor.transfer_to(pod_id, local_path, remote_path)
            elif direction == "from":
                self.executor.transfer_from(pod_id, remote_path, local_path)
            else:
                print("Error: Invalid direction (use --direction to/from)")
                return 1
        except TransferError as e:
            print(f"Error: {e}")
            return e.exit_code or 1
        print("Transfer complete.")
        return 0

    def user(self):
        info = self.client.get_user_info()
        print("\n=== User Information ===")
        print(f"ID:             {info.get('id')}")
        print(f"Email:          {info.get('email')}")
        print(f"Balance:        ${float(info.get('clientBalance') or 0):.2f}")
        print(f"Spend Limit:    ${float(info.get('spendLimit') or 0):.2f}")
        print(f"Current Rate:   ${float(info.get('currentSpendPerHr') or 0):.2f}/hr")

        if info.get("teams"):
            print("\n=== Team Memberships ===")
            for team in info["teams"]:
                scopes = (team.get("membership") or {}).get("scopes")
                print(f"Team: {team.get('name')} (ID: {team.get('id')})")
                print(f"  Owner: {(team.get('owner') or {}).get('email')}")
                print(f"  Role: {_scope_role(scopes)}")

        if info.get("ownedTeams"):
            print("\n=== Teams You Own ===")
            for team in info["ownedTeams"]:
                print(f"Team: {team.get('name')} (ID: {team.get('id')})")
                if team.get("members"):
                    print("  Members:")
                    for membership in team["members"]:
                        email = (membership.get("member") or {}).get("email")
                        print(f"    {email} (Role: {_scope_role(membership.get('scopes'))})")
        return 0

    # ---------- Local configuration ----------

    def configure(self, api_key=None, save_preset=None, list_presets=False,
                  options=None):
        if api_key:
            print("Setting API key...")
            config.update_config("api_key", api_key, self.config_dir)
            return 0

        if save_preset:
            print(f"Saving preset: {save_preset}")
            config.save_preset(save_preset, options or {}, self.config_dir)
            return 0

        if list_presets:
            presets = config.list_presets(self.config_dir)
            if not presets:
                print("No presets found.")
                return 0
            print("Available presets:")
            for name, values in sorted(presets.items()):
                print(f"  {name}: {values}")
            return 0

        cfg = config.load_config(self.config_dir)
        print("Current configuration:")
        print(f"  API Key: {'[Set]' if cfg.get('api_key') else '[Not set]'}")
        print("Default settings:")
        for key, value in cfg["defaults"].items():
            print(f"  {key}: {value}")
        return 0
