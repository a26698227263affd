"""PodPilot - run workloads on short-lived RunPod GPU pods.

Usage:
    podpilot <command> [options]

Commands:
    test PATH        Upload a test file/directory to a new pod and run it
    exec COMMAND     Execute a command on a new pod
    shell            Start an interactive shell on a new pod
    list             List all pods (managed ones are marked)
    catalog          Show available GPU types with pricing
    start POD_ID     Start a stopped pod
    stop POD_ID      Stop a running pod (without terminating)
    kill POD_ID      Terminate a pod (--all-managed, --idle)
    config           Manage API key and presets
    transfer         Copy files to/from a pod
    user             Show account and team information
    help [COMMAND]   Show help

Every pod a workload command creates is registered as managed and is
terminated when the command exits, however it exits.
"""
import argparse
import sys

from .errors import PodPilotError
from .guard import ExitGuard
from .session import Session


def _add_spec_options(parser):
    parser.add_argument("--gpu-type", help="GPU type to use (default: NVIDIA RTX A4000)")
    parser.add_argument("--gpu-count", type=int, help="Number of GPUs (default: 1)")
    parser.add_argument("--image", help="Docker image (default: runpod/pytorch:latest)")
    parser.add_argument("--timeout", type=int, metavar="MINUTES",
                        help="Auto-terminate after minutes (default: 30)")
    parser.add_argument("--team-id", help="Team ID to use for pod creation")
    parser.add_argument("--container-disk-size", type=int, metavar="GB",
                        help="Container disk size in GB (default: 10)")
    parser.add_argument("--volume-size", type=int, metavar="GB",
                        help="Volume size in GB (default: 20)")


def _spec_options(args):
    keys = ("gpu_type", "gpu_count", "image", "timeout", "team_id",
            "container_disk_size", "volume_size")
    return {k: getattr(args, k, None) for k in keys}


def build_parser():
    parser = argparse.ArgumentParser(
        prog="podpilot",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("test", aliases=["run-test"], help="Run Python tests on a new pod")
    p.add_argument("path", help="Test file or directory")
    p.add_argument("--preset", help="Use a saved configuration preset")
    _add_spec_options(p)

    p = sub.add_parser("exec", aliases=["run-exec"], help="Execute a command on a new pod")
    p.add_argument("remote_command", metavar="COMMAND", help="Shell command to run")
    p.add_argument("--preset", help="Use a saved configuration preset")
    _add_spec_options(p)

    p = sub.add_parser("shell", aliases=["run-shell"], help="Interactive shell on a new pod")
    p.add_argument("--preset", help="Use a saved configuration preset")
    _add_spec_options(p)

    sub.add_parser("list", help="List all pods")
    sub.add_parser("catalog", help="Show available GPU types with pricing")

    p = sub.add_parser("start", help="Start a stopped pod")
    p.add_argument("pod_id")

    p = sub.add_parser("stop", help="Stop a running pod without terminating it")
    p.add_argument("pod_id")

    p = sub.add_parser("kill", help="Terminate a pod")
    p.add_argument("pod_id", nargs="?")
    p.add_argument("--all-managed", action="store_true",
                   help="Terminate all pods managed by PodPilot")
    p.add_argument("--idle", action="store_true", help="Terminate all idle pods")

    p = sub.add_parser("config", help="Manage configuration")
    p.add_argument("--api-key", help="Set your RunPod API key")
    p.add_argument("--save-preset", metavar="NAME",
                   help="Save the given options as a named preset")
    p.add_argument("--list-presets", action="store_true", help="List all saved presets")
    _add_spec_options(p)

    p = sub.add_parser("transfer", help="Transfer files to/from a pod")
    p.add_argument("--pod-id", required=True, help="ID of the pod")
    p.add_argument("--local", required=True, help="Local file or directory path")
    p.add_argument("--remote", required=True, help="Remote path on the pod")
    p.add_argument("--direction", choices=["to", "from"], default="to",
                   help="Transfer direction (default: to)")

    sub.add_parser("user", help="Show account and team information")

    p = sub.add_parser("help", help="Show help for a command")
    p.add_argument("topic", nargs="?")

    return parser


def dispatch(session, args, parser):
    command = args.command
    if command in ("test", "run-test"):
        return session.run_test(args.path, _spec_options(args), args.preset)
    if command in ("exec", "run-exec"):
        return session.run_exec(args.remote_command, _spec_options(args), args.preset)
    if command in ("shell", "run-shell"):
        return session.run_shell(_spec_options(args), args.preset)
    if command == "list":
        return session.list_pods()
    if command == "catalog":
        return session.catalog()
    if command == "start":
        return session.start(args.pod_id)
    if command == "stop":
        return session.stop(args.pod_id)
    if command == "kill":
        return session.kill(args.pod_id, all_managed=args.all_managed, idle=args.idle)
    if command == "config":
        return session.configure(
            api_key=args.api_key,
            save_preset=args.save_preset,
            list_presets=args.list_presets,
            options=_spec_options(args),
        )
    if command == "transfer":
        return session.transfer(args.pod_id, args.local, args.remote, args.direction)
    if command == "user":
        return session.user()
    if command == "help":
        if args.topic:
            parser.parse_args([args.topic, "--help"])
        parser.print_help()
        return 0
    parser.print_help()
    return 1


def run(argv=None, session=None):
    """Parse argv, run the command under an ExitGuard, return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    session = session or Session()
    try:
        with ExitGuard(session.client, session.registry, session.lifecycle):
            return dispatch(session, args, parser)
    except PodPilotError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
