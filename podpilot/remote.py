"""Remote command execution and file transfer on pods over SSH/SCP."""
import os
import subprocess

from .config import SSH_CONNECT_TIMEOUT, ssh_options
from .errors import (
    NoSshEndpointError,
    NotFoundError,
    PodPilotError,
    RemoteExecError,
    TransferError,
)

PROBE_COMMAND = "echo 'SSH connection successful'"


def ssh_command(descriptor, command=None, connect_timeout=None):
    """Build the ssh argv for a descriptor, optionally with a remote command.

    The connect timeout is always bounded, SSH_CONNECT_TIMEOUT by default.
    """
    cmd = (
        ["ssh", "-p", str(descriptor.port)]
        + ssh_options(connect_timeout or SSH_CONNECT_TIMEOUT)
        + [descriptor.target]
    )
    if command:
        cmd.append(command)
    return cmd


def scp_command(descriptor, source, destination, recursive=False):
    cmd = ["scp", "-P", str(descriptor.port)] + ssh_options(SSH_CONNECT_TIMEOUT * 2)
    if recursive:
        cmd.append("-r")
    return cmd + [source, destination]


class RemoteExecutor:
    """Runs commands and transfers against a pod's SSH endpoint.

    Every call looks the pod up again and opens a fresh connection.
    """

    def __init__(self, client):
        self.client = client

    def descriptor(self, pod_id):
        pod = self.client.get(pod_id)
        if pod is None:
            raise NotFoundError(pod_id)
        descriptor = pod.ssh_descriptor()
        if descriptor is None:
            raise NoSshEndpointError(pod_id)
        return descriptor

    def execute(self, pod_id, command, stream=False, timeout=None, check=False,
                connect_timeout=None):
        """Run a shell command on the pod.

        Parameters
        ----------
        pod_id : str
        command : str
            Shell command to run remotely.
        stream : bool
            If True, stdout/stderr are inherited from this process;
            otherwise they are captured as strings on the result.
        timeout : int, optional
            Timeout in seconds. None = no timeout.
        check : bool
            If True, a non-zero exit raises RemoteExecError.

        Returns
        -------
        subprocess.CompletedProcess
        """
        cmd = ssh_command(self.descriptor(pod_id), command, connect_timeout)
        try:
            result = subprocess.run(
                cmd,
                capture_output=not stream,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            msg = f"Command timed out after {timeout}s"
            if stream:
                print(f"\n{msg}")
            result = subprocess.CompletedProcess(cmd, 1, "", msg)
        if check and result.returncode != 0:
            raise RemoteExecError(pod_id, result.returncode)
        return result

    def probe(self, pod_id):
        """True if the pod completes a trivial command over SSH."""
        try:
            self.execute(
                pod_id,
                PROBE_COMMAND,
                timeout=SSH_CONNECT_TIMEOUT * 4,
                check=True,
                connect_timeout=SSH_CONNECT_TIMEOUT,
            )
        except (PodPilotError, OSError):
            return False
        return True

    def transfer_to(self, pod_id, local_path, remote_path):
        """Copy a local file or directory (recursively) to the pod."""
        descriptor = self.descriptor(pod_id)
        recursive = os.path.isdir(local_path)
        print(f"Transferring {local_path} to pod...")
        cmd = scp_command(descriptor, str(local_path),
                          f"{descriptor.target}:{remote_path}", recursive=recursive)
        return self._transfer(pod_id, cmd)

    def transfer_from(self, pod_id, remote_path, local_path):
        """Copy a remote path back from the pod.

        The remote side may be a file or a directory, so -r is always
        passed; scp copies a single file unchanged under -r.
        """
        descriptor = self.descriptor(pod_id)
        print(f"Transferring from pod to {local_path}...")
        cmd = scp_command(descriptor, f"{descriptor.target}:{remote_path}",
                          str(local_path), recursive=True)
        return self._transfer(pod_id, cmd)

    def _transfer(self, pod_id, cmd):
        result = subprocess.run(cmd)
        if result.returncode != 0:
            raise TransferError(pod_id, result.returncode)
        return result

    def open_interactive_session(self, pod_id):
        """Attach the terminal to a login shell on the pod; returns its exit code."""
        cmd = ssh_command(self.descriptor(pod_id))
        return subprocess.run(cmd).returncode
