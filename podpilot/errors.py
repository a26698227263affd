"""Exceptions raised by PodPilot."""


class PodPilotError(Exception):
    """Base exception for all PodPilot errors.

    Errors tied to a provisioned pod carry its id in ``pod_id`` so the
    lifecycle code knows which pod to tear down.
    """

    def __init__(self, message, pod_id=None):
        super().__init__(message)
        self.pod_id = pod_id


class ConfigError(PodPilotError):
    """Raised when configuration is missing or invalid"""


class ApiError(PodPilotError):
    """Raised when the RunPod API rejects or fails a request"""


class ProvisionError(PodPilotError):
    """Raised when pod creation returns no pod"""


class NotReadyError(PodPilotError):
    """Raised when a pod never reaches the RUNNING state"""

    def __init__(self, pod_id):
        super().__init__(f"Pod {pod_id} never reached ready state", pod_id)


class SshUnavailableError(PodPilotError):
    """Raised when a pod's SSH endpoint never becomes reachable"""

    def __init__(self, pod_id):
        super().__init__(f"SSH never became available on pod {pod_id}", pod_id)


class NoSshEndpointError(PodPilotError):
    """Raised when a pod exposes no port mapping for SSH"""

    def __init__(self, pod_id):
        super().__init__(f"Pod {pod_id} has no SSH endpoint", pod_id)


class NotFoundError(PodPilotError):
    """Raised when a pod id is unknown to the provider"""

    def __init__(self, pod_id):
        super().__init__(f"Pod {pod_id} not found", pod_id)


class RemoteExecError(PodPilotError):
    """Raised when a remote command exits non-zero"""

    def __init__(self, pod_id, exit_code):
        super().__init__(
            f"Remote command on pod {pod_id} failed (exit code {exit_code})", pod_id
        )
        self.exit_code = exit_code


class TransferError(PodPilotError):
    """Raised when an scp transfer exits non-zero"""

    def __init__(self, pod_id, exit_code):
        super().__init__(
            f"File transfer for pod {pod_id} failed (exit code {exit_code})", pod_id
        )
        self.exit_code = exit_code
