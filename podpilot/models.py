"""Plain data records for pods, GPU types and workload runs."""
from dataclasses import dataclass, field
from typing import List, Optional

RUNNING = "RUNNING"

SSH_PRIVATE_PORT = 22
SSH_USERNAME = "root"


@dataclass(frozen=True)
class PortMapping:
    """One exposed port of a running pod."""
    private_port: int
    public_port: int
    ip: str
    is_ip_public: bool = False
    type: str = "tcp"

    @classmethod
    def from_api(cls, data):
        return cls(
            private_port=data.get("privatePort"),
            public_port=data.get("publicPort"),
            ip=data.get("ip"),
            is_ip_public=bool(data.get("isIpPublic")),
            type=data.get("type") or "tcp",
        )


@dataclass(frozen=True)
class SshDescriptor:
    host: str
    port: int
    username: str = SSH_USERNAME
    public_ip: bool = False

    @property
    def target(self):
        return f"{self.username}@{self.host}"


def ssh_descriptor_from_ports(ports):
    """Pick the SSH endpoint out of a pod's port mappings.

    Returns None when no mapping forwards private port 22.
    """
    if not ports:
        return None
    for port in ports:
        if port.private_port == SSH_PRIVATE_PORT and port.ip and port.public_port:
            return SshDescriptor(
                host=port.ip,
                port=int(port.public_port),
                public_ip=port.is_ip_public,
            )
    return None


@dataclass
class Pod:
    """Local view of a provider-owned pod.

    ``ports`` is None when the provider reports no runtime, i.e. the pod
    has no reachable network endpoint yet.
    """
    id: str
    desired_status: Optional[str] = None
    name: str = ""
    image_name: str = ""
    gpu_count: int = 0
    cost_per_hr: Optional[float] = None
    uptime_seconds: Optional[int] = None
    ports: Optional[List[PortMapping]] = None

    @classmethod
    def from_api(cls, data):
        runtime = data.get("runtime")
        ports = None
        if runtime:
            ports = [PortMapping.from_api(p) for p in runtime.get("ports") or []]
        return cls(
            id=data["id"],
            desired_status=data.get("desiredStatus"),
            name=data.get("name") or "",
            image_name=data.get("imageName") or "",
            gpu_count=data.get("gpuCount") or 0,
            cost_per_hr=data.get("costPerHr"),
            uptime_seconds=data.get("uptimeSeconds"),
            ports=ports,
        )

    @property
    def is_running(self):
        return self.desired_status == RUNNING

    def ssh_descriptor(self):
        return ssh_descriptor_from_ports(self.ports)


@dataclass(frozen=True)
class ResourceSpec:
    """What to ask the provider for when creating a pod."""
    gpu_type: str
    gpu_count: int = 1
    image: str = "runpod/pytorch:latest"
    container_disk_size: int = 10
    volume_size: int = 20
    team_id: Optional[str] = None

    @classmethod
    def from_settings(cls, settings):
        return cls(
            gpu_type=settings["gpu_type"],
            gpu_count=int(settings["gpu_count"]),
            image=settings["image"],
            container_disk_size=int(settings["container_disk_size"]),
            volume_size=int(settings["volume_size"]),
            team_id=settings.get("team_id"),
        )


@dataclass(frozen=True)
class GpuType:
    id: str
    display_name: str
    memory_in_gb: int = 0
    secure_cloud: bool = False
    community_cloud: bool = False
    on_demand_price: Optional[float] = None
    spot_price: Optional[float] = None

    @classmethod
    def from_api(cls, data):
        price = data.get("lowestPrice") or {}
        return cls(
            id=data["id"],
            display_name=data.get("displayName") or data["id"],
            memory_in_gb=data.get("memoryInGb") or 0,
            secure_cloud=bool(data.get("secureCloud")),
            community_cloud=bool(data.get("communityCloud")),
            on_demand_price=price.get("uninterruptablePrice"),
            spot_price=price.get("minimumBidPrice"),
        )


@dataclass
class WorkloadResult:
    """Outcome of one ephemeral workload run.

    ``auto_termination_at`` is epoch milliseconds.
    """
    pod_id: str
    exit_code: int
    auto_termination_at: int
    timer: object = field(default=None, repr=False, compare=False)
