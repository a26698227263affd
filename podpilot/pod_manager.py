"""Pod lifecycle calls against RunPod via the runpod SDK."""
import json

import requests
import runpod as runpod_sdk
from runpod.api.graphql import run_graphql_query
from runpod.error import RunPodError

from .config import (
    POD_NAME,
    POD_PORTS,
    VOLUME_MOUNT_PATH,
    get_api_key,
    read_public_key,
)
from .errors import ApiError, NotFoundError, ProvisionError
from .models import GpuType, Pod

USER_QUERY = """
query Myself {
  myself {
    id
    email
    clientBalance
    spendLimit
    currentSpendPerHr
    teams { id name owner { email } membership { scopes } }
    ownedTeams { id name members { id member { email } scopes } }
  }
}
"""

GPU_TYPES_QUERY = """
query GpuTypes {
  gpuTypes {
    id
    displayName
    memoryInGb
    secureCloud
    communityCloud
    lowestPrice(input: {gpuCount: 1}) {
      minimumBidPrice
      uninterruptablePrice
    }
  }
}
"""


def _graphql_input(fields):
    """Render a dict as a GraphQL input object literal."""
    parts = []
    for key, value in fields.items():
        if isinstance(value, list):
            rendered = "[" + ", ".join(_graphql_input(v) for v in value) + "]"
        else:
            rendered = json.dumps(value)
        parts.append(f"{key}: {rendered}")
    return "{" + ", ".join(parts) + "}"


class RunPodClient:
    """Thin wrapper over the runpod SDK.

    SDK and transport failures surface as ApiError. The API key is
    resolved on first use so commands that never touch the API work
    without one.
    """

    def __init__(self, api_key=None, config_dir=None):
        self.api_key = api_key
        self.config_dir = config_dir

    def _init_sdk(self):
        if not self.api_key:
            self.api_key = get_api_key(self.config_dir)
        runpod_sdk.api_key = self.api_key

    def _call(self, fn, *args, **kwargs):
        self._init_sdk()
        try:
            return fn(*args, **kwargs)
        except (RunPodError, requests.RequestException) as e:
            raise ApiError(f"RunPod API error: {e}") from e

    def create(self, spec, name=POD_NAME):
        """Create a pod for the given ResourceSpec.

        Raises ProvisionError when the provider hands back no pod.
        """
        team = f" Team ID: {spec.team_id}" if spec.team_id else ""
        print(f"Creating pod with GPU: {spec.gpu_type} Count: {spec.gpu_count} "
              f"Image: {spec.image}{team}")

        env = {}
        pub_key = read_public_key()
        if pub_key:
            env["PUBLIC_KEY"] = pub_key

        try:
            if spec.team_id:
                pod = self._call(self._create_for_team, spec, name, env)
            else:
                pod = self._call(
                    runpod_sdk.create_pod,
                    name=name,
                    image_name=spec.image,
                    gpu_type_id=spec.gpu_type,
                    gpu_count=spec.gpu_count,
                    volume_in_gb=spec.volume_size,
                    container_disk_in_gb=spec.container_disk_size,
                    ports=POD_PORTS,
                    volume_mount_path=VOLUME_MOUNT_PATH,
                    env=env,
                )
        except (ApiError, ValueError) as e:
            raise ProvisionError(f"Pod creation failed: {e}") from e

        if not pod or "id" not in pod:
            raise ProvisionError(f"Pod creation failed. API response: {pod}")

        print(f"Pod created: {pod['id']}")
        return Pod.from_api(pod)

    def _create_for_team(self, spec, name, env):
        # The SDK's create_pod has no team parameter, so deploy directly.
        fields = {
            "name": name,
            "gpuTypeId": spec.gpu_type,
            "gpuCount": spec.gpu_count,
            "containerDiskInGb": spec.container_disk_size,
            "volumeInGb": spec.volume_size,
            "imageName": spec.image,
            "dockerArgs": "",
            "ports": POD_PORTS,
            "volumeMountPath": VOLUME_MOUNT_PATH,
            "teamId": spec.team_id,
        }
        if env:
            fields["env"] = [{"key": k, "value": v} for k, v in env.items()]
        mutation = (
            "mutation { podFindAndDeployOnDemand(input: "
            f"{_graphql_input(fields)}"
            ") { id name imageName machineId desiredStatus } }"
        )
        response = run_graphql_query(mutation)
        return (response.get("data") or {}).get("podFindAndDeployOnDemand")

    def get(self, pod_id):
        """Return the Pod, or None if the provider does not know it."""
        data = self._call(runpod_sdk.get_pod, pod_id)
        if not data:
            return None
        return Pod.from_api(data)

    def list(self):
        return [Pod.from_api(p) for p in self._call(runpod_sdk.get_pods) or []]

    def terminate(self, pod_id):
        """Terminate (destroy) a pod. A pod that is already gone is not an error."""
        print(f"Terminating pod {pod_id}...")
        try:
            self._call(runpod_sdk.terminate_pod, pod_id)
        except ApiError:
            if self.get(pod_id) is None:
                print(f"Pod {pod_id} no longer exists.")
                return
            raise
        print("Pod terminated.")

    def stop(self, pod_id):
        print(f"Stopping pod {pod_id}...")
        data = self._call(runpod_sdk.stop_pod, pod_id)
        if not data:
            raise NotFoundError(pod_id)
        return Pod.from_api(data)

    def resume(self, pod_id):
        """Resume a stopped pod with the GPU count it was created with."""
        pod = self.get(pod_id)
        if pod is None:
            raise NotFoundError(pod_id)
        print(f"Starting pod {pod_id}...")
        data = self._call(runpod_sdk.resume_pod, pod_id, gpu_count=pod.gpu_count or 1)
        if not data:
            raise NotFoundError(pod_id)
        return Pod.from_api(data)

    def get_user_info(self):
        response = self._call(run_graphql_query, USER_QUERY)
        user = (response.get("data") or {}).get("myself")
        if not user:
            raise ApiError("Failed to retrieve user information")
        return user

    def list_gpu_types(self):
        response = self._call(run_graphql_query, GPU_TYPES_QUERY)
        gpu_types = (response.get("data") or {}).get("gpuTypes") or []
        return [GpuType.from_api(g) for g in gpu_types]
