"""Tests for pod records and SSH endpoint derivation."""
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from podpilot.models import GpuType, Pod, PortMapping, SshDescriptor, ssh_descriptor_from_ports

POD_DATA = {
    "id": "pod123",
    "name": "Test Pod 1",
    "imageName": "runpod/pytorch:latest",
    "desiredStatus": "RUNNING",
    "costPerHr": 0.5,
    "gpuCount": 1,
    "uptimeSeconds": 3600,
    "runtime": {"ports": [
        {"ip": "10.0.0.1", "privatePort": 22, "publicPort": 10022,
         "isIpPublic": False, "type": "tcp"},
        {"ip": "10.0.0.1", "privatePort": 8888, "publicPort": 18888,
         "isIpPublic": False, "type": "http"},
    ]},
}


class TestSshDescriptor(unittest.TestCase):
    def test_private_port_22_entry_is_selected(self):
        ports = [PortMapping(private_port=22, public_port=10022, ip="10.0.0.1")]
        desc = ssh_descriptor_from_ports(ports)
        self.assertEqual(desc, SshDescriptor(host="10.0.0.1", port=10022, username="root"))
        self.assertEqual(desc.target, "root@10.0.0.1")

    def test_no_ssh_entry_yields_none(self):
        ports = [PortMapping(private_port=8888, public_port=18888, ip="10.0.0.1")]
        self.assertIsNone(ssh_descriptor_from_ports(ports))
        self.assertIsNone(ssh_descriptor_from_ports([]))
        self.assertIsNone(ssh_descriptor_from_ports(None))


class TestPodFromApi(unittest.TestCase):
    def test_running_pod_with_runtime(self):
        pod = Pod.from_api(POD_DATA)
        self.assertTrue(pod.is_running)
        self.assertEqual(len(pod.ports), 2)
        desc = pod.ssh_descriptor()
        self.assertEqual((desc.host, desc.port), ("10.0.0.1", 10022))

    def test_pod_without_runtime_has_no_endpoint(self):
        pod = Pod.from_api({"id": "pod456", "desiredStatus": "EXITED",
                            "gpuCount": 2, "runtime": None})
        self.assertFalse(pod.is_running)
        self.assertIsNone(pod.ports)
        self.assertIsNone(pod.ssh_descriptor())

    def test_gpu_type_prices(self):
        gpu = GpuType.from_api({
            "id": "NVIDIA A100", "displayName": "A100", "memoryInGb": 40,
            "secureCloud": True, "communityCloud": False,
            "lowestPrice": {"minimumBidPrice": 1.2, "uninterruptablePrice": 2.0},
        })
        self.assertEqual(gpu.on_demand_price, 2.0)
        self.assertEqual(gpu.spot_price, 1.2)
        self.assertTrue(gpu.secure_cloud)


if __name__ == "__main__":
    unittest.main()
