"""Tests for the ephemeral-pod orchestration and its cleanup guarantees."""
import os
import sys
import tempfile
import unittest
from unittest import mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from podpilot.errors import (
    ApiError,
    NotReadyError,
    ProvisionError,
    SshUnavailableError,
    TransferError,
)
from podpilot.lifecycle import PodLifecycle
from podpilot.models import Pod, ResourceSpec
from podpilot.registry import ManagedPodRegistry

SPEC = ResourceSpec(gpu_type="NVIDIA RTX A4000")


class TestRunEphemeralWorkload(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.registry = ManagedPodRegistry(os.path.join(self._tmp.name, "m.json"))
        self.client = mock.MagicMock()
        self.client.create.return_value = Pod(id="pod123", desired_status="CREATED")
        self.poller = mock.MagicMock()
        self.poller.wait_for_running.return_value = True
        self.poller.wait_for_ssh.return_value = True
        self.scheduler = mock.MagicMock()
        self.scheduler.return_value = mock.MagicMock(pod_id="pod123")
        self.lifecycle = PodLifecycle(
            self.client,
            self.registry,
            executor=mock.MagicMock(),
            poller=self.poller,
            scheduler=self.scheduler,
            clock=lambda: 1000.0,
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_success_registers_pod_and_returns_result(self):
        seen = {}

        def action(pod_id):
            seen["registered"] = self.registry.list()
            return 0

        result = self.lifecycle.run_ephemeral_workload(SPEC, 30, action)

        self.assertEqual(result.pod_id, "pod123")
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.auto_termination_at, 1000 * 1000 + 30 * 60000)
        self.assertIn("pod123", seen["registered"])
        self.assertIn("pod123", self.registry.list())
        self.scheduler.assert_called_once_with(self.client, self.registry, "pod123", 30)
        self.client.terminate.assert_not_called()

    def test_registration_precedes_timer_and_polling(self):
        order = []

        def arm(client, registry, pod_id, minutes):
            order.append(("timer", pod_id in registry.list()))
            return mock.MagicMock(pod_id=pod_id)

        def wait_for_running(client, pod_id, timeout):
            order.append(("running", None))
            return True

        self.scheduler.side_effect = arm
        self.poller.wait_for_running.side_effect = wait_for_running

        self.lifecycle.run_ephemeral_workload(SPEC, 5, lambda pod_id: 0)

        self.assertEqual(order, [("timer", True), ("running", None)])

    def test_create_failure_registers_nothing(self):
        self.client.create.side_effect = ProvisionError("no pod")
        with self.assertRaises(ProvisionError):
            self.lifecycle.run_ephemeral_workload(SPEC, 30, lambda pod_id: 0)
        self.assertEqual(self.registry.list(), set())
        self.scheduler.assert_not_called()
        self.poller.wait_for_running.assert_not_called()

    def test_not_ready_terminates_once_and_unregisters(self):
        self.poller.wait_for_running.return_value = False
        action = mock.MagicMock()

        with self.assertRaises(NotReadyError) as cm:
            self.lifecycle.run_ephemeral_workload(SPEC, 30, action)

        self.assertEqual(cm.exception.pod_id, "pod123")
        self.client.terminate.assert_called_once_with("pod123")
        self.assertEqual(self.registry.list(), set())
        self.poller.wait_for_ssh.assert_not_called()
        action.assert_not_called()
        self.scheduler.return_value.cancel.assert_called_once()

    def test_ssh_unavailable_terminates(self):
        self.poller.wait_for_ssh.return_value = False
        with self.assertRaises(SshUnavailableError):
            self.lifecycle.run_ephemeral_workload(SPEC, 30, lambda pod_id: 0)
        self.client.terminate.assert_called_once_with("pod123")
        self.assertEqual(self.registry.list(), set())

    def test_failed_terminate_is_not_fatal_and_keeps_registration(self):
        self.poller.wait_for_running.return_value = False
        self.client.terminate.side_effect = ApiError("unreachable")
        with self.assertRaises(NotReadyError):
            self.lifecycle.run_ephemeral_workload(SPEC, 30, lambda pod_id: 0)
        self.assertEqual(self.registry.list(), {"pod123"})

    def test_nonzero_action_exit_is_data_not_failure(self):
        result = self.lifecycle.run_ephemeral_workload(SPEC, 30, lambda pod_id: 3)
        self.assertEqual(result.exit_code, 3)
        self.client.terminate.assert_not_called()
        self.assertIn("pod123", self.registry.list())

    def test_transfer_error_in_action_triggers_cleanup(self):
        def action(pod_id):
            raise TransferError(pod_id, 1)

        with self.assertRaises(TransferError):
            self.lifecycle.run_ephemeral_workload(SPEC, 30, action)
        self.client.terminate.assert_called_once_with("pod123")
        self.assertEqual(self.registry.list(), set())


class TestTerminatePod(unittest.TestCase):
    def test_cancels_only_that_pods_timer(self):
        with tempfile.TemporaryDirectory() as tmp:
            registry = ManagedPodRegistry(os.path.join(tmp, "m.json"))
            registry.register("a")
            lifecycle = PodLifecycle(mock.MagicMock(), registry,
                                     executor=mock.MagicMock(), poller=mock.MagicMock())
            timer_a, timer_b = mock.MagicMock(pod_id="a"), mock.MagicMock(pod_id="b")
            timer_b.cancelled = False
            lifecycle.timers = [timer_a, timer_b]

            self.assertTrue(lifecycle.terminate_pod("a"))

            timer_a.cancel.assert_called_once()
            timer_b.cancel.assert_not_called()
            self.assertEqual(lifecycle.timers, [timer_b])
            self.assertEqual(registry.list(), set())


if __name__ == "__main__":
    unittest.main()
