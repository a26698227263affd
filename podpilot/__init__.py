"""PodPilot: run tests and commands on short-lived RunPod GPU pods."""

__version__ = "0.1.0"
