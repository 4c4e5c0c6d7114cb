"""Workload replacement on the remote host."""

from .sequencer import DeploymentSequencer, image_name_for

__all__ = ["DeploymentSequencer", "image_name_for"]
