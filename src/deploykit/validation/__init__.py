"""Deployment validation."""

from .validator import DeploymentValidator

__all__ = ["DeploymentValidator"]
