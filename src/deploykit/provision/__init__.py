"""Remote environment provisioning."""

from .provisioner import COMPOSE_COMMANDS, EnvironmentProvisioner

__all__ = ["COMPOSE_COMMANDS", "EnvironmentProvisioner"]
