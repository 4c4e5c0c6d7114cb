"""Stop, reclaim, rebuild, start: the deployment state machine."""

from __future__ import annotations

import re
import time
from typing import Callable

from ..errors import DeploymentError
from ..models import BuildDescriptor, DeployReport, DescriptorKind
from ..provision import COMPOSE_COMMANDS
from ..scripts import templates
from ..ssh.executor import RemoteExecutor
from ..utils.logging import get_logger

logger = get_logger(__name__)


def image_name_for(site_name: str) -> str:
    """Docker image reference for a single-container deployment."""
    slug = re.sub(r"[^a-z0-9_.-]+", "-", site_name.lower()).strip("-.") or "app_image"
    return f"{slug}:latest"


class DeploymentSequencer:
    """Replaces the running workload on the target with a fresh build.

    Tearing down the old workload and pruning are best-effort and only log
    warnings. Building and starting the new workload raise
    :class:`DeploymentError`. Compose and single-container paths never mix
    within one run; the build descriptor picks the path.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        *,
        container_name: str = "app",
        settle_delay: float = 3.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.executor = executor
        self.container_name = container_name
        self.settle_delay = settle_delay
        self._sleep = sleep

    def deploy(
        self,
        descriptor: BuildDescriptor,
        app_port: int,
        *,
        site_name: str,
        compose_command: str = "docker compose",
    ) -> DeployReport:
        if compose_command not in COMPOSE_COMMANDS:
            raise ValueError(f"Unsupported compose command: {compose_command!r}")
        project_dir = self.executor.target.project_dir
        image = image_name_for(site_name)

        stopped = self._stop_prior(descriptor, project_dir, compose_command)
        pruned = self._prune()
        self._start(descriptor, project_dir, compose_command, image, app_port)

        if self.settle_delay > 0:
            self._sleep(self.settle_delay)
        status = self._observe()
        return DeployReport(
            strategy=descriptor.kind,
            stopped_prior=stopped,
            pruned=pruned,
            container_status=status,
        )

    def teardown(self, *, site_name: str) -> bool:
        """Remove whatever workload a previous run left behind.

        Both paths are attempted since the descriptor that deployed the
        workload may be gone. Returns True when every step succeeded.
        """
        project_dir = self.executor.target.project_dir
        steps = [
            ("compose services", templates.TEARDOWN_COMPOSE, {"project_dir": project_dir}),
            (f"container {self.container_name}", templates.REMOVE_CONTAINER, {"container": self.container_name}),
            (f"image {image_name_for(site_name)}", templates.REMOVE_IMAGE, {"image": image_name_for(site_name)}),
        ]
        clean = True
        for label, script, params in steps:
            logger.info("Removing %s...", label)
            result = self.executor.execute(script, **params)
            if not result.ok:
                logger.warning("Removing %s failed (continuing): %s", label, result.stderr)
                clean = False
        return clean

    def _stop_prior(self, descriptor: BuildDescriptor, project_dir: str, compose_command: str) -> bool:
        logger.info("Stopping previous workload (if any)...")
        if descriptor.kind is DescriptorKind.COMPOSE:
            result = self.executor.execute(
                templates.STOP_COMPOSE,
                project_dir=project_dir,
                compose_file=descriptor.filename,
                compose_command=compose_command,
            )
        else:
            result = self.executor.execute(templates.REMOVE_CONTAINER, container=self.container_name)
        if not result.ok:
            logger.warning("Stopping previous workload failed (continuing): %s", result.stderr)
            return False
        return True

    def _prune(self) -> bool:
        result = self.executor.execute(templates.PRUNE)
        if not result.ok:
            logger.warning("Pruning unused containers/images failed (continuing): %s", result.stderr)
            return False
        return True

    def _start(
        self,
        descriptor: BuildDescriptor,
        project_dir: str,
        compose_command: str,
        image: str,
        app_port: int,
    ) -> None:
        if descriptor.kind is DescriptorKind.COMPOSE:
            logger.info("Building and starting services from %s...", descriptor.filename)
            result = self.executor.execute(
                templates.UP_COMPOSE,
                project_dir=project_dir,
                compose_file=descriptor.filename,
                compose_command=compose_command,
            )
        else:
            logger.info(
                "Building %s and running container %s on port %s...",
                image,
                self.container_name,
                app_port,
            )
            result = self.executor.execute(
                templates.UP_DOCKERFILE,
                project_dir=project_dir,
                image=image,
                container=self.container_name,
                port=app_port,
            )
        if not result.ok:
            raise DeploymentError(
                f"Bringing up the new workload failed (exit {result.exit_status}): {result.stderr}"
            )

    def _observe(self) -> str:
        try:
            result = self.executor.execute(templates.CONTAINER_STATUS)
        except Exception as exc:  # informational only
            logger.warning("Could not capture container status: %s", exc)
            return ""
        for line in result.stdout.splitlines():
            logger.info("   %s", line)
        return result.stdout
