"""Local working copy sync and transfer to the remote host."""

from __future__ import annotations

import shlex
import subprocess
from pathlib import Path
from typing import Callable, Optional

from ..errors import ConnectivityError, SourceControlError, ValidationError
from ..gitops import GitCommandError, GitRepositoryManager
from ..models import (
    COMPOSE_FILENAMES,
    DOCKERFILE_NAME,
    BuildDescriptor,
    DeploymentTarget,
    DescriptorKind,
    SourceRepository,
)
from ..scripts import templates
from ..ssh.executor import RemoteExecutor
from ..utils.logging import get_logger

logger = get_logger(__name__)


def detect_build_descriptor(path: Path) -> BuildDescriptor:
    """Return the build descriptor at the root of ``path``.

    Compose descriptors take precedence over a Dockerfile.
    """
    for name in COMPOSE_FILENAMES:
        if (path / name).is_file():
            return BuildDescriptor(kind=DescriptorKind.COMPOSE, filename=name)
    if (path / DOCKERFILE_NAME).is_file():
        return BuildDescriptor(kind=DescriptorKind.DOCKERFILE, filename=DOCKERFILE_NAME)
    raise ValidationError(
        f"No Dockerfile or compose file found in project root ({path})."
    )


def ssh_transport(target: DeploymentTarget) -> str:
    """The ``rsync -e`` value for reaching ``target`` unattended."""
    return " ".join(
        [
            "ssh",
            "-i",
            shlex.quote(str(Path(target.key_path).expanduser())),
            "-p",
            str(target.ssh_port),
            "-o",
            "BatchMode=yes",
            "-o",
            "StrictHostKeyChecking=no",
        ]
    )


class SourceSynchronizer:
    """Keeps the local working copy current and mirrors it to the target."""

    def __init__(
        self,
        git_manager: Optional[GitRepositoryManager] = None,
        *,
        rsync_binary: str = "rsync",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.git_manager = git_manager or GitRepositoryManager()
        self.rsync_binary = rsync_binary
        self._runner = runner

    def sync_source(self, repo: SourceRepository) -> Path:
        try:
            result = self.git_manager.sync(repo)
        except GitCommandError as exc:
            raise SourceControlError(str(exc)) from exc
        logger.info(
            "Working copy at %s is at %s%s",
            result.path,
            result.commit_sha[:12],
            "" if result.fast_forwarded else " (not fast-forwarded)",
        )
        return result.path

    def transfer(self, executor: RemoteExecutor, local_path: Path) -> None:
        """Mirror ``local_path`` into the target's project directory.

        Remote files missing locally are deleted. Git metadata is never sent
        since it may hold credentials.
        """
        target = executor.target
        prepared = executor.execute(templates.PREPARE_PROJECT_DIR, project_dir=target.project_dir)
        if not prepared.ok:
            raise ConnectivityError(
                f"Could not prepare {target.project_dir} on {target.host}: {prepared.stderr}"
            )

        destination = f"{target.address}:{target.project_dir.rstrip('/')}/"
        command = [
            self.rsync_binary,
            "-az",
            "--delete",
            "--exclude=.git",
            "-e",
            ssh_transport(target),
            f"{local_path}/",
            destination,
        ]
        logger.info("Transferring project files to %s", destination)
        process = self._runner(command, capture_output=True, text=True, check=False)
        if process.returncode != 0:
            raise ConnectivityError(
                f"rsync to {destination} failed with code {process.returncode}: "
                f"{process.stderr.strip()}"
            )
        logger.info("Files synced to %s", destination)

    def remove_remote_copy(self, executor: RemoteExecutor) -> bool:
        project_dir = executor.target.project_dir
        result = executor.execute(templates.REMOVE_PROJECT_DIR, project_dir=project_dir)
        if not result.ok:
            logger.warning("Removing %s failed: %s", project_dir, result.stderr)
            return False
        logger.info("Removed remote project directory %s", project_dir)
        return True
