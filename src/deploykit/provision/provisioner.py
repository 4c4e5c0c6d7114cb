"""Ensure the remote host has docker, compose and nginx running."""

from __future__ import annotations

from typing import Optional, Tuple

from ..errors import RemoteSetupError
from ..models import ProvisionReport
from ..scripts import RemoteCommandScript, templates
from ..ssh.executor import RemoteExecutor
from ..ssh.probe import RemoteHostFacts, RemoteProbe
from ..utils.logging import get_logger

logger = get_logger(__name__)

COMPOSE_COMMANDS = ("docker compose", "docker-compose")
SERVICES = ("docker", "nginx")


class EnvironmentProvisioner:
    """Idempotently installs and starts the runtime components.

    Each component is checked before anything is installed, so a second
    run against a provisioned host only confirms state.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        *,
        compose_version: str = "v2.20.2",
        probe: Optional[RemoteProbe] = None,
    ) -> None:
        self.executor = executor
        self.compose_version = compose_version
        self.probe = probe or RemoteProbe()

    def ensure_environment(self, facts: Optional[RemoteHostFacts] = None) -> ProvisionReport:
        facts = facts or self.probe.collect(self.executor)
        if not facts.has_apt:
            raise RemoteSetupError(
                f"{facts.hostname} ({facts.os_release}) has no apt-get; "
                "only Debian/Ubuntu hosts are supported"
            )

        report = ProvisionReport()
        self._record(report, "docker", self._ensure("docker", templates.ENSURE_DOCKER))

        status, compose_command = self._ensure_compose()
        self._record(report, compose_command, status)
        report.compose_command = compose_command

        self._record(report, "nginx", self._ensure("nginx", templates.ENSURE_NGINX))

        for service in SERVICES:
            result = self.executor.execute(templates.ENABLE_SERVICE, service=service)
            if not result.ok:
                raise RemoteSetupError(f"Could not enable/start {service}: {result.stderr}")

        versions = self.executor.execute(templates.REPORT_VERSIONS)
        report.versions = versions.stdout
        for line in versions.stdout.splitlines():
            logger.info("   %s", line)
        logger.info(
            "Remote environment prepared (installed: %s; already present: %s)",
            ", ".join(report.installed) or "none",
            ", ".join(report.present) or "none",
        )
        return report

    def _ensure(self, component: str, script: RemoteCommandScript, **params: object) -> str:
        logger.info("Ensuring %s is installed...", component)
        result = self.executor.execute(script, **params)
        if not result.ok:
            raise RemoteSetupError(
                f"Failed to install {component} (exit {result.exit_status}): {result.stderr}"
            )
        lines = result.stdout.splitlines()
        return lines[-1].strip() if lines else ""

    def _ensure_compose(self) -> Tuple[str, str]:
        line = self._ensure("compose", templates.ENSURE_COMPOSE, compose_version=self.compose_version)
        status, _, command = line.partition(" ")
        if status not in ("present", "installed") or command not in COMPOSE_COMMANDS:
            raise RemoteSetupError(f"Unexpected compose check output: {line!r}")
        return status, command

    @staticmethod
    def _record(report: ProvisionReport, component: str, status: str) -> None:
        if status.startswith("installed"):
            report.installed.append(component)
            logger.info("   %s installed", component)
        elif status.startswith("present"):
            report.present.append(component)
            logger.info("   %s already present", component)
        else:
            raise RemoteSetupError(f"Unexpected status for {component}: {status!r}")
