"""Top-level run orchestration."""

from __future__ import annotations

import shutil
import time
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests

from .config import AppConfig
from .context import RunContext
from .deployer import DeploymentSequencer
from .errors import ConnectivityError, DeployError, ExitOutcome, UserInputError
from .interaction import RunInputs
from .models import DeploymentTarget, SourceRepository, repo_name_from_url
from .provision import EnvironmentProvisioner
from .proxy import ProxyConfigurator
from .ssh import RemoteExecutor, RemoteProbe
from .sync import SourceSynchronizer, detect_build_descriptor
from .utils.logging import get_logger
from .validation import DeploymentValidator

logger = get_logger(__name__)

LOCAL_TOOLS = ("git", "rsync", "ssh")


@dataclass
class RunPlan:
    """Validated inputs resolved into the run's entities."""

    repo: SourceRepository
    target: DeploymentTarget
    site_name: str
    app_port: Optional[int] = None


class RunController:
    """Sequences the components for one run and owns its exit code.

    Deploy mode: sync source, probe connectivity, provision, transfer,
    deploy, configure the proxy, validate. Cleanup mode removes the
    workload, the proxy site and the remote project directory; it leaves
    provisioning and the local working copy alone.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        synchronizer: Optional[SourceSynchronizer] = None,
        executor_factory: Optional[Callable[[DeploymentTarget], RemoteExecutor]] = None,
        probe: Optional[RemoteProbe] = None,
        http_session: Optional[requests.Session] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.synchronizer = synchronizer or SourceSynchronizer()
        self._executor_factory = executor_factory or self._default_executor
        self.probe = probe or RemoteProbe()
        self.http_session = http_session
        self._which = which
        self._sleep = sleep

    def _default_executor(self, target: DeploymentTarget) -> RemoteExecutor:
        return RemoteExecutor(target, connect_timeout=self.config.deployment.connect_timeout)

    def run(self, inputs: RunInputs, *, cleanup: bool = False) -> int:
        ctx = RunContext(
            log_dir=Path(self.config.deployment.log_dir),
            cleanup=cleanup,
            secrets=(inputs.token,),
        )
        with ctx:
            try:
                if cleanup:
                    logger.info("Running in cleanup mode.")
                plan = self.preflight(inputs, cleanup=cleanup)
                if cleanup:
                    self._cleanup(plan)
                else:
                    self._deploy(plan)
                ctx.exit_code = ExitOutcome.SUCCESS
            except DeployError as exc:
                ctx.exit_code = exc.outcome
                ctx.error = f"{type(exc).__name__}: {exc}"
            except KeyboardInterrupt:
                ctx.exit_code = ExitOutcome.INTERRUPTED
                ctx.error = "interrupted by user; remote host left after the last completed step"
            except Exception as exc:
                ctx.exit_code = ExitOutcome.UNEXPECTED
                frames = traceback.extract_tb(exc.__traceback__)
                origin = f"{frames[-1].filename}:{frames[-1].lineno}" if frames else "unknown location"
                ctx.error = f"unexpected {type(exc).__name__} at {origin}: {exc}"
                logger.exception("An unexpected error occurred at %s.", origin)
            finally:
                self._summarize(ctx)
        return int(ctx.exit_code)

    def preflight(self, inputs: RunInputs, *, cleanup: bool = False) -> RunPlan:
        """Validate inputs and local tooling before any network access."""
        required = {
            "repository URL": inputs.repo_url,
            "remote username": inputs.user,
            "remote host": inputs.host,
            "SSH key path": inputs.key_path,
        }
        if not cleanup:
            required["application port"] = inputs.app_port
            if inputs.is_https:
                required["access token"] = inputs.token
        missing = [label for label, value in required.items() if not (value or "").strip()]
        if missing:
            raise UserInputError("Missing required input(s): " + ", ".join(missing))

        app_port: Optional[int] = None
        if not cleanup:
            app_port = _parse_port(inputs.app_port, "Application port")
        ssh_port = _parse_port(inputs.ssh_port or "22", "SSH port")

        key_path = Path(inputs.key_path).expanduser()
        if not key_path.is_file():
            raise UserInputError(f"SSH key not found at {inputs.key_path}")

        if not cleanup:
            for tool in LOCAL_TOOLS:
                if not self._which(tool):
                    raise UserInputError(f"Required command not found locally: {tool}")

        deployment = self.config.deployment
        name = repo_name_from_url(inputs.repo_url)
        project_dir = inputs.project_dir or f"{deployment.remote_base_dir.rstrip('/')}/{name}"
        plan = RunPlan(
            repo=SourceRepository(
                url=inputs.repo_url,
                workdir=Path(deployment.workspace_root) / name,
                branch=inputs.branch or "main",
                token=inputs.token,
            ),
            target=DeploymentTarget(
                host=inputs.host,
                user=inputs.user,
                key_path=str(key_path),
                project_dir=project_dir,
                ssh_port=ssh_port,
            ),
            site_name=name,
            app_port=app_port,
        )
        logger.info("Inputs collected (token hidden in logs).")
        return plan

    def _deploy(self, plan: RunPlan) -> None:
        assert plan.app_port is not None
        deployment = self.config.deployment

        logger.info("Step 1: Syncing source from %s", plan.repo.url)
        local_path = self.synchronizer.sync_source(plan.repo)
        descriptor = detect_build_descriptor(local_path)
        logger.info("Project verified: %s found (%s path).", descriptor.filename, descriptor.kind.value)

        with self._executor_factory(plan.target) as executor:
            self._require_connectivity(executor)
            facts = self.probe.collect(executor)
            logger.info("   Remote host: %s (%s / %s)", facts.hostname, facts.os_release, facts.architecture)

            logger.info("Step 2: Preparing remote environment...")
            provision = EnvironmentProvisioner(
                executor,
                compose_version=deployment.compose_version,
                probe=self.probe,
            ).ensure_environment(facts)

            logger.info("Step 3: Transferring project files...")
            self.synchronizer.transfer(executor, local_path)

            logger.info("Step 4: Deploying containers...")
            DeploymentSequencer(
                executor,
                container_name=deployment.container_name,
                settle_delay=deployment.settle_delay,
                sleep=self._sleep,
            ).deploy(
                descriptor,
                plan.app_port,
                site_name=plan.site_name,
                compose_command=provision.compose_command,
            )

            logger.info("Step 5: Configuring reverse proxy...")
            ProxyConfigurator(
                executor,
                disable_default_site=deployment.disable_default_site,
            ).configure_proxy(plan.site_name, plan.app_port)

            logger.info("Step 6: Validating deployment...")
            with DeploymentValidator(
                executor,
                internal_timeout=self.config.validation.internal_timeout,
                external_timeout=self.config.validation.external_timeout,
                http_session=self.http_session,
            ) as validator:
                report = validator.validate(plan.app_port)
            logger.info(
                "Deployment validated (internal: ok, external: %s).",
                "ok" if report.external_ok else "unreachable",
            )

    def _cleanup(self, plan: RunPlan) -> None:
        deployment = self.config.deployment
        with self._executor_factory(plan.target) as executor:
            self._require_connectivity(executor)
            DeploymentSequencer(
                executor,
                container_name=deployment.container_name,
                settle_delay=0,
                sleep=self._sleep,
            ).teardown(site_name=plan.site_name)
            ProxyConfigurator(executor).remove_proxy(plan.site_name)
            self.synchronizer.remove_remote_copy(executor)
        logger.info("Cleanup complete.")

    def _require_connectivity(self, executor: RemoteExecutor) -> None:
        target = executor.target
        logger.info("Checking SSH connectivity to %s...", target.address)
        if not executor.check_connectivity():
            raise ConnectivityError(f"Unable to SSH to {target.address} with provided key.")
        logger.info("SSH connectivity OK.")

    def _summarize(self, ctx: RunContext) -> None:
        mode = "cleanup" if ctx.cleanup else "deploy"
        if ctx.exit_code is ExitOutcome.SUCCESS:
            logger.info("Run %s (%s) completed successfully. Log file: %s", ctx.run_id, mode, ctx.log_file)
        else:
            logger.error(
                "Run %s (%s) failed with exit code %d (%s): %s. Log file: %s",
                ctx.run_id,
                mode,
                int(ctx.exit_code),
                ctx.exit_code.name,
                ctx.error or "no error recorded",
                ctx.log_file,
            )


def _parse_port(value: object, label: str) -> int:
    try:
        port = int(str(value).strip())
    except ValueError:
        raise UserInputError(f"{label} must be an integer, got {value!r}") from None
    if not 1 <= port <= 65535:
        raise UserInputError(f"{label} out of range: {port}")
    return port
