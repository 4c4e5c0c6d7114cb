"""Run remote command scripts against one deployment target."""

from __future__ import annotations

from typing import Callable, Optional

from ..errors import ConnectivityError
from ..models import DeploymentTarget
from ..scripts import RemoteCommandScript, templates
from ..utils.logging import get_logger
from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession

logger = get_logger(__name__)


class RemoteExecutor:
    """Executes rendered scripts over a single SSH session.

    The executor never retries; every script is idempotent, so the caller
    decides whether a failure is tolerable. Losing the channel raises
    :class:`ConnectivityError`, which is kept apart from a script that ran
    and exited non-zero.
    """

    def __init__(
        self,
        target: DeploymentTarget,
        *,
        session_factory: Optional[Callable[[SSHCredentials], SSHSession]] = None,
        connect_timeout: int = 20,
    ) -> None:
        self.target = target
        self._session_factory = session_factory or SSHSession
        self._credentials = SSHCredentials.for_target(target, timeout=connect_timeout)
        self._session: Optional[SSHSession] = None

    def __enter__(self) -> "RemoteExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def _ensure_session(self) -> SSHSession:
        if self._session is None:
            self._session = self._session_factory(self._credentials)
        try:
            self._session.connect()
        except SSHConnectionError as exc:
            raise ConnectivityError(
                f"Unable to SSH to {self.target.address}: {exc}"
            ) from exc
        return self._session

    def check_connectivity(self) -> bool:
        """Run a no-op on the target; False if the channel is unusable."""
        try:
            result = self.execute(templates.PING)
        except ConnectivityError as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            return False
        return result.ok and result.stdout.strip() == "ok"

    def execute(
        self,
        script: RemoteCommandScript,
        *,
        timeout: Optional[float] = None,
        **params: object,
    ) -> SSHCommandResult:
        rendered = script.render(**params)
        session = self._ensure_session()
        logger.debug("Running remote script %s on %s", rendered.name, self.target.address)
        try:
            result = session.run(
                rendered.command_line(),
                stdin_data=rendered.text,
                timeout=timeout,
            )
        except SSHConnectionError as exc:
            raise ConnectivityError(str(exc)) from exc
        if not result.ok:
            logger.debug(
                "Script %s exited %s: %s", rendered.name, result.exit_status, result.stderr
            )
        return result

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
