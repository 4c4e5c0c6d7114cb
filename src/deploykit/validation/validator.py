"""Post-deploy reachability checks."""

from __future__ import annotations

from typing import Optional

import requests

from ..errors import ConnectivityError, ValidationError
from ..models import ValidationReport
from ..scripts import templates
from ..ssh.executor import RemoteExecutor
from ..utils.logging import get_logger

logger = get_logger(__name__)


class DeploymentValidator:
    """Checks the app from the target's loopback and through the proxy.

    The loopback check is authoritative: failure captures diagnostics and
    raises :class:`ValidationError`. The external check only warns, since
    firewalls and security groups between here and the target are not ours.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        *,
        internal_timeout: int = 5,
        external_timeout: int = 10,
        http_session: Optional[requests.Session] = None,
    ) -> None:
        self.executor = executor
        self.internal_timeout = internal_timeout
        self.external_timeout = external_timeout
        self._owns_http = http_session is None
        self.http = http_session or requests.Session()

    def __enter__(self) -> "DeploymentValidator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def close(self) -> None:
        """Close the HTTP session if this validator opened it."""
        if self._owns_http:
            self.http.close()
            self._owns_http = False

    def validate(self, internal_port: int) -> ValidationReport:
        host = self.executor.target.host
        internal_url = f"http://127.0.0.1:{internal_port}"
        external_url = f"http://{host}/"

        logger.info("Validating deployment...")
        check = self.executor.execute(
            templates.LOOPBACK_CHECK,
            port=internal_port,
            seconds=self.internal_timeout,
        )
        if not check.ok:
            logger.error("Application did not respond on remote %s: %s", internal_url, check.stderr)
            diagnostics = self._collect_diagnostics()
            raise ValidationError(
                f"Application did not respond on remote localhost:{internal_port}",
                diagnostics=diagnostics,
            )
        logger.info("Application responded on remote localhost:%s.", internal_port)

        external_ok = self._check_external(external_url)
        return ValidationReport(
            internal_ok=True,
            external_ok=external_ok,
            internal_url=internal_url,
            external_url=external_url,
        )

    def _check_external(self, url: str) -> bool:
        try:
            response = self.http.get(url, timeout=self.external_timeout)
        except requests.RequestException as exc:
            logger.warning(
                "External proxy test failed for %s (%s). It may be blocked by a firewall "
                "or security group.",
                url,
                exc,
            )
            return False
        if response.status_code >= 500:
            logger.warning("External proxy test for %s returned HTTP %s.", url, response.status_code)
            return False
        logger.info("External proxy test OK (%s, HTTP %s).", url, response.status_code)
        return True

    def _collect_diagnostics(self) -> str:
        try:
            result = self.executor.execute(templates.DIAGNOSTICS)
        except ConnectivityError as exc:
            logger.error("Could not capture diagnostics: %s", exc)
            return f"diagnostics unavailable: {exc}"
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        for line in output.splitlines():
            logger.error("   %s", line)
        return output
