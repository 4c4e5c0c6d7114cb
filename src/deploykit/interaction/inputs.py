"""Collect run inputs from CLI values, configuration and prompts."""

from __future__ import annotations

import getpass
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..config import DeploymentConfig


@dataclass
class RunInputs:
    """Everything a run needs from the operator. Values are raw strings."""

    repo_url: str = ""
    token: Optional[str] = field(default=None, repr=False)
    branch: str = "main"
    user: str = ""
    host: str = ""
    key_path: str = ""
    app_port: str = ""
    ssh_port: str = "22"
    project_dir: Optional[str] = None

    @property
    def is_https(self) -> bool:
        return self.repo_url.startswith(("https://", "http://"))


class InputCollector:
    """Fills missing inputs, prompting only for what is still empty.

    Precedence: explicit CLI values, then configuration/environment
    defaults, then an interactive prompt (skipped when ``interactive`` is
    False). The token is read without echo.
    """

    def __init__(
        self,
        *,
        interactive: bool = True,
        prompt: Callable[[str], str] = input,
        secret_prompt: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self.interactive = interactive
        self._prompt = prompt
        self._secret_prompt = secret_prompt

    def collect(
        self,
        cli_values: Dict[str, Optional[str]],
        defaults: DeploymentConfig,
        *,
        cleanup: bool = False,
    ) -> RunInputs:
        def pick(key: str, default: Optional[object]) -> str:
            value = cli_values.get(key)
            if value:
                return str(value)
            return str(default) if default not in (None, "") else ""

        inputs = RunInputs(
            repo_url=pick("repo_url", defaults.default_repo_url),
            token=pick("token", defaults.default_token) or None,
            branch=pick("branch", defaults.default_branch) or "main",
            user=pick("user", defaults.default_username),
            host=pick("host", defaults.default_host),
            key_path=pick("key_path", defaults.default_key_path),
            app_port=pick("app_port", defaults.default_app_port),
            ssh_port=pick("ssh_port", defaults.default_ssh_port) or "22",
            project_dir=pick("project_dir", None) or None,
        )
        if not self.interactive:
            return inputs

        if not inputs.repo_url:
            inputs.repo_url = self._ask("Git repository URL (HTTPS, e.g. https://github.com/owner/repo.git)")
        if not cleanup:
            if inputs.is_https and not inputs.token:
                inputs.token = self._secret_prompt("Personal access token for git (input hidden): ").strip() or None
            if not cli_values.get("branch"):
                inputs.branch = self._ask("Branch name", default=inputs.branch)
        if not inputs.user:
            inputs.user = self._ask("Remote SSH username")
        if not inputs.host:
            inputs.host = self._ask("Remote server IP or hostname")
        if not inputs.key_path:
            inputs.key_path = self._ask("Path to SSH private key (e.g. ~/.ssh/id_rsa)")
        if not cleanup and not inputs.app_port:
            inputs.app_port = self._ask("Application internal port (container port)")
        return inputs

    def _ask(self, text: str, default: Optional[str] = None) -> str:
        suffix = f" [{default}]" if default else ""
        answer = self._prompt(f"{text}{suffix}: ").strip()
        return answer or (default or "")
