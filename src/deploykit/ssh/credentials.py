"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..models import DeploymentTarget


@dataclass
class SSHCredentials:
    """Key-based credential payload for one target."""

    host: str
    username: str
    key_path: str
    port: int = 22
    passphrase: Optional[str] = None
    timeout: int = 20

    @classmethod
    def for_target(cls, target: DeploymentTarget, *, timeout: int = 20) -> "SSHCredentials":
        return cls(
            host=target.host,
            username=target.user,
            key_path=target.key_path,
            port=target.ssh_port,
            timeout=timeout,
        )
