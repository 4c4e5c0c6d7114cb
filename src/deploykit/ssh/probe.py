"""Remote host probing utilities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

from ..scripts import templates

if TYPE_CHECKING:
    from .executor import RemoteExecutor


@dataclass
class RemoteHostFacts:
    hostname: str
    os_release: str
    architecture: str
    has_apt: bool = False
    has_systemd: bool = False

    def to_payload(self) -> dict:
        return {
            "hostname": self.hostname,
            "os_release": self.os_release,
            "architecture": self.architecture,
            "has_apt": self.has_apt,
            "has_systemd": self.has_systemd,
        }


class RemoteProbe:
    """Collects remote host facts with a single script run."""

    def collect(self, executor: "RemoteExecutor") -> RemoteHostFacts:
        result = executor.execute(templates.HOST_FACTS)
        values = self._parse(result.stdout)
        return RemoteHostFacts(
            hostname=values.get("hostname") or "unknown",
            os_release=values.get("os_release") or "unknown",
            architecture=values.get("architecture") or "unknown",
            has_apt=values.get("has_apt") == "yes",
            has_systemd=values.get("has_systemd") == "yes",
        )

    def _parse(self, output: str) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for line in output.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                values[key.strip()] = value.strip()
        return values
