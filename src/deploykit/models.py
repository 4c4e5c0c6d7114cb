"""Data model shared by the deployment components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

PROXY_LISTEN_PORT = 80


def repo_name_from_url(url: str) -> str:
    """Extract the repository directory name from an HTTPS or SSH git URL."""
    name = url.rstrip("/").split("/")[-1].split(":")[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name or "repository"


@dataclass(frozen=True)
class DeploymentTarget:
    """One remote endpoint; immutable for the run."""

    host: str
    user: str
    key_path: str
    project_dir: str
    ssh_port: int = 22

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}"


@dataclass
class SourceRepository:
    """The application repository and its local working copy."""

    url: str
    workdir: Path
    branch: str = "main"
    token: Optional[str] = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return repo_name_from_url(self.url)

    @property
    def is_https(self) -> bool:
        return self.url.startswith(("https://", "http://"))


class DescriptorKind(str, Enum):
    COMPOSE = "compose"
    DOCKERFILE = "dockerfile"


# Compose descriptors win over a plain Dockerfile when both exist.
COMPOSE_FILENAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)
DOCKERFILE_NAME = "Dockerfile"


@dataclass(frozen=True)
class BuildDescriptor:
    kind: DescriptorKind
    filename: str


@dataclass
class ProxySiteConfig:
    """Reverse-proxy site routing the public listener to the app."""

    site_name: str
    upstream_port: int
    listen_port: int = PROXY_LISTEN_PORT

    def render(self) -> str:
        return (
            "server {\n"
            f"    listen {self.listen_port};\n"
            "    server_name _;\n"
            "\n"
            "    location / {\n"
            f"        proxy_pass http://127.0.0.1:{self.upstream_port};\n"
            "        proxy_set_header Host $host;\n"
            "        proxy_set_header X-Real-IP $remote_addr;\n"
            "        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;\n"
            "        proxy_set_header X-Forwarded-Proto $scheme;\n"
            "    }\n"
            "}\n"
        )


@dataclass
class ProvisionReport:
    """What the provisioner found or installed on the target."""

    installed: List[str] = field(default_factory=list)
    present: List[str] = field(default_factory=list)
    compose_command: str = "docker compose"
    versions: str = ""


@dataclass
class DeployReport:
    strategy: DescriptorKind
    stopped_prior: bool
    pruned: bool
    container_status: str = ""


@dataclass
class ValidationReport:
    internal_ok: bool
    external_ok: bool
    internal_url: str
    external_url: str
    diagnostics: str = ""
