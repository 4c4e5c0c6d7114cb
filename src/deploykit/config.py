"""Configuration loading utilities for deploykit."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from .paths import LOGS_DIR, WORKSPACE_DIR

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")


@dataclass
class DeploymentConfig:
    """Settings related to deployment execution."""

    workspace_root: str = str(WORKSPACE_DIR)  # local working copies
    log_dir: str = str(LOGS_DIR)
    remote_base_dir: str = "/opt"
    container_name: str = "app"
    compose_version: str = "v2.20.2"  # standalone binary, only if no plugin
    settle_delay: float = 3.0
    disable_default_site: bool = True
    connect_timeout: int = 20
    # Values used when neither the CLI nor a prompt supplies them.
    default_repo_url: Optional[str] = None
    default_branch: str = "main"
    default_host: Optional[str] = None
    default_ssh_port: Union[int, str] = 22
    default_username: Optional[str] = None
    default_key_path: Optional[str] = None
    default_app_port: Optional[Union[int, str]] = None
    default_token: Optional[str] = field(default=None, repr=False)


@dataclass
class ValidationConfig:
    """Timeouts for the post-deploy reachability checks (seconds)."""

    internal_timeout: int = 5
    external_timeout: int = 10


@dataclass
class AppConfig:
    """Top-level configuration."""

    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        deployment_payload = payload.get("deployment", {}) or {}
        validation_payload = payload.get("validation", {}) or {}

        # 过滤掉以下划线开头的注释字段
        deployment_payload = {k: v for k, v in deployment_payload.items() if not k.startswith("_")}
        validation_payload = {k: v for k, v in validation_payload.items() if not k.startswith("_")}

        return cls(
            deployment=DeploymentConfig(
                **{**DeploymentConfig().__dict__, **deployment_payload}
            ),
            validation=ValidationConfig(
                **{**ValidationConfig().__dict__, **validation_payload}
            ),
        )


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    A path given explicitly must exist. Without one, the default location is
    used when present and built-in defaults otherwise.

    Environment variables (higher priority than config file):
    - DEPLOYKIT_REPO_URL: Git repository URL
    - DEPLOYKIT_GIT_TOKEN: Access token for HTTPS clones
    - DEPLOYKIT_BRANCH: Branch to deploy
    - DEPLOYKIT_SSH_HOST: Remote host or IP
    - DEPLOYKIT_SSH_PORT: Remote SSH port
    - DEPLOYKIT_SSH_USER: Remote SSH username
    - DEPLOYKIT_SSH_KEY_PATH: Path to SSH private key
    - DEPLOYKIT_APP_PORT: Application's internal container port
    """

    if path and not Path(path).is_file():
        raise FileNotFoundError(f"Could not find configuration file: {path}")

    candidate = Path(path) if path else _DEFAULT_CONFIG_PATH
    if candidate.is_file():
        with candidate.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        config = AppConfig.from_dict(data)
    else:
        config = AppConfig()

    deployment = config.deployment
    env_overrides = {
        "default_repo_url": os.getenv("DEPLOYKIT_REPO_URL"),
        "default_token": os.getenv("DEPLOYKIT_GIT_TOKEN"),
        "default_branch": os.getenv("DEPLOYKIT_BRANCH"),
        "default_host": os.getenv("DEPLOYKIT_SSH_HOST"),
        "default_username": os.getenv("DEPLOYKIT_SSH_USER"),
        "default_key_path": os.getenv("DEPLOYKIT_SSH_KEY_PATH"),
    }
    for attr, value in env_overrides.items():
        if value:
            setattr(deployment, attr, value)

    # Ports stay as given; the run validates them before any network access.
    env_port = os.getenv("DEPLOYKIT_SSH_PORT")
    if env_port:
        deployment.default_ssh_port = env_port.strip()

    env_app_port = os.getenv("DEPLOYKIT_APP_PORT")
    if env_app_port:
        deployment.default_app_port = env_app_port.strip()

    return config
