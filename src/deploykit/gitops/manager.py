"""Git-based repository management."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import quote

from ..errors import SourceControlError
from ..models import SourceRepository
from ..utils.logging import get_logger, redact

logger = get_logger(__name__)


class GitCommandError(RuntimeError):
    """Raised when a git command fails."""

    def __init__(self, command: list[str], exit_code: int, stderr: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Git command {' '.join(command)} failed with code {exit_code}: {stderr}")


@dataclass
class GitSyncResult:
    """Details about a completed clone/update."""

    path: Path
    commit_sha: str
    cloned: bool
    fast_forwarded: bool = True


def authenticated_url(url: str, token: Optional[str]) -> str:
    """Insert ``token`` into an HTTPS URL; other URLs pass through."""
    if not token or not url.startswith(("https://", "http://")):
        return url
    scheme, rest = url.split("://", 1)
    return f"{scheme}://{quote(token, safe='')}@{rest}"


class GitRepositoryManager:
    """Wraps `git` CLI commands for cloning and updating repositories.

    The access token only ever appears in transient command lines. After a
    clone the ``origin`` remote points at the plain URL again and any
    credential file git may have written is removed.
    """

    def __init__(self, git_binary: str = "git") -> None:
        self.git_binary = git_binary

    def sync(self, repo: SourceRepository) -> GitSyncResult:
        target_dir = repo.workdir.resolve()
        secrets = [repo.token, quote(repo.token, safe="") if repo.token else None]
        if (target_dir / ".git").exists():
            logger.info("Repository already exists locally; updating branch %s", repo.branch)
            fast_forwarded = self._update(repo, target_dir, secrets)
            cloned = False
        else:
            logger.info("Cloning %s (branch %s)", repo.url, repo.branch)
            self._clone(repo, target_dir, secrets)
            fast_forwarded = True
            cloned = True

        commit_sha = self._run(["rev-parse", "HEAD"], cwd=target_dir, secrets=secrets).strip()
        return GitSyncResult(
            path=target_dir,
            commit_sha=commit_sha,
            cloned=cloned,
            fast_forwarded=fast_forwarded,
        )

    def _clone(self, repo: SourceRepository, target_dir: Path, secrets: Sequence[Optional[str]]) -> None:
        if target_dir.exists() and any(target_dir.iterdir()):
            raise SourceControlError(
                f"{target_dir} exists and is not a git working copy; refusing to overwrite it"
            )
        target_dir.parent.mkdir(parents=True, exist_ok=True)
        clone_url = authenticated_url(repo.url, repo.token)
        try:
            self._run(
                ["clone", "--branch", repo.branch, clone_url, str(target_dir)],
                secrets=secrets,
            )
        finally:
            credentials_file = target_dir / ".git" / "credentials"
            if credentials_file.exists():
                credentials_file.unlink()
        if clone_url != repo.url:
            self._run(["remote", "set-url", "origin", repo.url], cwd=target_dir, secrets=secrets)

    def _update(self, repo: SourceRepository, target_dir: Path, secrets: Sequence[Optional[str]]) -> bool:
        branch = repo.branch
        remote_ref = f"refs/remotes/origin/{branch}"
        source = authenticated_url(repo.url, repo.token) if repo.is_https else "origin"
        self._run(
            ["fetch", source, f"+refs/heads/{branch}:{remote_ref}"],
            cwd=target_dir,
            secrets=secrets,
        )
        try:
            self._run(["checkout", branch], cwd=target_dir, secrets=secrets)
        except GitCommandError:
            self._run(
                ["checkout", "-b", branch, "--track", f"origin/{branch}"],
                cwd=target_dir,
                secrets=secrets,
            )
        try:
            self._run(["merge", "--ff-only", f"origin/{branch}"], cwd=target_dir, secrets=secrets)
        except GitCommandError as exc:
            logger.warning("git pull non-fast-forward; keeping local state: %s", exc.stderr)
            return False
        return True

    def _run(
        self,
        args: list[str],
        cwd: Optional[Path] = None,
        secrets: Sequence[Optional[str]] = (),
    ) -> str:
        command = [self.git_binary] + args
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        process = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            check=False,
            env=env,
        )
        if process.returncode != 0:
            raise GitCommandError(
                [redact(part, secrets) for part in command],
                process.returncode,
                redact(process.stderr.strip(), secrets),
            )
        return process.stdout
