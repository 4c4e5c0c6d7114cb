import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path

from deploykit.errors import SourceControlError
from deploykit.gitops import GitCommandError, GitRepositoryManager, authenticated_url
from deploykit.models import SourceRepository


def _git_available() -> bool:
    return shutil.which("git") is not None


def _run_git(args: list[str], cwd: Path) -> None:
    subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
    )


def _commit(repo: Path, name: str, content: str, message: str) -> None:
    (repo / name).write_text(content, encoding="utf-8")
    _run_git(["add", name], repo)
    _run_git(["commit", "-m", message], repo)


def _identify(repo: Path) -> None:
    _run_git(["config", "user.email", "bot@example.com"], repo)
    _run_git(["config", "user.name", "Deploy Bot"], repo)


class AuthenticatedUrlTests(unittest.TestCase):
    def test_token_injected_into_https_url(self) -> None:
        self.assertEqual(
            authenticated_url("https://github.com/acme/shop.git", "ghp_abc"),
            "https://ghp_abc@github.com/acme/shop.git",
        )

    def test_ssh_url_untouched(self) -> None:
        url = "git@github.com:acme/shop.git"
        self.assertEqual(authenticated_url(url, "ghp_abc"), url)

    def test_missing_token_leaves_url(self) -> None:
        url = "https://github.com/acme/shop.git"
        self.assertEqual(authenticated_url(url, None), url)


class ForeignDirectoryTests(unittest.TestCase):
    def test_non_git_directory_is_never_deleted(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            workdir = Path(tmp) / "shop"
            workdir.mkdir()
            (workdir / "notes.txt").write_text("keep me\n")
            repo = SourceRepository(url="https://github.com/acme/shop.git", workdir=workdir, token="t0k")

            with self.assertRaises(SourceControlError):
                GitRepositoryManager(git_binary="git-not-installed").sync(repo)
            self.assertEqual((workdir / "notes.txt").read_text(), "keep me\n")


class GitRepositoryManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        if not _git_available():
            self.skipTest("git binary not found")
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.origin = self.root / "origin"
        self.origin.mkdir()
        _run_git(["init", "--initial-branch=main"], self.origin)
        _identify(self.origin)
        _commit(self.origin, "Dockerfile", "FROM nginx\n", "initial")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _repo(self, branch: str = "main") -> SourceRepository:
        return SourceRepository(url=str(self.origin), workdir=self.root / "checkout", branch=branch)

    def test_clone_then_fast_forward_update(self) -> None:
        manager = GitRepositoryManager()
        result = manager.sync(self._repo())
        self.assertTrue(result.cloned)
        self.assertTrue((result.path / "Dockerfile").exists())
        self.assertEqual(len(result.commit_sha), 40)

        _commit(self.origin, "Dockerfile", "FROM nginx:alpine\n", "update")
        result = manager.sync(self._repo())
        self.assertFalse(result.cloned)
        self.assertTrue(result.fast_forwarded)
        self.assertEqual((result.path / "Dockerfile").read_text(encoding="utf-8"), "FROM nginx:alpine\n")

    def test_diverged_working_copy_is_kept_with_warning(self) -> None:
        manager = GitRepositoryManager()
        checkout = manager.sync(self._repo()).path
        _identify(checkout)
        _commit(checkout, "local.txt", "local", "local change")
        _commit(self.origin, "remote.txt", "remote", "remote change")

        with self.assertLogs("deploykit.gitops.manager", level="WARNING"):
            result = manager.sync(self._repo())
        self.assertFalse(result.fast_forwarded)
        self.assertTrue((checkout / "local.txt").exists())
        self.assertFalse((checkout / "remote.txt").exists())

    def test_switches_to_new_branch_on_existing_copy(self) -> None:
        manager = GitRepositoryManager()
        manager.sync(self._repo())
        _run_git(["checkout", "-b", "feature"], self.origin)
        _commit(self.origin, "feature.txt", "f", "feature work")

        result = manager.sync(self._repo(branch="feature"))
        self.assertTrue((result.path / "feature.txt").exists())

    def test_clone_failure_redacts_token(self) -> None:
        manager = GitRepositoryManager()
        repo = SourceRepository(
            url="https://127.0.0.1:9/acme/missing.git",
            workdir=self.root / "missing",
            token="sekrit-token",
        )
        with self.assertRaises(GitCommandError) as caught:
            manager.sync(repo)
        self.assertNotIn("sekrit-token", str(caught.exception))
        self.assertFalse((self.root / "missing" / ".git" / "credentials").exists())


if __name__ == "__main__":
    unittest.main()
