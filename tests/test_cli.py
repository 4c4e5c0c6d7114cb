import contextlib
import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from deploykit.cli import CLIContext, build_parser, handle_logs_command, handle_run_command, run_cli
from deploykit.config import AppConfig
from deploykit.errors import ExitOutcome
from deploykit.interaction import RunInputs


class StubCollector:
    def __init__(self, error: BaseException = None) -> None:
        self.error = error
        self.calls = []

    def collect(self, cli_values, defaults, *, cleanup=False):
        self.calls.append((cli_values, cleanup))
        if self.error is not None:
            raise self.error
        return RunInputs(repo_url=cli_values["repo_url"] or "")


class StubController:
    def __init__(self, code: int = 0) -> None:
        self.code = code
        self.runs = []

    def run(self, inputs, *, cleanup=False):
        self.runs.append((inputs, cleanup))
        return self.code


class ParserTests(unittest.TestCase):
    def test_deploy_arguments(self) -> None:
        args = build_parser().parse_args(
            ["--verbose", "deploy", "--repo", "https://x/y.git", "--app-port", "8080", "--no-input"]
        )
        self.assertEqual(args.command, "deploy")
        self.assertEqual(args.repo_url, "https://x/y.git")
        self.assertEqual(args.app_port, "8080")
        self.assertTrue(args.no_input)
        self.assertTrue(args.verbose)

    def test_cleanup_has_no_port_or_branch(self) -> None:
        parser = build_parser()
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                parser.parse_args(["cleanup", "--app-port", "8080"])
        args = parser.parse_args(["cleanup", "--host", "203.0.113.10"])
        self.assertFalse(hasattr(args, "app_port"))


class RunCommandTests(unittest.TestCase):
    def test_passes_inputs_to_controller(self) -> None:
        args = build_parser().parse_args(["deploy", "--repo", "https://x/y.git", "--ssh-port", "2222"])
        collector = StubCollector()
        controller = StubController(code=13)
        code = handle_run_command(args, CLIContext(AppConfig()), collector=collector, controller=controller)

        self.assertEqual(code, 13)
        cli_values, cleanup = collector.calls[0]
        self.assertFalse(cleanup)
        self.assertEqual(cli_values["ssh_port"], "2222")
        self.assertEqual(controller.runs[0][0].repo_url, "https://x/y.git")

    def test_cleanup_mode_forwarded(self) -> None:
        args = build_parser().parse_args(["cleanup"])
        controller = StubController()
        handle_run_command(args, CLIContext(AppConfig()), collector=StubCollector(), controller=controller)
        self.assertTrue(controller.runs[0][1])

    def test_closed_input_is_user_input_error(self) -> None:
        args = build_parser().parse_args(["deploy"])
        controller = StubController()
        with contextlib.redirect_stdout(io.StringIO()):
            code = handle_run_command(
                args, CLIContext(AppConfig()), collector=StubCollector(EOFError()), controller=controller
            )
        self.assertEqual(code, ExitOutcome.USER_INPUT)
        self.assertEqual(controller.runs, [])

    def test_interrupt_during_prompts(self) -> None:
        args = build_parser().parse_args(["deploy"])
        with contextlib.redirect_stdout(io.StringIO()):
            code = handle_run_command(
                args, CLIContext(AppConfig()), collector=StubCollector(KeyboardInterrupt()), controller=StubController()
            )
        self.assertEqual(code, ExitOutcome.INTERRUPTED)


class EnvironmentPortTests(unittest.TestCase):
    def test_bad_env_port_is_user_input_error_with_run_log(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            key = Path(tmp) / "id_ed25519"
            key.write_text("key\n")
            log_dir = Path(tmp) / "logs"
            env = {k: v for k, v in os.environ.items() if not k.startswith("DEPLOYKIT_")}
            env["DEPLOYKIT_APP_PORT"] = "eighty"
            argv = [
                "--log-dir", str(log_dir),
                "--workspace", str(Path(tmp) / "workspace"),
                "deploy", "--no-input",
                "--repo", "git@github.com:acme/shop.git",
                "--user", "deploy",
                "--host", "203.0.113.10",
                "--key-path", str(key),
            ]
            with mock.patch.dict(os.environ, env, clear=True):
                code = run_cli(argv)
            logs = list(log_dir.glob("deploy_*.log"))
            self.assertEqual(code, ExitOutcome.USER_INPUT)
            self.assertEqual(len(logs), 1)
            self.assertIn("Application port must be an integer", logs[0].read_text(encoding="utf-8"))


class LogsCommandTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = Path(self._tmp.name)
        (self.log_dir / "deploy_20240101_120000.log").write_text("first\nRun failed with exit code 11\n")
        (self.log_dir / "deploy_20240102_120000.log").write_text("second\nRun completed successfully\n")
        config = AppConfig()
        config.deployment.log_dir = str(self.log_dir)
        self.context = CLIContext(config)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple:
        args = build_parser().parse_args(["logs", *argv])
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = handle_logs_command(args, self.context)
        return code, out.getvalue()

    def test_latest_is_default(self) -> None:
        code, output = self._run("--latest")
        self.assertEqual(code, 0)
        self.assertTrue(output.startswith("second"))

    def test_list_shows_outcome_lines(self) -> None:
        _, output = self._run("--list")
        self.assertLess(output.index("deploy_20240102"), output.index("deploy_20240101"))
        self.assertIn("exit code 11", output)

    def test_specific_file_by_name(self) -> None:
        _, output = self._run("--file", "deploy_20240101_120000.log")
        self.assertTrue(output.startswith("first"))

    def test_missing_file(self) -> None:
        code, output = self._run("--file", "deploy_19990101_000000.log")
        self.assertEqual(code, 1)
        self.assertIn("not found", output)

    def test_empty_log_dir(self) -> None:
        self.context.config.deployment.log_dir = str(self.log_dir / "none")
        code, output = self._run()
        self.assertEqual(code, 0)
        self.assertIn("No run logs found", output)


if __name__ == "__main__":
    unittest.main()
