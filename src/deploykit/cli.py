"""Command-line interface for deploykit."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import AppConfig, load_config
from .controller import RunController
from .errors import ExitOutcome
from .interaction import InputCollector
from .utils.logging import set_verbose


@dataclass
class CLIContext:
    """Context captured from CLI arguments."""

    config: AppConfig


def _add_target_arguments(parser: argparse.ArgumentParser, *, cleanup: bool) -> None:
    parser.add_argument("--repo", dest="repo_url", help="Git repository URL (HTTPS or SSH form)")
    parser.add_argument("--user", help="Remote SSH username")
    parser.add_argument("--host", help="Remote server IP or hostname")
    parser.add_argument("--key-path", help="Path to SSH private key")
    parser.add_argument("--ssh-port", type=int, default=None, help="Remote SSH port")
    parser.add_argument(
        "--project-dir",
        default=None,
        help="Remote project directory (default: <remote_base_dir>/<repo_name>)",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; fail if a required value is missing",
    )
    if not cleanup:
        parser.add_argument("--branch", help="Branch to deploy (default: main)")
        parser.add_argument("--app-port", help="Application's internal container port")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deploykit",
        description="Deploy a Dockerized application from git to a remote Linux host.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON config file overriding defaults.",
    )
    parser.add_argument(
        "--workspace",
        type=str,
        default=None,
        help="Directory holding local working copies.",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Directory for per-run log files.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log remote script details")

    subparsers = parser.add_subparsers(dest="command", required=True)
    deploy_parser = subparsers.add_parser(
        "deploy", help="Provision the host, deploy the application and validate it"
    )
    _add_target_arguments(deploy_parser, cleanup=False)

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Remove the deployed workload, proxy site and remote files"
    )
    _add_target_arguments(cleanup_parser, cleanup=True)

    logs_parser = subparsers.add_parser("logs", help="View run logs")
    logs_parser.add_argument(
        "--list", "-l", action="store_true", dest="list_logs",
        help="List all available logs"
    )
    logs_parser.add_argument(
        "--latest", action="store_true",
        help="Show the latest run log"
    )
    logs_parser.add_argument(
        "--file", "-f", type=str,
        help="Show a specific log file"
    )

    return parser


def _build_context(args: argparse.Namespace) -> CLIContext:
    config = load_config(args.config)
    if args.workspace:
        config.deployment.workspace_root = args.workspace
    if args.log_dir:
        config.deployment.log_dir = args.log_dir
    return CLIContext(config=config)


def handle_logs_command(args: argparse.Namespace, context: CLIContext) -> int:
    """Handle the logs subcommand."""
    log_dir = Path(context.config.deployment.log_dir)
    log_files = sorted(log_dir.glob("deploy_*.log"), reverse=True) if log_dir.exists() else []

    if not log_files:
        print(f"No run logs found in {log_dir}. Run a deployment first.")
        return 0

    if args.list_logs:
        print(f"Run logs in: {log_dir}\n")
        for i, log_file in enumerate(log_files, 1):
            last_line = _last_line(log_file)
            print(f"{i:<4} {log_file.name:<32} {last_line[:90]}")
        return 0

    target_file = log_files[0]
    if args.file:
        target_file = Path(args.file)
        if not target_file.exists():
            target_file = log_dir / args.file
        if not target_file.exists():
            print(f"Log file not found: {args.file}")
            return 1

    print(target_file.read_text(encoding="utf-8"), end="")
    return 0


def _last_line(path: Path) -> str:
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    return lines[-1] if lines else ""


def handle_run_command(
    args: argparse.Namespace,
    context: CLIContext,
    *,
    collector: Optional[InputCollector] = None,
    controller: Optional[RunController] = None,
) -> int:
    cleanup = args.command == "cleanup"
    collector = collector or InputCollector(interactive=not args.no_input)
    cli_values = {
        "repo_url": args.repo_url,
        "user": args.user,
        "host": args.host,
        "key_path": args.key_path,
        "ssh_port": str(args.ssh_port) if args.ssh_port else None,
        "project_dir": args.project_dir,
        "branch": getattr(args, "branch", None),
        "app_port": getattr(args, "app_port", None),
    }
    try:
        inputs = collector.collect(cli_values, context.config.deployment, cleanup=cleanup)
    except EOFError:
        print("\nInput closed before all values were provided.")
        return int(ExitOutcome.USER_INPUT)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return int(ExitOutcome.INTERRUPTED)
    controller = controller or RunController(context.config)
    return controller.run(inputs, cleanup=cleanup)


def dispatch_command(args: argparse.Namespace) -> int:
    set_verbose(args.verbose)
    context = _build_context(args)

    if args.command == "logs":
        return handle_logs_command(args, context)

    if args.command in ("deploy", "cleanup"):
        return handle_run_command(args, context)

    raise ValueError(f"Unsupported command: {args.command}")


def run_cli(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return dispatch_command(args)
