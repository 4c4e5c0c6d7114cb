"""Unified path constants for deploykit.

Local state lives under .deploykit in the current directory:
- .deploykit/workspace/   # working copies of deployed repositories
- .deploykit/logs/        # one timestamped log per run
"""

from pathlib import Path

BASE_DIR = Path(".deploykit")

WORKSPACE_DIR = BASE_DIR / "workspace"
LOGS_DIR = BASE_DIR / "logs"
