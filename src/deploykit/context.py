"""Per-run context: identifier, log sink, outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .errors import ExitOutcome
from .utils.logging import close_run_log, open_run_log


def new_run_id(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")


@dataclass
class RunContext:
    """Owns the run log for the lifetime of one invocation.

    Use as a context manager; the log file is opened on entry and closed on
    exit. The exit code slot starts out as UNEXPECTED so a run that never
    records an outcome cannot look successful.
    """

    log_dir: Path
    cleanup: bool = False
    run_id: str = field(default_factory=new_run_id)
    exit_code: ExitOutcome = ExitOutcome.UNEXPECTED
    error: Optional[str] = None
    secrets: Iterable[Optional[str]] = field(default=(), repr=False)
    _handler: Optional[logging.Handler] = field(default=None, init=False, repr=False)

    @property
    def log_file(self) -> Path:
        return self.log_dir / f"deploy_{self.run_id}.log"

    def open(self) -> "RunContext":
        if self._handler is None:
            self._handler = open_run_log(self.log_file, self.secrets)
        return self

    def close(self) -> None:
        if self._handler is not None:
            close_run_log(self._handler)
            self._handler = None

    def __enter__(self) -> "RunContext":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
