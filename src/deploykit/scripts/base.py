"""Typed, parameterized remote shell scripts."""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Tuple

SCRIPT_PRELUDE = "set -euo pipefail\n"


@dataclass(frozen=True)
class RenderedScript:
    """A script ready to be piped into ``bash -s`` on the remote host."""

    name: str
    text: str
    args: Tuple[str, ...]

    def command_line(self) -> str:
        """Return the remote command that reads the script from stdin."""
        quoted = " ".join(shlex.quote(arg) for arg in self.args)
        return f"bash -s -- {quoted}".rstrip()


@dataclass(frozen=True)
class RemoteCommandScript:
    """A self-contained, idempotent block of bash with declared inputs.

    Parameters are handed to the script as positional arguments in the
    order of ``params``; the body reads them as ``$1``, ``$2`` and so on.
    Values never get interpolated into the script text itself.
    """

    name: str
    body: str
    params: Tuple[str, ...] = ()

    def render(self, **values: object) -> RenderedScript:
        missing = [p for p in self.params if p not in values]
        unknown = sorted(set(values) - set(self.params))
        if missing or unknown:
            raise ValueError(
                f"Script {self.name!r} expects {list(self.params)}; "
                f"missing={missing} unexpected={unknown}"
            )
        args = tuple(str(values[p]) for p in self.params)
        return RenderedScript(name=self.name, text=SCRIPT_PRELUDE + self.body, args=args)
