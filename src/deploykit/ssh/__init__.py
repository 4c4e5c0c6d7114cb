"""SSH utilities for deploykit."""

from .credentials import SSHCredentials
from .session import SSHCommandResult, SSHConnectionError, SSHSession
from .executor import RemoteExecutor
from .probe import RemoteHostFacts, RemoteProbe

__all__ = [
    "SSHCredentials",
    "SSHCommandResult",
    "SSHConnectionError",
    "SSHSession",
    "RemoteExecutor",
    "RemoteHostFacts",
    "RemoteProbe",
]
