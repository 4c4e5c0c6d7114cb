"""SSH session management built on Paramiko."""

from __future__ import annotations

import os
import socket
import time
from dataclasses import dataclass
from typing import Callable, Optional

import paramiko

from .credentials import SSHCredentials


class SSHConnectionError(RuntimeError):
    """Raised when an SSH connection cannot be established or is lost."""

    pass


@dataclass
class SSHCommandResult:
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class SSHSession:
    """High-level wrapper around paramiko.SSHClient.

    Authentication is key-only and unknown host keys are accepted
    automatically so a run never stops to ask a question.
    """

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        connect_kwargs = {
            "hostname": self.credentials.host,
            "port": self.credentials.port,
            "username": self.credentials.username,
            "key_filename": os.path.expanduser(self.credentials.key_path),
            "timeout": self.credentials.timeout,
            "look_for_keys": False,
            "allow_agent": False,
        }
        if self.credentials.passphrase:
            connect_kwargs["passphrase"] = self.credentials.passphrase
        try:
            client.connect(**connect_kwargs)
        except Exception as exc:  # pragma: no cover - network errors hard to simulate
            client.close()
            raise SSHConnectionError(str(exc)) from exc
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(
        self,
        command: str,
        *,
        stdin_data: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> SSHCommandResult:
        """Execute ``command`` and block until it exits.

        ``stdin_data`` is written to the remote process and stdin is then
        closed, which is how scripts reach ``bash -s``. ``timeout`` bounds
        the whole command; ``None`` waits for as long as the command runs.
        """
        if not self._client:
            self.connect()
        assert self._client is not None

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        try:
            stdin, stdout, _stderr = self._client.exec_command(command, timeout=timeout)
            channel = stdout.channel
            if stdin_data is not None:
                stdin.write(stdin_data)
                stdin.flush()
                channel.shutdown_write()

            # Drain both streams while waiting; a full stderr window would
            # otherwise stall chatty installers.
            start_time = time.monotonic()
            while True:
                has_activity = False
                while channel.recv_ready():
                    stdout_chunks.append(channel.recv(4096))
                    has_activity = True
                while channel.recv_stderr_ready():
                    stderr_chunks.append(channel.recv_stderr(4096))
                    has_activity = True
                if channel.exit_status_ready() and not has_activity:
                    break
                if timeout is not None and time.monotonic() - start_time > timeout:
                    channel.close()
                    return SSHCommandResult(
                        command=command,
                        stdout=_decode(stdout_chunks),
                        stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                        exit_status=-1,
                    )
                if not has_activity:
                    time.sleep(0.05)
            # Output can land between the ready checks and the exit status.
            _drain(channel, stdout_chunks, stderr_chunks)
            exit_status = channel.recv_exit_status()
        except socket.timeout:
            return SSHCommandResult(
                command=command,
                stdout=_decode(stdout_chunks),
                stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                exit_status=-1,
            )
        except (paramiko.SSHException, EOFError, OSError) as exc:
            self.close()
            raise SSHConnectionError(f"SSH channel failed while running command: {exc}") from exc

        return SSHCommandResult(
            command=command,
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
            exit_status=exit_status,
        )


def _drain(channel: paramiko.Channel, stdout_chunks: list[bytes], stderr_chunks: list[bytes]) -> None:
    while True:
        pending = False
        while channel.recv_ready():
            stdout_chunks.append(channel.recv(4096))
            pending = True
        while channel.recv_stderr_ready():
            stderr_chunks.append(channel.recv_stderr(4096))
            pending = True
        if not pending:
            return


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace").strip()
