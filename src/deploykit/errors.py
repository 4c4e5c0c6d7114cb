"""Error taxonomy and exit codes for deploykit runs."""

from __future__ import annotations

from enum import IntEnum


class ExitOutcome(IntEnum):
    """Stable process exit codes; automation branches on these."""

    SUCCESS = 0
    UNEXPECTED = 1
    USER_INPUT = 2
    SOURCE_CONTROL = 10
    CONNECTIVITY = 11
    REMOTE_SETUP = 12
    DEPLOYMENT = 13
    VALIDATION = 14
    INTERRUPTED = 130


class DeployError(RuntimeError):
    """Base class for failures that terminate a run with a known outcome."""

    outcome: ExitOutcome = ExitOutcome.UNEXPECTED


class UserInputError(DeployError):
    """Missing or invalid input, missing local tooling, missing key file."""

    outcome = ExitOutcome.USER_INPUT


class SourceControlError(DeployError):
    """Clone or fetch of the application repository failed."""

    outcome = ExitOutcome.SOURCE_CONTROL


class ConnectivityError(DeployError):
    """The secure shell channel to the target could not be used."""

    outcome = ExitOutcome.CONNECTIVITY


class RemoteSetupError(DeployError):
    """A required runtime component could not be installed or started."""

    outcome = ExitOutcome.REMOTE_SETUP


class DeploymentError(DeployError):
    """Bringing up the new workload or configuring the proxy failed."""

    outcome = ExitOutcome.DEPLOYMENT


class ValidationError(DeployError):
    """The project or the deployed application failed validation."""

    outcome = ExitOutcome.VALIDATION

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics
