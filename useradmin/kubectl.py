"""Utilities for running commands inside cluster pods through ``kubectl exec``."""
from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Sequence

from .config import ClusterConfig, ContainerTarget

logger = logging.getLogger("overleaf_admin.kubectl")


class KubectlError(RuntimeError):
    """Raised when a kubectl operation fails."""


class ToolMissingError(KubectlError):
    """Raised when the orchestration client cannot be found on ``PATH``."""

    def __init__(self, binary: str) -> None:
        super().__init__(f"{binary} is not installed or not in PATH")
        self.binary = binary


class RemoteCommandError(KubectlError):
    """Raised when a remote command exits unsuccessfully."""

    def __init__(self, message: str, result: "CommandResult | None" = None) -> None:
        super().__init__(message)
        self.result = result


@dataclass
class CommandResult:
    """Result of a command executed inside a pod."""

    command: Sequence[str]
    exit_status: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.exit_status == 0

    @property
    def output(self) -> str:
        return self.stdout.strip()


def ensure_kubectl_available(binary: str = "kubectl") -> str:
    """Return the resolved path of *binary* or raise :class:`ToolMissingError`."""

    path = shutil.which(binary)
    if not path:
        raise ToolMissingError(binary)
    return path


class KubectlExecutor:
    """Executes commands in the first ready pod of a deployment."""

    def __init__(self, config: ClusterConfig) -> None:
        self._config = config

    @property
    def config(self) -> ClusterConfig:
        return self._config

    def build_command(self, target: ContainerTarget, args: Sequence[str]) -> list[str]:
        command = [self._config.kubectl]
        if self._config.context:
            command.extend(["--context", self._config.context])
        command.extend(["exec", "-n", target.namespace, target.deployment, "--", *args])
        return command

    def execute(self, target: ContainerTarget, args: Sequence[str]) -> CommandResult:
        command = self.build_command(target, args)
        logger.debug("Running on %s: %s", target.describe(), " ".join(shlex.quote(part) for part in args))
        try:
            completed = subprocess.run(
                command, capture_output=True, encoding="utf-8", errors="replace", check=False
            )
        except OSError as exc:
            logger.debug("Unable to start %s: %s", self._config.kubectl, exc)
            return CommandResult(command=command, exit_status=127, stdout="", stderr=str(exc))

        result = CommandResult(
            command=command,
            exit_status=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if not result.succeeded:
            logger.debug(
                "Command on %s exited with status %s: %s",
                target.describe(),
                result.exit_status,
                result.stderr.strip() or "<no stderr>",
            )
        return result

    def database(self, expression: str) -> CommandResult:
        """Evaluate a mongosh expression against the database deployment."""

        return self.execute(self._config.database_target, ["mongosh", "--quiet", "--eval", expression])

    def application(self, script: str) -> CommandResult:
        """Run a shell line inside the application deployment."""

        return self.execute(self._config.application_target, ["/bin/bash", "-c", script])


__all__ = [
    "KubectlError",
    "ToolMissingError",
    "RemoteCommandError",
    "CommandResult",
    "KubectlExecutor",
    "ensure_kubectl_available",
]
