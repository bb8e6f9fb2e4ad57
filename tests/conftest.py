from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from useradmin.actions import UserManager  # noqa: E402
from useradmin.config import ClusterConfig, ContainerTarget  # noqa: E402
from useradmin.console import ConsoleIO  # noqa: E402
from useradmin.formatting import ResultFormatter  # noqa: E402
from useradmin.kubectl import CommandResult  # noqa: E402


Response = Union[str, CommandResult]


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(command=[], exit_status=0, stdout=stdout, stderr="")


def failed(stderr: str = "error: no running pod") -> CommandResult:
    return CommandResult(command=[], exit_status=1, stdout="", stderr=stderr)


class FakeExecutor:
    """Stands in for KubectlExecutor; answers by substring match on the command."""

    def __init__(
        self,
        database: Sequence[Tuple[str, Response]] = (),
        application: Optional[Response] = None,
        config: Optional[ClusterConfig] = None,
    ) -> None:
        self.config = config or ClusterConfig()
        self._database_rules = list(database)
        self._application = application if application is not None else ok()
        self.calls: List[Tuple[str, str]] = []

    @staticmethod
    def _as_result(response: Response) -> CommandResult:
        if isinstance(response, CommandResult):
            return response
        return ok(response)

    def database(self, expression: str) -> CommandResult:
        self.calls.append(("database", expression))
        for needle, response in self._database_rules:
            if needle in expression:
                return self._as_result(response)
        return ok()

    def application(self, script: str) -> CommandResult:
        self.calls.append(("application", script))
        return self._as_result(self._application)

    def execute(self, target: ContainerTarget, args: Sequence[str]) -> CommandResult:
        raise AssertionError("tests should go through database() or application()")

    @property
    def mutations(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] == "application" or "updateOne" in call[1]]


class ScriptedInput:
    """Answers prompts from a fixed list and records every prompt shown."""

    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError(f"unexpected prompt: {prompt}")
        return self.answers.pop(0)


@pytest.fixture()
def make_manager() -> Callable[..., Tuple[UserManager, ScriptedInput]]:
    def _make(executor: FakeExecutor, *answers: str, structured: bool = True):
        inputs = ScriptedInput(*answers)
        io = ConsoleIO(input_func=inputs)
        if not structured:
            return UserManager(executor, io=io, formatter=ResultFormatter(structured=False)), inputs
        return UserManager(executor, io=io), inputs

    return _make
