# tests/conftest.py
import io
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import pytest
from rich.console import Console

from meshup.lib import commands
from meshup.lib.config import SetupConfig
from meshup.lib.domain import RetryChoice
from meshup.lib.runner import CommandResult

Response = Union[int, Tuple[int, str]]

LINKS_CLEAN = """\
1: lo: <LOOPBACK,UP,LOWER_UP> mtu 65536 qdisc noqueue state UNKNOWN mode DEFAULT group default qlen 1000\\    link/loopback 00:00:00:00:00:00 brd 00:00:00:00:00:00
2: enp3s0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc fq_codel state UP mode DEFAULT group default qlen 1000\\    link/ether 52:54:00:12:34:56 brd ff:ff:ff:ff:ff:ff
"""


class FakeRunner:
    """Scripted stand-in for CommandRunner.

    Each argv maps to a queue of responses; the last response repeats.
    Unscripted commands succeed with empty output.
    """

    def __init__(self, default_rc: int = 0) -> None:
        self.default_rc = default_rc
        self.calls: List[Tuple[str, ...]] = []
        self.uncaptured: List[Tuple[str, ...]] = []
        self._responses: Dict[Tuple[str, ...], List[Response]] = {}

    def script(self, argv: Sequence[str], *responses: Response) -> "FakeRunner":
        self._responses[tuple(argv)] = list(responses)
        return self

    def run(self, argv: Sequence[str], capture: bool = True) -> CommandResult:
        cmd = tuple(argv)
        self.calls.append(cmd)
        if not capture:
            self.uncaptured.append(cmd)
        queue = self._responses.get(cmd)
        if not queue:
            return CommandResult(cmd, self.default_rc)
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, tuple):
            return CommandResult(cmd, response[0], response[1])
        return CommandResult(cmd, response)

    def count(self, argv: Sequence[str]) -> int:
        return self.calls.count(tuple(argv))

    def called(self, argv: Sequence[str]) -> bool:
        return tuple(argv) in self.calls


class FakePrompter:
    """Answers operator questions from queues; unanswered confirms take the default"""

    def __init__(self, confirms: Sequence[bool] = (), choices: Sequence[RetryChoice] = ()) -> None:
        self.confirms = list(confirms)
        self.choices = list(choices)
        self.questions: List[str] = []
        self.retry_prompts = 0

    def confirm(self, question: str, default: bool = True) -> bool:
        self.questions.append(question)
        return self.confirms.pop(0) if self.confirms else default

    def choose_retry(self) -> RetryChoice:
        self.retry_prompts += 1
        return self.choices.pop(0)


class FakeWhich:
    def __init__(self, *available: str) -> None:
        self.available = set(available)

    def __call__(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.available else None


class Sleeper:
    """Records requested sleeps and optionally runs a hook on each one"""

    def __init__(self) -> None:
        self.calls: List[float] = []
        self.hooks: Dict[int, object] = {}

    def on(self, nth: int, hook) -> None:
        self.hooks[nth] = hook

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        hook = self.hooks.get(len(self.calls))
        if hook is not None:
            hook()


@pytest.fixture
def config(tmp_path: Path) -> SetupConfig:
    """Setup configuration with every host path inside tmp_path"""
    root = tmp_path / "host"
    (root / "etc").mkdir(parents=True)
    (root / "run/systemd/resolve").mkdir(parents=True)
    (root / "etc/arch-release").write_text("")
    return SetupConfig(
        resolv_conf=root / "etc/resolv.conf",
        stub_resolv=root / "run/systemd/resolve/stub-resolv.conf",
        nm_conf_dir=root / "etc/NetworkManager/conf.d",
        modules_load_dir=root / "etc/modules-load.d",
        lockfile=root / "var/lock/meshup.lock",
        release_file=root / "etc/arch-release",
        color=False,
    )


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def which() -> FakeWhich:
    return FakeWhich()


@pytest.fixture
def sleeper() -> Sleeper:
    return Sleeper()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), no_color=True, width=120)


@pytest.fixture
def healthy_runner(config: SetupConfig) -> FakeRunner:
    """Runner for a host where every phase succeeds on the first try"""
    fake = FakeRunner()
    fake.script(commands.link_list(), (0, LINKS_CLEAN))
    fake.script(commands.package_query(config.portal_package), 1)
    fake.script(commands.vpn_ip4(config.vpn_cli), (0, "100.101.102.103\n"))
    return fake
