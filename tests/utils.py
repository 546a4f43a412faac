"""Test doubles for the provisioning, process and watch capabilities."""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from pathlib import Path
from typing import AsyncIterator, Callable, Mapping, Sequence

from rundev.errors import ProvisionFailedError
from rundev.resolver import VersionDecision
from rundev.runtime.store import ProvisionedPaths, ProvisioningStore


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* on the running loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


async def settle() -> None:
    """Give pending callbacks a chance to run."""
    await asyncio.sleep(0.05)


class FakeProvisioner:
    """Records provisioning requests and creates the target directory."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, Path]] = []

    async def provision(self, url: str, target: Path) -> None:
        self.calls.append((url, target))
        if self.fail:
            raise ProvisionFailedError(f"Failed to download {url}")
        target.mkdir(parents=True, exist_ok=True)

    @property
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


class CountingStore(ProvisioningStore):
    """ProvisioningStore that remembers every decision it was asked for."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.ensured: list[VersionDecision] = []

    async def ensure(self, decision: VersionDecision) -> ProvisionedPaths:
        self.ensured.append(decision)
        return await super().ensure(decision)


class FakeProcess:
    """Child process controlled by the test."""

    def __init__(self, argv: list[str], exit_code: int | None = None, exit_on_terminate: bool = True) -> None:
        self.argv = argv
        self.returncode: int | None = None
        self.terminated = False
        self.exit_on_terminate = exit_on_terminate
        self._exited = asyncio.Event()
        if exit_code is not None:
            self.exit(exit_code)

    def exit(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        if self.exit_on_terminate:
            self.exit(-15)

    @property
    def is_install(self) -> bool:
        return "install" in self.argv[2:]


class FakeLauncher:
    """Spawns :class:`FakeProcess` objects.

    Install commands exit immediately with ``install_exit_code`` (or keep
    running when it is None); every other command keeps running until it is
    terminated or exited by the test.
    """

    def __init__(
        self,
        install_exit_code: int | None = 0,
        spawn_error: OSError | None = None,
        exit_on_terminate: bool = True,
    ) -> None:
        self.install_exit_code = install_exit_code
        self.spawn_error = spawn_error
        self.exit_on_terminate = exit_on_terminate
        self.processes: list[FakeProcess] = []
        self.spawned: list[tuple[list[str], Path, Mapping[str, str] | None]] = []

    async def spawn(
        self, argv: Sequence[str], cwd: Path, env: Mapping[str, str] | None = None
    ) -> FakeProcess:
        if self.spawn_error is not None:
            raise self.spawn_error
        argv = list(argv)
        self.spawned.append((argv, cwd, env))
        exit_code = self.install_exit_code if "install" in argv[2:] else None
        process = FakeProcess(argv, exit_code=exit_code, exit_on_terminate=self.exit_on_terminate)
        self.processes.append(process)
        return process

    @property
    def installs(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.is_install]

    @property
    def runs(self) -> list[FakeProcess]:
        return [p for p in self.processes if not p.is_install]

    @property
    def live(self) -> list[FakeProcess]:
        return [p for p in self.processes if p.returncode is None]


class FakeFiles:
    """In-memory files with the same contract as ``watch_file``."""

    def __init__(self) -> None:
        self.contents: dict[str, str | None] = {}
        self.subscriptions: Counter[str] = Counter()
        self._queues: defaultdict[str, list[asyncio.Queue[str | None]]] = defaultdict(list)

    def set(self, name: str, content: str | None) -> None:
        self.contents[name] = content
        for queue in self._queues[name]:
            queue.put_nowait(content)

    def delete(self, name: str) -> None:
        self.set(name, None)

    async def watch(self, path: Path) -> AsyncIterator[str | None]:
        name = path.name
        queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._queues[name].append(queue)
        self.subscriptions[name] += 1
        try:
            last = self.contents.get(name)
            yield last
            while True:
                content = await queue.get()
                if content == last:
                    continue
                last = content
                yield content
        finally:
            self._queues[name].remove(queue)


class QueueChanges:
    """Change notification source driven by the test."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[object] = asyncio.Queue()

    def __call__(self, path: Path) -> AsyncIterator[object]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[object]:
        while True:
            yield await self.queue.get()

    def notify(self) -> None:
        self.queue.put_nowait({"changed"})
