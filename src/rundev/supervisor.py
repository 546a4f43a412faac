"""Process supervision for the install + dev server session.

A session is a small state machine::

    IDLE -> INSTALLING -> RUNNING -> EXITED
                 |            |
                 +-> FAILED   +-> SUPERSEDED (cancelled)

``ProcessSupervisor.run`` is a coroutine; running it in a task gives a
cancellable action.  Cancelling the task terminates whichever child is
active.  By default termination is requested and not awaited, so a new
session can start right away; the dying process may briefly hold on to
resources such as the dev server port.  Pass ``wait_for_exit=True`` to
wait for the child to exit before the cancellation completes.

Children inherit stdin/stdout/stderr; nothing is captured.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Protocol, Sequence

from rundev.errors import InstallFailedError, ProcessSpawnError

logger = logging.getLogger(__name__)


class ChildProcess(Protocol):
    """Subset of ``asyncio.subprocess.Process`` used by the supervisor."""

    returncode: int | None

    async def wait(self) -> int:
        ...

    def terminate(self) -> None:
        ...


class ProcessLauncher(Protocol):
    """Starts a child process with inherited standard streams."""

    async def spawn(
        self, argv: Sequence[str], cwd: Path, env: Mapping[str, str] | None = None
    ) -> ChildProcess:
        ...


class AsyncioProcessLauncher:
    """Spawns children with ``asyncio.create_subprocess_exec``."""

    async def spawn(
        self, argv: Sequence[str], cwd: Path, env: Mapping[str, str] | None = None
    ) -> ChildProcess:
        return await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )


class SessionState(str, Enum):
    """Lifecycle states of a supervised session."""

    IDLE = "idle"
    INSTALLING = "installing"
    RUNNING = "running"
    SUPERSEDED = "superseded"
    EXITED = "exited"
    FAILED = "failed"


@dataclass
class DevSession:
    """Commands and progress of one install + run session."""

    install_argv: list[str]
    run_argv: list[str]
    cwd: Path
    env: dict[str, str] | None = None
    state: SessionState = SessionState.IDLE
    exit_code: int | None = None
    history: list[SessionState] = field(default_factory=list)

    def transition(self, state: SessionState) -> None:
        logger.debug("Session %s -> %s", self.state.value, state.value)
        self.history.append(self.state)
        self.state = state


def child_env(runtime_bin_dir: Path, base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return an environment with *runtime_bin_dir* first on PATH."""
    env = dict(os.environ if base is None else base)
    path = env.get("PATH", "")
    env["PATH"] = f"{runtime_bin_dir}{os.pathsep}{path}" if path else str(runtime_bin_dir)
    return env


class ProcessSupervisor:
    """Runs install then the dev server, one child process at a time."""

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        *,
        wait_for_exit: bool = False,
    ) -> None:
        self.launcher = launcher or AsyncioProcessLauncher()
        self.wait_for_exit = wait_for_exit
        self._active: ChildProcess | None = None

    @property
    def active_process(self) -> ChildProcess | None:
        return self._active

    def session(
        self,
        runtime_executable: Path,
        package_manager_executable: Path,
        install_args: Sequence[str],
        run_args: Sequence[str],
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> DevSession:
        """Build the session for ``node <package manager> <args>`` commands."""
        base = [str(runtime_executable), str(package_manager_executable)]
        return DevSession(
            install_argv=[*base, *install_args],
            run_argv=[*base, *run_args],
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )

    async def run(self, session: DevSession) -> DevSession:
        """Install dependencies, then run the dev server until it exits.

        Raises:
            ProcessSpawnError: If a child cannot be started.
            InstallFailedError: If the install exits nonzero; the dev server is not started.
            asyncio.CancelledError: If superseded; the active child is terminated first.
        """
        try:
            session.transition(SessionState.INSTALLING)
            install_code = await self._run_to_exit(session.install_argv, session)
            if install_code != 0:
                session.exit_code = install_code
                raise InstallFailedError(install_code)

            session.transition(SessionState.RUNNING)
            session.exit_code = await self._run_to_exit(session.run_argv, session)
            session.transition(SessionState.EXITED)
            logger.info("Dev server exited with status %s", session.exit_code)
            return session
        except asyncio.CancelledError:
            session.transition(SessionState.SUPERSEDED)
            raise
        except (ProcessSpawnError, InstallFailedError):
            session.transition(SessionState.FAILED)
            raise

    async def _run_to_exit(self, argv: list[str], session: DevSession) -> int:
        try:
            process = await self.launcher.spawn(argv, session.cwd, session.env)
        except OSError as e:
            raise ProcessSpawnError(f"could not start {argv[0]}: {e}") from e

        self._active = process
        try:
            return await process.wait()
        except asyncio.CancelledError:
            self._terminate(process)
            if self.wait_for_exit:
                await process.wait()
            raise
        finally:
            if self._active is process:
                self._active = None

    @staticmethod
    def _terminate(process: ChildProcess) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass  # already gone


__all__ = [
    "ChildProcess",
    "ProcessLauncher",
    "AsyncioProcessLauncher",
    "SessionState",
    "DevSession",
    "ProcessSupervisor",
    "child_env",
]
