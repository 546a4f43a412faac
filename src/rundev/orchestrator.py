"""Reactive pipeline connecting watcher, resolver, store and supervisor.

This module integrates all rundev components into a running system::

    project root
      -> watch package.json
        -> resolve versions          (equal decisions are dropped)
          -> provision               (cancel + restart on new decision)
            -> watch lockfile
              -> install + run dev   (cancel + restart on lockfile change)

Each arrow that starts long-running work goes through a :class:`TaskSlot`,
which cancels the previous task and waits for it to unwind before starting
the next one.  At most one provisioning task and one install/run session
exist at any time, and they always reflect the latest manifest and lockfile.

Errors are handled per stage: every failure is logged as one line tagged
with its :class:`ErrorKind` and the pipeline keeps its last good state
(a running dev server is left alone) until the next change on disk.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from rundev.config import RundevConfig
from rundev.core.constants import PACKAGE_JSON
from rundev.errors import (
    ErrorKind,
    InstallFailedError,
    ManifestInvalidError,
    ProcessSpawnError,
    ProvisionFailedError,
)
from rundev.manifest import parse_manifest
from rundev.resolver import VersionDecision, resolve_versions
from rundev.runtime.download import HttpArchiveProvisioner
from rundev.runtime.home import get_registry_path, get_rundev_home
from rundev.runtime.registry import load_registry
from rundev.runtime.store import ProvisionedPaths, ProvisioningStore
from rundev.supervisor import DevSession, ProcessSupervisor, child_env
from rundev.watcher import watch_file

logger = logging.getLogger(__name__)

WatchFn = Callable[[Path], AsyncIterator[str | None]]


class TaskSlot:
    """Holds at most one task; starting a new one cancels the previous one."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task[Any] | None = None

    @property
    def task(self) -> asyncio.Task[Any] | None:
        return self._task

    async def switch(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Cancel the current task, wait for it to unwind, then start *coro*."""
        await self.cancel()
        task = asyncio.create_task(coro, name=self.name)
        task.add_done_callback(self._log_crash)
        self._task = task
        return task

    async def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        # asyncio.wait never raises the task's exception, but still lets a
        # cancellation of the caller propagate.
        await asyncio.wait([task])

    def _log_crash(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s stopped unexpectedly: %s", self.name, exc, exc_info=exc)


class DevOrchestrator:
    """Keeps the dev server in sync with package.json and the lockfile."""

    def __init__(
        self,
        project_root: Path,
        store: ProvisioningStore,
        supervisor: ProcessSupervisor,
        *,
        dev_script: str = "dev",
        watch: WatchFn = watch_file,
    ) -> None:
        self.project_root = project_root
        self.store = store
        self.supervisor = supervisor
        self.dev_script = dev_script
        self._watch = watch
        self._provisioning = TaskSlot("rundev-provision")

        self.decision: VersionDecision | None = None
        self.paths: ProvisionedPaths | None = None
        self.session: DevSession | None = None
        self.reported: list[ErrorKind] = []

    @property
    def manifest_path(self) -> Path:
        return self.project_root / PACKAGE_JSON

    async def run(self) -> None:
        """Watch package.json until cancelled; tears everything down on exit."""
        logger.info("project root: %s", self.project_root)
        try:
            async for content in self._watch(self.manifest_path):
                await self.on_manifest(content)
        finally:
            await self.stop()

    async def stop(self) -> None:
        await self._provisioning.cancel()

    # ------------------------------------------------------------------
    # Error branch
    # ------------------------------------------------------------------

    def _report(self, kind: ErrorKind, message: str) -> None:
        self.reported.append(kind)
        logger.warning("%s: %s", kind.value, message)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def on_manifest(self, content: str | None) -> None:
        """Handle one package.json snapshot."""
        if content is None:
            self._report(
                ErrorKind.MANIFEST_UNREADABLE,
                "package.json in project root was removed or cannot be read",
            )
            return

        try:
            manifest = parse_manifest(content)
        except ManifestInvalidError as e:
            self._report(ErrorKind.MANIFEST_INVALID, f"package.json cannot be parsed ({e})")
            return

        decision = resolve_versions(manifest)
        if decision is None:
            self._report(
                ErrorKind.VERSION_UNRESOLVABLE,
                "node version in package.json engines.node cannot be parsed",
            )
            return

        if decision == self.decision:
            logger.debug("package.json changed, versions unchanged")
            return

        if self.decision is not None:
            logger.info("[package.json changed]")
        self.decision = decision
        logger.info("node version: %s", decision.runtime_version)
        logger.info("package manager: %s", decision.package_manager.describe())

        await self._provisioning.switch(self._provision_and_supervise(decision))

    async def _provision_and_supervise(self, decision: VersionDecision) -> None:
        try:
            paths = await self.store.ensure(decision)
        except ProvisionFailedError as e:
            self._report(
                ErrorKind.PROVISION_FAILED,
                f"node version or package manager cannot be installed ({e})",
            )
            # Let the next package.json save retry, even if versions are unchanged
            if self.decision == decision:
                self.decision = None
            return
        self.paths = paths

        sessions = TaskSlot("rundev-session")
        lockfile = self.project_root / paths.package_manager.lockfile
        first = True
        try:
            async for content in self._watch(lockfile):
                if first:
                    first = False
                elif content is None:
                    self._report(
                        ErrorKind.LOCKFILE_UNREADABLE,
                        f"{lockfile.name} in project root was removed or cannot be read",
                    )
                    continue
                else:
                    logger.info("[lockfile changed]")
                await sessions.switch(self._supervise(paths))
        finally:
            await sessions.cancel()

    async def _supervise(self, paths: ProvisionedPaths) -> None:
        spec = paths.package_manager
        session = self.supervisor.session(
            paths.runtime_executable,
            paths.package_manager_executable,
            spec.install_args,
            [*spec.run_args, self.dev_script],
            cwd=self.project_root,
            env=child_env(paths.runtime_bin_dir),
        )
        self.session = session
        logger.info("installing dependencies and running the dev server")
        try:
            await self.supervisor.run(session)
        except ProcessSpawnError as e:
            self._report(ErrorKind.PROCESS_SPAWN_FAILED, str(e))
        except InstallFailedError as e:
            self._report(ErrorKind.INSTALL_NONZERO_EXIT, f"{e}; dev server not started")


def create_orchestrator(
    project_root: Path,
    config: RundevConfig,
    home: Path | None = None,
) -> DevOrchestrator:
    """Wire the default store, provisioner, supervisor and watcher."""
    home = home or get_rundev_home()
    store = ProvisioningStore(
        home,
        load_registry(get_registry_path(home)),
        HttpArchiveProvisioner(timeout=config.download_timeout),
        node_mirror=config.node_mirror,
        npm_registry=config.npm_registry,
    )
    supervisor = ProcessSupervisor(wait_for_exit=config.wait_for_exit)
    return DevOrchestrator(
        project_root,
        store,
        supervisor,
        dev_script=config.dev_script,
        watch=functools.partial(watch_file, debounce_ms=config.watch_debounce_ms),
    )


__all__ = ["TaskSlot", "DevOrchestrator", "create_orchestrator"]
