"""Driving the external application installer tool as a child process."""

from __future__ import annotations

import logging
import os
import subprocess
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .mainloop import MainLoop
from .utils import kill_process, make_dir, remove_file

log = logging.getLogger(__name__)

ProgressHandler = Callable[[str], Any]
CompleteHandler = Callable[[int], Any]

_PROGRESS_PREFIXES = ("status:", " * ")


@dataclass
class InstallerConfig:
    """Paths and switches the installer tool is run with."""

    opkg_conf_path: str
    opkg_lock_file_path: str
    internal_install_path: str
    developer_install_path: str
    dev_mode: bool = False
    sbin_dir: str = "/usr/sbin"
    bin_dir: str = "/usr/bin"

    def install_path(self, verify: bool) -> str:
        """The install location for verified or developer packages."""
        return self.internal_install_path if verify else self.developer_install_path

    @property
    def launcher(self) -> str:
        return f"{self.sbin_dir}/setcpushares-task"

    @property
    def installer(self) -> str:
        return f"{self.bin_dir}/ApplicationInstallerUtility"


class InstallResult(Enum):
    """Outcome of starting an install or remove command."""

    SUCCESS = 0
    FAIL = 1
    LOCKED = 2


def opkg_lock_dir(install_base_path: str, lock_file_path: str) -> str:
    """The directory that must exist before the package manager can lock."""
    path = install_base_path + lock_file_path
    position = path.rfind("opkg")
    return path if position < 0 else path[:position]


class AppInstallerUtility:
    """Runs one install or remove command at a time and reports its progress.

    Only one command may run in the whole process; a second one is refused
    with :attr:`InstallResult.LOCKED` until the first completes. Callbacks
    run on ``loop`` if given, otherwise on a watcher thread.
    """

    _locked = False

    def __init__(self, config: InstallerConfig, loop: MainLoop | None = None) -> None:
        self.config = config
        self._loop = loop
        self._process: subprocess.Popen[str] | None = None
        self._on_progress: ProgressHandler | None = None

    @property
    def pid(self) -> int | None:
        """The pid of the running command, if any."""
        return self._process.pid if self._process is not None else None

    def install(
        self,
        target: str,
        uncompressed_size_kb: int,
        verify: bool,
        allow_downgrade: bool,
        allow_reinstall: bool,
        install_base_path: str,
        on_progress: ProgressHandler | None,
        on_complete: CompleteHandler | None,
    ) -> InstallResult:
        """Start installing the package file ``target``.

        An empty ``install_base_path`` installs into the internal or developer
        location depending on ``verify``.
        """
        self.clear()

        opkg_base_path = install_base_path or self.config.install_path(verify)
        if self.is_locked():
            return InstallResult.LOCKED
        self.restore(opkg_base_path)

        args = [
            self.config.launcher,
            self.config.installer,
            "-c", "install",
            "-p", target,
            "-f", self.config.opkg_conf_path,
            "-u", "0",
        ]
        if install_base_path:
            args += ["-l", install_base_path]
        else:
            args += ["-t", "internal" if verify else "developer"]
        if allow_downgrade:
            args.append("-d")
        if allow_reinstall:
            args.append("-r")

        lock_dir = opkg_lock_dir(install_base_path, self.config.opkg_lock_file_path)
        try:
            make_dir(lock_dir, True)
        except OSError as exc:
            log.error("Failed to create opkg lock directory %s: %s", lock_dir, exc)
            return InstallResult.FAIL

        return self._spawn(args, on_progress, on_complete)

    def remove(
        self,
        app_id: str,
        verify: bool,
        install_base_path: str,
        on_progress: ProgressHandler | None,
        on_complete: CompleteHandler | None,
    ) -> InstallResult:
        """Start removing the application ``app_id``."""
        self.clear()

        if self.is_locked():
            return InstallResult.LOCKED
        self.restore(self.config.install_path(True))
        if self.config.dev_mode:
            self.restore(self.config.install_path(False))
        if install_base_path:
            self.restore(install_base_path)

        args = [
            self.config.launcher,
            self.config.installer,
            "-c", "remove",
            "-p", app_id,
            "-f", self.config.opkg_conf_path,
            "-l", install_base_path,
        ]
        if not verify:
            args += ["-t", "developer"]

        return self._spawn(args, on_progress, on_complete)

    def _spawn(
        self,
        args: list[str],
        on_progress: ProgressHandler | None,
        on_complete: CompleteHandler | None,
    ) -> InstallResult:
        try:
            process = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            log.error("Failed to execute ApplicationInstallerUtility command: %s", exc)
            return InstallResult.FAIL

        self._process = process
        self._on_progress = on_progress
        AppInstallerUtility._locked = True

        watcher = threading.Thread(target=self._watch, args=(process, on_complete), daemon=True)
        watcher.start()
        return InstallResult.SUCCESS

    def _dispatch(self, func: Callable[..., Any], *args: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon(func, *args)
        else:
            func(*args)

    def _watch(self, process: subprocess.Popen[str], on_complete: CompleteHandler | None) -> None:
        if process.stdout is not None:
            with process.stdout as output:
                for line in output:
                    log.debug("Got status message from child: %s", line)
                    if line.startswith(_PROGRESS_PREFIXES):
                        self._dispatch(self._report_progress, process, line.rstrip("\n"))
        returncode = process.wait()
        log.debug("child pid %d done with status %d", process.pid, returncode)
        self._dispatch(self._complete, on_complete, returncode)

    def _report_progress(self, process: subprocess.Popen[str], line: str) -> None:
        handler = self._on_progress
        if self._process is process and handler is not None:
            handler(line)

    @staticmethod
    def _complete(on_complete: CompleteHandler | None, returncode: int) -> None:
        AppInstallerUtility._locked = False
        if on_complete is not None:
            on_complete(returncode)

    def cancel(self) -> bool:
        """Terminate the running command and its children.

        Returns False if no command is running. The completion callback still
        runs once the process has ended.
        """
        process = self._process
        if process is None:
            return False

        log.debug("kill: %d", process.pid)
        try:
            kill_process(process.pid)
        except ProcessLookupError:
            pass

        self._on_progress = None
        self.clear()
        return True

    def clear(self) -> None:
        """Stop tracking the current command; its output is no longer reported."""
        self._process = None

    def is_locked(self) -> bool:
        """Whether a command is running anywhere in the process."""
        return AppInstallerUtility._locked

    def restore(self, install_base_path: str) -> None:
        """Remove a lock file left behind under ``install_base_path``."""
        if not install_base_path:
            return
        try:
            remove_file(install_base_path + self.config.opkg_lock_file_path)
        except OSError:
            pass