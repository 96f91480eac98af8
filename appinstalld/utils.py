"""File-system helpers and process utilities used throughout the daemon."""

from __future__ import annotations

import errno
import os
import shutil
import signal
import stat
from collections import defaultdict
from collections.abc import Iterator
from pathlib import Path

PWA_SCHEME = "pwa://"

_PROC = Path("/proc")


def read_file(path: str | os.PathLike[str]) -> str:
    """Return the whole content of ``path``, or an empty string if it cannot be read."""
    try:
        return Path(path).read_text()
    except (OSError, UnicodeDecodeError):
        return ""


def make_dir(path: str | os.PathLike[str], with_parent: bool = True) -> None:
    """Create a directory with mode 0755.

    With ``with_parent`` all missing parents are created as well. An existing
    path is accepted when creating a single level.
    """
    if with_parent:
        os.makedirs(path, mode=0o755, exist_ok=True)
        return
    try:
        os.mkdir(path, mode=0o755)
    except FileExistsError:
        pass


def remove_dir(path: str | os.PathLike[str]) -> None:
    """Remove a directory tree without following symbolic links inside it.

    Raises ``NotADirectoryError`` if ``path`` itself is not a real directory.
    """
    info = os.lstat(path)
    if not stat.S_ISDIR(info.st_mode):
        raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), os.fspath(path))
    shutil.rmtree(path)


def remove_file(path: str | os.PathLike[str]) -> None:
    """Unlink a single file."""
    os.unlink(path)


def file_size(path: str | os.PathLike[str]) -> int:
    """Return the size in bytes of the file at ``path``."""
    return os.stat(path).st_size


def is_pwa(path: str) -> bool:
    """Whether ``path`` refers to a progressive web app location."""
    return path.startswith(PWA_SCHEME)


def get_pwa_path(path: str) -> str:
    """Return the part of a PWA location that follows the scheme."""
    return path[len(PWA_SCHEME):]


def dir_size(path: str | os.PathLike[str]) -> int:
    """Sum the sizes of the entries directly inside ``path``.

    Returns 0 when the directory cannot be opened; entries that cannot be
    examined are skipped.
    """
    total = 0
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    total += entry.stat().st_size
                except OSError:
                    continue
    except OSError:
        return 0
    return total


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Whether anything (file or directory) exists at ``path``."""
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def _children_by_parent() -> dict[int, list[int]]:
    children: dict[int, list[int]] = defaultdict(list)
    if not _PROC.is_dir():
        return children
    for entry in _PROC.iterdir():
        if not entry.name.isdigit():
            continue
        try:
            stat_line = (entry / "stat").read_text()
        except OSError:
            continue
        fields = stat_line.rpartition(")")[2].split()
        if len(fields) < 2:
            continue
        children[int(fields[1])].append(int(entry.name))
    return children


def _process_tree(pid: int) -> Iterator[int]:
    children = _children_by_parent()

    def walk(current: int) -> Iterator[int]:
        yield current
        for child in sorted(children.get(current, ())):
            yield from walk(child)

    return walk(pid)


def kill_process(pid: int, recursive: bool = True) -> list[int]:
    """Send SIGTERM to ``pid`` and, if ``recursive``, to all its descendants.

    Returns the pids that were signalled, the given one first. Raises
    ``ProcessLookupError`` if ``pid`` does not exist.
    """
    targets = list(_process_tree(pid)) if recursive else [pid]
    signalled: list[int] = []
    for target in targets:
        try:
            os.kill(target, signal.SIGTERM)
        except ProcessLookupError:
            if target == pid:
                raise
            continue
        signalled.append(target)
    return signalled