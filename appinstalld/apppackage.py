"""Unpacking ``.ipk`` packages and reading their control files."""

from __future__ import annotations

import logging
import os
import tarfile
from dataclasses import dataclass
from enum import IntFlag
from pathlib import Path
from typing import BinaryIO

from .utils import remove_file

log = logging.getLogger(__name__)

_AR_MAGIC = b"!<arch>\n"
_AR_HEADER_SIZE = 60
_AR_HEADER_END = b"`\n"
_CHUNK = 64 * 1024

_TAR_OPTIONS = {"filter": "tar"} if hasattr(tarfile, "tar_filter") else {}


class PackageError(Exception):
    """Raised when a package cannot be unpacked."""


class ExtractItem(IntFlag):
    """Members of an ``.ipk`` archive that can be extracted."""

    CONTROL = 0x01
    DATA = 0x02
    DEBIAN = 0x04

    @property
    def filename(self) -> str:
        """The archive member name of this item."""
        return _FILENAMES[self]


_FILENAMES = {
    ExtractItem.CONTROL: "control.tar.gz",
    ExtractItem.DATA: "data.tar.gz",
    ExtractItem.DEBIAN: "debian-binary",
}

_ORDER = (ExtractItem.CONTROL, ExtractItem.DATA, ExtractItem.DEBIAN)
_TARBALLS = (ExtractItem.CONTROL, ExtractItem.DATA)


@dataclass
class Control:
    """Fields of a package control file."""

    package: str = ""
    version: str = ""
    architecture: str = ""
    installed_size: int = 0


def _member_name(raw: bytes, archive: BinaryIO) -> tuple[str, int]:
    """Decode a member name; return it with the number of name bytes read from the data."""
    name = raw.decode("ascii", "replace").rstrip()
    if name.startswith("#1/"):
        try:
            length = int(name[3:])
        except ValueError as exc:
            raise PackageError(f"corrupt archive member name: {name!r}") from exc
        return archive.read(length).decode("utf-8", "replace").rstrip("\0"), length
    if name.endswith("/") and name not in ("/", "//"):
        name = name[:-1]
    return name, 0


def _copy_exact(source: BinaryIO, destination: Path, size: int) -> None:
    with destination.open("wb") as out:
        remaining = size
        while remaining:
            chunk = source.read(min(_CHUNK, remaining))
            if not chunk:
                raise PackageError("truncated archive")
            out.write(chunk)
            remaining -= len(chunk)


def _extract_ar_members(archive_path: str, names: set[str], destination: Path) -> None:
    found: set[str] = set()
    try:
        with open(archive_path, "rb") as archive:
            if archive.read(len(_AR_MAGIC)) != _AR_MAGIC:
                raise PackageError(f"{archive_path} is not an ar archive")
            while True:
                header = archive.read(_AR_HEADER_SIZE)
                if not header:
                    break
                if len(header) != _AR_HEADER_SIZE or header[58:60] != _AR_HEADER_END:
                    raise PackageError("corrupt archive header")
                try:
                    total = int(header[48:58].decode("ascii").strip())
                except ValueError as exc:
                    raise PackageError("corrupt archive member size") from exc

                name, name_length = _member_name(header[:16], archive)
                size = total - name_length
                if size < 0:
                    raise PackageError("corrupt archive member size")

                if name in names and name not in found:
                    _copy_exact(archive, destination / name, size)
                    found.add(name)
                else:
                    archive.seek(size, os.SEEK_CUR)
                if total % 2:
                    archive.read(1)
    except OSError as exc:
        raise PackageError(f"failed to read {archive_path}: {exc}") from exc

    missing = names - found
    if missing:
        raise PackageError(f"no entry {', '.join(sorted(missing))} in archive")


class AppPackage:
    """Extracts the members of an ``.ipk`` file and unpacks its tarballs."""

    def __init__(self) -> None:
        self.target_file = ""
        self.target_path = ""
        self.canceled = False

    def extract(
        self,
        target_file: str | os.PathLike[str],
        target_items: ExtractItem,
        target_path: str | os.PathLike[str],
    ) -> None:
        """Extract ``target_items`` of ``target_file`` into ``target_path``.

        The control and data tarballs are unpacked there as well. Raises
        :class:`PackageError` on failure or if :meth:`cancel` was called
        meanwhile.
        """
        self.target_file = os.fspath(target_file)
        self.target_path = os.fspath(target_path)
        self.canceled = False

        items = [item for item in _ORDER if item in target_items]
        destination = Path(self.target_path)
        for item in items:
            try:
                remove_file(destination / item.filename)
            except OSError:
                pass

        try:
            _extract_ar_members(self.target_file, {item.filename for item in items}, destination)
        except PackageError as exc:
            log.error("Failed to unpack file %s: %s", self.target_file, exc)
            raise
        self._check_canceled()

        for item in items:
            if item not in _TARBALLS:
                continue
            tarball = destination / item.filename
            try:
                with tarfile.open(tarball, "r:gz") as tar:
                    tar.extractall(destination, **_TAR_OPTIONS)
            except (tarfile.TarError, OSError) as exc:
                log.error("Failed to unzip file %s: %s", tarball, exc)
                raise PackageError(f"failed to unpack {item.filename}: {exc}") from exc
            self._check_canceled()

    def _check_canceled(self) -> None:
        if self.canceled:
            raise PackageError("extraction canceled")

    def cancel(self) -> None:
        """Ask a running extraction to stop after its current step."""
        self.canceled = True


def parse_control(path: str | os.PathLike[str]) -> Control:
    """Read the ``Package``, ``Version``, ``Architecture`` and ``Installed-Size`` fields.

    Raises ``OSError`` if the file cannot be read and ``ValueError`` if
    ``Installed-Size`` is not a non-negative integer.
    """
    control = Control()
    with open(path, encoding="utf-8", errors="replace") as file:
        for line in file:
            line = line.rstrip("\n")
            field, separator, value = line.partition(":")
            if not separator or not value:
                continue
            value = value.strip()
            if field == "Package":
                control.package = value
            elif field == "Version":
                control.version = value
            elif field == "Architecture":
                control.architecture = value
            elif field == "Installed-Size":
                if not (value.isascii() and value.isdigit()):
                    raise ValueError(f"invalid Installed-Size: {value!r}")
                control.installed_size = int(value)
    return control


def save_installed_size(path: str | os.PathLike[str], size: int) -> None:
    """Append an ``Installed-Size`` line to the control file at ``path``."""
    with open(path, "a", encoding="utf-8") as file:
        file.write(f"Installed-Size: {size}\n")