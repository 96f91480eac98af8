"""Reading an application's ``appinfo.json`` and its localised variants."""

from __future__ import annotations

import os
from typing import Any

from .jutil import JsonError, SchemaLoader
from .locales import Locales

APPINFO_FILE = "appinfo.json"
DEFAULT_VERSION = "1.0.0"
_KEY_APPBASE = "_app_base"

_loader = SchemaLoader()


def _read_object(path: str) -> dict[str, Any] | None:
    try:
        data = _loader.parse_file(path)
    except JsonError:
        return None
    return data if isinstance(data, dict) else None


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


class AppInfo:
    """The parsed ``appinfo.json`` of an application directory."""

    def __init__(self, app_path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(app_path)
        self._info = _read_object(f"{self.path}/{APPINFO_FILE}")
        self._localized: list[dict[str, Any]] = []

    @property
    def loaded(self) -> bool:
        """Whether ``appinfo.json`` could be read."""
        return self._info is not None

    def _get(self, key: str) -> Any:
        return None if self._info is None else self._info.get(key)

    @property
    def type(self) -> str:
        return _as_str(self._get("type"))

    @property
    def is_web(self) -> bool:
        return self.type == "web"

    @property
    def is_qml(self) -> bool:
        return self.type == "qml"

    @property
    def is_stub(self) -> bool:
        return self.type == "stub"

    @property
    def is_native(self) -> bool:
        return not (self.is_web or self.is_qml or self.is_stub)

    @property
    def is_privileged_jail(self) -> bool:
        return self._get("privilegedJail") is True

    @property
    def id(self) -> str:
        return _as_str(self._get("id"))

    @property
    def version(self) -> str:
        if self._info is None or "version" not in self._info:
            return DEFAULT_VERSION
        return _as_str(self._info["version"])

    @property
    def title(self) -> str:
        """The title, preferring the most specific localised one."""
        for localized in self._localized:
            if "title" in localized:
                return _as_str(localized["title"])
        return _as_str(self._get("title"))

    @property
    def install_config(self) -> Any:
        if self._info is None or "installConfig" not in self._info:
            return {}
        return self._info["installConfig"]

    @property
    def required_permissions(self) -> Any:
        return self._get("requiredPermissions")

    def main(self, full_path: bool = False) -> str:
        """The ``main`` entry, joined to the app path if ``full_path``."""
        entry = _as_str(self._get("main"))
        return f"{self.path}/{entry}" if full_path else entry

    def icon(self, full_path: bool = False) -> str:
        """The icon, preferring the most specific localised one.

        With ``full_path`` a localised icon is joined to the directory of the
        localised ``appinfo.json`` that names it.
        """
        for localized in self._localized:
            if "icon" in localized:
                entry = _as_str(localized["icon"])
                return f"{localized[_KEY_APPBASE]}/{entry}" if full_path else entry

        entry = _as_str(self._get("icon"))
        return f"{self.path}/{entry}" if full_path else entry

    def load_localization(self, locales: Locales) -> None:
        """Load localised ``appinfo.json`` files for ``locales``.

        Lookups prefer language/script/region, then language/region, then
        language.
        """
        language_path = f"{self.path}/resources/{locales.language}"
        region_path = f"{language_path}/{locales.region}"
        script_path = f"{language_path}/{locales.script}/{locales.region}"

        self._localized = []
        for base in (script_path, region_path, language_path):
            data = _read_object(f"{base}/{APPINFO_FILE}")
            if data is None:
                continue
            data[_KEY_APPBASE] = base
            self._localized.append(data)