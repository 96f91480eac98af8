"""The device's user-interface locale and its components."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any

from .jutil import JsonError, SchemaLoader

_SUBTAG_SEPARATOR = re.compile(r"[-_]")
_SUFFIX_SEPARATOR = re.compile(r"[@.]")


@dataclass(frozen=True)
class Locales:
    """A UI locale name split into language, script and region."""

    ui: str = ""
    language: str = ""
    script: str = ""
    region: str = ""

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> Locales:
        """Read ``localeInfo.locales.UI`` from a locale settings file.

        Any missing piece yields empty fields.
        """
        try:
            info = SchemaLoader().parse_file(path)
        except JsonError:
            return cls()

        ui = _lookup(info, "localeInfo", "locales", "UI")
        if not isinstance(ui, str) or not ui:
            return cls()
        return parse_locale(ui)


def _lookup(value: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def parse_locale(name: str) -> Locales:
    """Split a locale name such as ``zh-Hans-CN`` or ``en_US`` into parts."""
    base = _SUFFIX_SEPARATOR.split(name, maxsplit=1)[0]
    parts = _SUBTAG_SEPARATOR.split(base)

    language = ""
    script = ""
    region = ""

    first = parts[0]
    if first.isascii() and first.isalpha() and 2 <= len(first) <= 8:
        language = first.lower()
    rest = parts[1:]

    if rest and len(rest[0]) == 4 and rest[0].isascii() and rest[0].isalpha():
        script = rest[0].title()
        rest = rest[1:]

    if rest:
        candidate = rest[0]
        if len(candidate) == 2 and candidate.isascii() and candidate.isalpha():
            region = candidate.upper()
        elif len(candidate) == 3 and candidate.isascii() and candidate.isdigit():
            region = candidate

    return Locales(ui=name, language=language, script=script, region=region)