"""JSON parsing with optional schema validation and compact serialisation."""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any

from jsonschema.exceptions import SchemaError, ValidationError
from jsonschema.validators import validator_for

from .utils import read_file

SCHEMA_SUFFIX = ".schema"


class JsonErrorCode(Enum):
    """Kinds of failure when reading JSON data."""

    NONE = 0
    FILE_IO = 1
    SCHEMA = 2
    PARSE = 3

    @property
    def default_detail(self) -> str:
        """The message used when no more specific detail is known."""
        return _DEFAULT_DETAILS[self]


_DEFAULT_DETAILS = {
    JsonErrorCode.NONE: "Success",
    JsonErrorCode.FILE_IO: "Fail to read file",
    JsonErrorCode.SCHEMA: "Fail to read schema",
    JsonErrorCode.PARSE: "Fail to parse json",
}


class JsonError(Exception):
    """Raised when JSON data or its schema cannot be read or validated."""

    def __init__(self, code: JsonErrorCode, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail if detail is not None else code.default_detail
        super().__init__(self.detail)


class SchemaLoader:
    """Loads schemas from a directory and parses JSON against them.

    An empty schema name means the permissive schema ``{}``.
    """

    def __init__(self, schema_dir: str | os.PathLike[str] | None = None) -> None:
        self.schema_dir = Path(schema_dir) if schema_dir is not None else None
        self._cache: dict[str, Any] = {}

    def load(self, schema_name: str = "", cache: bool = True) -> Any:
        """Return the schema called ``schema_name``.

        With ``cache`` a previously loaded schema is reused and a newly loaded
        one is remembered. Raises :class:`JsonError` with ``SCHEMA`` if the
        schema cannot be read or is not a valid schema.
        """
        if not schema_name:
            return {}

        if cache and schema_name in self._cache:
            return self._cache[schema_name]

        if self.schema_dir is None:
            raise JsonError(JsonErrorCode.SCHEMA)

        raw = read_file(self.schema_dir / f"{schema_name}{SCHEMA_SUFFIX}")
        try:
            schema = json.loads(raw)
        except ValueError as exc:
            raise JsonError(JsonErrorCode.SCHEMA) from exc
        if not isinstance(schema, (dict, bool)):
            raise JsonError(JsonErrorCode.SCHEMA)
        try:
            validator_for(schema).check_schema(schema)
        except SchemaError as exc:
            raise JsonError(JsonErrorCode.SCHEMA) from exc

        if cache:
            self._cache[schema_name] = schema
        return schema

    def parse(self, raw: str | bytes, schema_name: str = "") -> Any:
        """Parse ``raw`` JSON text and validate it against ``schema_name``.

        Raises :class:`JsonError` with ``SCHEMA`` or ``PARSE``.
        """
        schema = self.load(schema_name, cache=True)
        try:
            value = json.loads(raw)
        except ValueError as exc:
            raise JsonError(JsonErrorCode.PARSE, str(exc)) from exc

        if schema != {}:
            validator = validator_for(schema)(schema)
            try:
                validator.validate(value)
            except ValidationError as exc:
                raise JsonError(JsonErrorCode.PARSE, exc.message) from exc
        return value

    def parse_file(self, path: str | os.PathLike[str], schema_name: str = "") -> Any:
        """Read the file at ``path`` and parse it like :meth:`parse`.

        A missing, unreadable or empty file raises :class:`JsonError` with
        ``FILE_IO``.
        """
        raw = read_file(path)
        if not raw:
            raise JsonError(JsonErrorCode.FILE_IO)
        return self.parse(raw, schema_name)


def to_simple_string(value: Any) -> str:
    """Serialise ``value`` as compact JSON text."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)