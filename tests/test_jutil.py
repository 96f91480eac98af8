import json

import pytest

from appinstalld.jutil import JsonError, JsonErrorCode, SchemaLoader, to_simple_string

SCHEMA = {
    "type": "object",
    "properties": {"id": {"type": "string"}},
    "required": ["id"],
}


@pytest.fixture
def schema_dir(tmp_path):
    directory = tmp_path / "schemas"
    directory.mkdir()
    (directory / "app.schema").write_text(json.dumps(SCHEMA))
    return directory


def test_to_simple_string_is_compact():
    assert to_simple_string({"a": [1, 2]}) == '{"a":[1,2]}'


def test_to_simple_string_round_trip():
    value = {"id": "com.example.app", "list": [1, "two", None, True], "nested": {"x": 1.5}}
    text = to_simple_string(value)
    assert json.loads(text) == value
    assert " " not in text.replace("com.example.app", "")


def test_error_default_details():
    assert JsonError(JsonErrorCode.NONE).detail == "Success"
    assert JsonError(JsonErrorCode.FILE_IO).detail == "Fail to read file"
    assert JsonError(JsonErrorCode.SCHEMA).detail == "Fail to read schema"
    assert JsonError(JsonErrorCode.PARSE).detail == "Fail to parse json"


def test_error_custom_detail():
    error = JsonError(JsonErrorCode.PARSE, "bad token")
    assert error.detail == "bad token"
    assert str(error) == "bad token"


def test_empty_schema_name_is_permissive():
    assert SchemaLoader().load("") == {}


def test_parse_without_schema():
    assert SchemaLoader().parse('{"a": [1, 2]}') == {"a": [1, 2]}


def test_parse_invalid_json_raises_parse_error():
    with pytest.raises(JsonError) as info:
        SchemaLoader().parse("{not json")
    assert info.value.code is JsonErrorCode.PARSE


def test_parse_file_missing(tmp_path):
    with pytest.raises(JsonError) as info:
        SchemaLoader().parse_file(tmp_path / "missing.json")
    assert info.value.code is JsonErrorCode.FILE_IO
    assert info.value.detail == "Fail to read file"


def test_parse_file_empty(tmp_path):
    path = tmp_path / "empty.json"
    path.write_text("")
    with pytest.raises(JsonError) as info:
        SchemaLoader().parse_file(path)
    assert info.value.code is JsonErrorCode.FILE_IO


def test_parse_file_round_trip(tmp_path):
    value = {"id": "app", "version": "2.0.0"}
    path = tmp_path / "data.json"
    path.write_text(to_simple_string(value))
    assert SchemaLoader().parse_file(path) == value


def test_load_schema_from_directory(schema_dir):
    assert SchemaLoader(schema_dir).load("app") == SCHEMA


def test_parse_validates_against_schema(schema_dir):
    loader = SchemaLoader(schema_dir)
    assert loader.parse('{"id": "x"}', "app") == {"id": "x"}
    with pytest.raises(JsonError) as info:
        loader.parse('{"other": 1}', "app")
    assert info.value.code is JsonErrorCode.PARSE


def test_missing_schema_raises_schema_error(schema_dir):
    with pytest.raises(JsonError) as info:
        SchemaLoader(schema_dir).parse("{}", "absent")
    assert info.value.code is JsonErrorCode.SCHEMA
    assert info.value.detail == "Fail to read schema"


def test_named_schema_without_directory():
    with pytest.raises(JsonError) as info:
        SchemaLoader().load("app")
    assert info.value.code is JsonErrorCode.SCHEMA


def test_malformed_schema_file(schema_dir):
    (schema_dir / "broken.schema").write_text("{oops")
    with pytest.raises(JsonError) as info:
        SchemaLoader(schema_dir).load("broken")
    assert info.value.code is JsonErrorCode.SCHEMA


def test_invalid_schema_content(schema_dir):
    (schema_dir / "wrong.schema").write_text(json.dumps({"type": 5}))
    with pytest.raises(JsonError) as info:
        SchemaLoader(schema_dir).load("wrong")
    assert info.value.code is JsonErrorCode.SCHEMA


def test_cache_keeps_first_load(schema_dir):
    loader = SchemaLoader(schema_dir)
    first = loader.load("app", cache=True)
    replacement = {"type": "array"}
    (schema_dir / "app.schema").write_text(json.dumps(replacement))
    assert loader.load("app", cache=True) == first
    assert loader.load("app", cache=False) == replacement


def test_uncached_load_is_not_remembered(schema_dir):
    loader = SchemaLoader(schema_dir)
    loader.load("app", cache=False)
    replacement = {"type": "array"}
    (schema_dir / "app.schema").write_text(json.dumps(replacement))
    assert loader.load("app", cache=True) == replacement