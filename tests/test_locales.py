import json

import pytest

from appinstalld.locales import Locales, parse_locale


def _write_locale_file(path, ui):
    path.write_text(json.dumps({"localeInfo": {"locales": {"UI": ui}}}))
    return path


def test_parse_language_and_region():
    locale = parse_locale("en-US")
    assert (locale.language, locale.script, locale.region) == ("en", "", "US")
    assert locale.ui == "en-US"


def test_parse_with_script():
    locale = parse_locale("zh-Hans-CN")
    assert (locale.language, locale.script, locale.region) == ("zh", "Hans", "CN")


def test_parse_underscore_separator():
    locale = parse_locale("ko_KR")
    assert (locale.language, locale.region) == ("ko", "KR")


def test_parse_language_only():
    locale = parse_locale("fr")
    assert (locale.language, locale.script, locale.region) == ("fr", "", "")


@pytest.mark.parametrize("name", ["EN-us", "en-US", "en_us"])
def test_parse_normalises_case(name):
    assert parse_locale(name).language == "en"
    assert parse_locale(name).region == "US"


def test_parse_ignores_encoding_suffix():
    locale = parse_locale("de_DE.UTF-8")
    assert (locale.language, locale.region) == ("de", "DE")


def test_from_file(tmp_path):
    locale = Locales.from_file(_write_locale_file(tmp_path / "locale.json", "zh-Hans-CN"))
    assert locale == parse_locale("zh-Hans-CN")
    assert locale.ui == "zh-Hans-CN"


def test_from_missing_file(tmp_path):
    assert Locales.from_file(tmp_path / "missing.json") == Locales()


def test_from_file_without_ui(tmp_path):
    path = tmp_path / "locale.json"
    path.write_text(json.dumps({"localeInfo": {"locales": {}}}))
    locale = Locales.from_file(path)
    assert locale == Locales()
    assert locale.language == ""


def test_from_file_without_locale_info(tmp_path):
    path = tmp_path / "locale.json"
    path.write_text(json.dumps({"other": 1}))
    assert Locales.from_file(path) == Locales()


def test_from_malformed_file(tmp_path):
    path = tmp_path / "locale.json"
    path.write_text("{broken")
    assert Locales.from_file(path) == Locales()