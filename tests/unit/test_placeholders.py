"""Unit tests for json_data placeholder substitution."""

import json

import pytest

from packscript.placeholders import PlaceholderResolver, parse_accessor, stringify


@pytest.fixture
def document(sdmc):
    doc = {
        "a": {"b": "5"},
        "release": {"tag": "v1.2.0", "size": 1024, "stable": True, "notes": None},
        "assets": [{"name": "theme.zip"}, {"name": "extra.zip"}],
    }
    (sdmc / "info.json").write_text(json.dumps(doc))
    return "sdmc:/info.json"


@pytest.fixture
def resolver(volumes):
    return PlaceholderResolver.for_volumes(volumes)


class TestResolve:
    def test_nested_key(self, resolver, document):
        assert resolver.resolve("prefix-{json_data(a.b)}-suffix", document) == "prefix-5-suffix"

    def test_no_marker_unchanged(self, resolver, document):
        assert resolver.resolve("sdmc:/switch/x", document) == "sdmc:/switch/x"

    def test_array_index(self, resolver, document):
        assert resolver.resolve("{json_data(assets.1.name)}", document) == "extra.zip"

    def test_comma_separated_accessor(self, resolver, document):
        assert resolver.resolve("{json_data(assets,0,name)}", document) == "theme.zip"

    def test_multiple_placeholders(self, resolver, document):
        arg = "sdmc:/{json_data(release.tag)}/{json_data(assets.0.name)}"
        assert resolver.resolve(arg, document) == "sdmc:/v1.2.0/theme.zip"

    def test_scalar_forms(self, resolver, document):
        assert resolver.resolve("{json_data(release.size)}", document) == "1024"
        assert resolver.resolve("{json_data(release.stable)}", document) == "true"
        assert resolver.resolve("{json_data(release.notes)}", document) == "null"

    def test_missing_key_left_literal(self, resolver, document):
        arg = "x-{json_data(release.missing)}"
        assert resolver.resolve(arg, document) == arg

    def test_bad_index_left_literal(self, resolver, document):
        arg = "{json_data(assets.9.name)}"
        assert resolver.resolve(arg, document) == arg

    def test_missing_document_left_literal(self, resolver):
        arg = "{json_data(a.b)}"
        assert resolver.resolve(arg, "sdmc:/nope.json") == arg

    def test_invalid_json_left_literal(self, resolver, sdmc):
        (sdmc / "bad.json").write_text("{not json")
        arg = "{json_data(a)}"
        assert resolver.resolve(arg, "sdmc:/bad.json") == arg

    def test_document_loaded_only_with_marker(self):
        calls = []

        def load(path):
            calls.append(path)
            return {"k": "v"}

        resolver = PlaceholderResolver(load)
        resolver.resolve("plain", "doc.json")
        assert calls == []
        assert resolver.resolve("{json_data(k)}", "doc.json") == "v"
        assert calls == ["doc.json"]


class TestHelpers:
    def test_parse_accessor(self):
        assert parse_accessor(" a . b ,c ") == ["a", "b", "c"]

    def test_stringify_containers(self):
        assert stringify({"x": [1, 2]}) == '{"x":[1,2]}'
