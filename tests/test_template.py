"""Tests for the note template engine."""
import logging

import pytest
import yaml

from bibliography_manager.config import DEFAULT_SOURCE_NOTE_TEMPLATE, Settings
from bibliography_manager.models import SourceData
from bibliography_manager.template import (
    build_template_data,
    format_yaml_array,
    load_template,
    render_fallback_note,
    render_source_note,
    render_template,
)
from bibliography_manager.vault import parse_frontmatter


@pytest.fixture
def source() -> SourceData:
    return SourceData(
        citekey="SmDo23",
        title="Testing: a practical guide",
        author=["Smith, John", "Doe, Jane"],
        category=["paper"],
        bibtype="article-journal",
        year="2023",
        abstract='It says "hello": twice.',
        journal="Journal of Testing",
        keywords=["testing", "python"],
        aliases=["@SmDo23"],
        pages=123,
    )


class TestRenderTemplate:
    def test_simple_replacement(self):
        assert render_template("Hello {{name}}!", {"name": "World"}) == "Hello World!"

    def test_whitespace_in_placeholder(self):
        assert render_template("{{ name }}", {"name": "x"}) == "x"

    def test_nested_path(self):
        data = {"issued": {"year": 2020}}
        assert render_template("{{issued.year}}", data) == "2020"

    def test_missing_and_none_become_empty(self):
        assert render_template("[{{missing}}][{{none}}]", {"none": None}) == "[][]"

    def test_missing_nested_path(self):
        assert render_template("{{a.b.c}}", {"a": {"b": "text"}}) == ""

    def test_numbers_and_lists(self):
        assert render_template("{{n}} {{l}}", {"n": 3, "l": ["a", "b"]}) == "3 a, b"


class TestFormatYamlArray:
    def test_empty(self):
        assert format_yaml_array([]) == "[]"
        assert format_yaml_array(None) == "[]"

    def test_strings_are_quoted_and_escaped(self):
        assert format_yaml_array(['Smith, John', 'say "hi"']) == '["Smith, John", "say \\"hi\\""]'

    def test_scalars_stay_bare(self):
        assert format_yaml_array([1, 2.5, True]) == "[1, 2.5, true]"

    def test_result_is_valid_yaml(self):
        values = ["Smith, John", 'a "quoted" word', "colon: here"]
        assert yaml.safe_load(format_yaml_array(values)) == values


class TestBuildTemplateData:
    def test_helper_fields(self, source):
        data = build_template_data(source)
        assert data["authorList"] == "Smith, John, Doe, Jane"
        assert data["atcitekey"] == "@SmDo23"
        assert data["authorArray"] == '["Smith, John", "Doe, Jane"]'
        assert data["titleYaml"] == '"Testing: a practical guide"'
        assert data["filename"] == "Testing  a practical guide"
        assert data["pages"] == "123"

    def test_empty_array_fields(self):
        data = build_template_data(SourceData(citekey="X20", title="T", author=None, keywords=None))
        assert data["author"] == []
        assert data["authorArray"] == "[]"
        assert data["keywordsArray"] == "[]"
        assert data["doi"] == ""

    def test_accepts_mapping(self):
        data = build_template_data({"citekey": "A1", "title": "T", "tags": ["x"]})
        assert data["tagsArray"] == '["x"]'


class TestRenderSourceNote:
    def test_default_template_produces_valid_frontmatter(self, source):
        content = render_source_note(source, DEFAULT_SOURCE_NOTE_TEMPLATE, filename="Testing")
        frontmatter = parse_frontmatter(content)
        assert frontmatter is not None
        assert frontmatter["citekey"] == "SmDo23"
        assert frontmatter["title"] == "Testing: a practical guide"
        assert frontmatter["author"] == ["Smith, John", "Doe, Jane"]
        assert frontmatter["aliases"] == ["@SmDo23"]
        assert frontmatter["abstract"] == 'It says "hello": twice.'
        assert frontmatter["filename"] == "Testing"
        assert "[Testing.pdf](./Testing.pdf)" in content

    def test_without_template_uses_fallback(self, source):
        content = render_source_note(source, None)
        assert content == render_fallback_note(source)

    def test_fallback_note(self, source):
        content = render_fallback_note(source)
        frontmatter = parse_frontmatter(content)
        assert frontmatter["citekey"] == "SmDo23"
        assert frontmatter["keywords"] == ["testing", "python"]
        assert "doi" not in frontmatter
        assert "# Summary" in content
        assert "# Notes" in content


class TestLoadTemplate:
    def test_no_template_file_uses_default(self, vault):
        settings = Settings(source_note_template="custom")
        assert load_template(settings, vault) == DEFAULT_SOURCE_NOTE_TEMPLATE

    def test_template_file_from_vault(self, vault):
        vault.write("templates/source.md", "---\ncitekey: {{citekey}}\n---\n")
        settings = Settings(template_file="templates/source.md")
        assert load_template(settings, vault) == "---\ncitekey: {{citekey}}\n---\n"
        assert settings.source_note_template.startswith("---\ncitekey")

    def test_missing_template_file_warns(self, vault, caplog):
        settings = Settings(template_file="missing.md")
        with caplog.at_level(logging.WARNING):
            assert load_template(settings, vault) == DEFAULT_SOURCE_NOTE_TEMPLATE
        assert "Template file not found: missing.md" in caplog.text
