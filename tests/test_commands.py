"""Tests for the command classes."""
from unittest.mock import MagicMock

import pytest

from bibliography_manager.commands import (
    BibliographyContext,
    ExportNoteBibliographyCommand,
    GenerateBibliographyFileCommand,
    GenerateCitekeyCommand,
    ImportSourceCommand,
    InitSourcesFolderCommand,
    SetConfigCommand,
    ShowConfigCommand,
    ShowSourcesCommand,
)
from bibliography_manager.config import Settings, load_settings
from bibliography_manager.errors import BibliographyError, DuplicateSourceError, SourceImportError
from bibliography_manager.models import SourceData


@pytest.fixture
def context(vault, settings) -> BibliographyContext:
    return BibliographyContext(vault, settings)


class TestGenerateCitekey:
    def test_sets_citekey_and_alias(self, context, vault):
        vault.write("note.md", "---\nauthor:\n  - Smith, John\n  - Doe, Jane\nyear: 2021\n---\n\nBody\n")
        assert GenerateCitekeyCommand(context, "note.md").execute() == "SmDo21"
        frontmatter = vault.read_frontmatter("note.md")
        assert frontmatter["citekey"] == "SmDo21"
        assert frontmatter["aliases"] == ["@SmDo21"]
        assert vault.read("note.md").endswith("\n\nBody\n")

    def test_string_alias_becomes_list(self, context, vault):
        vault.write("note.md", "---\nauthor: Smith, John\nyear: 2021\naliases: Old name\n---\n")
        GenerateCitekeyCommand(context, "note.md").execute()
        assert vault.read_frontmatter("note.md")["aliases"] == ["Old name", "@Smi21"]

    def test_existing_alias_not_repeated(self, context, vault):
        vault.write("note.md", "---\nauthor: ['Smith, John']\nyear: 2021\naliases: ['@Smi21']\n---\n")
        GenerateCitekeyCommand(context, "note.md").execute()
        assert vault.read_frontmatter("note.md")["aliases"] == ["@Smi21"]

    def test_year_defaults_to_current(self, context, vault):
        from datetime import date
        vault.write("note.md", "---\nauthor: [Doe]\n---\n")
        citekey = GenerateCitekeyCommand(context, "note.md").execute()
        assert citekey == "Doe" + str(date.today().year)[-2:]

    def test_no_frontmatter(self, context, vault):
        vault.write("note.md", "# Plain note")
        with pytest.raises(BibliographyError, match="No frontmatter found in this file"):
            GenerateCitekeyCommand(context, "note.md").execute()

    def test_no_authors(self, context, vault):
        vault.write("note.md", "---\ntitle: Something\n---\n")
        with pytest.raises(BibliographyError, match="No authors found in frontmatter"):
            GenerateCitekeyCommand(context, "note.md").execute()

    def test_missing_file(self, context):
        with pytest.raises(BibliographyError, match="File not found"):
            GenerateCitekeyCommand(context, "nope.md").execute()


class TestImportSource:
    @pytest.fixture
    def importer(self):
        importer = MagicMock()
        importer.import_source.return_value = SourceData(
            citekey="Smi23", title="A Paper", author=["Smith, John"], category=["paper"], year="2023")
        return importer

    def test_creates_note(self, context, vault, importer):
        path = ImportSourceCommand(context, "doi", "10.1/x", importer=importer).execute()
        importer.import_source.assert_called_once_with("doi", "10.1/x")
        assert path == "sources/Papers/A Paper.md"
        assert vault.read_frontmatter(path)["citekey"] == "Smi23"

    def test_duplicate_citekey(self, context, vault, importer):
        ImportSourceCommand(context, "doi", "10.1/x", importer=importer).execute()
        with pytest.raises(DuplicateSourceError) as exc_info:
            ImportSourceCommand(context, "doi", "10.1/x", importer=importer).execute()
        assert exc_info.value.path == "sources/Papers/A Paper.md"

    def test_empty_value(self, context, importer):
        with pytest.raises(SourceImportError, match="Please enter a DOI first"):
            ImportSourceCommand(context, "doi", "  ", importer=importer).execute()

    def test_manual(self, context, vault):
        command = ImportSourceCommand(context, "manual", manual_fields={
            "title": "Hand Made", "authors": ["Doe, Jane"], "year": 2020, "journal": None,
        })
        path = command.execute()
        assert vault.read_frontmatter(path)["citekey"] == "Doe20"

    def test_auto_generate_writes_bibliography(self, vault, importer):
        context = BibliographyContext(vault, Settings(auto_generate=True))
        ImportSourceCommand(context, "doi", "10.1/x", importer=importer).execute()
        assert "@article{Smi23," in vault.read("sources/bibliography.bib")


class TestGenerateBibliographyFile:
    def test_output_folder(self, vault, source_writer):
        source_writer(vault, "sources/a.md", "Smi23")
        context = BibliographyContext(vault, Settings(bibliography_output_folder="build",
                                                      bibliography_format="csl-json"))
        assert GenerateBibliographyFileCommand(context).execute() == "build/bibliography.json"
        assert vault.exists("build/bibliography.json")

    def test_no_sources(self, context, vault):
        vault.mkdir("sources")
        with pytest.raises(BibliographyError):
            GenerateBibliographyFileCommand(context).execute()


class TestExportNote:
    def test_exports_next_to_note(self, context, vault, source_writer):
        source_writer(vault, "sources/a.md", "Smi23")
        vault.write("docs/paper.md", "---\ntypst_bib: sources\n---\n")
        assert ExportNoteBibliographyCommand(context, "docs/paper.md").execute() == "docs/bibliography.bib"

    def test_requires_typst_bib(self, context, vault):
        vault.write("docs/paper.md", "---\ntitle: x\n---\n")
        with pytest.raises(BibliographyError, match="No typst_bib entry"):
            ExportNoteBibliographyCommand(context, "docs/paper.md").execute()


class TestShowSources:
    def test_lists_sources(self, context, vault, source_writer):
        source_writer(vault, "sources/a.md", "Smi23")
        assert ShowSourcesCommand(context).execute() == [("Smi23", "sources/a.md")]

    def test_missing_folder(self, context):
        with pytest.raises(BibliographyError, match="Sources folder 'sources' not found"):
            ShowSourcesCommand(context).execute()


class TestInitSourcesFolder:
    def test_creates_folder(self, context, vault):
        assert InitSourcesFolderCommand(context).execute() is True
        assert vault.is_folder("sources")

    def test_failure_is_logged(self, context, vault, caplog):
        vault.write("sources", "file")
        assert InitSourcesFolderCommand(context).execute() is None
        assert "File operation error" in caplog.text


class TestConfigCommands:
    def test_show(self, context):
        assert ShowConfigCommand(context).execute()["sources_folder"] == "sources"

    def test_set_persists(self, context, vault):
        SetConfigCommand(context, "bibliography_format", "hayagriva").execute()
        assert context.settings.bibliography_format == "hayagriva"
        assert load_settings(str(vault.root)).bibliography_format == "hayagriva"
