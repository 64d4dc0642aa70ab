"""
Commands available from the command line.

Each command works on a ``BibliographyContext`` (a vault and its settings)
and returns its result; printing is left to the caller.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from .citekey import CitekeyGenerator
from .config import Settings, save_settings, set_setting
from .errors import BibliographyError, BibliographyExportError, DuplicateSourceError, SourceImportError
from .export_api import BibliographyAPI
from .exporter import BibliographyExporter
from .models import FORMAT_EXTENSION_MAPPING, SourceData
from .source_importer import SourceImporter
from .source_service import SourceService
from .template import load_template
from .utils.error_handling import file_operation_handler
from .vault import Vault, normalize_path, replace_frontmatter

logger = logging.getLogger(__name__)

DUPLICATE_SOURCE_MESSAGE = (
    "Duplicate source detected. A source file with this citekey already exists. "
    "Try importing with a different title or check your sources folder for duplicates."
)


@dataclass
class BibliographyContext:
    vault: Vault
    settings: Settings

    @property
    def source_service(self) -> SourceService:
        return SourceService(self.vault, self.settings)


class Command(ABC):
    def __init__(self, context: BibliographyContext):
        self.context = context

    @abstractmethod
    def execute(self) -> Any:
        pass


class GenerateCitekeyCommand(Command):
    """Generate a citekey for a note from its frontmatter and store it."""

    def __init__(self, context: BibliographyContext, note_path: str):
        super().__init__(context)
        self.note_path = normalize_path(note_path)

    def execute(self) -> str:
        vault = self.context.vault
        if not vault.is_file(self.note_path):
            raise BibliographyError(f"File not found: {self.note_path}")

        content = vault.read(self.note_path)
        frontmatter = vault.read_frontmatter(self.note_path)
        if frontmatter is None:
            raise BibliographyError("No frontmatter found in this file")

        authors = frontmatter.get("author") or []
        if isinstance(authors, str):
            authors = [authors]
        if not authors:
            raise BibliographyError("No authors found in frontmatter. Please add author field first.")

        year = frontmatter.get("year") or date.today().year
        title = frontmatter.get("title") or vault.basename(self.note_path)
        citekey = CitekeyGenerator.generate_citekey([str(a) for a in authors], year, str(title))

        frontmatter["citekey"] = citekey
        alias = f"@{citekey}"
        aliases = frontmatter.get("aliases")
        if not aliases:
            frontmatter["aliases"] = [alias]
        elif isinstance(aliases, list):
            if alias not in aliases:
                aliases.append(alias)
        else:
            frontmatter["aliases"] = [str(aliases), alias]

        vault.write(self.note_path, replace_frontmatter(content, frontmatter))
        logger.info(f"Generated citekey: {citekey}")
        return citekey


class ImportSourceCommand(Command):
    """Import a source by DOI, ISBN, URL, BibTeX or manual entry into a new note."""

    def __init__(self, context: BibliographyContext, method: str, value: Optional[str] = None,
                 importer: Optional[SourceImporter] = None,
                 manual_fields: Optional[Dict[str, Any]] = None):
        super().__init__(context)
        self.method = method
        self.value = value
        self.importer = importer or SourceImporter(context.settings)
        self.manual_fields = manual_fields or {}

    def _find_existing(self, citekey: str) -> Optional[str]:
        service = self.context.source_service
        for path in service.find_all_source_files():
            frontmatter = self.context.vault.read_frontmatter(path) or {}
            if str(frontmatter.get("citekey")) == citekey:
                return path
        return None

    def build_source(self) -> SourceData:
        if self.method == "manual":
            return self.importer.import_manual(
                self.manual_fields.get("title", ""),
                self.manual_fields.get("authors", []),
                self.manual_fields.get("year"),
                self.manual_fields.get("journal"),
            )
        if not self.value or not self.value.strip():
            raise SourceImportError(f"Please enter a {self.method.upper()} first")
        return self.importer.import_source(self.method, self.value)

    def execute(self) -> str:
        settings = self.context.settings
        source = self.build_source()

        existing = self._find_existing(source.citekey)
        if existing:
            raise DuplicateSourceError(existing)

        template = load_template(settings, self.context.vault)
        path = self.context.source_service.create_source_file(source, settings.sources_folder, template)
        if path is None:
            raise SourceImportError(f"Error importing source {source.citekey}")
        logger.info(f"Source imported: {path}")

        if settings.auto_generate:
            try:
                GenerateBibliographyFileCommand(self.context).execute()
            except BibliographyError as e:
                logger.warning(f"Could not regenerate bibliography: {e}")
        return path


class GenerateBibliographyFileCommand(Command):
    """Write the vault's bibliography into the output folder."""

    def execute(self) -> str:
        settings = self.context.settings
        extension = FORMAT_EXTENSION_MAPPING.get(settings.bibliography_format, ".bib")
        output_folder = normalize_path(settings.output_folder)
        bib_path = normalize_path(f"{output_folder}/{settings.bibliography_filename}{extension}")

        content = BibliographyAPI(self.context.vault, settings).export_bibliography()
        if output_folder:
            self.context.vault.ensure_folder(output_folder)
        self.context.vault.write(bib_path, content)
        logger.info(f"Bibliography exported to {bib_path}")
        return bib_path


class ExportNoteBibliographyCommand(Command):
    """Export the bibliography of a document that sets ``typst_bib``."""

    def __init__(self, context: BibliographyContext, note_path: str,
                 output_dir: Optional[str] = None):
        super().__init__(context)
        self.note_path = normalize_path(note_path)
        self.output_dir = output_dir

    def execute(self) -> str:
        vault = self.context.vault
        if not vault.is_file(self.note_path):
            raise BibliographyError(f"File not found: {self.note_path}")

        exporter = BibliographyExporter(vault, self.context.settings)
        config = exporter.parse_bibliography_config(vault.read_frontmatter(self.note_path))
        if config is None:
            raise BibliographyExportError(f"No typst_bib entry in the frontmatter of {self.note_path}")

        output_dir = self.output_dir
        if output_dir is None:
            output_dir = self.note_path.rsplit("/", 1)[0] if "/" in self.note_path else ""
        return exporter.export_bibliography(config, output_dir)


class ShowSourcesCommand(Command):
    """List the citekeys and paths of all sources."""

    def execute(self) -> List[Tuple[str, str]]:
        folder = self.context.settings.sources_folder
        if not self.context.vault.is_folder(folder):
            raise BibliographyError(f"Sources folder '{folder}' not found")

        sources = []
        for path in self.context.source_service.find_all_source_files(folder):
            frontmatter = self.context.vault.read_frontmatter(path) or {}
            sources.append((str(frontmatter.get("citekey")), path))
        return sources


class InitSourcesFolderCommand(Command):
    """Create the sources folder if it is missing."""

    @file_operation_handler
    def execute(self) -> bool:
        folder = self.context.settings.sources_folder
        if self.context.vault.is_folder(folder):
            return True
        self.context.vault.ensure_folder(folder)
        logger.info(f"Created sources folder: {folder}")
        return True


class ShowConfigCommand(Command):
    def execute(self) -> Dict[str, Any]:
        return self.context.settings.to_dict()


class SetConfigCommand(Command):
    """Change a single setting and save the settings file."""

    def __init__(self, context: BibliographyContext, key: str, value: str):
        super().__init__(context)
        self.key = key
        self.value = value

    def execute(self) -> Settings:
        settings = set_setting(self.context.settings, self.key, self.value)
        save_settings(settings, str(self.context.vault.root))
        self.context.settings = settings
        logger.info(f"Setting {self.key} updated")
        return settings
