"""
Source notes inside a vault: creating them, finding them and turning them
into a bibliography.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from .citekey import CitekeyGenerator
from .config import DEFAULT_FIELD_MAPPINGS, Settings
from .errors import BibliographyExportError, BibliographyFormatError
from .formats import get_formatter
from .models import DEFAULT_SOURCE_TYPE_FOLDER, SOURCE_TYPE_FOLDERS, BIB_FIELDS, SourceData
from .name_utils import names_to_csl
from .template import render_source_note
from .utils.logging_setup import log_operation
from .vault import Vault, normalize_path

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 50

DOI_URL_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)

# Source category -> CSL type used when a note has no specific bibtype
CATEGORY_TYPES = {
    "book": "book",
    "paper": "article",
    "website": "webpage",
    "thesis": "thesis",
    "report": "report",
}


class SourceService:
    """Manages the source notes of one vault."""

    def __init__(self, vault: Vault, settings: Settings):
        self.vault = vault
        self.settings = settings

    def get_sources_folder(self, note_path: Optional[str] = None,
                           default: Optional[str] = None) -> str:
        """Sources folder for a note: its ``typst_bib`` value or the default."""
        folder = default if default is not None else self.settings.sources_folder
        if note_path:
            try:
                frontmatter = self.vault.read_frontmatter(note_path) or {}
            except OSError as e:
                logger.error(f"Could not read {note_path}: {e}")
                frontmatter = {}
            typst_bib = frontmatter.get("typst_bib")
            if isinstance(typst_bib, str) and typst_bib.strip():
                folder = typst_bib
        return normalize_path(folder)

    def _build_filename(self, title: str) -> str:
        name = CitekeyGenerator.sanitize_filename(title or "Untitled Source")
        name = re.sub(r"\s+", " ", name).strip() or "Untitled Source"
        if len(name) > MAX_FILENAME_LENGTH:
            name = name[:MAX_FILENAME_LENGTH - 3].rstrip() + "..."
        return name

    def _unique_path(self, folder: str, name: str) -> str:
        path = f"{folder}/{name}.md"
        if not self.vault.exists(path):
            return path
        counter = 1
        while True:
            suffix = " (copy)" if counter == 1 else f" (copy {counter})"
            path = f"{folder}/{name}{suffix}.md"
            if not self.vault.exists(path):
                return path
            counter += 1

    def create_source_file(self, source: SourceData, sources_folder: Optional[str] = None,
                           template: Optional[str] = None) -> Optional[str]:
        """
        Write a source note into the category folder of the sources folder.

        Returns:
            The vault path of the new note, or None if it could not be created
        """
        base = normalize_path(sources_folder if sources_folder is not None
                              else self.settings.sources_folder)
        category_folder = SOURCE_TYPE_FOLDERS.get(source.source_type, DEFAULT_SOURCE_TYPE_FOLDER)
        folder = normalize_path(f"{base}/{category_folder}")

        try:
            self.vault.ensure_folder(folder)
            name = self._build_filename(source.title)
            path = self._unique_path(folder, name)
            content = render_source_note(source, template, filename=self.vault.basename(path))
            self.vault.create(path, content)
        except (OSError, ValueError) as e:
            logger.error(f"Error creating source file for {source.citekey}: {e}")
            return None

        log_operation("create_source", f"{source.citekey} -> {path}")
        return path

    def find_all_source_files(self, folder: Optional[str] = None) -> List[str]:
        """Markdown files below ``folder`` whose frontmatter has a citekey."""
        folder = normalize_path(folder if folder is not None else self.settings.sources_folder)
        if not self.vault.is_folder(folder):
            logger.warning(f"Sources folder not found: {folder}")
            return []

        sources = []
        for path in self.vault.list_markdown_files(folder):
            try:
                frontmatter = self.vault.read_frontmatter(path)
            except OSError as e:
                logger.error(f"Could not read {path}: {e}")
                continue
            if frontmatter and frontmatter.get("citekey"):
                sources.append(path)
            else:
                logger.debug(f"No citekey in {path}, skipping")
        return sources

    def collect_frontmatter(self, folder: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Frontmatter of every source in ``folder``, first citekey occurrence wins.

        Each mapping gets a ``_path`` key with the note it came from.
        """
        seen: Dict[str, str] = {}
        duplicates = 0
        records = []
        for path in self.find_all_source_files(folder):
            frontmatter = self.vault.read_frontmatter(path) or {}
            citekey = str(frontmatter.get("citekey") or "").strip()
            if not citekey:
                continue
            if citekey in seen:
                duplicates += 1
                logger.warning(
                    f"Duplicate citekey '{citekey}': keeping {seen[citekey]}, ignoring {path}"
                )
                continue
            seen[citekey] = path
            records.append(dict(frontmatter, _path=path))

        if duplicates:
            logger.warning(f"Found {duplicates} duplicate citekeys, kept {len(records)} unique sources")
        return records

    def generate_bibliography(self, folder: Optional[str] = None,
                              bib_format: Optional[str] = None) -> str:
        """
        Render every source in ``folder`` as a bibliography.

        Returns:
            The file content, or "" when there are no sources

        Raises:
            BibliographyExportError: If the formatter fails
        """
        bib_format = bib_format or self.settings.bibliography_format
        formatter = get_formatter(bib_format)

        entries = [self.convert_frontmatter_to_csl(record)
                   for record in self.collect_frontmatter(folder)]
        if not entries:
            logger.info("No sources found for bibliography")
            return ""

        try:
            content = formatter.format(entries)
        except (BibliographyFormatError, TypeError, ValueError) as e:
            raise BibliographyExportError(f"Failed to generate {bib_format}: {e}") from e

        log_operation("generate_bibliography", f"{len(entries)} sources as {bib_format}")
        return content

    @staticmethod
    def map_to_bibtex_type(bibtype: Optional[str], category: Any = None) -> str:
        """Entry type for a note: its bibtype, else one derived from its category."""
        if bibtype and str(bibtype).lower() != "misc":
            return str(bibtype).lower()
        if isinstance(category, list):
            category = category[0] if category else None
        return CATEGORY_TYPES.get(str(category or "").lower(), "article")

    def convert_frontmatter_to_csl(self, frontmatter: Dict[str, Any]) -> Dict[str, Any]:
        """Turn a note's frontmatter into a CSL-JSON record via the field mappings."""
        mappings = self.settings.field_mappings
        id_key = mappings.get("id", "citekey")
        csl: Dict[str, Any] = {
            "id": str(frontmatter.get(id_key) or frontmatter.get("citekey") or ""),
            "type": self.map_to_bibtex_type(frontmatter.get(mappings.get("type", "bibtype")),
                                            frontmatter.get("category")),
        }

        # frontmatter key -> bibliography field
        reverse = {fm_key: bib_key for bib_key, fm_key in mappings.items()
                   if bib_key not in ("id", "type")}
        default_reverse = {fm_key: bib_key for bib_key, fm_key in DEFAULT_FIELD_MAPPINGS.items()}
        keys = BIB_FIELDS + [k for k in reverse if k not in BIB_FIELDS]
        for field_name in keys:
            value = frontmatter.get(field_name)
            if value is None or value == "" or value == []:
                continue
            if field_name in reverse:
                bib_key = reverse[field_name]
            else:
                bib_key = default_reverse.get(field_name, field_name)
                # the field was mapped to another frontmatter key
                if bib_key in mappings and mappings[bib_key] != field_name:
                    continue
            if bib_key in ("author", "editor", "translator"):
                csl[bib_key] = names_to_csl(value)
            elif bib_key == "issued":
                issued = self._issued_from_year(value)
                if issued:
                    csl["issued"] = issued
            elif isinstance(value, list):
                csl[bib_key] = ", ".join(str(v) for v in value)
            else:
                csl[bib_key] = str(value)

        if csl.get("DOI"):
            csl["DOI"] = DOI_URL_PREFIX_RE.sub("", csl["DOI"].strip())
        return csl

    @staticmethod
    def _issued_from_year(value: Any) -> Optional[Dict[str, List[List[int]]]]:
        if isinstance(value, int):
            return {"date-parts": [[value]]}
        match = re.search(r"\d{4}", str(value))
        if match:
            return {"date-parts": [[int(match.group(0))]]}
        return None
