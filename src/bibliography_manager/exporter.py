"""
Per-document bibliography export.

A document names its bibliography in the ``typst_bib`` frontmatter key:
either an existing ``.bib`` file, which is copied, or a folder of source
notes, which is rendered together with the vault's global sources folder.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import BibliographyExportError
from .formats import get_formatter
from .formats.csl import as_text
from .models import FORMAT_EXTENSION_MAPPING, BibliographyConfig, DeduplicationResult, SourceEntry
from .vault import Vault, normalize_path

logger = logging.getLogger(__name__)

NO_SOURCES_PLACEHOLDERS = {
    "bibtex": "% No sources found",
    "csl-json": "[]",
    "hayagriva": "{}\n",
}

# Note type -> CSL type
NOTE_TYPE_TO_CSL = {
    "book": "book",
    "article": "article-journal",
    "inproceedings": "paper-conference",
    "website": "webpage",
    "misc": "document",
}
CSL_TYPES = {
    "article-journal", "paper-conference", "webpage", "document", "chapter",
    "thesis", "report", "manuscript", "article", "article-magazine",
    "article-newspaper",
}


def split_author(name: str) -> Dict[str, str]:
    """``"Smith, John"`` or ``"John Smith"`` -> CSL name."""
    parts = [p.strip() for p in name.split(",")]
    if len(parts) == 2:
        return {"family": parts[0], "given": parts[1]}
    words = parts[0].split(" ")
    return {"family": words[-1], "given": " ".join(words[:-1])}


class BibliographyExporter:
    """Exports the bibliography of a single document."""

    def __init__(self, vault: Vault, settings: Settings):
        self.vault = vault
        self.settings = settings

    @staticmethod
    def parse_bibliography_config(frontmatter: Optional[Dict[str, Any]]) -> Optional[BibliographyConfig]:
        typst_bib = (frontmatter or {}).get("typst_bib")
        if not typst_bib or not isinstance(typst_bib, str):
            return None
        if typst_bib.endswith(".bib"):
            return BibliographyConfig(mode="file", path=typst_bib)
        return BibliographyConfig(mode="directory", path=typst_bib)

    def _bibliography_filename(self) -> str:
        extension = FORMAT_EXTENSION_MAPPING.get(self.settings.bibliography_format, ".bib")
        return self.settings.bibliography_filename + extension

    def export_bibliography(self, config: BibliographyConfig, output_dir: str) -> str:
        """
        Write the document's bibliography into ``output_dir``.

        Returns:
            The vault path of the written file

        Raises:
            BibliographyExportError: If a referenced ``.bib`` file is missing
        """
        output_dir = normalize_path(output_dir)
        output_path = normalize_path(f"{output_dir}/{self._bibliography_filename()}")

        if config.mode == "file":
            if not self.vault.is_file(config.path):
                raise BibliographyExportError(f"Bibliography file not found: {config.path}")
            content = self.vault.read(config.path)
            if output_dir:
                self.vault.ensure_folder(output_dir)
            self.vault.write(output_path, content)
            logger.info(f"Copied {config.path} to {output_path}")
            return output_path

        sources = self.collect_sources(config)
        content = self.generate_content(sources)
        if output_dir:
            self.vault.ensure_folder(output_dir)
        self.vault.write(output_path, content)

        result = self.deduplicate_sources(sources)
        if result.duplicates_found:
            logger.info(
                f"Generated bibliography with {len(result.unique_sources)} unique sources "
                f"({result.duplicates_found} duplicates removed)"
            )
        else:
            logger.info(f"Generated bibliography with {len(result.unique_sources)} sources")
        return output_path

    def collect_sources(self, config: Optional[BibliographyConfig]) -> List[SourceEntry]:
        """Sources of the ``typst_bib`` folder first, then the global folder."""
        sources: Dict[str, SourceEntry] = {}
        folders = []
        if config is not None and config.mode == "directory":
            folders.append(config.path)
        folders.append(self.settings.sources_folder)

        for folder in folders:
            for source in self.collect_from_directory(folder):
                if source.citekey in sources:
                    logger.warning(
                        f"Duplicate citekey in {folder}: {source.citekey} "
                        f"(file: {source.filepath}), keeping first occurrence"
                    )
                    continue
                sources[source.citekey] = source
        return list(sources.values())

    def collect_from_directory(self, folder: str) -> List[SourceEntry]:
        if not self.vault.is_folder(folder):
            return []
        sources = []
        for path in self.vault.list_markdown_files(folder):
            source = self.extract_source_from_file(path)
            if source is not None:
                sources.append(source)
        return sources

    def extract_source_from_file(self, path: str) -> Optional[SourceEntry]:
        try:
            frontmatter = self.vault.read_frontmatter(path)
        except OSError as e:
            logger.error(f"Error extracting source from {path}: {e}")
            return None
        if not frontmatter or not frontmatter.get("citekey"):
            return None

        author = frontmatter.get("author") or []
        if isinstance(author, str):
            author = [author]
        keywords = frontmatter.get("keywords")
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",") if k.strip()]

        def text(key: str) -> Optional[str]:
            return as_text(frontmatter.get(key)) or None

        return SourceEntry(
            citekey=str(frontmatter["citekey"]),
            title=text("title") or self.vault.basename(path),
            author=[str(a) for a in author],
            year=frontmatter.get("year") or date.today().year,
            type=text("type") or text("bibtype") or "misc",
            journal=text("journal"),
            publisher=text("publisher"),
            pages=text("pages"),
            volume=text("volume"),
            issue=text("issue") or text("number"),
            doi=text("doi"),
            isbn=text("isbn"),
            url=text("url"),
            abstract=text("abstract"),
            keywords=keywords or None,
            note=text("note"),
            filepath=path,
        )

    @staticmethod
    def deduplicate_sources(sources: List[SourceEntry]) -> DeduplicationResult:
        """Keep the first source for every citekey and report the rest."""
        unique: Dict[str, SourceEntry] = {}
        duplicate_citekeys: Dict[str, List[SourceEntry]] = {}
        duplicates_found = 0

        for source in sources:
            if source.citekey not in unique:
                unique[source.citekey] = source
                continue
            duplicates_found += 1
            if source.citekey not in duplicate_citekeys:
                duplicate_citekeys[source.citekey] = [unique[source.citekey]]
            duplicate_citekeys[source.citekey].append(source)
            logger.warning(
                f"Duplicate citekey found: {source.citekey} (file: {source.filepath}), "
                f"keeping first occurrence"
            )

        return DeduplicationResult(
            unique_sources=list(unique.values()),
            duplicates_found=duplicates_found,
            duplicate_citekeys=duplicate_citekeys,
        )

    def generate_content(self, sources: List[SourceEntry]) -> str:
        bib_format = self.settings.bibliography_format
        if not sources:
            return NO_SOURCES_PLACEHOLDERS.get(bib_format, "")

        result = self.deduplicate_sources(sources)
        if result.duplicates_found:
            logger.warning(f"Found {result.duplicates_found} duplicate citekeys:")
            for citekey, duplicates in result.duplicate_citekeys.items():
                logger.warning(f"- {citekey}: found {len(duplicates)} instances")
                for duplicate in duplicates:
                    logger.warning(f"  * {duplicate.filepath}")

        entries = [self.source_to_csl(source) for source in result.unique_sources]
        try:
            return get_formatter(bib_format).format(entries)
        except (TypeError, ValueError) as e:
            raise BibliographyExportError(f"Failed to generate {bib_format}: {e}") from e

    @staticmethod
    def map_note_type_to_csl(note_type: str) -> str:
        note_type = (note_type or "").lower()
        if note_type in NOTE_TYPE_TO_CSL:
            return NOTE_TYPE_TO_CSL[note_type]
        return note_type if note_type in CSL_TYPES else "document"

    def source_to_csl(self, source: SourceEntry) -> Dict[str, Any]:
        csl: Dict[str, Any] = {
            "id": source.citekey,
            "title": source.title,
            "type": self.map_note_type_to_csl(source.type),
        }
        year = as_text(source.year)
        if year.isdigit():
            csl["issued"] = {"date-parts": [[int(year)]]}
        elif year:
            csl["issued"] = {"raw": year}

        if source.author:
            csl["author"] = [split_author(name) for name in source.author]

        optional = {
            "container-title": source.journal,
            "publisher": source.publisher,
            "page": source.pages,
            "volume": source.volume,
            "issue": source.issue,
            "DOI": source.doi,
            "ISBN": source.isbn,
            "URL": source.url,
            "abstract": source.abstract,
            "note": source.note,
        }
        for key, value in optional.items():
            if value:
                csl[key] = value
        if source.keywords:
            csl["keyword"] = ", ".join(source.keywords)
        return csl
