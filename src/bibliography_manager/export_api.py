"""Programmatic interface for exporting a vault's bibliography."""
import logging
import os
from typing import Optional

from .config import Settings
from .errors import BibliographyExportError, UnsupportedFormatError
from .models import BIBLIOGRAPHY_FORMAT_MAPPING, FORMAT_EXTENSION_MAPPING
from .source_service import SourceService
from .vault import Vault, normalize_path

logger = logging.getLogger(__name__)


def detect_format(filename: str) -> str:
    """
    Bibliography format for an output filename.

    Raises:
        UnsupportedFormatError: If the extension is not a bibliography extension
    """
    ext = os.path.splitext(filename)[1].lower()
    bib_format = BIBLIOGRAPHY_FORMAT_MAPPING.get(ext)
    if not bib_format:
        raise UnsupportedFormatError(
            f"Unsupported file extension: {ext}. Supported extensions: .bib, .json, .yaml, .yml",
            ext,
        )
    return bib_format


class BibliographyAPI:
    """Exports the bibliography of a vault as text or into a file."""

    description = (
        "Bibliography Manager API - Export citations from source files to various formats "
        "(BibTeX, CSL-JSON, Hayagriva). Use export_bibliography() for content or "
        "export_bibliography_to_path() to write a file into the vault."
    )

    def __init__(self, vault: Vault, settings: Settings,
                 source_service: Optional[SourceService] = None):
        self.vault = vault
        self.settings = settings
        self.source_service = source_service or SourceService(vault, settings)

    def _resolve_format(self, output_filename: Optional[str], bib_format: Optional[str]) -> str:
        if bib_format:
            return bib_format
        if output_filename:
            return detect_format(output_filename)
        return self.settings.bibliography_format

    def export_bibliography(self, sources_folder: Optional[str] = None,
                            output_filename: Optional[str] = None,
                            bib_format: Optional[str] = None) -> str:
        """
        Generate bibliography content from the source notes.

        Args:
            sources_folder: Folder of source notes (defaults to the settings)
            output_filename: Used to detect the format when none is given
            bib_format: "bibtex", "csl-json" or "hayagriva"

        Raises:
            UnsupportedFormatError: If the format cannot be detected
            BibliographyExportError: If there is nothing to export
        """
        folder = sources_folder or self.settings.sources_folder
        resolved = self._resolve_format(output_filename, bib_format)

        try:
            content = self.source_service.generate_bibliography(folder, resolved)
        except BibliographyExportError as e:
            logger.error(f"Failed to export bibliography: {e}")
            raise

        if not content or not content.strip():
            raise BibliographyExportError("No sources found or failed to generate bibliography")
        return content

    def export_bibliography_to_path(self, sources_folder: Optional[str] = None,
                                    output_filename: Optional[str] = None,
                                    bib_format: Optional[str] = None) -> str:
        """Write the bibliography into the sources folder and return its vault path."""
        content = self.export_bibliography(sources_folder, output_filename, bib_format)

        folder = normalize_path(sources_folder or self.settings.sources_folder)
        resolved = self._resolve_format(output_filename, bib_format)
        filename = output_filename or f"bibliography{FORMAT_EXTENSION_MAPPING.get(resolved, '.bib')}"

        if folder:
            self.vault.ensure_folder(folder)
        path = self.vault.write(f"{folder}/{filename}", content)
        logger.info(f"Bibliography exported to {path}")
        return path
