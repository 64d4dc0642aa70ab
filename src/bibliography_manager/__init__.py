"""Bibliography management for markdown vaults."""
from .config import Settings, load_settings
from .export_api import BibliographyAPI
from .source_importer import SourceImporter
from .source_service import SourceService
from .vault import Vault

__version__ = "1.0.0"
__all__ = ["BibliographyAPI", "Settings", "SourceImporter", "SourceService", "Vault", "load_settings"]
